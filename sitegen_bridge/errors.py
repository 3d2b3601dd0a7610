"""Exception hierarchy shared by the orchestrator and the materializer."""

from __future__ import annotations


class BridgeError(Exception):
    """Base class for every error the bridge reports to a user or peer."""

    @property
    def kind(self) -> str:
        return type(self).__name__


class ParseError(BridgeError):
    """An inbound message was not valid JSON or not a JSON object."""


class UpstreamError(BridgeError):
    """The text-generation service failed, timed out, or returned nothing."""


class ValidationError(BridgeError):
    """A received file set was malformed (e.g. ``files`` missing or not a mapping)."""


class NoValidFilesError(ValidationError):
    """Every entry of a received file set was filtered out."""


class FileWriteError(BridgeError):
    """Writing a single file failed. Sibling writes are unaffected."""

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__(f"Error creating file {path}: {message}")


class WorkspaceError(BridgeError):
    """No workspace root is available to write into."""
