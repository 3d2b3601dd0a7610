"""Receiving-side validation and file materialization.

A ``response`` payload from the server is checked before anything touches
disk:

1. ``files`` must be present and a mapping, otherwise ``ValidationError``.
2. Entries with an empty path or empty/non-string content are dropped.
3. If nothing is left, ``NoValidFilesError``.

The remaining files are written concurrently under the workspace root. Each
write stands alone: a failure is reported for that path and the others carry
on. Afterwards the first successfully written file (in payload order) is
opened in the editor.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Mapping, Optional

from pydantic import BaseModel, Field, computed_field

from sitegen_bridge.errors import (
    BridgeError,
    FileWriteError,
    NoValidFilesError,
    ValidationError,
    WorkspaceError,
)
from sitegen_bridge.host import EditorHost
from sitegen_bridge.models import ErrorInfo, FileSet


class FileWriteFailure(BaseModel):
    """A single path that could not be written."""
    path: str
    error: str


class MaterializeReport(BaseModel):
    """Outcome of materializing one ``response`` payload."""
    created: list[str] = Field(default_factory=list)
    failures: list[FileWriteFailure] = Field(default_factory=list)
    opened: Optional[str] = Field(default=None)
    error: Optional[ErrorInfo] = Field(default=None)

    @computed_field  # type: ignore[misc]
    @property
    def success(self) -> bool:
        return self.error is None and not self.failures


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def filter_valid_files(files: Mapping[Any, Any]) -> FileSet:
    """Keep entries with a non-empty string path and non-empty string content."""
    return {
        path: content
        for path, content in files.items()
        if isinstance(path, str) and path and isinstance(content, str) and content != ""
    }


def validate_payload(payload: Any) -> FileSet:
    """Return the writable file set carried by a ``response`` payload.

    Raises:
        ValidationError: ``files`` is absent or not a mapping.
        NoValidFilesError: Every entry was filtered out.
    """
    files = payload.get("files") if isinstance(payload, Mapping) else None
    if not isinstance(files, Mapping):
        raise ValidationError("Invalid response: No files found")
    valid = filter_valid_files(files)
    if not valid:
        raise NoValidFilesError("No valid files to create")
    return valid


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------


def resolve_target(root: Path, relative: str) -> Path:
    """Resolve *relative* under *root*.

    Raises:
        FileWriteError: If the path is absolute or escapes *root*.
    """
    candidate = Path(relative)
    if candidate.is_absolute() or candidate.drive:
        raise FileWriteError(relative, "absolute paths are not allowed")
    base = root.resolve()
    target = (base / candidate).resolve()
    if target == base or not target.is_relative_to(base):
        raise FileWriteError(relative, "path escapes the workspace root")
    return target


def write_file(root: Path, relative: str, content: str) -> Path:
    """Write one file, creating parent directories as needed.

    Content is encoded before anything touches disk, so text that is not
    valid UTF-8 (e.g. a lone surrogate) leaves no empty file behind.

    Raises:
        FileWriteError: On an unsafe or unrepresentable path, content that
            cannot be encoded, or any OS-level failure.
    """
    try:
        target = resolve_target(root, relative)
        data = content.encode("utf-8")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
    except OSError as exc:
        raise FileWriteError(relative, exc.strerror or str(exc)) from exc
    except ValueError as exc:
        # Embedded NUL in the path, or unencodable content.
        raise FileWriteError(relative, str(exc)) from exc
    return target


def _last_per_target(root: Path, files: FileSet) -> list[str]:
    """Paths of *files* to actually write, in *files* order.

    When several paths resolve to the same target only the last one is kept.
    Paths that cannot be resolved are kept so their write reports the error.
    """
    latest: dict[object, str] = {}
    for path in files:
        try:
            key: object = resolve_target(root, path)
        except (FileWriteError, ValueError):
            key = ("unresolved", path)
        latest[key] = path
    keep = set(latest.values())
    return [path for path in files if path in keep]


async def write_files(root: Path, files: FileSet) -> MaterializeReport:
    """Write every entry of *files* under *root*, concurrently.

    The report lists created paths and failures in *files* order. Entries
    superseded by a later path naming the same file are skipped.
    """
    loop = asyncio.get_running_loop()

    async def _write(relative: str, content: str) -> Optional[FileWriteError]:
        try:
            await loop.run_in_executor(None, write_file, root, relative, content)
        except FileWriteError as exc:
            return exc
        return None

    paths = _last_per_target(root, files)
    outcomes = await asyncio.gather(*(_write(path, files[path]) for path in paths))

    report = MaterializeReport()
    for path, failure in zip(paths, outcomes):
        if failure is None:
            report.created.append(path)
        else:
            report.failures.append(FileWriteFailure(path=path, error=str(failure)))
    return report


# ---------------------------------------------------------------------------
# Materializer
# ---------------------------------------------------------------------------


class Materializer:
    """Validates server payloads and writes them into the host's workspace."""

    def __init__(self, host: EditorHost) -> None:
        self.host = host

    def _fail(self, exc: BridgeError) -> MaterializeReport:
        self.host.show_error(str(exc))
        return MaterializeReport(error=ErrorInfo(kind=exc.kind, message=str(exc)))

    async def materialize(self, payload: Any) -> MaterializeReport:
        """Validate *payload*, write its files, and open the first one."""
        try:
            files = validate_payload(payload)
        except ValidationError as exc:
            return self._fail(exc)

        root = self.host.workspace_root()
        if root is None:
            return self._fail(WorkspaceError("Please open a workspace folder first"))

        report = await write_files(root, files)

        for path in report.created:
            self.host.show_info(f"Created file: {path}")
        for failure in report.failures:
            self.host.show_error(failure.error)

        if report.created:
            first = report.created[0]
            self.host.open_file(resolve_target(root, first))
            report.opened = first
            self.host.show_info(f"Created {len(report.created)} file(s) successfully!")
        return report
