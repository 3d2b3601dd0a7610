"""Pydantic v2 models for sitegen-bridge.

Defines the request/result types that flow through the orchestrator and the
JSON messages exchanged over the WebSocket connection.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

# Relative path -> file content.
FileSet = dict[str, str]


# ---------------------------------------------------------------------------
# Prompt request
# ---------------------------------------------------------------------------

class ProjectFile(BaseModel):
    """A file already known to exist in the target project."""
    model_config = ConfigDict(extra="allow")

    path: str = Field(..., description="Project-relative path")


class ProjectContext(BaseModel):
    """Advisory project context sent alongside a prompt.

    Only ``files`` is interpreted; any other keys the editor sends are kept
    so they survive a round trip through the context store.
    """
    model_config = ConfigDict(extra="allow")

    files: list[ProjectFile] = Field(default_factory=list)


class PromptRequest(BaseModel):
    """A natural-language description of the web app to generate."""
    prompt: str = Field(..., description="Verbatim user prompt")
    context: Optional[ProjectContext] = Field(default=None)


# ---------------------------------------------------------------------------
# Generation result
# ---------------------------------------------------------------------------

class ErrorInfo(BaseModel):
    """Failure descriptor: the error class name plus a readable message."""
    kind: str
    message: str


class GenerationResult(BaseModel):
    """Outcome of one prompt: either a file set or an error descriptor."""
    files: Optional[FileSet] = Field(default=None)
    error: Optional[ErrorInfo] = Field(default=None)

    @computed_field  # type: ignore[misc]
    @property
    def success(self) -> bool:
        return self.error is None

    @classmethod
    def ok(cls, files: FileSet) -> "GenerationResult":
        return cls(files=files)

    @classmethod
    def failed(cls, exc: Exception) -> "GenerationResult":
        return cls(error=ErrorInfo(kind=type(exc).__name__, message=str(exc)))


# ---------------------------------------------------------------------------
# Wire messages
# ---------------------------------------------------------------------------

class PromptMessage(BaseModel):
    """Client -> server: generate files for ``prompt``."""
    type: Literal["prompt"] = "prompt"
    prompt: str
    context: Optional[ProjectContext] = None

    def to_request(self) -> PromptRequest:
        return PromptRequest(prompt=self.prompt, context=self.context)


class ContextMessage(BaseModel):
    """Client -> server: merge ``context`` into the stored project context."""
    type: Literal["context"] = "context"
    context: dict[str, Any] = Field(default_factory=dict)


class ResponseMessage(BaseModel):
    """Server -> client: the generated file set."""
    type: Literal["response"] = "response"
    files: FileSet


class ErrorMessage(BaseModel):
    """Server -> client: a request failed."""
    type: Literal["error"] = "error"
    error: str
