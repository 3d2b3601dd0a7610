"""Shared pytest fixtures for the sitegen-bridge test suite.

Provides reusable fixtures for:
- Sample model replies
- A recording fake editor host
- Fake upstream generators
- Mocked ``httpx.AsyncClient`` instances
"""

from __future__ import annotations

import asyncio
import textwrap
from pathlib import Path
from typing import Any, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from sitegen_bridge.errors import UpstreamError


# ---------------------------------------------------------------------------
# Sample model replies
# ---------------------------------------------------------------------------

@pytest.fixture
def three_file_reply() -> str:
    """A typical complete reply with the three canonical files."""
    return textwrap.dedent("""\
        Here is your counter app.

        ```file:index.html
        <!DOCTYPE html>
        <html>
        <body><button id="inc">+</button></body>
        </html>
        ```

        ```file:styles.css
        button { font-size: 2rem; }
        ```

        ```file:script.js
        document.getElementById('inc').addEventListener('click', () => {});
        ```

        Enjoy!
    """)


@pytest.fixture
def reply_with_component() -> str:
    """Reply that only provides a page and an extra module."""
    return textwrap.dedent("""\
        ```file:index.html
        <h1>Todo</h1>
        ```
        ```components/list.js
        export function renderList() {}
        ```
    """)


# ---------------------------------------------------------------------------
# Fake editor host
# ---------------------------------------------------------------------------

class FakeHost:
    """Records every notification and answers prompts from canned values."""

    def __init__(
        self,
        root: Optional[Path],
        prompt_answer: Optional[str] = None,
        choice_answer: Optional[str] = None,
    ) -> None:
        self.root = root
        self.prompt_answer = prompt_answer
        self.choice_answer = choice_answer
        self.infos: list[str] = []
        self.errors: list[str] = []
        self.opened: list[Path] = []
        self.questions: list[tuple[str, tuple[str, ...]]] = []

    def show_info(self, message: str) -> None:
        self.infos.append(message)

    def show_error(self, message: str) -> None:
        self.errors.append(message)

    async def ask_choice(self, message: str, *choices: str) -> Optional[str]:
        self.questions.append((message, choices))
        return self.choice_answer

    async def prompt_text(self, prompt: str, placeholder: str = "") -> Optional[str]:
        return self.prompt_answer

    def workspace_root(self) -> Optional[Path]:
        return self.root

    def open_file(self, path: Path) -> None:
        self.opened.append(path)


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Empty workspace folder (auto-cleanup)."""
    root = tmp_path / "workspace"
    root.mkdir()
    return root


@pytest.fixture
def fake_host(workspace: Path) -> FakeHost:
    return FakeHost(workspace)


# ---------------------------------------------------------------------------
# Fake upstream generators
# ---------------------------------------------------------------------------

class StaticGenerator:
    """Returns a fixed reply and remembers what it was asked."""

    def __init__(self, reply: str) -> None:
        self.reply = reply
        self.calls: list[tuple[str, str]] = []

    async def generate(self, system_instruction: str, user_message: str) -> str:
        self.calls.append((system_instruction, user_message))
        return self.reply


class FailingGenerator:
    async def generate(self, system_instruction: str, user_message: str) -> str:
        raise UpstreamError("Gemini quota exceeded (HTTP 429): slow down")


class StallingGenerator:
    """Never answers until cancelled."""

    def __init__(self) -> None:
        self.cancelled = False

    async def generate(self, system_instruction: str, user_message: str) -> str:
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return ""


# ---------------------------------------------------------------------------
# httpx mocking
# ---------------------------------------------------------------------------

def make_mock_http_client(
    json_body: Optional[dict[str, Any]] = None,
    side_effect: Optional[BaseException] = None,
) -> AsyncMock:
    """Build an ``AsyncMock`` that stands in for ``httpx.AsyncClient``."""
    mock_client = AsyncMock()
    if side_effect is not None:
        mock_client.post = AsyncMock(side_effect=side_effect)
    else:
        mock_response = MagicMock()
        mock_response.json.return_value = json_body or {}
        mock_response.raise_for_status = MagicMock()
        mock_client.post = AsyncMock(return_value=mock_response)
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    return mock_client


@pytest.fixture
def host_factory() -> type[FakeHost]:
    return FakeHost


@pytest.fixture
def static_generator() -> type[StaticGenerator]:
    return StaticGenerator


@pytest.fixture
def failing_generator() -> FailingGenerator:
    return FailingGenerator()


@pytest.fixture
def stalling_generator() -> StallingGenerator:
    return StallingGenerator()


@pytest.fixture
def http_client_factory():
    return make_mock_http_client
