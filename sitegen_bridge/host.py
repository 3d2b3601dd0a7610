"""Editor host capability.

The materializing client never talks to an editor directly; everything it
needs (notifications, a text prompt, a yes/no choice, the workspace root and
"open this file") goes through :class:`EditorHost`. :class:`ConsoleHost` is
the terminal implementation used by ``sitegen-bridge-client``.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional, Protocol

from rich.console import Console
from rich.markup import escape
from rich.prompt import Prompt
from rich.syntax import Syntax


class EditorHost(Protocol):
    """What the client needs from the editor it runs in."""

    def show_info(self, message: str) -> None:
        ...

    def show_error(self, message: str) -> None:
        ...

    async def ask_choice(self, message: str, *choices: str) -> Optional[str]:
        """Modal question; returns the chosen label or ``None`` if dismissed."""
        ...

    async def prompt_text(self, prompt: str, placeholder: str = "") -> Optional[str]:
        """Free-text input; returns ``None`` if dismissed."""
        ...

    def workspace_root(self) -> Optional[Path]:
        ...

    def open_file(self, path: Path) -> None:
        ...


class ConsoleHost:
    """Terminal host built on rich.

    Prompts run in a worker thread so they do not block the event loop that
    is receiving server messages.
    """

    def __init__(self, workspace: Optional[Path] = None, console: Optional[Console] = None) -> None:
        self._workspace = workspace
        self.console = console or Console()

    def show_info(self, message: str) -> None:
        self.console.print(f"[cyan]{escape(message)}[/cyan]")

    def show_error(self, message: str) -> None:
        self.console.print(f"[bold red]{escape(message)}[/bold red]")

    async def ask_choice(self, message: str, *choices: str) -> Optional[str]:
        return await asyncio.to_thread(
            Prompt.ask, message, choices=list(choices), console=self.console
        )

    async def prompt_text(self, prompt: str, placeholder: str = "") -> Optional[str]:
        label = f"{prompt} [dim]({escape(placeholder)})[/dim]" if placeholder else prompt
        answer = await asyncio.to_thread(Prompt.ask, label, default="", console=self.console)
        return answer.strip() or None

    def workspace_root(self) -> Optional[Path]:
        if self._workspace is None or not self._workspace.is_dir():
            return None
        return self._workspace

    def open_file(self, path: Path) -> None:
        """Show the file with syntax highlighting."""
        self.console.rule(str(path))
        self.console.print(Syntax.from_path(str(path), line_numbers=True))
