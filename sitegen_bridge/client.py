"""Materializing client.

Connects to the orchestrator over a WebSocket, sends prompts collected from
the editor host, and materializes every ``response`` it receives. The two
editor commands are :meth:`BridgeClient.connect` and
:meth:`BridgeClient.generate_code`.

Usage::

    sitegen-bridge-client --url ws://localhost:3000 --root ./my-site
"""

from __future__ import annotations

import asyncio
import json
import sys
from enum import Enum
from pathlib import Path
from typing import Optional

import pydantic
from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, ConnectionClosedError, WebSocketException

from sitegen_bridge.config import ClientConfig, Config
from sitegen_bridge.errors import ParseError
from sitegen_bridge.host import ConsoleHost, EditorHost
from sitegen_bridge.materializer import MaterializeReport, Materializer
from sitegen_bridge.models import ProjectContext, PromptMessage
from sitegen_bridge.utils import console


class CommandOutcome(str, Enum):
    """What ``generate_code`` ended up doing."""

    SENT = "sent"
    CANCELLED = "cancelled"
    RECONNECTING = "reconnecting"
    NOT_CONNECTED = "not_connected"


class BridgeClient:
    """WebSocket client that turns server responses into workspace files.

    Attributes:
        host: Editor capabilities (notifications, prompts, workspace root).
        config: Client settings, notably ``server_url``.
        context: Optional project context sent with every prompt.
    """

    def __init__(
        self,
        host: EditorHost,
        config: Optional[ClientConfig] = None,
        context: Optional[ProjectContext] = None,
    ) -> None:
        self.host = host
        self.config = config or ClientConfig()
        self.context = context
        self.materializer = Materializer(host)
        self.is_connected = False
        self._ws: Optional[ClientConnection] = None
        self._listener: Optional[asyncio.Task[None]] = None
        self._pending: Optional[asyncio.Future[Optional[MaterializeReport]]] = None

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    async def connect(self, server_url: Optional[str] = None) -> bool:
        """(Re)connect to the server, closing any existing connection first."""
        url = server_url or self.config.server_url
        await self.close()

        self.host.show_info(f"Connecting to server at {url}...")
        try:
            self._ws = await connect(url)
        except (OSError, asyncio.TimeoutError, WebSocketException) as exc:
            self.host.show_error(f"Failed to connect: {exc}")
            return False

        self.is_connected = True
        self.host.show_info("Connected to server!")
        self._listener = asyncio.create_task(self._listen(self._ws))
        return True

    async def close(self) -> None:
        """Close the current connection, if any."""
        ws, self._ws = self._ws, None
        if ws is not None:
            await ws.close()
        if self._listener is not None:
            await asyncio.gather(self._listener, return_exceptions=True)
            self._listener = None
        self.is_connected = False

    async def _listen(self, ws: ClientConnection) -> None:
        try:
            async for raw in ws:
                try:
                    await self.handle_message(raw)
                except Exception as exc:  # noqa: BLE001
                    self.host.show_error(f"Error processing server message: {exc}")
                    self._resolve_pending(None)
        except ConnectionClosedError as exc:
            self.host.show_error(f"WebSocket error: {exc}")
        finally:
            self.is_connected = False
            self._resolve_pending(None)
            self.host.show_info("Disconnected from server")

    # ------------------------------------------------------------------
    # Inbound messages
    # ------------------------------------------------------------------

    def _resolve_pending(self, report: Optional[MaterializeReport]) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.set_result(report)
        self._pending = None

    async def handle_message(self, raw: str | bytes) -> Optional[MaterializeReport]:
        """Dispatch one server message.

        Returns the materialization report for ``response`` messages and
        ``None`` for everything else.
        """
        try:
            message = json.loads(raw)
            if not isinstance(message, dict):
                raise ParseError("message is not a JSON object")
        except (json.JSONDecodeError, ParseError) as exc:
            self.host.show_error(f"Error processing server message: {exc}")
            return None

        msg_type = message.get("type")
        if msg_type == "response":
            report = await self.materializer.materialize(message)
            self._resolve_pending(report)
            return report
        if msg_type == "error":
            self.host.show_error(f"Server error: {message.get('error')}")
            self._resolve_pending(None)
        return None

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def generate_code(self) -> CommandOutcome:
        """Ask for a prompt and send it to the server."""
        if not self.is_connected or self._ws is None:
            choice = await self.host.ask_choice(
                "Not connected to the server. Connect now?", "Yes", "No"
            )
            if choice == "Yes":
                await self.connect()
                return CommandOutcome.RECONNECTING
            return CommandOutcome.NOT_CONNECTED

        prompt = await self.host.prompt_text(
            "Be specific about features, technologies, and design",
            placeholder="Describe the web app you want to create...",
        )
        if not prompt:
            return CommandOutcome.CANCELLED

        self.host.show_info(f"Sending prompt: {prompt}")
        message = PromptMessage(prompt=prompt, context=self.context)
        self._pending = asyncio.get_running_loop().create_future()
        try:
            await self._ws.send(message.model_dump_json(exclude_none=True))
        except ConnectionClosed as exc:
            self._resolve_pending(None)
            self.host.show_error(f"Error sending prompt: {exc}")
            return CommandOutcome.NOT_CONNECTED
        return CommandOutcome.SENT

    async def wait_for_reply(self) -> Optional[MaterializeReport]:
        """Wait until the prompt sent last is answered (or the connection drops)."""
        if self._pending is None:
            return None
        return await self._pending


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


async def _run(client: BridgeClient) -> None:
    await client.connect()
    try:
        while True:
            outcome = await client.generate_code()
            if outcome is CommandOutcome.SENT:
                await client.wait_for_reply()
            elif outcome is not CommandOutcome.RECONNECTING:
                break
    finally:
        await client.close()


def main() -> None:
    """CLI entry point for ``sitegen-bridge-client``."""
    import argparse

    parser = argparse.ArgumentParser(
        description="sitegen-bridge client -- send prompts and write the generated files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  sitegen-bridge-client --root ./my-site\n"
            "  sitegen-bridge-client --url ws://build-box:3000 --root .\n"
        ),
    )
    parser.add_argument("--url", default=None, help="Server URL (default: ws://localhost:3000)")
    parser.add_argument(
        "--root",
        default=None,
        help="Workspace folder to write files into (default: current directory)",
    )
    parser.add_argument("--env-file", default=None, help="Path to a .env file")

    args = parser.parse_args()

    try:
        config = Config.from_env(args.env_file)
    except (ValueError, pydantic.ValidationError) as exc:
        console.print(f"[bold red]Error:[/bold red] Invalid configuration: {exc}")
        sys.exit(1)

    if args.url:
        config.client.server_url = args.url
    if args.root:
        config.client.workspace_root = Path(args.root)
    root = config.client.workspace_root or Path.cwd()

    if not root.is_dir():
        console.print(f"[bold red]Error:[/bold red] Workspace folder not found: {root}")
        sys.exit(1)

    client = BridgeClient(ConsoleHost(root), config.client)
    try:
        asyncio.run(_run(client))
    except KeyboardInterrupt:
        console.print("[dim]Interrupted.[/dim]")


if __name__ == "__main__":
    main()
