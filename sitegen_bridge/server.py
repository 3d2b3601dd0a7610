"""sitegen-bridge orchestrator server.

Serves, on a single port:

* ``GET /health``  -- liveness check, always ``{"status": "ok"}``.
* ``WS  /``        -- the editor protocol. Each text frame is one JSON
  object with a ``type`` of ``"prompt"`` or ``"context"``.

Messages on one connection are handled strictly in order; different
connections run concurrently and share only the context store.

Usage::

    sitegen-bridge-server --port 3000
    python -m sitegen_bridge.server --provider ollama --timeout 300
"""

from __future__ import annotations

import asyncio
import json
import sys
from typing import Any, Optional

import pydantic
import uvicorn
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from sitegen_bridge.config import Config
from sitegen_bridge.context_store import ContextStore
from sitegen_bridge.errors import ParseError
from sitegen_bridge.models import ErrorMessage, PromptMessage, ResponseMessage
from sitegen_bridge.ollama_client import OllamaClient
from sitegen_bridge.orchestrator import Orchestrator
from sitegen_bridge.upstream import build_generator
from sitegen_bridge.utils import console, print_error, print_info, print_warning


# ---------------------------------------------------------------------------
# Message handling
# ---------------------------------------------------------------------------


def parse_message(raw: str) -> dict[str, Any]:
    """Decode one inbound frame.

    Raises:
        ParseError: If *raw* is not JSON or not a JSON object.
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ParseError(f"Invalid JSON message: {exc.msg} (line {exc.lineno}, column {exc.colno})") from exc
    if not isinstance(data, dict):
        raise ParseError("Message must be a JSON object")
    return data


async def handle_message(orchestrator: Orchestrator, raw: str) -> Optional[BaseModel]:
    """Process one inbound frame and return the reply to send, if any.

    ``context`` messages and unknown types produce no reply.
    """
    try:
        data = parse_message(raw)
    except ParseError as exc:
        print_warning(str(exc))
        return ErrorMessage(error=str(exc))

    msg_type = data.get("type")
    print_info(f"Received message: {msg_type}")

    if msg_type == "prompt":
        try:
            message = PromptMessage.model_validate(data)
        except pydantic.ValidationError as exc:
            return ErrorMessage(error=f"Invalid prompt message: {exc.errors()[0]['msg']}")
        result = await orchestrator.handle_prompt(message.to_request())
        if result.error is not None:
            return ErrorMessage(error=result.error.message)
        return ResponseMessage(files=result.files or {})

    if msg_type == "context":
        context = data.get("context")
        if isinstance(context, dict):
            await orchestrator.store_context(context)
        else:
            print_warning("Ignoring context message without a context object")
        return None

    print_warning(f"Unknown message type: {msg_type}")
    return None


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------


def create_app(orchestrator: Orchestrator) -> FastAPI:
    """Build the FastAPI app around an already-configured orchestrator."""
    app = FastAPI(title="sitegen-bridge")
    app.state.orchestrator = orchestrator

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.websocket("/")
    async def editor_session(websocket: WebSocket) -> None:
        await websocket.accept()
        print_info("Client connected")
        try:
            while True:
                raw = await websocket.receive_text()
                try:
                    reply = await handle_message(orchestrator, raw)
                except Exception as exc:  # noqa: BLE001
                    print_error(f"Error processing message: {exc}")
                    reply = ErrorMessage(error=str(exc))
                if reply is not None:
                    await websocket.send_text(reply.model_dump_json())
        except WebSocketDisconnect:
            print_info("Client disconnected")

    return app


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """CLI entry point for ``sitegen-bridge-server``."""
    import argparse

    parser = argparse.ArgumentParser(
        description="sitegen-bridge server -- relays editor prompts to a generative model",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  sitegen-bridge-server\n"
            "  sitegen-bridge-server --port 3001 --timeout 300\n"
            "  sitegen-bridge-server --provider ollama --model qwen2.5-coder:14b\n"
        ),
    )
    parser.add_argument("--host", default=None, help="Bind address (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=None, help="Port (default: $PORT or 3000)")
    parser.add_argument(
        "--provider",
        choices=["gemini", "ollama"],
        default=None,
        help="Upstream provider (default: gemini)",
    )
    parser.add_argument("--model", default=None, help="Override the upstream model name")
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Upstream timeout in seconds (default: none)",
    )
    parser.add_argument("--env-file", default=None, help="Path to a .env file")

    args = parser.parse_args()

    try:
        config = Config.from_env(args.env_file)
    except (ValueError, pydantic.ValidationError) as exc:
        console.print(f"[bold red]Error:[/bold red] Invalid configuration: {exc}")
        sys.exit(1)

    if args.host:
        config.server.host = args.host
    if args.port:
        config.server.port = args.port
    if args.provider:
        config.upstream.provider = args.provider
    if args.model:
        if config.upstream.provider == "ollama":
            config.ollama.model = args.model
        else:
            config.upstream.model = args.model
    if args.timeout is not None:
        if args.timeout <= 0:
            console.print("[bold red]Error:[/bold red] --timeout must be positive")
            sys.exit(1)
        config.upstream.timeout = args.timeout

    if config.upstream.provider == "gemini" and not config.upstream.api_key:
        print_warning("GEMINI_API_KEY is not set; prompts will fail until it is.")

    generator = build_generator(config)
    if isinstance(generator, OllamaClient) and not asyncio.run(generator.is_available()):
        print_warning(
            f"Ollama is not reachable at {generator.base_url}; prompts will fail until it is."
        )

    orchestrator = Orchestrator(
        generator,
        ContextStore(),
        timeout=config.upstream.timeout,
    )
    app = create_app(orchestrator)

    console.print(
        f"[bold green]sitegen-bridge server running on port {config.server.port}[/bold green]"
    )
    uvicorn.run(app, host=config.server.host, port=config.server.port)


if __name__ == "__main__":
    main()
