"""Prompt-to-file-set orchestration.

One call to :meth:`Orchestrator.handle_prompt` runs the whole server-side
flow: merge context, build instructions, call the upstream model, extract the
fenced files from its reply, and backfill the canonical web-app files.
"""

from __future__ import annotations

import time
from typing import Any, Mapping, Optional

from sitegen_bridge.context_store import ContextStore, shallow_merge
from sitegen_bridge.errors import UpstreamError
from sitegen_bridge.models import GenerationResult, PromptRequest
from sitegen_bridge.parser.defaults import REQUIRED_FILES, ensure_basic_files
from sitegen_bridge.parser.fileblocks import FileBlockParser
from sitegen_bridge.prompts import build_system_instruction, build_user_message
from sitegen_bridge.upstream import TextGenerator, generate_with_timeout
from sitegen_bridge.utils import format_duration, preview, print_info, print_warning


class Orchestrator:
    """Server-side pipeline for a single prompt.

    Attributes:
        generator: Upstream text-generation capability.
        context_store: Shared store for context fragments sent by clients.
        timeout: Overall deadline for one upstream call, ``None`` for none.
    """

    def __init__(
        self,
        generator: TextGenerator,
        context_store: Optional[ContextStore] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.generator = generator
        self.context_store = context_store or ContextStore()
        self.timeout = timeout

    def effective_context(self, request: PromptRequest) -> dict[str, Any]:
        """Stored context overlaid with the request's own context."""
        stored = self.context_store.snapshot()
        if request.context is None:
            return stored
        return shallow_merge(stored, request.context.model_dump(exclude_unset=True))

    async def store_context(self, fragment: Mapping[str, Any]) -> dict[str, Any]:
        """Merge a client-sent context fragment into the shared store."""
        merged = await self.context_store.merge(fragment)
        print_info(f"Updated context ({len(merged)} key(s))")
        return merged

    async def handle_prompt(self, request: PromptRequest) -> GenerationResult:
        """Generate the file set for *request*.

        Upstream failures (including timeouts) come back as an error result;
        nothing is retried.
        """
        system_instruction = build_system_instruction(self.effective_context(request))
        user_message = build_user_message(request.prompt)

        print_info(f"Generating for prompt: {preview(request.prompt)}")
        start = time.monotonic()
        try:
            reply = await generate_with_timeout(
                self.generator, system_instruction, user_message, timeout=self.timeout
            )
        except UpstreamError as exc:
            print_warning(f"Upstream call failed after {format_duration(time.monotonic() - start)}: {exc}")
            return GenerationResult.failed(exc)
        print_info(
            f"Upstream replied with {len(reply)} chars in {format_duration(time.monotonic() - start)}"
        )

        parser = FileBlockParser()
        parser.feed(reply)
        extracted = parser.close()
        if parser.dropped_label:
            print_warning(f"Dropped unterminated block for {parser.dropped_label}")

        missing = [name for name in REQUIRED_FILES if not extracted.get(name)]
        if missing:
            print_warning(f"Using default content for: {', '.join(missing)}")

        return GenerationResult.ok(ensure_basic_files(extracted, request.prompt))
