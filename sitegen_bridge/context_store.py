"""Cross-request project context.

Context fragments sent by editors are shallow-merged into one mapping that
lives for the lifetime of the server process. Updates go through an
``asyncio.Lock`` so concurrent connections never interleave a merge, and
readers get a copy.
"""

from __future__ import annotations

import asyncio
from typing import Any, Mapping


def shallow_merge(base: Mapping[str, Any], update: Mapping[str, Any]) -> dict[str, Any]:
    """Return ``{**base, **update}``: top-level keys of *update* replace those of *base*."""
    return {**base, **update}


class ContextStore:
    """In-memory, single-writer store for advisory project context."""

    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = dict(initial or {})
        self._lock = asyncio.Lock()
        self.version = 0

    async def merge(self, fragment: Mapping[str, Any]) -> dict[str, Any]:
        """Merge *fragment* into the stored context and return the new snapshot."""
        async with self._lock:
            self._data = shallow_merge(self._data, fragment)
            self.version += 1
            return dict(self._data)

    def snapshot(self) -> dict[str, Any]:
        """Current context (a shallow copy)."""
        return dict(self._data)
