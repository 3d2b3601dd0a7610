"""Fenced file-block extraction.

Turns a model reply such as::

    Here is your app.
    ```file:index.html
    <!DOCTYPE html>
    ...
    ```
    ```styles.css
    body { ... }
    ```

into a file set ``{"index.html": "<!DOCTYPE html>\\n...", "styles.css": "body { ... }"}``.

The scanner is a three-state machine (``OUTSIDE_BLOCK`` -> ``IN_LABEL`` ->
``IN_BODY`` -> ``OUTSIDE_BLOCK``) that can be fed the reply incrementally, so
streamed output is handled without re-scanning. Rules:

* A block opens at a fence followed, on the same line, by a label. The label
  is trimmed and an optional ``file:`` prefix removed.
* A fence directly followed by a newline carries no label and opens nothing.
* A block closes at the *nearest* following fence, so an unclosed block
  cannot swallow the blocks after it.
* A block whose label is empty is consumed but not stored.
* A block still open when input ends is dropped.
* Bodies are trimmed. A repeated label overwrites the earlier body.
"""

from __future__ import annotations

from enum import Enum

from sitegen_bridge.models import FileSet

FENCE = "```"
FILE_PREFIX = "file:"


class ScanState(str, Enum):
    """Where the scanner currently is relative to a fenced block."""
    OUTSIDE_BLOCK = "outside_block"
    IN_LABEL = "in_label"
    IN_BODY = "in_body"


def parse_label(line: str) -> str:
    """Return the path named by a fence label line, or ``""`` if it names none.

    Examples::

        parse_label("file:index.html")   -> "index.html"
        parse_label("  src/app.js \\r")   -> "src/app.js"
        parse_label("file:")             -> ""
    """
    label = line.strip()
    if label.startswith(FILE_PREFIX):
        label = label[len(FILE_PREFIX):].strip()
    return label


class FileBlockParser:
    """Incremental fenced-block parser.

    Usage::

        parser = FileBlockParser()
        for chunk in stream:
            parser.feed(chunk)
        files = parser.close()
    """

    def __init__(self) -> None:
        self._state = ScanState.OUTSIDE_BLOCK
        self._buffer = ""
        # Offset into ``_buffer`` already known not to contain the token
        # searched for in the current state.
        self._search_from = 0
        self._label = ""
        self._files: FileSet = {}
        self._closed = False
        self.dropped_label: str | None = None

    @property
    def state(self) -> ScanState:
        return self._state

    @property
    def files(self) -> FileSet:
        """Blocks completed so far (a copy)."""
        return dict(self._files)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def feed(self, chunk: str) -> list[str]:
        """Consume *chunk* and return the paths of blocks it completed.

        Raises:
            RuntimeError: If called after :meth:`close`.
        """
        if self._closed:
            raise RuntimeError("FileBlockParser.feed() called after close()")
        if not chunk:
            return []
        self._buffer += chunk
        return self._advance()

    def close(self) -> FileSet:
        """Finish parsing and return the extracted file set.

        An unterminated trailing block is discarded; its label is kept in
        :attr:`dropped_label` for diagnostics.
        """
        if not self._closed:
            self._closed = True
            if self._state is ScanState.IN_BODY and self._label:
                self.dropped_label = self._label
            self._buffer = ""
        return dict(self._files)

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def _transition(self, state: ScanState, consumed: int) -> None:
        self._state = state
        self._buffer = self._buffer[consumed:]
        self._search_from = 0

    def _advance(self) -> list[str]:
        completed: list[str] = []
        while True:
            if self._state is ScanState.OUTSIDE_BLOCK:
                idx = self._buffer.find(FENCE, self._search_from)
                if idx == -1:
                    # Only a trailing run of backticks can still become a fence.
                    tail = len(self._buffer) - len(self._buffer.rstrip("`"))
                    self._buffer = self._buffer[len(self._buffer) - min(tail, len(FENCE) - 1):]
                    self._search_from = 0
                    return completed
                self._transition(ScanState.IN_LABEL, idx + len(FENCE))

            elif self._state is ScanState.IN_LABEL:
                newline = self._buffer.find("\n", self._search_from)
                if newline == -1:
                    self._search_from = len(self._buffer)
                    return completed
                line = self._buffer[:newline]
                if not line:
                    # Bare fence: no label, nothing opens.
                    self._transition(ScanState.OUTSIDE_BLOCK, newline + 1)
                    continue
                self._label = parse_label(line)
                self._transition(ScanState.IN_BODY, newline + 1)

            else:
                idx = self._buffer.find(FENCE, self._search_from)
                if idx == -1:
                    self._search_from = max(0, len(self._buffer) - (len(FENCE) - 1))
                    return completed
                if self._label:
                    self._files[self._label] = self._buffer[:idx].strip()
                    completed.append(self._label)
                self._label = ""
                self._transition(ScanState.OUTSIDE_BLOCK, idx + len(FENCE))


def extract_files(text: str) -> FileSet:
    """Extract every labelled fenced block from *text*.

    Returns an empty dict when the text holds no complete block.
    """
    parser = FileBlockParser()
    parser.feed(text or "")
    return parser.close()
