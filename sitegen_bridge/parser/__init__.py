"""Model-reply parsing for sitegen-bridge.

Extracts labelled fenced code blocks from a model reply and backfills the
canonical web-app files when the reply is incomplete.

Usage::

    from sitegen_bridge.parser import extract_files, ensure_basic_files

    files = ensure_basic_files(extract_files(reply_text), prompt)
"""

from sitegen_bridge.parser.defaults import (
    REQUIRED_FILES,
    ensure_basic_files,
    escape_html,
    escape_script_string,
)
from sitegen_bridge.parser.fileblocks import FileBlockParser, ScanState, extract_files

__all__ = [
    "FileBlockParser",
    "ScanState",
    "extract_files",
    "ensure_basic_files",
    "escape_html",
    "escape_script_string",
    "REQUIRED_FILES",
]
