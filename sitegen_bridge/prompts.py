"""Instruction construction for the upstream model.

The system instruction is fixed apart from an optional list of files that
already exist in the project. The user message wraps the verbatim prompt with
formatting rules that make the reply parseable by
:mod:`sitegen_bridge.parser.fileblocks`.
"""

from __future__ import annotations

import textwrap
from typing import Any, Mapping, Optional

_SYSTEM_INSTRUCTION = textwrap.dedent("""\
    You are an expert web development assistant that generates complete, functional web applications.

    Application Generation Guidelines:
    1. Always generate a complete, functional web application
    2. Include necessary files:
       - index.html (main HTML structure)
       - styles.css (application styling)
       - script.js (core application logic)
       - Additional files as needed (e.g., components, modules)

    Code Quality Requirements:
    - Use modern, semantic HTML5
    - Implement responsive design
    - Write clean, readable, and well-commented code
    - Ensure cross-browser compatibility
    - Follow best practices for web development
    - Handle potential user interactions and edge cases
    - Use modern JavaScript (ES6+)
    - Implement basic error handling

    Technologies:
    - Prefer vanilla JavaScript for simplicity
    - Use CSS for styling
    - Optional: Include basic responsive design techniques
    - Avoid unnecessary external libraries unless specifically requested

    Specific Instructions:
    - Carefully analyze the user's requirements
    - If requirements are ambiguous, make reasonable assumptions
    - Focus on creating a functional and user-friendly application
    - Provide a clear, intuitive user interface
    """)

_OUTPUT_FORMAT = textwrap.dedent("""\
    Please provide the code for the necessary files to implement this application.
    Use markdown code blocks with explicit file paths, like:
    ```file:index.html
    ... HTML content ...
    ```
    ```file:styles.css
    ... CSS content ...
    ```
    ```file:script.js
    ... JavaScript content ...
    ```""")


def _context_paths(context: Optional[Mapping[str, Any]]) -> Optional[list[str]]:
    """Return the file paths listed in *context*, or ``None`` if it lists none.

    Entries may be ``{"path": ...}`` mappings or bare strings; anything else
    is ignored.
    """
    if not context:
        return None
    files = context.get("files")
    if not isinstance(files, list):
        return None
    paths: list[str] = []
    for entry in files:
        if isinstance(entry, Mapping):
            path = entry.get("path")
        else:
            path = entry
        if isinstance(path, str) and path:
            paths.append(path)
    return paths


def build_system_instruction(context: Optional[Mapping[str, Any]] = None) -> str:
    """Compose the system instruction, appending known project paths if any.

    Only paths are sent, never file contents.
    """
    instruction = _SYSTEM_INSTRUCTION
    paths = _context_paths(context)
    if paths is not None:
        instruction += "\n\nCurrent Project Context:\n"
        instruction += "".join(f"- {path}\n" for path in paths)
    return instruction


def build_user_message(prompt: str) -> str:
    """Wrap the verbatim *prompt* with the fenced-block output contract."""
    return (
        "Generate a complete web application based on the following requirements:\n\n"
        f"{prompt}\n\n"
        f"{_OUTPUT_FORMAT}"
    )
