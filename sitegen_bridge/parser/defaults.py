"""Fallback files for incomplete model replies.

Guarantees that every generated project has a working ``index.html``,
``styles.css`` and ``script.js``. The prompt is embedded in the placeholder
HTML and JavaScript so the user can see what the app was generated for; it is
escaped separately for each target so it cannot break out of its context.
"""

from __future__ import annotations

import textwrap
from typing import Mapping, Optional

from sitegen_bridge.models import FileSet

INDEX_HTML = "index.html"
STYLES_CSS = "styles.css"
SCRIPT_JS = "script.js"

REQUIRED_FILES: tuple[str, ...] = (INDEX_HTML, STYLES_CSS, SCRIPT_JS)

_HTML_ENTITIES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    "'": "&#39;",
    '"': "&quot;",
}

_SCRIPT_ESCAPES = {
    "\\": "\\\\",
    "'": "\\'",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
}


# ---------------------------------------------------------------------------
# Escaping
# ---------------------------------------------------------------------------

def escape_html(text: str) -> str:
    """Escape ``& < > ' "`` for embedding in HTML text or attribute values."""
    return "".join(_HTML_ENTITIES.get(ch, ch) for ch in text)


def escape_script_string(text: str) -> str:
    """Escape *text* for embedding inside a quoted JavaScript string literal.

    Backslashes are escaped too, otherwise a trailing ``\\`` in the prompt
    would swallow the escape added for the following quote.
    """
    return "".join(_SCRIPT_ESCAPES.get(ch, ch) for ch in text)


# ---------------------------------------------------------------------------
# Default file bodies
# ---------------------------------------------------------------------------

def default_html(prompt: str) -> str:
    return textwrap.dedent("""\
        <!DOCTYPE html>
        <html lang="en">
        <head>
            <meta charset="UTF-8">
            <meta name="viewport" content="width=device-width, initial-scale=1.0">
            <title>Web Application</title>
            <link rel="stylesheet" href="styles.css">
        </head>
        <body>
            <div id="app">
                <h1>Web Application</h1>
                <p>Application generated for: {prompt}</p>
            </div>
            <script src="script.js"></script>
        </body>
        </html>""").replace("{prompt}", escape_html(prompt))


def default_css() -> str:
    return textwrap.dedent("""\
        /* Basic Reset */
        * {
          margin: 0;
          padding: 0;
          box-sizing: border-box;
        }

        body {
          font-family: Arial, sans-serif;
          line-height: 1.6;
          max-width: 800px;
          margin: 0 auto;
          padding: 20px;
          background-color: #f4f4f4;
        }

        #app {
          background-color: white;
          padding: 20px;
          border-radius: 5px;
          box-shadow: 0 2px 5px rgba(0,0,0,0.1);
        }

        h1 {
          color: #333;
          text-align: center;
          margin-bottom: 20px;
        }""")


def default_js(prompt: str) -> str:
    return textwrap.dedent("""\
        // Basic application setup
        document.addEventListener('DOMContentLoaded', () => {
          console.log('Application initialized');
          console.log('Original prompt: {prompt}');

          // Placeholder for application logic
          const app = document.getElementById('app');
        });

        // Show a visible message when something goes wrong
        function handleError(error) {
          console.error('An error occurred:', error);
          const errorElement = document.createElement('div');
          errorElement.className = 'error';
          errorElement.textContent = 'An error occurred while running the application.';
          document.body.appendChild(errorElement);
        }

        window.addEventListener('error', (event) => {
          handleError(event.error);
        });""").replace("{prompt}", escape_script_string(prompt))


def default_files(prompt: str) -> FileSet:
    """The three canonical files, synthesised from *prompt*."""
    return {
        INDEX_HTML: default_html(prompt),
        STYLES_CSS: default_css(),
        SCRIPT_JS: default_js(prompt),
    }


# ---------------------------------------------------------------------------
# Merge policy
# ---------------------------------------------------------------------------

def has_content(value: Optional[str]) -> bool:
    """True for a string with at least one non-whitespace character."""
    return isinstance(value, str) and value.strip() != ""


def ensure_basic_files(generated: Mapping[str, Optional[str]], prompt: str) -> FileSet:
    """Overlay *generated* on the default files.

    Entries with an empty path or with missing, empty or whitespace-only
    content are skipped, so a default is only replaced by real content.
    Extra paths (components, modules, assets) pass through unchanged.
    """
    final = default_files(prompt)
    for path, content in generated.items():
        if path and has_content(content):
            final[path] = content  # type: ignore[assignment]
    return final
