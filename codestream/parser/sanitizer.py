"""Fence and marker stripping for extracted artifact content.

Model output wraps file content in Markdown fences and ``FILENAME:`` marker
comments. ``sanitize`` removes that scaffolding from a fragment so only the
file content itself remains.
"""

from __future__ import annotations

import re


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

FENCE = "```"

# Comment openers accepted in front of a ``FILENAME:`` token.
MARKER_OPENERS = r"(?:<!--|//|#)"
MARKER_PATH_CHARS = r"[A-Za-z0-9_./-]"

_LEADING_FENCE_PATTERN = re.compile(r"\A```[^\n]*(?:\n|\Z)")
_TRAILING_FENCE_PATTERN = re.compile(r"\s*```\Z")
_INLINE_MARKER_PATTERN = re.compile(
    MARKER_OPENERS
    + r"[ \t]*FILENAME:\s*"
    + MARKER_PATH_CHARS
    + r"*?[ \t]*(?:-->|(?!"
    + MARKER_PATH_CHARS
    + r"))[ \t]*\n?",
    re.IGNORECASE,
)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def _sanitize_once(text: str) -> str:
    cleaned = text.strip()
    cleaned = _LEADING_FENCE_PATTERN.sub("", cleaned, count=1)
    cleaned = _TRAILING_FENCE_PATTERN.sub("", cleaned.rstrip(), count=1)
    cleaned = _INLINE_MARKER_PATTERN.sub("", cleaned)
    return cleaned.strip()


def sanitize(text: str) -> str:
    """Strip fence lines and inline ``FILENAME:`` markers from *text*.

    Each pass removes at most one leading fence line (three backticks plus an
    optional language tag), at most one trailing fence, and every inline
    marker comment, then trims outer whitespace. Passes repeat until the text
    stops changing, which makes the function idempotent even for inputs where
    one removal exposes another fence or joins the halves of a marker.

    Examples::

        sanitize("```js\\nconst a = 1;\\n```") -> "const a = 1;"
        sanitize("<!-- FILENAME: a.txt -->\\nhello") -> "hello"
    """
    previous = None
    cleaned = text
    while cleaned != previous:
        previous = cleaned
        cleaned = _sanitize_once(cleaned)
    return cleaned
