"""Streaming multi-artifact block parser.

Scans a growing response buffer for ``FILENAME:`` markers and extracts the
content that follows each one. The parser is a pure function of the buffer:
it is re-run on the whole buffer after every chunk, and content for a path
only ever grows while the stream is in progress (trailing fragments that may
still turn into a closing fence or the next marker are held back).

Accepted markers::

    <!-- FILENAME: frontend/index.html -->
    // FILENAME: backend/server.js
    # FILENAME: backend/app.py

The batch-mode continuation marker ``<!-- NEXT: path -->`` is not a
``FILENAME:`` marker and never produces an artifact.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from .models import ArtifactMarker
from .sanitizer import FENCE, MARKER_OPENERS, MARKER_PATH_CHARS, sanitize


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

HTML_EXTENSIONS: tuple[str, ...] = (".html", ".htm")
_HTML_CLOSE = "</html>"

# Where one marker's body ends: any opener followed by the FILENAME: token,
# whether or not a valid path follows yet.
_BOUNDARY_PATTERN = re.compile(MARKER_OPENERS + r"\s*FILENAME:", re.IGNORECASE)
# Path and optional closing ``-->`` right after a boundary. The path stops
# before a ``-->`` even without a space in front of it, and a dangling ``-``
# or ``--`` at the very end of the buffer is a closing tag still in flight.
_MARKER_TAIL_PATTERN = re.compile(
    r"\s*(" + MARKER_PATH_CHARS + r"+?)[ \t]*"
    r"(?:-->|-{1,2}\Z|(?!" + MARKER_PATH_CHARS + r"))"
)
# Fragments at the end of an unterminated body that may still grow into a
# fence or into the next marker. Inside a fenced body any one or two trailing
# backticks may be the start of the closing fence (a full ``` run is an
# opening fence line still in flight and is left alone). In an unfenced body
# only backticks that open a line can still become a fence.
_PARTIAL_CLOSING_FENCE_PATTERN = re.compile(r"(?<!`)`{1,2}\Z")
_PARTIAL_OPENING_FENCE_PATTERN = re.compile(r"(?:\A|(?<=\n))[ \t]*`{1,2}\Z")
_PARTIAL_MARKER_PATTERN = re.compile(
    r"(?:<(?:!(?:--?)?)?|//?|#)\s*(?:F(?:I(?:L(?:E(?:N(?:A(?:M(?:E:?)?)?)?)?)?)?)?)?\s*\Z",
    re.IGNORECASE,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _has_html_extension(path: str, html_extensions: Iterable[str]) -> bool:
    lowered = path.lower()
    return any(lowered.endswith(ext.lower()) for ext in html_extensions)


def _scan(buffer: str) -> list[tuple[ArtifactMarker, int]]:
    """Return ``(marker, body_end)`` pairs in buffer order."""
    boundaries = list(_BOUNDARY_PATTERN.finditer(buffer))
    results: list[tuple[ArtifactMarker, int]] = []
    for index, boundary in enumerate(boundaries):
        body_end = boundaries[index + 1].start() if index + 1 < len(boundaries) else len(buffer)
        tail = _MARKER_TAIL_PATTERN.match(buffer, boundary.end(), body_end)
        if tail is None:
            continue
        marker = ArtifactMarker(
            path=tail.group(1).strip(),
            offset=boundary.start(),
            body_start=tail.end(),
        )
        results.append((marker, body_end))
    return results


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def locate_markers(buffer: str) -> list[ArtifactMarker]:
    """Return every ``FILENAME:`` marker in *buffer*, left to right."""
    return [marker for marker, _ in _scan(buffer)]


def extract_content(
    path: str,
    body: str,
    html_extensions: Iterable[str] = HTML_EXTENSIONS,
    final: bool = False,
) -> str:
    """Extract the artifact content from one marker's raw body.

    1. Drop any prose in front of the first fence.
    2. If the body opens with a fence, take what lies between the language
       tag line and the closing fence.
    3. Without a closing fence, HTML artifacts are cut after the last
       ``</html>``.
    4. Otherwise the body runs to the end of the buffer, minus any trailing
       fragment that is still becoming a fence or a marker. With *final*
       set the stream is over and nothing is held back.
    5. The result is sanitized.
    """
    fence_at = body.find(FENCE)
    if fence_at != -1:
        body = body[fence_at:]

    fenced = body.startswith(FENCE)
    closed = False
    if fenced:
        tag_end = body.find("\n")
        if tag_end != -1:
            close_at = body.find(FENCE, tag_end + 1)
            if close_at != -1:
                body = body[tag_end + 1:close_at]
                closed = True

    if not closed and _has_html_extension(path, html_extensions):
        html_end = body.rfind(_HTML_CLOSE)
        if html_end != -1:
            body = body[:html_end + len(_HTML_CLOSE)]
            closed = True

    if not closed and not final:
        fence_pattern = _PARTIAL_CLOSING_FENCE_PATTERN if fenced else _PARTIAL_OPENING_FENCE_PATTERN
        body, trimmed = fence_pattern.subn("", body, count=1)
        if not trimmed:
            body = _PARTIAL_MARKER_PATTERN.sub("", body, count=1)

    return sanitize(body)


def parse_artifacts(
    buffer: str,
    html_extensions: Iterable[str] = HTML_EXTENSIONS,
    final: bool = False,
) -> dict[str, str]:
    """Parse *buffer* into a ``{path: content}`` mapping.

    Markers are processed in buffer order, so a later marker for the same
    path overwrites the earlier one. Markers whose extracted content is empty
    are skipped and leave any earlier entry in place. A buffer without
    markers yields an empty mapping: the caller should treat the response as
    conversation rather than code.

    Pass *final* once the stream has ended so trailing text that only looked
    like the start of a fence or marker is kept.
    """
    extensions = tuple(html_extensions)
    artifacts: dict[str, str] = {}
    for marker, body_end in _scan(buffer):
        content = extract_content(
            marker.path, buffer[marker.body_start:body_end], extensions, final=final
        )
        if marker.path and content:
            artifacts[marker.path] = content
    return artifacts
