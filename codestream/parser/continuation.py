"""Batch-mode continuation marker.

In batch mode the model ends a response with ``<!-- NEXT: path -->`` to name
the file the next automated request should create.
"""

from __future__ import annotations

import re

_NEXT_PATTERN = re.compile(r"<!--\s*NEXT:\s*(.+?)\s*-->", re.IGNORECASE)


def find_continuation(text: str) -> str | None:
    """Return the path named by the first ``NEXT:`` marker, if any."""
    match = _NEXT_PATTERN.search(text)
    if match is None:
        return None
    return match.group(1).strip() or None
