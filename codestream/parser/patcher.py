"""Search/replace patch reconciliation.

A patch-formatted artifact carries one or more blocks::

    <<<< SEARCH
    old text
    ====
    new text
    >>>> REPLACE

Blocks are applied in order to a running buffer that starts as the artifact's
pre-session content. Each block is located by exact match first and by a
whitespace-tolerant pattern second; blocks that cannot be located are skipped
and recorded, never raised.
"""

from __future__ import annotations

import re

from .models import MatchStrategy, PatchOperation, PatchOutcome, PatchResult


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

PATCH_START = "<<<< SEARCH"
DEFAULT_MAX_FUZZY_SEARCH_LENGTH = 20_000

_PATCH_BLOCK_PATTERN = re.compile(r"<<<< SEARCH(.*?)====(.*?)>>>> REPLACE", re.DOTALL)
_WHITESPACE_RUN = re.compile(r"\s+")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n")


def _compile_fuzzy(search: str, max_length: int) -> re.Pattern[str] | None:
    """Build the whitespace-tolerant pattern for *search*.

    Every token is escaped literally; each run of whitespace between tokens
    becomes ``\\s+``. Returns ``None`` when no usable pattern can be built.
    """
    if not search or len(search) > max_length:
        return None
    tokens = _WHITESPACE_RUN.split(search)
    pattern = r"\s+".join(re.escape(token) for token in tokens)
    try:
        return re.compile(pattern)
    except (re.error, RecursionError, OverflowError):
        return None


def _apply_operation(
    buffer: str,
    operation: PatchOperation,
    max_fuzzy_length: int,
) -> tuple[str, MatchStrategy]:
    if operation.search in buffer:
        return buffer.replace(operation.search, operation.replace, 1), MatchStrategy.EXACT

    fuzzy = _compile_fuzzy(operation.search, max_fuzzy_length)
    if fuzzy is None:
        return buffer, MatchStrategy.UNMATCHED
    try:
        match = fuzzy.search(buffer)
    except RecursionError:
        return buffer, MatchStrategy.UNMATCHED
    if match is None:
        return buffer, MatchStrategy.UNMATCHED
    return buffer[:match.start()] + operation.replace + buffer[match.end():], MatchStrategy.FUZZY


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def is_patch(text: str) -> bool:
    """Return ``True`` if *text* contains at least one patch block opener."""
    return PATCH_START in text


def parse_patch_operations(patch_text: str) -> list[PatchOperation]:
    """Split *patch_text* into its ordered search/replace operations.

    Line endings are normalized and both halves of each block are trimmed.
    Incomplete blocks (no ``>>>> REPLACE`` yet) are ignored.
    """
    normalized = _normalize_newlines(patch_text)
    return [
        PatchOperation(search=match.group(1).strip(), replace=match.group(2).strip())
        for match in _PATCH_BLOCK_PATTERN.finditer(normalized)
    ]


def reconcile_patch(
    original: str,
    patch_text: str,
    max_fuzzy_length: int = DEFAULT_MAX_FUZZY_SEARCH_LENGTH,
) -> PatchResult:
    """Apply *patch_text* to *original* and report what happened.

    Text without a ``<<<< SEARCH`` opener is a full rewrite and is returned
    unchanged. Otherwise each operation is matched against the buffer as
    left by the previous operations, so multi-block patches are
    order-dependent.

    Args:
        original: Artifact content before the session. Not modified.
        patch_text: The patch-formatted artifact content.
        max_fuzzy_length: Search texts longer than this skip the fuzzy
            fallback and count as unmatched when no exact match exists.

    Returns:
        A ``PatchResult`` with the final content and one outcome per operation.
    """
    if not is_patch(patch_text):
        return PatchResult(content=patch_text, is_rewrite=True)

    buffer = _normalize_newlines(original)
    outcomes: list[PatchOutcome] = []
    for operation in parse_patch_operations(patch_text):
        buffer, strategy = _apply_operation(buffer, operation, max_fuzzy_length)
        outcomes.append(PatchOutcome(operation=operation, strategy=strategy))

    return PatchResult(content=buffer, outcomes=outcomes)


def apply_patch(original: str, patch_text: str) -> str:
    """Return *original* with *patch_text* applied, best effort.

    Unmatched operations are skipped; see ``reconcile_patch`` for the
    per-operation record.

    Examples::

        apply_patch("line1\\nline2\\nline3",
                    "<<<< SEARCH\\nline2\\n====\\nlineX\\n>>>> REPLACE")
        -> "line1\\nlineX\\nline3"

        apply_patch("anything", "hello world") -> "hello world"
    """
    return reconcile_patch(original, patch_text).content
