"""Pydantic v2 models for the streaming artifact parser.

Defines the values produced by the block parser, the patch engine and the
plan extractor. None of these models carry behaviour beyond small derived
properties; the parsing functions live in the sibling modules.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class MatchStrategy(str, Enum):
    """How a single patch operation was located in the running buffer."""
    EXACT = "exact"
    FUZZY = "fuzzy"
    UNMATCHED = "unmatched"


class PlanStatus(str, Enum):
    """Outcome of looking for a build plan in a response."""
    FOUND = "found"
    ABSENT = "absent"
    MALFORMED = "malformed"


# ---------------------------------------------------------------------------
# Block parser models
# ---------------------------------------------------------------------------

class ArtifactMarker(BaseModel):
    """A ``FILENAME:`` marker located in the stream buffer."""
    path: str = Field(..., description="Artifact path, e.g. 'frontend/index.html'")
    offset: int = Field(..., ge=0, description="Offset of the marker in the buffer")
    body_start: int = Field(..., ge=0, description="Offset where the marker's body begins")


# ---------------------------------------------------------------------------
# Patch models
# ---------------------------------------------------------------------------

class PatchOperation(BaseModel):
    """One ``<<<< SEARCH`` / ``====`` / ``>>>> REPLACE`` instruction."""
    search: str = Field(..., description="Text to locate, outer whitespace trimmed")
    replace: str = Field(..., description="Replacement text, outer whitespace trimmed")


class PatchOutcome(BaseModel):
    """Result of applying one patch operation."""
    operation: PatchOperation
    strategy: MatchStrategy

    @property
    def matched(self) -> bool:
        return self.strategy != MatchStrategy.UNMATCHED


class PatchResult(BaseModel):
    """Final content of a reconciled artifact plus the per-operation record."""
    content: str = Field(default="", description="Content after all operations were attempted")
    outcomes: list[PatchOutcome] = Field(
        default_factory=list, description="One entry per operation, in application order"
    )
    is_rewrite: bool = Field(
        default=False, description="True when the text held no patch blocks and replaced the file"
    )

    @property
    def applied(self) -> int:
        """Number of operations that matched (exactly or fuzzily)."""
        return sum(1 for o in self.outcomes if o.matched)

    @property
    def failed(self) -> list[PatchOperation]:
        """Operations whose search text could not be located."""
        return [o.operation for o in self.outcomes if not o.matched]


# ---------------------------------------------------------------------------
# Plan models
# ---------------------------------------------------------------------------

class PlanStructure(BaseModel):
    """Proposed file layout, split by tier."""
    frontend: list[str] = Field(default_factory=list, description="Frontend file paths")
    backend: list[str] = Field(default_factory=list, description="Backend file paths")


class Plan(BaseModel):
    """A build plan emitted instead of file content."""
    title: str = Field(..., description="Short project title")
    description: str = Field(..., description="What the project does")
    structure: PlanStructure


class PlanResult(BaseModel):
    """Tagged result of plan detection.

    ``plan`` is set only when ``status`` is ``FOUND``; ``error`` only when it
    is ``MALFORMED``.
    """
    status: PlanStatus = Field(default=PlanStatus.ABSENT)
    plan: Optional[Plan] = Field(default=None)
    error: Optional[str] = Field(default=None, description="Why a plan fence failed to decode")

    @property
    def found(self) -> bool:
        return self.status == PlanStatus.FOUND
