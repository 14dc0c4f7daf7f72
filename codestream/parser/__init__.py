"""Streaming artifact parser.

Pure text transforms that turn a generation stream into named artifacts,
reconcile search/replace patches, and detect build plans.

Usage::

    from codestream.parser import parse_artifacts, apply_patch, extract_plan

    files = parse_artifacts(buffer)
    merged = apply_patch(snapshot["index.html"], files["index.html"])
    plan = extract_plan(buffer)
"""

from codestream.parser.blocks import extract_content, locate_markers, parse_artifacts
from codestream.parser.continuation import find_continuation
from codestream.parser.models import (
    ArtifactMarker,
    MatchStrategy,
    PatchOperation,
    PatchOutcome,
    PatchResult,
    Plan,
    PlanResult,
    PlanStatus,
    PlanStructure,
)
from codestream.parser.patcher import (
    apply_patch,
    is_patch,
    parse_patch_operations,
    reconcile_patch,
)
from codestream.parser.plan import detect_plan, extract_plan
from codestream.parser.sanitizer import sanitize

__all__ = [
    "sanitize",
    "parse_artifacts",
    "locate_markers",
    "extract_content",
    "apply_patch",
    "reconcile_patch",
    "parse_patch_operations",
    "is_patch",
    "extract_plan",
    "detect_plan",
    "find_continuation",
    "ArtifactMarker",
    "MatchStrategy",
    "PatchOperation",
    "PatchOutcome",
    "PatchResult",
    "Plan",
    "PlanResult",
    "PlanStatus",
    "PlanStructure",
]
