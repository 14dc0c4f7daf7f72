"""Build-plan extraction from ``json`` fences.

In planning mode the model answers with a JSON document describing the
proposed project layout instead of file content::

    ```json
    {"title": "...", "description": "...",
     "structure": {"frontend": ["frontend/index.html"], "backend": []}}
    ```

Only the first ``json`` fence is considered.
"""

from __future__ import annotations

import json
import re

from pydantic import ValidationError

from .models import Plan, PlanResult, PlanStatus


_JSON_FENCE_PATTERN = re.compile(r"```json\s*(.*?)\s*```", re.DOTALL)


def detect_plan(text: str) -> PlanResult:
    """Look for a plan in *text* and return a tagged result.

    ``ABSENT`` when there is no ``json`` fence, ``MALFORMED`` when the first
    one does not decode into a ``Plan``, ``FOUND`` otherwise.
    """
    match = _JSON_FENCE_PATTERN.search(text)
    if match is None:
        return PlanResult(status=PlanStatus.ABSENT)

    try:
        data = json.loads(match.group(1))
    except (ValueError, RecursionError) as exc:
        return PlanResult(status=PlanStatus.MALFORMED, error=f"Invalid JSON: {exc}")

    try:
        plan = Plan.model_validate(data)
    except ValidationError as exc:
        return PlanResult(
            status=PlanStatus.MALFORMED,
            error=f"JSON does not match the plan shape ({exc.error_count()} errors)",
        )
    return PlanResult(status=PlanStatus.FOUND, plan=plan)


def extract_plan(text: str) -> Plan | None:
    """Return the plan embedded in *text*, or ``None`` if there is none."""
    return detect_plan(text).plan
