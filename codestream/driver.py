"""Stream session driver.

Glue between an upstream chunk producer and the parser. A session owns one
append-only buffer and one immutable snapshot of the project files taken
before the first chunk. After each chunk the whole buffer is re-parsed so the
caller can show progress; when the stream ends, patches are reconciled
against the snapshot and the response is checked for a build plan.

Usage::

    session = StreamSession(snapshot=files)
    for chunk in chunks:
        partial = session.feed(chunk)
        files = merge_artifacts(files, partial)
    result = session.finish()
    files = merge_artifacts(files, result.artifacts)
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable, Mapping
from types import MappingProxyType
from typing import Optional

from pydantic import BaseModel, Field

from .config import ParserConfig
from .parser import (
    PatchResult,
    Plan,
    detect_plan,
    find_continuation,
    is_patch,
    parse_artifacts,
    reconcile_patch,
)


class SessionResult(BaseModel):
    """Everything a finished session produced."""

    text: str = Field(default="", description="The complete response text")
    plan: Optional[Plan] = Field(default=None, description="Build plan, when the response is one")
    plan_error: Optional[str] = Field(default=None, description="Why a json fence was not a plan")
    artifacts: dict[str, str] = Field(
        default_factory=dict, description="Final artifact contents with patches applied"
    )
    patches: dict[str, PatchResult] = Field(
        default_factory=dict, description="Reconciliation record for each patch-formatted artifact"
    )
    next_artifact: Optional[str] = Field(
        default=None, description="Path named by a batch-mode NEXT marker"
    )

    @property
    def is_conversational(self) -> bool:
        """True when the response holds neither artifacts nor a plan."""
        return self.plan is None and not self.artifacts

    @property
    def failed_patches(self) -> dict[str, int]:
        """``{path: unmatched operation count}`` for artifacts with failures."""
        return {path: len(r.failed) for path, r in self.patches.items() if r.failed}


def merge_artifacts(files: Mapping[str, str], artifacts: Mapping[str, str]) -> dict[str, str]:
    """Return a new mapping with *artifacts* layered over *files*."""
    merged = dict(files)
    merged.update(artifacts)
    return merged


class StreamSession:
    """One generation session: a growing buffer plus a pre-session snapshot.

    Sessions are single-writer and hold no locks; concurrent generations
    each need their own session.

    Attributes:
        snapshot: Read-only view of the files as they were before the session.
        config: Parser settings.
    """

    def __init__(
        self,
        snapshot: Mapping[str, str] | None = None,
        config: ParserConfig | None = None,
    ) -> None:
        self.snapshot: Mapping[str, str] = MappingProxyType(dict(snapshot or {}))
        self.config = config or ParserConfig()
        self._buffer = ""
        self._artifacts: dict[str, str] = {}

    @property
    def buffer(self) -> str:
        return self._buffer

    @property
    def artifacts(self) -> dict[str, str]:
        """Artifacts parsed from the buffer as of the last chunk."""
        return dict(self._artifacts)

    def feed(self, chunk: str) -> dict[str, str]:
        """Append *chunk* and return the re-parsed artifact map.

        During the stream, patch-formatted artifacts are returned as raw
        patch text so the caller can display what is being written.
        """
        if chunk:
            self._buffer += chunk
            self._artifacts = parse_artifacts(self._buffer, self.config.html_extensions)
        return dict(self._artifacts)

    def finish(self) -> SessionResult:
        """Close the session and reconcile its output.

        A response carrying a build plan is returned as a plan and its
        artifacts are not applied. Otherwise every patch-formatted artifact
        is applied to its snapshot content (empty for new paths) and full
        rewrites pass through unchanged.
        """
        text = self._buffer
        plan_result = detect_plan(text)
        if plan_result.found:
            return SessionResult(
                text=text,
                plan=plan_result.plan,
                next_artifact=find_continuation(text),
            )

        artifacts: dict[str, str] = {}
        patches: dict[str, PatchResult] = {}
        parsed = parse_artifacts(text, self.config.html_extensions, final=True)
        for path, content in parsed.items():
            if is_patch(content):
                result = reconcile_patch(
                    self.snapshot.get(path, ""),
                    content,
                    max_fuzzy_length=self.config.max_fuzzy_search_length,
                )
                patches[path] = result
                artifacts[path] = result.content
            else:
                artifacts[path] = content

        return SessionResult(
            text=text,
            plan_error=plan_result.error,
            artifacts=artifacts,
            patches=patches,
            next_artifact=find_continuation(text),
        )

    async def consume(
        self,
        chunks: AsyncIterator[str],
        on_update: Callable[[dict[str, str]], None] | None = None,
    ) -> SessionResult:
        """Feed every chunk from *chunks*, then finish the session.

        Args:
            chunks: Ordered chunk source, e.g. ``OllamaClient.stream_chat``.
            on_update: Called with the artifact map after each chunk that
                produced at least one artifact.
        """
        async for chunk in chunks:
            artifacts = self.feed(chunk)
            if on_update is not None and artifacts:
                on_update(artifacts)
        return self.finish()
