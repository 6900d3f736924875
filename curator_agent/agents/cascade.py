from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from ..errors import SourceError, SourceTimeout, dominant_kind
from ..models import SearchQuery
from ..utils.deadline import Deadline
from ..utils.logging import RunLogger, get_logger


@dataclass(frozen=True)
class Strategy:
    """One Rijksmuseum search call: a name for logging plus its query parameters."""
    name: str
    params: Dict[str, Any]


@dataclass
class CascadeResult:
    strategy: Optional[Strategy]
    """The step whose result was used (None when nothing ran successfully)."""
    ids: List[str]
    attempted: List[str] = field(default_factory=list)


FALLBACK = Strategy("fallback", {"type": "painting"})


class RijksSearchCascade:
    """
    Rijksmuseum has no free-text field, so a text query is tried as a title, then
    as a creator, then as a description; the first non-empty answer wins and the
    later steps never run. When nothing matches, a generic painting search keeps
    the source from coming back empty.

    Caller-supplied `creator`/`type` (or a title/artist-only search) is a single
    terminal step with no cascade and no fallback.

    Steps run one after another on purpose: each one only happens because the
    previous one came back empty.
    """

    def __init__(self, search: Callable[[Dict[str, Any], Deadline], List[str]],
                 logger: Optional[RunLogger] = None):
        """
        Args:
            search: Runs one search call with the given parameters, returning native IDs.
            logger: Event logger.
        """
        self.search = search
        self.logger = logger or get_logger()

    def plan(self, query: SearchQuery) -> tuple[List[Strategy], bool]:
        """
        Returns (steps, terminal). A terminal plan is a single direct search.
        """
        text = query.text
        if query.creator or query.type:
            params: Dict[str, Any] = {}
            if query.creator:
                params["creator"] = query.creator
            if query.type:
                params["type"] = query.type
            return [Strategy("direct", params)], True
        if text and query.title_only:
            return [Strategy("title", {"title": text})], True
        if text and query.artist_only:
            return [Strategy("creator", {"creator": text})], True

        steps: List[Strategy] = []
        if text:
            steps = [
                Strategy("title", {"title": text}),
                Strategy("creator", {"creator": text}),
                Strategy("description", {"description": text}),
            ]
        steps.append(FALLBACK)
        return steps, False

    def run(self, query: SearchQuery, deadline: Deadline) -> CascadeResult:
        """
        Executes the plan until a step yields IDs.

        A failing step counts as empty and the cascade moves on; only a spent
        deadline aborts it. If no step succeeded at all, the dominant step error
        is raised.
        """
        steps, terminal = self.plan(query)
        extra: Dict[str, Any] = {}
        if query.has_images:
            extra["imageAvailable"] = "true"

        attempted: List[str] = []
        failures: List[SourceError] = []
        succeeded = False
        for step in steps:
            deadline.check()
            attempted.append(step.name)
            if step is FALLBACK:
                self.logger.info("cascade_fallback", source="rijks", params=step.params)
            try:
                ids = self.search({**step.params, **extra}, deadline)
            except SourceError as e:
                if isinstance(e, SourceTimeout) and deadline.expired():
                    raise
                failures.append(e)
                self.logger.warn("cascade_step_failed", source="rijks", step=step.name,
                                 kind=e.kind.value, error=str(e))
                continue
            succeeded = True
            self.logger.info("cascade_step", source="rijks", step=step.name, hits=len(ids))
            if ids:
                return CascadeResult(step, ids, attempted)

        if not succeeded and failures:
            kind = dominant_kind(failures)
            raise next(e for e in failures if e.kind is kind)
        return CascadeResult(steps[-1] if terminal else None, [], attempted)
