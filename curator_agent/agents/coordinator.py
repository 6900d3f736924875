# curator_agent/agents/coordinator.py
from __future__ import annotations
import random
import threading
import time
from typing import Callable, Dict, List, Mapping, Optional, Tuple
import concurrent.futures as _fut

import requests

from ..config import MAX_LIMIT, MAX_RANDOM
from ..errors import AggregateSearchError, InvalidIdentifier, SourceError, SourceTimeout, UpstreamError
from ..models import CanonicalArtwork, SearchOutcome, SearchQuery, Source
from ..utils.deadline import Deadline
from ..utils.ids import decode_id
from ..utils.logging import RunLogger, get_logger
from .base import SourceAgent
from .met import MetAgent
from .rijks import RijksAgent
from .va import VAAgent

# Extra time granted past a source's own deadline before it is abandoned.
GRACE_S = 1.0

SourceWork = Callable[[SourceAgent, Deadline], List[CanonicalArtwork]]


class CoordinatorAgent:
    """
    Fans a query out to the museum agents, tolerates individual failures and
    merges what comes back:

    1) one task per selected source, each with its own deadline
    2) failed sources land in the outcome's error map; siblings keep running
    3) merge → dedupe by id (first wins) → shuffle if several sources → truncate
    4) if every requested source failed, raise instead of returning an empty success
    """

    def __init__(
        self,
        agents: Mapping[Source, SourceAgent],
        logger: Optional[RunLogger] = None,
        max_limit: int = MAX_LIMIT,
        rng: Optional[random.Random] = None,
    ):
        """
        Initializes the CoordinatorAgent.

        Args:
            agents: One agent per enabled source.
            logger: Event logger shared with the agents.
            max_limit: Implementation ceiling for result size.
            rng: Seed source only; every call draws its own generator from it.
        """
        self.agents: Dict[Source, SourceAgent] = dict(agents)
        self.logger = logger or get_logger()
        self.max_limit = max_limit
        self.rng = rng or random.Random()
        self._rng_lock = threading.Lock()

    @classmethod
    def from_config(cls, logger: Optional[RunLogger] = None,
                    enable_sources: Dict[str, bool] | None = None) -> "CoordinatorAgent":
        """Builds the default agents from `config` (one HTTP session per agent)."""
        logger = logger or get_logger()
        enable_sources = enable_sources or {"met": True, "rijks": True, "va": True}
        factories = {Source.MET: MetAgent, Source.RIJKS: RijksAgent, Source.VA: VAAgent}
        agents = {
            src: make(session=requests.Session(), logger=logger)
            for src, make in factories.items()
            if enable_sources.get(src.value, False)
        }
        return cls(agents, logger=logger)

    # ---------- Public operations ----------

    def search(self, query: SearchQuery) -> SearchOutcome:
        """
        Aggregated search across the query's sources.

        Args:
            query: The caller's query; `source` selects "all" or one museum.

        Returns:
            SearchOutcome: merged artworks plus per-source errors for partial failures.

        Raises:
            SourceError: the single requested source failed.
            AggregateSearchError: every requested source failed.
            ValueError: `query.source` names no known museum.
            InvalidIdentifier: `query.source` names a museum that is not enabled.
        """
        sources = self._resolve(query)
        limit = query.effective_limit(self.max_limit)
        rng = self._call_rng()
        self.logger.info("search_start", q=query.text, sources=[s.value for s in sources], limit=limit)

        per_source, errors = self._fan_out(sources, lambda agent, dl: agent.search(query, dl))
        outcome = self._merge(sources, per_source, errors, limit, rng)

        self.logger.info("search_done", q=query.text, total=len(outcome.artworks),
                         failed=[s.value for s in outcome.errors])
        return outcome

    def get_by_id(self, composite_id: str) -> CanonicalArtwork:
        """
        Looks up one artwork by its composite id.

        Raises:
            InvalidIdentifier: malformed id or unknown/disabled source (before any network call).
            NotFound: the museum has no such object.
            SourceError: any other upstream failure.
        """
        source, native_id = decode_id(composite_id)
        agent = self.agents.get(source)
        if agent is None:
            raise InvalidIdentifier(f"Source {source.value!r} is not enabled", source=source.value)
        self.logger.info("get_by_id", source=source.value, native_id=native_id)
        return agent.get(native_id, agent.new_deadline())

    def random(self, count: int = 20, source: str = "all") -> SearchOutcome:
        """Random artworks from one or all sources (count capped at MAX_RANDOM)."""
        count = max(1, min(int(count), MAX_RANDOM))
        sources = self._resolve(SearchQuery(source=source))
        rng = self._call_rng()
        seeds = {src: rng.random() for src in sources}
        per_source, errors = self._fan_out(
            sources, lambda agent, dl: agent.random(count, dl, rng=random.Random(seeds[agent.source])))
        return self._merge(sources, per_source, errors, count, rng)

    def departments(self) -> Dict[str, List[Dict]]:
        """Department listings keyed by source (only the Met publishes one)."""
        out: Dict[str, List[Dict]] = {}
        agent = self.agents.get(Source.MET)
        if isinstance(agent, MetAgent):
            out[Source.MET.value] = agent.departments()
        return out

    # ---------- Internals ----------

    def _call_rng(self) -> random.Random:
        with self._rng_lock:
            return random.Random(self.rng.random())

    def _resolve(self, query: SearchQuery) -> List[Source]:
        """
        "all" means every enabled source; a museum named explicitly must be enabled.

        Raises:
            ValueError: `query.source` names no known museum.
            InvalidIdentifier: the named museum is known but not enabled here.
        """
        wanted = query.selected_sources()
        if len(wanted) == 1 and wanted[0] not in self.agents:
            raise InvalidIdentifier(f"Source {wanted[0].value!r} is not enabled", source=wanted[0].value)
        return [s for s in wanted if s in self.agents]

    def _fan_out(
        self, sources: List[Source], work: SourceWork
    ) -> Tuple[Dict[Source, List[CanonicalArtwork]], Dict[Source, SourceError]]:
        """
        Runs `work` for every source in parallel under independent deadlines.

        A source that misses its deadline (plus a small grace) is cancelled and
        reported as a timeout; whatever it had loaded is discarded.
        """
        results: Dict[Source, List[CanonicalArtwork]] = {}
        errors: Dict[Source, SourceError] = {}
        if not sources:
            return results, errors

        deadlines = {src: self.agents[src].new_deadline() for src in sources}

        def _run(src: Source) -> List[CanonicalArtwork]:
            started = time.monotonic()
            items = work(self.agents[src], deadlines[src])
            self.logger.info("source_done", source=src.value, count=len(items),
                             elapsed=round(time.monotonic() - started, 3))
            return items

        pool = _fut.ThreadPoolExecutor(max_workers=len(sources), thread_name_prefix="source")
        try:
            futures = {src: pool.submit(_run, src) for src in sources}
            for src, f in futures.items():
                deadline = deadlines[src]
                try:
                    results[src] = f.result(timeout=deadline.remaining() + GRACE_S)
                except _fut.TimeoutError:
                    deadline.cancel()
                    errors[src] = SourceTimeout(
                        f"{src.value} did not answer within {deadline.seconds:g}s", source=src.value)
                except SourceError as e:
                    errors[src] = e
                except Exception as e:  # bug or unexpected payload inside an agent
                    errors[src] = UpstreamError(f"{src.value} failed: {e}", source=src.value)
                if src in errors:
                    e = errors[src]
                    self.logger.warn("source_failed", source=src.value, kind=e.kind.value, error=e.message)
        finally:
            pool.shutdown(wait=False, cancel_futures=True)
        return results, errors

    def _merge(
        self,
        sources: List[Source],
        per_source: Dict[Source, List[CanonicalArtwork]],
        errors: Dict[Source, SourceError],
        limit: int,
        rng: random.Random,
    ) -> SearchOutcome:
        if sources and len(errors) == len(sources):
            if len(sources) == 1:
                raise errors[sources[0]]
            raise AggregateSearchError(errors)

        merged: List[CanonicalArtwork] = []
        for src in sources:
            merged.extend(per_source.get(src, []))

        seen: set[str] = set()
        unique: List[CanonicalArtwork] = []
        for art in merged:
            if art.id in seen:
                continue
            seen.add(art.id)
            unique.append(art)

        # Uniform shuffle so no single museum dominates the top of a merged page
        if len(sources) > 1:
            rng.shuffle(unique)

        return SearchOutcome(artworks=unique[:limit], errors=errors)
