from __future__ import annotations
from typing import Any, Dict, List, Optional
import random

import requests

from ..errors import MalformedResponse
from ..models import CanonicalArtwork, SearchQuery, Source
from ..utils.deadline import Deadline
from ..utils.http import default_headers, http_get_json
from ..utils.logging import RunLogger, get_logger
from ..utils.ratelimit import RateGate, gate_for
from .fetch import FetchAgent


class SourceAgent:
    """
    One museum's adapter: knows its query parameters, its ID model and its JSON shape.

    Subclasses implement `search_ids`, `fetch_by_id` and `standardize`; the default
    `search` chains them through the FetchAgent. Raw upstream payloads never leave
    the agent: callers only see CanonicalArtwork.
    """

    source: Source
    accept = "application/json"

    def __init__(
        self,
        base_url: str,
        deadline_s: float,
        session: Optional[requests.Session] = None,
        gate: Optional[RateGate] = None,
        fetcher: Optional[FetchAgent] = None,
        logger: Optional[RunLogger] = None,
    ):
        """
        Args:
            base_url: Upstream API root.
            deadline_s: Wall-clock budget for one search against this source.
            session: HTTP session (shared by the agent's workers).
            gate: Rate gate; the process-wide gate for this source when omitted.
            fetcher: Detail fetcher; a default-sized pool when omitted.
            logger: Event logger.
        """
        self.base_url = base_url.rstrip("/")
        self.deadline_s = float(deadline_s)
        self.session = session or requests.Session()
        self.gate = gate or gate_for(self.source.value)
        self.logger = logger or get_logger()
        self.fetcher = fetcher or FetchAgent(logger=self.logger)

    @property
    def name(self) -> str:
        return self.source.value

    def new_deadline(self) -> Deadline:
        return Deadline(self.deadline_s, source=self.name)

    # ---------- Contract ----------

    def search_ids(self, query: SearchQuery, deadline: Deadline) -> List[str]:
        raise NotImplementedError

    def fetch_by_id(self, native_id: str, deadline: Optional[Deadline] = None) -> Dict[str, Any]:
        raise NotImplementedError

    def standardize(self, raw: Dict[str, Any], deadline: Optional[Deadline] = None) -> CanonicalArtwork:
        raise NotImplementedError

    # ---------- Shared behaviour ----------

    def search(self, query: SearchQuery, deadline: Deadline) -> List[CanonicalArtwork]:
        """Search, then load each hit through the bounded detail fetcher."""
        ids = self.search_ids(query, deadline)[: query.effective_limit()]
        return self.load_all(ids, deadline)

    def load_all(self, native_ids: List[str], deadline: Deadline) -> List[CanonicalArtwork]:
        return self.fetcher.fetch_all(
            native_ids,
            lambda nid: self.standardize(self.fetch_by_id(nid, deadline), deadline),
            deadline,
            self.name,
        )

    def get(self, native_id: str, deadline: Optional[Deadline] = None) -> CanonicalArtwork:
        """fetchById + standardize for a single artwork."""
        deadline = deadline or self.new_deadline()
        return self.standardize(self.fetch_by_id(native_id, deadline), deadline)

    def random(self, count: int, deadline: Deadline, rng: Optional[random.Random] = None) -> List[CanonicalArtwork]:
        raise NotImplementedError

    def _get(self, url: str, params: Optional[Dict[str, Any]] = None,
             deadline: Optional[Deadline] = None, accept: Optional[str] = None) -> Dict[str, Any]:
        return http_get_json(
            url,
            source=self.name,
            params=params,
            headers=default_headers(accept or self.accept),
            session=self.session,
            deadline=deadline,
            gate=self.gate,
        )

    def _require_object(self, raw: Any) -> Dict[str, Any]:
        if not isinstance(raw, dict):
            raise MalformedResponse(f"{self.name} record is {type(raw).__name__}, expected an object",
                                    source=self.name)
        return raw
