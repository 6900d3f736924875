# curator_agent/tests/conftest.py
from __future__ import annotations
from typing import Any, Callable, Dict, List, Optional

import pytest

from curator_agent.agents.fetch import FetchAgent
from curator_agent.models import CanonicalArtwork, Source
from curator_agent.utils.deadline import Deadline
from curator_agent.utils.ids import encode_id
from curator_agent.utils.logging import RunLogger
from curator_agent.utils.ratelimit import RateGate


class FakeResponse:
    def __init__(self, status: int = 200, body: Any = None, headers: Optional[Dict[str, str]] = None,
                 text: Optional[str] = None):
        self.status_code = status
        self._body = body
        self.headers = headers or {}
        self.text = text if text is not None else ""

    def json(self):
        if self._body is None:
            raise ValueError("No JSON object could be decoded")
        return self._body


class FakeSession:
    """
    Stand-in for requests.Session: routes GETs by URL suffix.
    A route value may be a FakeResponse, a list of them (served in turn), an
    exception instance, or a callable(url, params) returning either.
    """

    def __init__(self, routes: Optional[Dict[str, Any]] = None):
        self.routes = dict(routes or {})
        self.calls: List[Dict[str, Any]] = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.calls.append({"url": url, "params": dict(params or {}), "headers": headers, "timeout": timeout})
        for suffix in sorted(self.routes, key=len, reverse=True):
            if url.endswith(suffix):
                value = self.routes[suffix]
                if callable(value) and not isinstance(value, FakeResponse):
                    value = value(url, dict(params or {}))
                if isinstance(value, list):
                    value = value.pop(0) if len(value) > 1 else value[0]
                if isinstance(value, BaseException):
                    raise value
                return value
        return FakeResponse(404, {"message": "not found"})

    def urls(self) -> List[str]:
        return [c["url"] for c in self.calls]


def make_artwork(source: Source, native_id: str, title: str = "Work") -> CanonicalArtwork:
    return CanonicalArtwork(id=encode_id(source, native_id), source=source, title=title)


class FakeAgent:
    """Coordinator-facing double: returns canned artworks or raises, counting calls."""

    def __init__(self, source: Source, artworks=None, error: Optional[Exception] = None,
                 delay: float = 0.0, deadline_s: float = 5.0):
        self.source = source
        self.artworks = list(artworks or [])
        self.error = error
        self.delay = delay
        self.deadline_s = deadline_s
        self.search_calls = 0
        self.get_calls: List[str] = []
        self.rngs: List[Any] = []

    def new_deadline(self) -> Deadline:
        return Deadline(self.deadline_s, source=self.source.value)

    def _answer(self, deadline: Deadline):
        if self.delay:
            deadline.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return list(self.artworks)

    def search(self, query, deadline):
        self.search_calls += 1
        return self._answer(deadline)

    def random(self, count, deadline, rng=None):
        self.rngs.append(rng)
        return self._answer(deadline)[:count]

    def get(self, native_id, deadline=None):
        self.get_calls.append(native_id)
        if self.error is not None:
            raise self.error
        return make_artwork(self.source, native_id)


@pytest.fixture()
def logger(tmp_path) -> RunLogger:
    return RunLogger(tmp_path / "logs")


@pytest.fixture()
def open_gate() -> RateGate:
    return RateGate("test", 0.0)


@pytest.fixture()
def agent_kwargs(logger, open_gate) -> Callable[[FakeSession], Dict[str, Any]]:
    """Constructor kwargs for a real source agent wired to a FakeSession."""
    def _make(session: FakeSession, workers: int = 5) -> Dict[str, Any]:
        return {
            "session": session,
            "gate": open_gate,
            "logger": logger,
            "fetcher": FetchAgent(max_workers=workers, logger=logger),
        }
    return _make


@pytest.fixture()
def deadline() -> Deadline:
    return Deadline(10.0, source="test")
