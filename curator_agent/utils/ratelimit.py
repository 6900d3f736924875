from __future__ import annotations
import threading
import time
from typing import Dict, Optional

from ..config import MIN_INTERVAL
from ..errors import SourceTimeout
from .deadline import Deadline


class RateGate:
    """
    Minimum spacing between two requests to one upstream.

    Callers reserve the next free slot under the lock and then sleep outside it,
    so concurrent workers queue up without holding the lock while waiting. A
    caller that gives up (deadline spent or cancelled) hands its slot back when
    nobody has queued behind it.
    """

    def __init__(self, name: str, min_interval: float):
        self.name = name
        self.min_interval = max(0.0, float(min_interval))
        self._lock = threading.Lock()
        self._next_slot = 0.0

    def wait(self, deadline: Optional[Deadline] = None) -> None:
        if self.min_interval <= 0:
            return
        with self._lock:
            now = time.monotonic()
            slot = max(now, self._next_slot)
            self._next_slot = slot + self.min_interval
        delay = slot - now
        if deadline is None:
            if delay > 0:
                time.sleep(delay)
            return
        if delay > deadline.remaining():
            self._release(slot)
            raise SourceTimeout(f"{self.name} request slot is past the deadline", source=self.name)
        try:
            deadline.sleep(delay)
        except SourceTimeout:
            self._release(slot)
            raise

    def _release(self, slot: float) -> None:
        with self._lock:
            if self._next_slot == slot + self.min_interval:
                self._next_slot = slot


_GATES: Dict[str, RateGate] = {}
_GATES_LOCK = threading.Lock()


def gate_for(name: str) -> RateGate:
    """Returns the process-wide gate for an upstream, creating it on first use."""
    with _GATES_LOCK:
        gate = _GATES.get(name)
        if gate is None:
            gate = RateGate(name, MIN_INTERVAL.get(name, 0.0))
            _GATES[name] = gate
        return gate
