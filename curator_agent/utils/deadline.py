from __future__ import annotations
import threading
import time
from typing import Callable, Optional

from ..errors import SourceTimeout


class Deadline:
    """
    Wall-clock budget for one source's share of a request.

    The same instance is handed to every call made on behalf of that source, so
    expiry (or an explicit `cancel()`) stops all of its in-flight work at the next
    suspension point.
    """

    def __init__(self, seconds: float, source: Optional[str] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.seconds = float(seconds)
        self.source = source
        self._clock = clock
        self._expires_at = clock() + self.seconds
        self._cancelled = threading.Event()

    def remaining(self) -> float:
        if self._cancelled.is_set():
            return 0.0
        return max(0.0, self._expires_at - self._clock())

    def expired(self) -> bool:
        return self.remaining() <= 0.0

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def check(self) -> None:
        """Raises SourceTimeout once the budget is spent or the deadline was cancelled."""
        if self.expired():
            raise SourceTimeout(
                f"{self.source or 'source'} exceeded its {self.seconds:g}s budget",
                source=self.source,
            )

    def sleep(self, seconds: float) -> None:
        """Sleeps up to `seconds`, waking early on cancellation; raises if the budget runs out."""
        if seconds > 0:
            self._cancelled.wait(min(seconds, self.remaining()))
        self.check()

    def timeout_for(self, per_request: float) -> float:
        """Per-request timeout: never longer than what is left of the budget."""
        return max(0.001, min(per_request, self.remaining()))

    def __repr__(self) -> str:
        return f"Deadline(source={self.source!r}, remaining={self.remaining():.2f}s)"
