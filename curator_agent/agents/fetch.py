from __future__ import annotations
from typing import Callable, List, Optional, Sequence, TypeVar
import concurrent.futures as _fut

from ..config import DETAIL_WORKERS
from ..errors import SourceError, SourceTimeout, UpstreamError, dominant_kind
from ..utils.deadline import Deadline
from ..utils.logging import RunLogger, get_logger

T = TypeVar("T")


class FetchAgent:
    """
    Retrieves full records for a batch of native IDs with a fixed-size worker pool.

    - At most `max_workers` loads are in flight for one source at a time.
    - A failing ID is logged and skipped; the batch carries on. That includes
      a request that timed out while the source still has time left.
    - The deadline is all-or-nothing: once it elapses the remaining work is
      cancelled and the whole batch fails with SourceTimeout, discarding what
      was already loaded.

    Results keep the order of `native_ids` (the upstream's search order).
    """

    def __init__(self, max_workers: int = DETAIL_WORKERS, logger: Optional[RunLogger] = None):
        """
        Initializes the FetchAgent.

        Args:
            max_workers (int): Number of detail requests allowed in flight at once.
            logger (RunLogger | None): Event logger; the process default when omitted.
        """
        self.max_workers = max(1, int(max_workers))
        self.logger = logger or get_logger()

    def fetch_all(
        self,
        native_ids: Sequence[str],
        load: Callable[[str], T],
        deadline: Deadline,
        source: str,
    ) -> List[T]:
        """
        Runs `load` for every ID and returns the successful results.

        Args:
            native_ids (Sequence[str]): IDs in upstream order.
            load (Callable[[str], T]): Fetches and standardises one ID.
            deadline (Deadline): The source's budget; shared with `load`.
            source (str): Source short name, for logging and errors.

        Returns:
            List[T]: Loaded items, in the order of `native_ids`, failures omitted.

        Raises:
            SourceTimeout: the deadline elapsed (or was cancelled) before every load settled.
            SourceError: every single load failed (dominant failure kind).
        """
        if not native_ids:
            return []
        deadline.check()

        pool = _fut.ThreadPoolExecutor(
            max_workers=min(self.max_workers, len(native_ids)),
            thread_name_prefix=f"{source}-detail",
        )
        try:
            futures = [pool.submit(load, nid) for nid in native_ids]
            _, pending = _fut.wait(futures, timeout=deadline.remaining())
            if pending or deadline.expired():
                deadline.cancel()
                raise SourceTimeout(
                    f"{source} detail fetch exceeded its {deadline.seconds:g}s budget "
                    f"({len(pending)} of {len(futures)} unfinished)",
                    source=source,
                )

            items: List[T] = []
            failures: List[SourceError] = []
            for nid, f in zip(native_ids, futures):
                exc = f.exception()
                if exc is None:
                    items.append(f.result())
                    continue
                if isinstance(exc, SourceTimeout) and deadline.expired():
                    deadline.cancel()
                    raise exc
                err = exc if isinstance(exc, SourceError) else UpstreamError(str(exc), source=source)
                failures.append(err)
                self.logger.warn("detail_skipped", source=source, native_id=nid,
                                 kind=err.kind.value, error=str(exc))
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

        if not items and failures:
            kind = dominant_kind(failures)
            raise next(e for e in failures if e.kind is kind)
        return items
