from __future__ import annotations
from enum import Enum
from typing import Any, Dict, Mapping, Optional


class ErrorKind(str, Enum):
    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"
    UPSTREAM = "upstream"
    NOT_FOUND = "not_found"
    MALFORMED = "malformed"
    INVALID_IDENTIFIER = "invalid_identifier"


# When every source fails, the aggregate error takes the first kind present here.
DOMINANCE = (
    ErrorKind.TIMEOUT,
    ErrorKind.RATE_LIMITED,
    ErrorKind.UPSTREAM,
    ErrorKind.MALFORMED,
    ErrorKind.NOT_FOUND,
    ErrorKind.INVALID_IDENTIFIER,
)


class SourceError(Exception):
    """
    A failure attributed to one museum source (or to the caller's identifier).

    Args:
        message: Human readable description.
        source: Short name of the museum involved, if any.
        retry_after: Seconds the upstream asked us to wait (rate limits only).
    """
    kind: ErrorKind = ErrorKind.UPSTREAM

    def __init__(self, message: str, source: Optional[str] = None, retry_after: Optional[float] = None):
        super().__init__(message)
        self.message = message
        self.source = source
        self.retry_after = retry_after

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"kind": self.kind.value, "message": self.message}
        if self.source:
            out["source"] = self.source
        if self.retry_after is not None:
            out["retry_after"] = self.retry_after
        return out

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, source={self.source!r})"


class SourceTimeout(SourceError):
    kind = ErrorKind.TIMEOUT


class RateLimited(SourceError):
    kind = ErrorKind.RATE_LIMITED


class UpstreamError(SourceError):
    kind = ErrorKind.UPSTREAM


class NotFound(SourceError):
    kind = ErrorKind.NOT_FOUND


class MalformedResponse(SourceError):
    kind = ErrorKind.MALFORMED


class InvalidIdentifier(SourceError):
    kind = ErrorKind.INVALID_IDENTIFIER


class AggregateSearchError(SourceError):
    """Raised when every requested source failed; `kind` is the dominant per-source kind."""

    def __init__(self, errors: Mapping[Any, SourceError]):
        self.errors = dict(errors)
        self.kind = dominant_kind(self.errors.values())
        retry = [e.retry_after for e in self.errors.values()
                 if e.kind is self.kind and e.retry_after is not None]
        names = ", ".join(sorted(getattr(s, "value", str(s)) for s in self.errors))
        super().__init__(
            f"All sources failed ({names})",
            retry_after=max(retry) if retry else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        out = super().to_dict()
        out["errors"] = {getattr(s, "value", str(s)): e.to_dict() for s, e in self.errors.items()}
        return out


def dominant_kind(errors) -> ErrorKind:
    kinds = {e.kind for e in errors}
    for kind in DOMINANCE:
        if kind in kinds:
            return kind
    return ErrorKind.UPSTREAM
