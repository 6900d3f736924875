from __future__ import annotations
import time, random
import requests
from typing import Optional, Dict, Any

from ..config import DEFAULT_USER_AGENT, REQUEST_TIMEOUT
from ..errors import MalformedResponse, NotFound, RateLimited, SourceTimeout, UpstreamError
from .deadline import Deadline
from .ratelimit import RateGate

RETRYABLE_STATUS = {429, 500, 502, 503, 504}


def default_headers(accept: str = "application/json") -> Dict[str, str]:
    """
    Be a good API citizen: identify the client.
    """
    return {
        "User-Agent": DEFAULT_USER_AGENT,
        "Accept": accept,
    }


def _retry_after(headers: Any) -> float | None:
    ra = (headers or {}).get("Retry-After")
    if not ra:
        return None
    try:
        return max(0.0, float(ra))
    except ValueError:
        return None


def _sleep(seconds: float, deadline: Optional[Deadline]) -> None:
    if deadline is None:
        time.sleep(seconds)
    else:
        deadline.sleep(seconds)


def http_get_json(
    url: str,
    *,
    source: str,
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    session: Optional[requests.Session] = None,
    deadline: Optional[Deadline] = None,
    gate: Optional[RateGate] = None,
    timeout: float = REQUEST_TIMEOUT,
    retries: int = 3,
    backoff_base: float = 0.5,
    max_sleep: float = 10.0,
) -> Dict[str, Any]:
    """
    GET a JSON object with retry on 429/5xx. Honors Retry-After (seconds) when present.
    Exponential backoff with jitter, never sleeping past the deadline.

    Returns:
        The decoded JSON object.

    Raises:
        SourceTimeout: the request timed out or the deadline ran out.
        RateLimited: still 429 after the last attempt (carries retry_after).
        NotFound: the upstream answered 404.
        UpstreamError: other HTTP errors or connection failures.
        MalformedResponse: the body is not a JSON object.
    """
    session = session or requests.Session()
    last_exc: Exception | None = None

    for attempt in range(retries):
        if deadline is not None:
            deadline.check()
        if gate is not None:
            gate.wait(deadline)
        req_timeout = deadline.timeout_for(timeout) if deadline is not None else timeout
        backoff = min(backoff_base * (2 ** attempt) + random.uniform(0, 0.25), max_sleep)

        try:
            r = session.get(url, params=params, headers=headers, timeout=req_timeout)
        except requests.Timeout as e:
            last_exc = SourceTimeout(f"{source} request timed out: {url}", source=source)
            last_exc.__cause__ = e
            if deadline is not None and deadline.expired():
                raise last_exc
            continue
        except requests.RequestException as e:
            last_exc = UpstreamError(f"{source} request failed: {e}", source=source)
            last_exc.__cause__ = e
            if attempt < retries - 1:
                _sleep(backoff, deadline)
            continue

        status = r.status_code

        # Success
        if status < 400:
            try:
                data = r.json()
            except ValueError:
                raise MalformedResponse(f"{source} returned non-JSON for {url}", source=source) from None
            if not isinstance(data, dict):
                raise MalformedResponse(f"{source} returned {type(data).__name__}, expected an object", source=source)
            return data

        if status == 404:
            raise NotFound(f"{source} has no record at {url}", source=source)

        # Retry on rate-limit/server errors
        if status in RETRYABLE_STATUS:
            retry_after = _retry_after(r.headers)
            if status == 429:
                last_exc = RateLimited(f"{source} rate limit exceeded", source=source, retry_after=retry_after)
            else:
                last_exc = UpstreamError(f"{source} server error ({status})", source=source)
            wait = max(retry_after or 0.0, backoff)
            if attempt == retries - 1:
                break
            if deadline is not None and wait > deadline.remaining():
                break
            _sleep(wait, deadline)
            continue

        # Non-retryable
        raise UpstreamError(f"{source} answered HTTP {status} for {url}", source=source)

    if last_exc:
        raise last_exc
    raise UpstreamError(f"Exceeded retries for {url}", source=source)
