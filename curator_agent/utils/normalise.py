from __future__ import annotations
import re
from typing import Any, Iterable, List, Optional

_TAG_RE = re.compile(r"<[^>]+>")
_YEAR_RE = re.compile(r"^\s*(-?\d{1,4})")


def clean_text(value: Any) -> str | None:
    """Strips strings; anything empty or non-textual becomes None."""
    if value is None or isinstance(value, (dict, list, bool)):
        return None
    s = str(value).strip()
    return s or None


def strip_html(text: str | None) -> str | None:
    if not text:
        return None
    s = _TAG_RE.sub("", text)
    s = s.replace("&nbsp;", " ").replace("&amp;", "&")
    s = re.sub(r"\s+", " ", s).strip()
    return s or None


def join_nonempty(values: Iterable[Any], sep: str = ", ") -> str | None:
    parts = [t for t in (clean_text(v) for v in values) if t]
    return sep.join(parts) if parts else None


def unique_texts(values: Iterable[Any]) -> List[str]:
    out: List[str] = []
    for v in values:
        t = clean_text(v)
        if t and t not in out:
            out.append(t)
    return out


def year_of(stamp: Any) -> int | None:
    """Year from an ISO-like timestamp ("1642-01-01T00:00:00Z", "-0500-01-01")."""
    if isinstance(stamp, int) and not isinstance(stamp, bool):
        return stamp
    if not isinstance(stamp, str):
        return None
    m = _YEAR_RE.match(stamp)
    if not m:
        return None
    try:
        return int(m.group(1))
    except ValueError:
        return None


def year_range(begin: Any, end: Any) -> str | None:
    """"1642" when both ends fall in the same year, else "1642-1650"."""
    start = year_of(begin)
    stop = year_of(end)
    if start is None:
        start, stop = stop, None
    if start is None:
        return None
    if stop is None or stop == start:
        return str(start)
    return f"{start}-{stop}"


def contains_text(haystack: Optional[str], needle: str) -> bool:
    """Case-insensitive substring match."""
    if not haystack or not needle:
        return False
    return needle.casefold() in haystack.casefold()
