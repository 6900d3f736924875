from __future__ import annotations
import os


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


# API endpoints and User-Agent
MET_API = os.environ.get("CURATOR_MET_API_URL", "https://collectionapi.metmuseum.org/public/collection/v1")
"""The base URL for the Metropolitan Museum collection API (flat JSON)."""
RIJKS_API = os.environ.get("CURATOR_RIJKS_API_URL", "https://data.rijksmuseum.nl")
"""The base URL for Rijksmuseum Data Services (search + Linked Art resolver)."""
RIJKS_LEGACY_API = os.environ.get("CURATOR_RIJKS_LEGACY_API_URL", "https://www.rijksmuseum.nl/api/en/collection")
"""The older Rijksmuseum collection API, the only source of web image URLs."""
RIJKS_API_KEY = os.environ.get("CURATOR_RIJKS_API_KEY", "")
"""API key for the legacy Rijksmuseum API. Image lookup is skipped when empty."""
VA_API = os.environ.get("CURATOR_VA_API_URL", "https://api.vam.ac.uk/v2")
"""The base URL for the Victoria & Albert Museum API."""

DEFAULT_USER_AGENT = "curator-agent/0.1 (+https://example.org/contact)"
"""The default User-Agent string used for API requests."""

# Deadlines (seconds of wall-clock per source, per request)
MET_DEADLINE = _env_float("CURATOR_MET_DEADLINE", 25.0)
"""Budget for one Met search: search call plus all detail fetches."""
RIJKS_DEADLINE = _env_float("CURATOR_RIJKS_DEADLINE", 45.0)
"""Budget for one Rijksmuseum search. Larger: cascade steps + two calls per artwork."""
VA_DEADLINE = _env_float("CURATOR_VA_DEADLINE", 25.0)
"""Budget for one V&A search."""
REQUEST_TIMEOUT = _env_float("CURATOR_REQUEST_TIMEOUT", 15.0)
"""Upper bound for a single HTTP request; the remaining deadline may shorten it."""

# Result bounds
MAX_LIMIT = _env_int("CURATOR_MAX_LIMIT", 200)
"""Implementation ceiling for the number of artworks returned by one search."""
DEFAULT_LIMIT = 20
"""Limit used when the caller does not request one."""
MAX_RANDOM = 50
"""Ceiling for the random-artworks listing."""

# Pacing
DETAIL_WORKERS = _env_int("CURATOR_DETAIL_WORKERS", 5)
"""Number of detail fetches allowed in flight per source."""
MIN_INTERVAL = {
    "met": 0.05,
    "rijks": 0.1,
    "va": 0.05,
}
"""Minimum seconds between two requests to the same upstream (process-wide)."""
