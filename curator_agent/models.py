# curator_agent/models.py
from __future__ import annotations
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .config import DEFAULT_LIMIT, MAX_LIMIT


class Source(str, Enum):
    """The museums this package can search."""
    MET = "met"
    RIJKS = "rijks"
    VA = "va"

    @classmethod
    def parse(cls, value: str) -> "Source":
        """Looks up a source by its short name; raises ValueError when unknown."""
        return cls((value or "").strip().lower())


@dataclass(frozen=True)
class CanonicalArtwork:
    """
    A normalised artwork record, built once by a source agent from one upstream response.
    Fields a source does not supply stay None (never a guessed placeholder).
    """
    id: str
    """Composite identifier "<source>:<nativeId>"."""
    source: Source
    """The museum the record came from."""
    title: str = "Untitled"
    """Display title; never empty."""
    artist: str = "Unknown Artist"
    """Display name of the maker."""
    date: Optional[str] = None
    medium: Optional[str] = None
    dimensions: Optional[str] = None
    department: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    """Full size image."""
    small_image_url: Optional[str] = None
    """Thumbnail-sized image."""
    additional_images: Tuple[str, ...] = ()
    museum_url: Optional[str] = None
    """Deep link to the object page on the museum's own site."""
    is_highlight: Optional[bool] = None
    is_public_domain: Optional[bool] = None
    tags: frozenset = field(default_factory=frozenset)

    # Source-specific extensions
    artist_bio: Optional[str] = None
    culture: Optional[str] = None
    object_id: Optional[int] = None          # met
    accession_number: Optional[str] = None   # met, va
    credit_line: Optional[str] = None        # met
    gallery_number: Optional[str] = None     # met
    object_number: Optional[str] = None      # rijks
    materials: Optional[Tuple[str, ...]] = None   # rijks
    techniques: Optional[Tuple[str, ...]] = None  # rijks
    system_number: Optional[str] = None      # va
    accession_year: Optional[int] = None     # va

    @property
    def native_id(self) -> str:
        return self.id.split(":", 1)[1]

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialises the artwork with the camelCase keys used on the wire.
        Unset optional fields are left out entirely.
        """
        out: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, frozenset):
                value = sorted(value)
            elif isinstance(value, tuple):
                value = list(value)
            out[_camel(f.name)] = value
        return out


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(p[:1].upper() + p[1:] for p in rest)


@dataclass(frozen=True)
class SearchQuery:
    """
    What the caller asked for. Source-specific hints are ignored by sources that
    do not understand them.
    """
    q: Optional[str] = None
    """Free-text query."""
    source: str = "all"
    """"all" or one of the Source short names."""
    has_images: bool = True
    limit: int = DEFAULT_LIMIT
    """Requested number of artworks; capped by MAX_LIMIT."""
    department_id: Optional[int] = None      # met
    is_highlight: Optional[bool] = None      # met
    creator: Optional[str] = None            # rijks
    type: Optional[str] = None               # rijks
    title_only: bool = False
    artist_only: bool = False

    def selected_sources(self) -> List[Source]:
        """Returns the sources to query; raises ValueError for an unknown source name."""
        if (self.source or "all").strip().lower() == "all":
            return list(Source)
        return [Source.parse(self.source)]

    def effective_limit(self, ceiling: int = MAX_LIMIT) -> int:
        try:
            requested = int(self.limit)
        except (TypeError, ValueError):
            requested = DEFAULT_LIMIT
        if requested <= 0:
            requested = DEFAULT_LIMIT
        return min(requested, ceiling)

    @property
    def text(self) -> str:
        return (self.q or "").strip()


@dataclass
class SearchOutcome:
    """Merged artworks plus the errors of the sources that failed."""
    artworks: List[CanonicalArtwork]
    errors: Dict[Source, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": len(self.artworks),
            "artworks": [a.to_dict() for a in self.artworks],
            "errors": {src.value: err.to_dict() for src, err in self.errors.items()},
        }
