from __future__ import annotations
from typing import Any, Dict, List, Optional
import random

from ..config import MET_API, MET_DEADLINE
from ..errors import MalformedResponse, NotFound
from ..models import CanonicalArtwork, SearchQuery, Source
from ..utils.deadline import Deadline
from ..utils.ids import encode_id
from ..utils.normalise import clean_text, unique_texts
from .base import SourceAgent


class MetAgent(SourceAgent):
    """
    The Metropolitan Museum of Art.

    Search returns numeric object IDs only; every record is a separate
    `/objects/{id}` call (there is no batch endpoint).
    """

    source = Source.MET

    def __init__(self, base_url: str = MET_API, deadline_s: float = MET_DEADLINE, **kwargs):
        super().__init__(base_url, deadline_s, **kwargs)

    def search_params(self, query: SearchQuery) -> Dict[str, Any]:
        """
        Maps a SearchQuery onto Met search parameters (almost 1:1).

        Args:
            query (SearchQuery): The caller's query.

        Returns:
            Dict[str, Any]: Query-string parameters for `/search`.
        """
        params: Dict[str, Any] = {"q": query.text or "*"}
        if query.has_images:
            params["hasImages"] = "true"
        if query.department_id is not None:
            params["departmentId"] = int(query.department_id)
        if query.is_highlight:
            params["isHighlight"] = "true"
        if query.title_only:
            params["title"] = "true"
        if query.artist_only:
            params["artistOrCulture"] = "true"
        return params

    def search_ids(self, query: SearchQuery, deadline: Deadline) -> List[str]:
        data = self._get(f"{self.base_url}/search", self.search_params(query), deadline)
        return self._object_ids(data)

    def _object_ids(self, data: Dict[str, Any]) -> List[str]:
        ids = data.get("objectIDs") or []
        if not isinstance(ids, list):
            raise MalformedResponse("Met search returned a non-list objectIDs", source=self.name)
        return [str(i) for i in ids if i is not None]

    def fetch_by_id(self, native_id: str, deadline: Optional[Deadline] = None) -> Dict[str, Any]:
        nid = str(native_id).strip()
        if not nid.isdigit():
            raise NotFound(f"Met object IDs are numeric, got {native_id!r}", source=self.name)
        return self._get(f"{self.base_url}/objects/{nid}", deadline=deadline)

    def standardize(self, raw: Dict[str, Any], deadline: Optional[Deadline] = None) -> CanonicalArtwork:
        """
        Converts a Met object record to the canonical artwork.

        Args:
            raw (Dict[str, Any]): The `/objects/{id}` payload.
            deadline (Deadline | None): Unused; Met records need no follow-up call.

        Returns:
            CanonicalArtwork: The normalised record.

        Raises:
            MalformedResponse: the payload is not an object or has no objectID.
        """
        raw = self._require_object(raw)
        object_id = raw.get("objectID")
        if object_id in (None, "", 0):
            raise MalformedResponse("Met record has no objectID", source=self.name)

        tags = raw.get("tags") if isinstance(raw.get("tags"), list) else []
        extra = raw.get("additionalImages") if isinstance(raw.get("additionalImages"), list) else []

        return CanonicalArtwork(
            id=encode_id(self.source, object_id),
            source=self.source,
            title=clean_text(raw.get("title")) or "Untitled",
            artist=clean_text(raw.get("artistDisplayName")) or "Unknown Artist",
            artist_bio=clean_text(raw.get("artistDisplayBio")),
            culture=clean_text(raw.get("culture")),
            date=clean_text(raw.get("objectDate")),
            medium=clean_text(raw.get("medium")),
            dimensions=clean_text(raw.get("dimensions")),
            department=clean_text(raw.get("department")),
            image_url=clean_text(raw.get("primaryImage")),
            small_image_url=clean_text(raw.get("primaryImageSmall")),
            additional_images=tuple(unique_texts(extra)),
            museum_url=clean_text(raw.get("objectURL")),
            is_highlight=bool(raw["isHighlight"]) if "isHighlight" in raw else None,
            is_public_domain=bool(raw["isPublicDomain"]) if "isPublicDomain" in raw else None,
            tags=frozenset(unique_texts(t.get("term") for t in tags if isinstance(t, dict))),
            object_id=_as_int(object_id),
            accession_number=clean_text(raw.get("accessionNumber")),
            credit_line=clean_text(raw.get("creditLine")),
            gallery_number=clean_text(raw.get("GalleryNumber")),
        )

    def departments(self, deadline: Optional[Deadline] = None) -> List[Dict[str, Any]]:
        """Lists Met departments as [{"departmentId": int, "displayName": str}, ...]."""
        data = self._get(f"{self.base_url}/departments", deadline=deadline or self.new_deadline())
        out: List[Dict[str, Any]] = []
        for d in data.get("departments") or []:
            if isinstance(d, dict) and d.get("departmentId") is not None:
                out.append({"departmentId": d["departmentId"], "displayName": clean_text(d.get("displayName"))})
        return out

    def random(self, count: int, deadline: Deadline, rng: Optional[random.Random] = None) -> List[CanonicalArtwork]:
        """
        Highlighted works with images, sampled at random; falls back to a broad
        "painting" search when the highlight search is empty.
        """
        rng = rng or random.Random()
        ids = self.search_ids(SearchQuery(q="*", is_highlight=True), deadline)
        if not ids:
            ids = self.search_ids(SearchQuery(q="painting"), deadline)
        picked = rng.sample(ids, min(count, len(ids)))
        return [a for a in self.load_all(picked, deadline) if a.image_url]


def _as_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
