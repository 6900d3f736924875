from __future__ import annotations
from typing import Any, Dict, List, Optional
import random

from ..config import VA_API, VA_DEADLINE
from ..errors import MalformedResponse
from ..models import CanonicalArtwork, SearchQuery, Source
from ..utils.deadline import Deadline
from ..utils.ids import encode_id
from ..utils.normalise import clean_text, contains_text, join_nonempty, strip_html, unique_texts
from .base import SourceAgent

IIIF_BASE = "https://framemark.vam.ac.uk/collections"
MAX_PAGE_SIZE = 100
FILTER_OVERFETCH = 3


def _first(items: Any) -> Dict[str, Any]:
    if isinstance(items, list) and items and isinstance(items[0], dict):
        return items[0]
    return {}


def _text_of(node: Any) -> str | None:
    """V&A nests display strings as {"text": ...}."""
    if isinstance(node, dict):
        return clean_text(node.get("text"))
    return clean_text(node)


def _texts(items: Any) -> List[str]:
    if not isinstance(items, list):
        return []
    return unique_texts(_text_of(i) for i in items)


class VAAgent(SourceAgent):
    """
    Victoria and Albert Museum (API v2).

    Search results already carry full records, so no detail fetch is needed.
    There is no title- or artist-only parameter: those searches fetch a larger
    page and filter locally on the standardised title/artist.
    """

    source = Source.VA

    def __init__(self, base_url: str = VA_API, deadline_s: float = VA_DEADLINE, **kwargs):
        super().__init__(base_url, deadline_s, **kwargs)

    def wanted(self, query: SearchQuery) -> int:
        """Records to pull for a query: the limit, or a multiple of it when filtering locally."""
        limit = query.effective_limit()
        if query.title_only or query.artist_only:
            limit *= FILTER_OVERFETCH
        return limit

    def search_params(self, query: SearchQuery) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "page_size": min(self.wanted(query), MAX_PAGE_SIZE),
            "response_format": "json",
        }
        if query.text:
            params["q"] = query.text
        if query.has_images:
            params["images_exist"] = 1
        return params

    def search_records(self, params: Dict[str, Any], deadline: Deadline,
                       limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Pages through `/objects/search` until `limit` records are in hand or the
        results run out. Without a limit only the first page is read.
        """
        records: List[Dict[str, Any]] = []
        page = 1
        while True:
            page_params = params if page == 1 else {**params, "page": page}
            data = self._get(f"{self.base_url}/objects/search", page_params, deadline)
            batch = data.get("records") or []
            if not isinstance(batch, list):
                raise MalformedResponse("V&A search returned non-list records", source=self.name)
            records.extend(batch)

            info = data.get("info") if isinstance(data.get("info"), dict) else {}
            pages = info.get("pages")
            if limit is None or len(records) >= limit or not batch:
                break
            if not isinstance(pages, int) or page >= pages:
                break
            page += 1
        return records[:limit] if limit is not None else records

    def search_ids(self, query: SearchQuery, deadline: Deadline) -> List[str]:
        records = self.search_records(self.search_params(query), deadline, self.wanted(query))
        return [str(r["systemNumber"]) for r in records if isinstance(r, dict) and r.get("systemNumber")]

    def search(self, query: SearchQuery, deadline: Deadline) -> List[CanonicalArtwork]:
        """
        Standardises the search pages directly, then applies the local title/artist
        filter when requested.
        """
        limit = query.effective_limit()
        records = self.search_records(self.search_params(query), deadline, self.wanted(query))
        artworks = self._standardize_all(records)
        needle = query.text
        if needle and (query.title_only or query.artist_only):
            artworks = [
                a for a in artworks
                if (query.title_only and contains_text(a.title, needle))
                or (query.artist_only and contains_text(a.artist, needle))
            ]
        return artworks[:limit]

    def _standardize_all(self, records: List[Any]) -> List[CanonicalArtwork]:
        out: List[CanonicalArtwork] = []
        for rec in records:
            try:
                out.append(self.standardize(rec))
            except MalformedResponse as e:
                self.logger.warn("record_skipped", source=self.name, error=str(e))
        return out

    def fetch_by_id(self, native_id: str, deadline: Optional[Deadline] = None) -> Dict[str, Any]:
        data = self._get(f"{self.base_url}/museumobject/{str(native_id).strip()}", deadline=deadline)
        record = data.get("record")
        if not isinstance(record, dict):
            raise MalformedResponse(f"V&A object {native_id} has no record", source=self.name)
        return record

    def standardize(self, raw: Dict[str, Any], deadline: Optional[Deadline] = None) -> CanonicalArtwork:
        """
        Converts a V&A record (search hit or museumobject record) to the canonical artwork.

        Args:
            raw (Dict[str, Any]): The V&A record.
            deadline (Deadline | None): Unused; V&A needs no follow-up call.

        Returns:
            CanonicalArtwork: The normalised record.
        """
        raw = self._require_object(raw)
        system_number = clean_text(raw.get("systemNumber"))
        if not system_number:
            raise MalformedResponse("V&A record has no systemNumber", source=self.name)

        maker = raw.get("_primaryMaker") if isinstance(raw.get("_primaryMaker"), dict) else {}
        person = _first(raw.get("artistMakerPerson"))
        organisation = _first(raw.get("artistMakerOrganisations"))
        artist = (clean_text(maker.get("name"))
                  or _text_of(person.get("name"))
                  or _text_of(organisation.get("name"))
                  or "Unknown Artist")
        artist_bio = clean_text(person.get("note")) if not maker.get("name") else None

        title = (clean_text(raw.get("_primaryTitle"))
                 or clean_text(_first(raw.get("titles")).get("title"))
                 or "Untitled")
        date = clean_text(raw.get("_primaryDate")) or _text_of(_first(raw.get("productionDates")).get("date"))
        culture = clean_text(raw.get("_primaryPlace")) or _text_of(_first(raw.get("placesOfOrigin")).get("place"))

        materials = _texts(raw.get("materials"))
        techniques = _texts(raw.get("techniques"))
        medium = clean_text(raw.get("materialsAndTechniques")) or join_nonempty(
            [join_nonempty(materials), join_nonempty(techniques)], "; ")
        object_type = clean_text(raw.get("objectType"))

        image_id = clean_text(raw.get("_primaryImageId"))
        if not image_id:
            images = raw.get("images")
            image_id = clean_text(images[0]) if isinstance(images, list) and images else None
        image_url = small_image_url = None
        if image_id:
            base = f"{IIIF_BASE}/{image_id}"
            image_url = f"{base}/full/!800,800/0/default.jpg"
            small_image_url = f"{base}/full/!200,200/0/default.jpg"

        accession_year = raw.get("accessionYear")
        return CanonicalArtwork(
            id=encode_id(self.source, system_number),
            source=self.source,
            title=title,
            artist=artist,
            artist_bio=artist_bio,
            culture=culture,
            date=date,
            medium=medium,
            dimensions=clean_text(raw.get("dimensionsSummary")),
            department=object_type,
            description=strip_html(clean_text(raw.get("briefDescription"))
                                   or clean_text(raw.get("physicalDescription"))),
            image_url=image_url,
            small_image_url=small_image_url,
            museum_url=f"https://collections.vam.ac.uk/item/{system_number}/",
            tags=frozenset(materials + techniques + ([object_type] if object_type else [])),
            system_number=system_number,
            accession_number=clean_text(raw.get("accessionNumber")),
            accession_year=accession_year if isinstance(accession_year, int) and not isinstance(accession_year, bool) else None,
        )

    def random(self, count: int, deadline: Deadline, rng: Optional[random.Random] = None) -> List[CanonicalArtwork]:
        """A broad "art" page with images, sampled at random."""
        rng = rng or random.Random()
        records = self.search_records(
            {"q": "art", "images_exist": 1, "page_size": min(count * 2, MAX_PAGE_SIZE), "response_format": "json"},
            deadline,
        )
        artworks = self._standardize_all(records)
        return rng.sample(artworks, min(count, len(artworks)))
