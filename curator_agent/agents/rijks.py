from __future__ import annotations
from typing import Any, Dict, Iterable, List, Optional, Tuple
import random

from ..config import RIJKS_API, RIJKS_API_KEY, RIJKS_DEADLINE, RIJKS_LEGACY_API
from ..errors import MalformedResponse, SourceError, SourceTimeout
from ..models import CanonicalArtwork, SearchQuery, Source
from ..utils.deadline import Deadline
from ..utils.ids import encode_id
from ..utils.normalise import clean_text, join_nonempty, strip_html, unique_texts, year_range
from .base import SourceAgent
from .cascade import RijksSearchCascade

# Getty AAT classifications used by the Rijksmuseum Linked Art records
AAT_PRIMARY_NAME = "vocab.getty.edu/aat/300404670"
AAT_TITLE = "vocab.getty.edu/aat/300417207"
AAT_ATTRIBUTION = "vocab.getty.edu/aat/300435416"
AAT_OBJECT_NUMBER = "vocab.getty.edu/aat/300312355"
AAT_DESCRIPTION = "vocab.getty.edu/aat/300080091"

RANDOM_TYPES = ("painting", "sculpture", "drawing", "print", "ceramic", "furniture")


# ---------- Linked Art helpers ----------

def _as_list(value: Any) -> List[Any]:
    if isinstance(value, list):
        return value
    if value is None:
        return []
    return [value]


def _uri_key(uri: Any) -> str:
    """Compares AAT URIs regardless of http/https."""
    s = str(uri or "")
    for prefix in ("https://", "http://"):
        if s.startswith(prefix):
            return s[len(prefix):]
    return s


def _classified(node: Dict[str, Any], *uris: str) -> bool:
    wanted = set(uris)
    for c in _as_list(node.get("classified_as")):
        if isinstance(c, dict) and _uri_key(c.get("id")) in wanted:
            return True
    return False


def _content(node: Dict[str, Any]) -> str | None:
    value = node.get("content")
    if isinstance(value, list):
        return join_nonempty(value, " ")
    return clean_text(value)


def _first_content(entries: Iterable[Any], type_: str, *uris: str) -> str | None:
    """First matching entry wins."""
    for e in entries:
        if isinstance(e, dict) and e.get("type") == type_ and _classified(e, *uris):
            text = _content(e)
            if text:
                return text
    return None


def _name_of(node: Any) -> str | None:
    """A referenced concept's display name: its Name entry, else its _label."""
    if not isinstance(node, dict):
        return None
    for ident in _as_list(node.get("identified_by")):
        if isinstance(ident, dict) and ident.get("type") == "Name":
            text = _content(ident)
            if text:
                return text
    return clean_text(node.get("_label"))


def _production_parts(raw: Dict[str, Any]) -> List[Dict[str, Any]]:
    """produced_by itself followed by its `part` sub-activities."""
    produced = raw.get("produced_by")
    if not isinstance(produced, dict):
        return []
    parts = [p for p in _as_list(produced.get("part")) if isinstance(p, dict)]
    return [produced] + parts


def native_id_from_uri(uri: str) -> str:
    return str(uri).rstrip("/").split("/")[-1]


class RijksAgent(SourceAgent):
    """
    Rijksmuseum Data Services.

    Metadata comes from the Linked Art (JSON-LD) resolver, which has no usable
    image links; images come from the older collection API, keyed by object
    number. Standardising a record therefore costs a second request, and that
    cost is part of this agent's (larger) deadline.
    """

    source = Source.RIJKS
    accept = "application/ld+json"

    def __init__(self, base_url: str = RIJKS_API, deadline_s: float = RIJKS_DEADLINE,
                 legacy_url: str = RIJKS_LEGACY_API, api_key: str = RIJKS_API_KEY, **kwargs):
        super().__init__(base_url, deadline_s, **kwargs)
        self.legacy_url = legacy_url.rstrip("/")
        self.api_key = api_key

    # ---------- Search ----------

    def search_collection(self, params: Dict[str, Any], deadline: Deadline,
                          limit: Optional[int] = None) -> List[str]:
        """
        Searches `/search/collection`, following the `next` page link until
        `limit` IDs are collected or the results run out. Without a limit only
        the first page is read.

        Returns:
            List[str]: Native IDs (last path segment of each item's PID), in result order.
        """
        url: str = f"{self.base_url}/search/collection"
        page_params: Optional[Dict[str, Any]] = params
        ids: List[str] = []
        while True:
            data = self._get(url, page_params, deadline, accept="application/json")
            items = data.get("orderedItems")
            if items is None:
                items = data.get("items") or []
            if not isinstance(items, list):
                raise MalformedResponse("Rijksmuseum search returned non-list orderedItems", source=self.name)
            before = len(ids)
            for item in items:
                pid = item.get("id") if isinstance(item, dict) else None
                if isinstance(pid, str) and pid.strip():
                    nid = native_id_from_uri(pid)
                    if nid and nid not in ids:
                        ids.append(nid)

            nxt = data.get("next")
            next_url = nxt.get("id") if isinstance(nxt, dict) else None
            if limit is None or len(ids) >= limit or len(ids) == before:
                break
            if not isinstance(next_url, str) or not next_url.strip():
                break
            # The next link carries the page token and the original query
            url, page_params = next_url, None
        return ids[:limit] if limit is not None else ids

    def search_ids(self, query: SearchQuery, deadline: Deadline) -> List[str]:
        limit = query.effective_limit()
        cascade = RijksSearchCascade(
            lambda params, dl: self.search_collection(params, dl, limit), logger=self.logger)
        return cascade.run(query, deadline).ids

    # ---------- Records ----------

    def fetch_by_id(self, native_id: str, deadline: Optional[Deadline] = None) -> Dict[str, Any]:
        """Dereferences a PID (bare ID or full URI) into Linked Art JSON-LD."""
        nid = str(native_id).strip()
        url = nid if nid.startswith(("http://", "https://")) else f"{self.base_url}/{nid}"
        return self._get(url, {"_profile": "la"}, deadline)

    def fetch_images(self, object_number: str | None,
                     deadline: Optional[Deadline] = None) -> Tuple[str | None, str | None]:
        """
        Looks up (imageUrl, smallImageUrl) in the legacy API.

        A missing key, a missing web image or a failed lookup all give (None, None);
        only an exhausted deadline propagates, not a single request timing out.
        """
        if not object_number or not self.api_key:
            return None, None
        try:
            data = self._get(
                f"{self.legacy_url}/{object_number}",
                {"key": self.api_key, "format": "json"},
                deadline,
                accept="application/json",
            )
        except SourceError as e:
            if isinstance(e, SourceTimeout) and deadline is not None and deadline.expired():
                raise
            self.logger.warn("image_lookup_failed", source=self.name, object_number=object_number,
                             kind=e.kind.value, error=str(e))
            return None, None

        art = data.get("artObject") if isinstance(data.get("artObject"), dict) else {}
        web = art.get("webImage") if isinstance(art.get("webImage"), dict) else {}
        url = clean_text(web.get("url"))
        if not url:
            return None, None
        return url, url.replace("=s0", "=s400")

    def standardize(self, raw: Dict[str, Any], deadline: Optional[Deadline] = None) -> CanonicalArtwork:
        """
        Converts a Linked Art record to the canonical artwork, resolving images
        through the legacy API.

        Args:
            raw (Dict[str, Any]): JSON-LD object from the resolver.
            deadline (Deadline | None): Budget for the image lookup.

        Returns:
            CanonicalArtwork: The normalised record.

        Raises:
            MalformedResponse: not an object, or no `id` to derive the native ID from.
        """
        raw = self._require_object(raw)
        object_id = native_id_from_uri(raw.get("id") or "")
        if not object_id:
            raise MalformedResponse("Rijksmuseum record has no id", source=self.name)

        identified = _as_list(raw.get("identified_by"))
        parts = _production_parts(raw)

        title = (_first_content(identified, "Name", AAT_PRIMARY_NAME, AAT_TITLE)
                 or clean_text(raw.get("_label"))
                 or "Untitled")
        object_number = _first_content(identified, "Identifier", AAT_OBJECT_NUMBER)

        techniques = unique_texts(_name_of(t) for p in parts for t in _as_list(p.get("technique")))
        materials = unique_texts(_name_of(m) for m in _as_list(raw.get("made_of")))
        image_url, small_image_url = self.fetch_images(object_number, deadline)

        return CanonicalArtwork(
            id=encode_id(self.source, object_id),
            source=self.source,
            title=title,
            artist=self._artist(parts),
            date=self._date(parts),
            medium=join_nonempty(techniques) or join_nonempty(materials),
            dimensions=self._dimensions(raw),
            department=self._object_type(raw),
            description=strip_html(_first_content(_as_list(raw.get("referred_to_by")),
                                                  "LinguisticObject", AAT_DESCRIPTION)),
            image_url=image_url,
            small_image_url=small_image_url,
            museum_url=f"https://www.rijksmuseum.nl/en/collection/{object_number or object_id}",
            tags=frozenset(self._subjects(raw)),
            object_number=object_number,
            materials=tuple(materials),
            techniques=tuple(techniques),
        )

    def _artist(self, parts: List[Dict[str, Any]]) -> str:
        for p in parts:
            text = _first_content(_as_list(p.get("referred_to_by")), "LinguisticObject", AAT_ATTRIBUTION)
            if text:
                return text
        for p in parts:
            for who in _as_list(p.get("carried_out_by")):
                name = _name_of(who)
                if name:
                    return name
        return "Unknown Artist"

    def _date(self, parts: List[Dict[str, Any]]) -> str | None:
        for p in parts:
            span = p.get("timespan")
            if not isinstance(span, dict):
                continue
            for ident in _as_list(span.get("identified_by")):
                if isinstance(ident, dict) and ident.get("type") == "Name":
                    text = _content(ident)
                    if text:
                        return text
            years = year_range(span.get("begin_of_the_begin"), span.get("end_of_the_end"))
            if years:
                return years
        return None

    def _dimensions(self, raw: Dict[str, Any]) -> str | None:
        out: List[str] = []
        for d in _as_list(raw.get("dimension")):
            if not isinstance(d, dict) or d.get("value") in (None, ""):
                continue
            unit = _name_of(d.get("unit")) or "cm"
            out.append(f"{d['value']} {unit}")
        return " x ".join(out) if out else None

    def _object_type(self, raw: Dict[str, Any]) -> str | None:
        for c in _as_list(raw.get("classified_as")):
            if isinstance(c, dict) and c.get("type") == "Type":
                label = _name_of(c)
                if label:
                    return label
        return None

    def _subjects(self, raw: Dict[str, Any]) -> List[str]:
        return unique_texts(
            _name_of(about)
            for shown in _as_list(raw.get("shows")) if isinstance(shown, dict)
            for about in _as_list(shown.get("about"))
        )

    def random(self, count: int, deadline: Deadline, rng: Optional[random.Random] = None) -> List[CanonicalArtwork]:
        """A random object type, then a random sample of its hits."""
        rng = rng or random.Random()
        kind = rng.choice(RANDOM_TYPES)
        ids = self.search_collection({"type": kind, "imageAvailable": "true"}, deadline)
        picked = rng.sample(ids, min(count, len(ids)))
        return self.load_all(picked, deadline)
