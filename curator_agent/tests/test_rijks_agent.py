import pytest
import requests

from curator_agent.agents.rijks import RijksAgent
from curator_agent.errors import MalformedResponse
from curator_agent.models import SearchQuery

from conftest import FakeResponse, FakeSession

BASE = "https://data.rijks.test"
LEGACY = "https://legacy.rijks.test/api/en/collection"

NIGHT_WATCH = {
    "@context": "https://linked.art/ns/v1/linked-art.json",
    "id": "https://id.rijksmuseum.nl/200107928",
    "type": "HumanMadeObject",
    "_label": "The Night Watch",
    "identified_by": [
        {"type": "Identifier", "content": "SK-C-5",
         "classified_as": [{"id": "http://vocab.getty.edu/aat/300312355"}]},
        {"type": "Name", "content": "De Nachtwacht",
         "classified_as": [{"id": "http://vocab.getty.edu/aat/300404670"}]},
    ],
    "classified_as": [{"id": "http://vocab.getty.edu/aat/300033618", "type": "Type", "_label": "painting"}],
    "produced_by": {
        "type": "Production",
        "timespan": {"type": "TimeSpan", "begin_of_the_begin": "1642-01-01T00:00:00Z",
                     "end_of_the_end": "1642-12-31T23:59:59Z"},
        "referred_to_by": [{"type": "LinguisticObject", "content": "Rembrandt van Rijn",
                            "classified_as": [{"id": "https://vocab.getty.edu/aat/300435416"}]}],
        "part": [{
            "type": "Production",
            "technique": [{"type": "Type", "_label": "oil painting"}],
            "carried_out_by": [{"type": "Person", "_label": "Rembrandt"}],
        }],
    },
    "made_of": [
        {"type": "Material", "_label": "canvas"},
        {"type": "Material", "identified_by": [{"type": "Name", "content": "oil paint"}]},
    ],
    "dimension": [
        {"type": "Dimension", "value": 379.5, "unit": {"_label": "cm"}},
        {"type": "Dimension", "value": 453.5, "unit": {"_label": "cm"}},
    ],
    "referred_to_by": [{"type": "LinguisticObject", "content": "<p>Rembrandt's largest painting.</p>",
                        "classified_as": [{"id": "http://vocab.getty.edu/aat/300080091"}]}],
    "shows": [{"type": "VisualItem", "about": [{"_label": "militia"}, {"_label": "militia"}]}],
}

LEGACY_IMAGE = {"artObject": {"objectNumber": "SK-C-5",
                              "webImage": {"url": "https://lh3.googleusercontent.com/nightwatch=s0"}}}


def make_agent(agent_kwargs, routes, api_key=""):
    session = FakeSession(routes)
    agent = RijksAgent(base_url=BASE, deadline_s=5, legacy_url=LEGACY, api_key=api_key, **agent_kwargs(session))
    return agent, session


def test_standardize_linked_art_record(agent_kwargs):
    agent, session = make_agent(agent_kwargs, {"/SK-C-5": FakeResponse(200, LEGACY_IMAGE)}, api_key="k")
    art = agent.standardize(NIGHT_WATCH, agent.new_deadline())
    assert art.id == "rijks:200107928"
    assert art.title == "De Nachtwacht"
    assert art.artist == "Rembrandt van Rijn"
    assert art.date == "1642"
    assert art.medium == "oil painting"
    assert art.materials == ("canvas", "oil paint")
    assert art.dimensions == "379.5 cm x 453.5 cm"
    assert art.department == "painting"
    assert art.description == "Rembrandt's largest painting."
    assert art.tags == frozenset({"militia"})
    assert art.object_number == "SK-C-5"
    assert art.museum_url == "https://www.rijksmuseum.nl/en/collection/SK-C-5"
    assert art.image_url == "https://lh3.googleusercontent.com/nightwatch=s0"
    assert art.small_image_url == "https://lh3.googleusercontent.com/nightwatch=s400"
    assert art.is_highlight is None and art.is_public_domain is None
    assert session.calls[0]["params"] == {"key": "k", "format": "json"}


def test_without_api_key_images_are_skipped(agent_kwargs):
    agent, session = make_agent(agent_kwargs, {})
    art = agent.standardize(NIGHT_WATCH)
    assert art.image_url is None and art.small_image_url is None
    assert session.calls == []


def test_failed_image_lookup_degrades(agent_kwargs, logger):
    agent, _ = make_agent(agent_kwargs, {"/SK-C-5": FakeResponse(403, {})}, api_key="k")
    art = agent.standardize(NIGHT_WATCH, agent.new_deadline())
    assert art.title == "De Nachtwacht"
    assert art.image_url is None
    assert "image_lookup_failed" in logger.log_path.read_text(encoding="utf-8")


def test_sparse_record_uses_placeholders(agent_kwargs):
    agent, _ = make_agent(agent_kwargs, {})
    art = agent.standardize({"id": "https://id.rijksmuseum.nl/77", "type": "HumanMadeObject"})
    assert art.id == "rijks:77"
    assert art.title == "Untitled"
    assert art.artist == "Unknown Artist"
    assert art.date is None
    assert art.museum_url == "https://www.rijksmuseum.nl/en/collection/77"


def test_artist_falls_back_to_carried_out_by(agent_kwargs):
    agent, _ = make_agent(agent_kwargs, {})
    raw = dict(NIGHT_WATCH)
    raw["produced_by"] = {"type": "Production", "carried_out_by": [{"type": "Person", "_label": "Jan Steen"}]}
    assert agent.standardize(raw).artist == "Jan Steen"


def test_record_without_id_is_malformed(agent_kwargs):
    agent, _ = make_agent(agent_kwargs, {})
    with pytest.raises(MalformedResponse):
        agent.standardize({"_label": "nameless"})


def test_search_collection_returns_unique_native_ids(agent_kwargs):
    agent, _ = make_agent(agent_kwargs, {"/search/collection": FakeResponse(200, {"orderedItems": [
        {"id": "https://id.rijksmuseum.nl/200107928", "type": "HumanMadeObject"},
        {"id": "https://id.rijksmuseum.nl/200107928", "type": "HumanMadeObject"},
        {"id": "https://id.rijksmuseum.nl/5"},
        {"type": "no id"},
    ]})})
    assert agent.search_collection({"title": "nachtwacht"}, agent.new_deadline()) == ["200107928", "5"]


def test_search_runs_cascade_then_loads_records(agent_kwargs):
    def search(url, params):
        if params.get("creator") == "rembrandt":
            return FakeResponse(200, {"orderedItems": [{"id": "https://id.rijksmuseum.nl/200107928"}]})
        return FakeResponse(200, {"orderedItems": []})

    agent, session = make_agent(agent_kwargs, {
        "/search/collection": search,
        "/200107928": FakeResponse(200, NIGHT_WATCH),
    })
    out = agent.search(SearchQuery(q="rembrandt"), agent.new_deadline())
    assert [a.id for a in out] == ["rijks:200107928"]
    searches = [c["params"] for c in session.calls if c["url"].endswith("/search/collection")]
    assert searches == [
        {"title": "rembrandt", "imageAvailable": "true"},
        {"creator": "rembrandt", "imageAvailable": "true"},
    ]
    detail = [c for c in session.calls if c["url"].endswith("/200107928")][0]
    assert detail["params"] == {"_profile": "la"}
    assert detail["headers"]["Accept"] == "application/ld+json"


def test_fetch_by_full_uri(agent_kwargs):
    agent, session = make_agent(agent_kwargs, {"/200107928": FakeResponse(200, NIGHT_WATCH)})
    art = agent.get("https://id.rijksmuseum.nl/200107928")
    assert art.id == "rijks:200107928"
    assert session.urls() == ["https://id.rijksmuseum.nl/200107928"]


def test_timed_out_image_lookup_degrades_while_time_remains(agent_kwargs, logger):
    agent, _ = make_agent(agent_kwargs, {"/SK-C-5": requests.ReadTimeout("read timed out")}, api_key="k")
    art = agent.standardize(NIGHT_WATCH, agent.new_deadline())
    assert art.id == "rijks:200107928"
    assert art.image_url is None
    assert "image_lookup_failed" in logger.log_path.read_text(encoding="utf-8")


def test_search_collection_follows_next_page(agent_kwargs):
    first = {
        "orderedItems": [{"id": f"https://id.rijksmuseum.nl/{i}"} for i in range(100)],
        "next": {"id": f"{BASE}/search/collection?type=painting&pageToken=abc", "type": "OrderedCollectionPage"},
    }
    second = {
        "orderedItems": [{"id": f"https://id.rijksmuseum.nl/{i}"} for i in range(100, 200)],
        "next": {"id": f"{BASE}/search/collection?type=painting&pageToken=def"},
    }
    agent, session = make_agent(agent_kwargs, {
        "/search/collection": FakeResponse(200, first),
        "pageToken=abc": FakeResponse(200, second),
    })
    ids = agent.search_collection({"type": "painting"}, agent.new_deadline(), limit=150)
    assert ids == [str(i) for i in range(150)]
    assert session.urls() == [f"{BASE}/search/collection", f"{BASE}/search/collection?type=painting&pageToken=abc"]
    assert session.calls[1]["params"] == {}


def test_search_collection_reads_one_page_without_limit(agent_kwargs):
    agent, session = make_agent(agent_kwargs, {"/search/collection": FakeResponse(200, {
        "orderedItems": [{"id": "https://id.rijksmuseum.nl/1"}],
        "next": {"id": f"{BASE}/search/collection?pageToken=abc"},
    })})
    assert agent.search_collection({"type": "print"}, agent.new_deadline()) == ["1"]
    assert len(session.calls) == 1
