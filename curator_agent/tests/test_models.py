import pytest

from curator_agent.errors import NotFound
from curator_agent.models import CanonicalArtwork, SearchOutcome, SearchQuery, Source
from curator_agent.utils.normalise import contains_text, strip_html, year_range


def test_to_dict_uses_camel_case_and_omits_unset_fields():
    art = CanonicalArtwork(
        id="met:1", source=Source.MET, title="Wheat Field", image_url="https://img/1.jpg",
        small_image_url="https://img/1s.jpg", tags=frozenset({"Wheat", "Cypress"}),
        is_public_domain=True, object_id=1,
    )
    d = art.to_dict()
    assert d["source"] == "met"
    assert d["imageUrl"] == "https://img/1.jpg"
    assert d["smallImageUrl"] == "https://img/1s.jpg"
    assert d["isPublicDomain"] is True
    assert d["objectId"] == 1
    assert d["tags"] == ["Cypress", "Wheat"]
    assert "date" not in d and "isHighlight" not in d
    assert art.native_id == "1"


def test_defaults_are_never_empty():
    art = CanonicalArtwork(id="va:O1", source=Source.VA)
    assert art.title == "Untitled"
    assert art.artist == "Unknown Artist"


@pytest.mark.parametrize("requested,expected", [(20, 20), (0, 20), (-5, 20), (200, 200), (500, 200)])
def test_effective_limit(requested, expected):
    assert SearchQuery(limit=requested).effective_limit() == expected


def test_selected_sources():
    assert SearchQuery().selected_sources() == [Source.MET, Source.RIJKS, Source.VA]
    assert SearchQuery(source="RIJKS").selected_sources() == [Source.RIJKS]
    with pytest.raises(ValueError):
        SearchQuery(source="louvre").selected_sources()


def test_outcome_to_dict_keys_errors_by_source():
    outcome = SearchOutcome(
        artworks=[CanonicalArtwork(id="met:1", source=Source.MET)],
        errors={Source.VA: NotFound("gone", source="va")},
    )
    body = outcome.to_dict()
    assert body["total"] == 1
    assert body["errors"]["va"]["kind"] == "not_found"


def test_year_range():
    assert year_range("1642-01-01T00:00:00Z", "1642-12-31T23:59:59Z") == "1642"
    assert year_range("1642-01-01", "1650-12-31") == "1642-1650"
    assert year_range(None, "1700-01-01") == "1700"
    assert year_range(None, None) is None


def test_text_helpers():
    assert strip_html("<p>Oil&nbsp;on <b>canvas</b></p>") == "Oil on canvas"
    assert contains_text("The Night Watch", "night")
    assert not contains_text(None, "night")
