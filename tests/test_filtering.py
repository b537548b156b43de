"""
Test the client-side filter and sort pipeline.
"""

from medcards.client.filtering import CardFilter, filter_cards, fuzzy_score, sort_cards

CARDS = [
    {"id": "1", "title": "Preeclampsia", "content": "<p>BP ≥ 140/90</p>", "specialty": "obstetrics",
     "sections": ["urgences"], "tags": ["hypertension"], "aiGenerated": True,
     "createdAt": "2024-03-01T10:00:00+00:00"},
    {"id": "2", "title": {"en": "Endometriosis", "fr": "Endométriose"}, "content": "", "specialty": "gynecology",
     "section": "consultations", "tags": ["pelvic pain"], "aiGenerated": False,
     "createdAt": "2024-05-01T10:00:00Z"},
    {"id": "3", "title": "appendicitis", "content": "<p>McBurney point</p>", "specialty": "surgery",
     "sections": ["urgences", "procedures"], "tags": [], "aiGenerated": True},
]


def _ids(cards):
    return [card["id"] for card in cards]


def test_no_filters_keeps_everything():
    assert filter_cards(CARDS) == CARDS
    assert filter_cards(CARDS, CardFilter()) == CARDS


def test_unknown_tag_matches_nothing():
    assert filter_cards(CARDS, CardFilter(tags=["nonexistent"])) == []


def test_tags_and_sections_are_any_of():
    assert _ids(filter_cards(CARDS, CardFilter(tags=["hypertension", "pelvic pain"]))) == ["1", "2"]
    assert _ids(filter_cards(CARDS, CardFilter(sections=["consultations", "procedures"]))) == ["2", "3"]


def test_categories_combine_with_and():
    spec = CardFilter(sections=["urgences"], specialty="surgery")
    assert _ids(filter_cards(CARDS, spec)) == ["3"]


def test_favorites_and_ai_filter_together():
    """A favorite that is not AI-generated is excluded when both filters are on."""
    spec = CardFilter(favorites_only=True, ai_generated=True)
    assert _ids(filter_cards(CARDS, spec, favorites=["1", "2"])) == ["1"]
    assert _ids(filter_cards(CARDS, CardFilter(ai_generated=False))) == ["2"]


def test_fuzzy_query_tolerates_typos():
    assert _ids(filter_cards(CARDS, CardFilter(query="preclampsia"))) == ["1"]
    assert _ids(filter_cards(CARDS, CardFilter(query="endométriose"))) == ["2"]
    assert _ids(filter_cards(CARDS, CardFilter(query="mcburney"))) == ["3"]


def test_single_character_query_does_not_filter():
    """One typed character leaves the text filter off; other filters still apply."""
    assert filter_cards(CARDS, CardFilter(query="a")) == CARDS
    assert filter_cards(CARDS, CardFilter(query=" z ")) == CARDS
    assert _ids(filter_cards(CARDS, CardFilter(query="a", specialty="surgery"))) == ["3"]


def test_fuzzy_score_ignores_markup():
    assert fuzzy_score({"title": "x", "content": "<strong>oxytocin</strong>"}, "strong") < 60


def test_sort_by_title():
    assert _ids(sort_cards(CARDS, "title")) == ["3", "2", "1"]


def test_sort_by_date_newest_first_missing_last():
    assert _ids(sort_cards(CARDS, "date")) == ["2", "1", "3"]


def test_sort_ai_first_is_stable():
    assert _ids(sort_cards(CARDS, "ai")) == ["1", "3", "2"]


def test_unknown_sort_key_keeps_order():
    assert _ids(sort_cards(CARDS, "popularity")) == ["1", "2", "3"]
