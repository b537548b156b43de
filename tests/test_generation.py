"""
Test batched card generation: chunking, target sizing, parsing, scope
filtering and the session state machine, against scripted providers.
"""

import json
import re

import pytest

from medcards.generation import (
    CardParseError,
    GenerationSession,
    GenerationState,
    dedupe_by_title,
    extract_item_list,
    filter_cards_by_scope,
    parse_cards_response,
    parse_requested_count,
    split_document,
    to_card_payload,
    wants_prescriptions,
)
from medcards.generation.parsing import _salvage
from medcards.generation.scope import STRICT_PRESCRIPTION_CONSTRAINT, build_user_constraints, is_out_of_scope
from medcards.generation.targets import uncovered_items


def _card(title, content="<p>body</p>"):
    return {"title": title, "content": content, "sources": ["UpToDate"]}


class ScriptedProvider:
    """Answers each call with the next scripted reply; callables get the messages."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls = []

    def __call__(self, messages):
        self.calls.append(messages)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            reply = reply(messages)
        return reply if isinstance(reply, str) else json.dumps(reply)


class CountingProvider:
    """Answers prompt-mode calls with exactly the requested number of new cards."""

    def __init__(self, extra=0):
        self.counter = 0
        self.calls = []
        self.extra = extra

    def __call__(self, messages):
        self.calls.append(messages)
        wanted = int(re.search(r"Generate EXACTLY (\d+) cards", messages[0]["content"]).group(1)) + self.extra
        cards = []
        for _ in range(wanted):
            self.counter += 1
            cards.append(_card(f"Topic {self.counter}"))
        return json.dumps(cards)


def _items_of(messages):
    block = messages[0]["content"].split("ITEMS:\n", 1)[1].split("\n\n", 1)[0]
    return [line[2:] for line in block.splitlines()]


# ---------------------------------------------------------------------------
# Chunking
# ---------------------------------------------------------------------------

def test_split_document_empty_and_short():
    assert split_document("") == []
    assert split_document("   \n\n  ") == []
    assert split_document("One paragraph.\n\nAnother.", max_chars=100) == ["One paragraph.\n\nAnother."]


def test_split_document_packs_whole_paragraphs():
    paragraphs = ["a" * 40, "b" * 40, "c" * 40]
    chunks = split_document("\n\n".join(paragraphs), max_chars=90)
    assert chunks == ["a" * 40 + "\n\n" + "b" * 40, "c" * 40]


def test_split_document_keeps_oversize_paragraph_whole():
    text = "\n\n".join(["short one", "x" * 200, "short two"])
    chunks = split_document(text, max_chars=100)
    assert chunks == ["short one", "x" * 200, "short two"]
    assert all(len(chunk) <= 100 for chunk in chunks if chunk != "x" * 200)


def test_split_document_rejects_non_positive_bound():
    with pytest.raises(ValueError):
        split_document("text", max_chars=0)


# ---------------------------------------------------------------------------
# Target sizing
# ---------------------------------------------------------------------------

def test_parse_requested_count():
    assert parse_requested_count("top 75 obstetric emergencies") == 75
    assert parse_requested_count("I need 12 prescription cards") == 12
    assert parse_requested_count("Generate 30 cards on sepsis") == 30
    assert parse_requested_count("cards on preeclampsia") == 50
    assert parse_requested_count("cards on preeclampsia", default=None) is None


def test_extract_item_list_from_bullets():
    request = "Make cards for these:\n1. Nifedipine\n2. Labetalol\n- Hydralazine\n- Labetalol"
    assert extract_item_list(request) == ["Nifedipine", "Labetalol", "Hydralazine"]


def test_extract_item_list_after_colon():
    request = "Make cards for: estradiol, levonorgestrel; norethindrone."
    assert extract_item_list(request) == ["estradiol", "levonorgestrel", "norethindrone"]


def test_extract_item_list_requires_two_items():
    assert extract_item_list("Cards about: preeclampsia") == []
    assert extract_item_list("top 20 obstetric emergencies") == []


def test_uncovered_items_is_case_insensitive():
    cards = [_card("NIFEDIPINE protocol"), _card("Other", "<p>labetalol 20</p>")]
    assert uncovered_items(["Nifedipine", "Labetalol", "Hydralazine"], cards) == ["Hydralazine"]


# ---------------------------------------------------------------------------
# Parsing & dedupe
# ---------------------------------------------------------------------------

def test_parse_cards_strips_code_fences():
    raw = '```json\n[{"title": "Eclampsia", "content": "<p>MgSO4</p>"}]\n```'
    cards = parse_cards_response(raw)
    assert cards == [{
        "title": "Eclampsia",
        "content": "<p>MgSO4</p>",
        "sources": [],
        "sections": [],
        "aiGenerated": True,
    }]


def test_parse_cards_tolerates_trailing_commas_and_prose():
    raw = 'Here you go:\n[{"title": "A", "content": "x", "sources": ["ACOG",],},]\nThanks.'
    cards = parse_cards_response(raw)
    assert [c["title"] for c in cards] == ["A"]
    assert cards[0]["sources"] == ["ACOG"]


def test_parse_cards_defaults_missing_title():
    cards = parse_cards_response('[{"content": "orphan"}, "noise"]')
    assert cards[0]["title"] == "Untitled"
    assert len(cards) == 1


def test_parse_cards_rejects_unusable_output():
    with pytest.raises(CardParseError, match="Failed to extract valid JSON"):
        parse_cards_response("I cannot help with that.")
    with pytest.raises(CardParseError, match="No cards were generated"):
        parse_cards_response("[]")


def test_salvage_keeps_well_formed_records():
    broken = '[{"title": "A", "content": "ok"}, {"title": "B" "content": oops}]'
    assert _salvage(broken) == [{"title": "A", "content": "ok"}]


def test_dedupe_by_title_normalizes_and_carries_seen():
    seen = set()
    first = dedupe_by_title([_card("Aspirin"), _card(" aspirin "), _card("Heparin")], seen)
    assert [c["title"] for c in first] == ["Aspirin", "Heparin"]
    second = dedupe_by_title([_card("HEPARIN"), _card("Oxytocin")], seen)
    assert [c["title"] for c in second] == ["Oxytocin"]
    assert seen == {"aspirin", "heparin", "oxytocin"}


# ---------------------------------------------------------------------------
# Scope
# ---------------------------------------------------------------------------

def test_prescription_intent():
    assert wants_prescriptions("prescription protocols for preeclampsia")
    assert wants_prescriptions("oral PO regimens")
    assert not wants_prescriptions("overview of preeclampsia")
    assert build_user_constraints("prescribe for UTI") == STRICT_PRESCRIPTION_CONSTRAINT


def test_out_of_scope_cards():
    assert is_out_of_scope(_card("Preeclampsia classification"))
    assert is_out_of_scope(_card("Placenta", "<p>Anatomy of the placenta</p>"))
    assert not is_out_of_scope(_card("Preeclampsia", "<p>Labetalol 200 mg PO</p>"))
    assert not is_out_of_scope(_card("Labetalol", "<p class='diagnosis'>20 mg IV</p>"))


def test_scope_filter_only_applies_to_prescription_requests():
    cards = [_card("Preeclampsia classification"), _card("Labetalol protocol")]
    assert filter_cards_by_scope(cards, "overview of preeclampsia") == cards
    kept = filter_cards_by_scope(cards, "prescription protocols for preeclampsia")
    assert [c["title"] for c in kept] == ["Labetalol protocol"]


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

def test_prompt_mode_reaches_exact_target():
    """50 cards come from three sequential calls of 20, 20 and 10."""
    provider = CountingProvider()
    session = GenerationSession(provider)
    cards = session.run("cards on obstetric emergencies")
    assert len(cards) == 50
    assert session.calls == 3
    assert session.state == GenerationState.READY
    assert session.mode == "prompt"
    counts = [int(re.search(r"EXACTLY (\d+)", m[0]["content"]).group(1)) for m in provider.calls]
    assert counts == [20, 20, 10]


def test_later_batches_exclude_earlier_titles():
    provider = CountingProvider()
    GenerationSession(provider).run("top 30 obstetric emergencies")
    assert "Do NOT repeat" not in provider.calls[0][0]["content"]
    assert "- Topic 20" in provider.calls[1][0]["content"]


def test_duplicates_across_batches_are_dropped():
    first = [_card(f"Topic {i}") for i in range(20)]
    second = [_card("topic 3"), _card(" TOPIC 4 ")] + [_card(f"Topic {i}") for i in range(20, 30)]
    session = GenerationSession(ScriptedProvider(first, second))
    cards = session.run("top 30 obstetric emergencies")
    titles = [c["title"] for c in cards]
    assert len(titles) == 30
    assert len({t.strip().lower() for t in titles}) == 30


def test_first_batch_failure_returns_to_idle():
    session = GenerationSession(ScriptedProvider(RuntimeError("rate limited")))
    assert session.run("cards on sepsis") == []
    assert session.state == GenerationState.IDLE
    assert session.errors == ["Batch 1: rate limited"]
    assert session.last_error == "Batch 1: rate limited"


def test_first_batch_malformed_returns_to_idle():
    session = GenerationSession(ScriptedProvider("not json at all"))
    assert session.run("cards on sepsis") == []
    assert session.state == GenerationState.IDLE
    assert session.errors[0].startswith("Batch 1: Failed to extract valid JSON")


def test_later_provider_failure_keeps_partial_results():
    first = [_card(f"Topic {i}") for i in range(20)]
    session = GenerationSession(ScriptedProvider(first, RuntimeError("timeout")))
    cards = session.run("cards on sepsis")
    assert len(cards) == 20
    assert session.state == GenerationState.READY
    assert session.errors == ["Batch 2: timeout"]


def test_malformed_middle_batch_is_skipped():
    batch = lambda start, n: [_card(f"Topic {i}") for i in range(start, start + n)]  # noqa: E731
    provider = ScriptedProvider(batch(0, 20), "garbage", batch(20, 20), batch(40, 10))
    session = GenerationSession(provider)
    cards = session.run("cards on sepsis")
    assert len(cards) == 50
    assert session.calls == 4
    assert len(session.errors) == 1
    assert session.errors[0].startswith("Batch 2:")


def test_prompt_mode_stops_after_idle_batches():
    same = [_card("Only card")]
    session = GenerationSession(ScriptedProvider(same, same, same, same, same))
    cards = session.run("cards on sepsis")
    assert len(cards) == 1
    assert session.calls == 3


def test_document_mode_visits_every_chunk_after_failed_chunks():
    """Malformed chunks are skipped, later chunks still reach the provider."""
    document = "\n\n".join(letter * 40 for letter in "abcde")
    provider = ScriptedProvider([_card("A")], "garbage", "garbage", [_card("D")], [_card("E")])
    session = GenerationSession(provider, max_chars=50)
    cards = session.run("Make study cards from this document", document_text=document)

    assert len(provider.calls) == 5
    assert [c["title"] for c in cards] == ["A", "D", "E"]
    assert [e.split(":")[0] for e in session.errors] == ["Batch 2", "Batch 3"]
    assert "This is chunk 5 of 5." in provider.calls[4][0]["content"]


def test_document_mode_visits_every_chunk_after_duplicate_chunks():
    document = "\n\n".join(letter * 40 for letter in "abcd")
    provider = ScriptedProvider([_card("A")], [_card("a")], [_card(" A ")], [_card("D")])
    session = GenerationSession(provider, max_chars=50)
    cards = session.run("Make study cards from this document", document_text=document)
    assert session.calls == 4
    assert [c["title"] for c in cards] == ["A", "D"]


def test_list_mode_tries_every_item_batch_before_gap_fill():
    items = [f"Item{i:02d}" for i in range(25)]
    cover = lambda messages: [_card(item) for item in _items_of(messages)]  # noqa: E731
    provider = ScriptedProvider(cover, "garbage", "[]", cover, cover)
    session = GenerationSession(provider, list_batch_size=10)
    cards = session.run("Cards for:\n" + "\n".join(f"- {item}" for item in items))

    assert len(cards) == 25
    assert [len(_items_of(call)) for call in provider.calls] == [10, 10, 5, 10, 5]
    assert _items_of(provider.calls[2]) == items[20:]
    assert _items_of(provider.calls[3]) == items[10:20]
    assert "Gap fill 1: 15 items not covered yet" in session.progress


def test_safety_ceiling_bounds_the_session():
    provider = CountingProvider(extra=10)
    session = GenerationSession(provider, safety_ceiling=25)
    cards = session.run("Generate 100 cards on obstetrics")
    assert session.target == 25
    assert len(cards) == 25
    assert session.calls == 1


def test_list_mode_fills_gaps_with_missing_items_only():
    request = "Cards for:\n- Nifedipine\n- Labetalol\n- Hydralazine"
    provider = ScriptedProvider(
        [_card("Nifedipine"), _card("Labetalol")],
        lambda messages: [_card(item) for item in _items_of(messages)],
    )
    progress = []
    session = GenerationSession(provider)
    cards = session.run(request, on_progress=progress.append)

    assert session.mode == "list"
    assert session.target == 3
    assert [c["title"] for c in cards] == ["Nifedipine", "Labetalol", "Hydralazine"]
    assert _items_of(provider.calls[0]) == ["Nifedipine", "Labetalol", "Hydralazine"]
    assert _items_of(provider.calls[1]) == ["Hydralazine"]
    assert "Gap fill 1: 1 items not covered yet" in progress


def test_list_mode_batches_items():
    items = [f"Item{i:02d}" for i in range(25)]
    provider = ScriptedProvider(*[lambda messages: [_card(item) for item in _items_of(messages)]] * 3)
    session = GenerationSession(provider, list_batch_size=10)
    cards = session.run("Cards for:\n" + "\n".join(f"- {item}" for item in items))
    assert len(cards) == 25
    assert [len(_items_of(call)) for call in provider.calls] == [10, 10, 5]


def test_document_mode_calls_once_per_chunk():
    document = "\n\n".join(["a" * 40, "b" * 40, "c" * 40])
    provider = ScriptedProvider(
        [_card("A1"), _card("A2")], [_card("B1"), _card("A1")], [_card("C1")]
    )
    session = GenerationSession(provider, max_chars=50)
    cards = session.run("Make study cards from this document", document_text=document)

    assert session.mode == "document"
    assert session.calls == 3
    assert [c["title"] for c in cards] == ["A1", "A2", "B1", "C1"]
    assert "This is chunk 2 of 3." in provider.calls[1][0]["content"]
    assert "b" * 40 in provider.calls[1][1]["content"]
    assert session.progress[0] == "Split document into 3 chunks"


def test_document_mode_with_explicit_target_hints_per_chunk():
    document = "\n\n".join(["a" * 40, "b" * 40])
    provider = ScriptedProvider([_card("A1"), _card("A2")], [_card("B1"), _card("B2")])
    session = GenerationSession(provider, max_chars=50)
    cards = session.run("Make 4 cards from this document", document_text=document)
    assert len(cards) == 4
    assert "approximately 2 cards" in provider.calls[0][0]["content"]


def test_session_applies_scope_filter():
    provider = ScriptedProvider(
        [_card("Preeclampsia classification"), _card("Labetalol protocol")], [], []
    )
    session = GenerationSession(provider)
    cards = session.run("prescription protocols for preeclampsia")
    assert [c["title"] for c in cards] == ["Labetalol protocol"]
    assert STRICT_PRESCRIPTION_CONSTRAINT in provider.calls[0][0]["content"]


def test_everything_filtered_goes_idle():
    provider = ScriptedProvider([_card("Preeclampsia classification")], [], [])
    session = GenerationSession(provider)
    assert session.run("prescription protocols for preeclampsia") == []
    assert session.state == GenerationState.IDLE


def test_empty_request_is_rejected():
    with pytest.raises(ValueError):
        GenerationSession(CountingProvider()).run("   ")


def test_select_and_save():
    session = GenerationSession(ScriptedProvider([_card("A"), _card("B"), _card("C")], [], []))
    session.run("cards on sepsis")
    assert len(session.selected_cards()) == 3

    session.select([0, 2])
    saved = session.save(lambda card: to_card_payload(card, specialty="obstetrics"))
    assert [p["title"] for p in saved] == ["A", "C"]
    assert saved[0]["aiGenerated"] is True
    assert saved[0]["aiSources"] == ["UpToDate"]
    assert saved[0]["specialty"] == "obstetrics"
    assert session.state == GenerationState.IDLE
    assert session.cards == []


def test_save_requires_a_selection():
    session = GenerationSession(ScriptedProvider([_card("A")], [], []))
    session.run("cards on sepsis")
    session.select([])
    with pytest.raises(ValueError, match="Please select at least one card to save."):
        session.save(lambda card: card)
    assert session.state == GenerationState.READY
    with pytest.raises(IndexError):
        session.select([5])


def test_failed_save_stays_ready():
    session = GenerationSession(ScriptedProvider([_card("A")], [], []))
    session.run("cards on sepsis")

    def saver(card):
        raise ConnectionError("offline")

    with pytest.raises(ConnectionError):
        session.save(saver)
    assert session.state == GenerationState.READY
    assert len(session.cards) == 1
