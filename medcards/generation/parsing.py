"""
Parsing of model output into card dicts, and title-based deduplication.

The model is asked for a bare JSON array of card objects but regularly wraps
it in code fences, leaves trailing commas, or breaks quoting. Parsing goes
through three passes, each only when the previous one failed:

1. ``json.loads`` on the located array;
2. repair: trailing separators removed, then ``json_repair`` for quoting;
3. salvage: every ``{... "title" ... "content" ...}`` record parsed on its
   own, malformed ones discarded.

Parsed cards are normalized to::

    {"title": str, "content": str, "sources": [str], "sections": [str], "aiGenerated": True}
"""

import json
import logging
import re
from typing import Iterable, List, Optional, Set

from json_repair import repair_json

logger = logging.getLogger(__name__)

_TRAILING_SEPARATOR = re.compile(r",(\s*[}\]])")
_RECORD = re.compile(r"\{[^{}]*\"title\"[^{}]*\"content\"[^{}]*\}", re.S)


class CardParseError(ValueError):
    """The model response contained no usable card."""


def strip_code_fences(raw: str) -> str:
    text = (raw or "").strip()
    if text.startswith("```"):
        text = re.sub(r"^```[a-zA-Z]*\s*\n?", "", text)
        text = re.sub(r"\n?```\s*$", "", text)
    return text.strip()


def _locate_array(text: str) -> Optional[str]:
    start = text.find("[")
    end = text.rfind("]")
    if start == -1 or end <= start:
        return None
    return text[start:end + 1]


def _as_str_list(value) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(v).strip() for v in value if isinstance(v, (str, int, float)) and str(v).strip()]


def normalize_card(raw: dict) -> dict:
    return {
        "title": str(raw.get("title") or "Untitled").strip() or "Untitled",
        "content": str(raw.get("content") or ""),
        "sources": _as_str_list(raw.get("sources")),
        "sections": _as_str_list(raw.get("sections")),
        "aiGenerated": True,
    }


def _repair(candidate: str):
    fixed = _TRAILING_SEPARATOR.sub(r"\1", candidate)
    try:
        return json.loads(fixed)
    except json.JSONDecodeError:
        pass
    try:
        repaired = repair_json(fixed, return_objects=True)
    except Exception as e:
        logger.warning("json_repair failed: %s", e)
        return None
    if isinstance(repaired, list) and any(isinstance(item, dict) and item.get("title") for item in repaired):
        return repaired
    return None


def _salvage(candidate: str) -> List[dict]:
    cards = []
    for match in _RECORD.finditer(candidate):
        record = _TRAILING_SEPARATOR.sub(r"\1", match.group(0))
        record = record.replace("\r", "\\r").replace("\n", "\\n").replace("\t", "\\t")
        try:
            card = json.loads(record)
        except json.JSONDecodeError:
            continue
        if isinstance(card, dict) and card.get("title") and card.get("content"):
            cards.append(card)
    return cards


def parse_cards_response(raw: str) -> List[dict]:
    """
    Parse a model response into normalized card dicts.

    Raises
    ------
    CardParseError
        If no JSON array can be located, or if neither parsing, repair nor
        salvage yields at least one card.
    """
    candidate = _locate_array(strip_code_fences(raw))
    if candidate is None:
        raise CardParseError("Failed to extract valid JSON from AI response")

    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as parse_error:
        logger.warning("Initial JSON parse failed, attempting repair: %s", parse_error)
        data = _repair(candidate)
        if data is None:
            logger.warning("JSON repair failed, attempting per-record salvage")
            data = _salvage(candidate)
            if not data:
                raise CardParseError(f"JSON parsing failed: {parse_error}") from parse_error
            logger.info("Salvaged %d cards from malformed response", len(data))

    if not isinstance(data, list):
        raise CardParseError("AI response is not a JSON array")
    cards = [normalize_card(item) for item in data if isinstance(item, dict)]
    if not cards:
        raise CardParseError("No cards were generated")
    return cards


def normalize_title(title: str) -> str:
    return (title or "").strip().lower()


def dedupe_by_title(cards: Iterable[dict], seen: Optional[Set[str]] = None) -> List[dict]:
    """
    Drop cards whose normalized title is already in `seen` (or earlier in `cards`).

    `seen` is updated in place so it can be carried across batches. Content
    is never compared.
    """
    if seen is None:
        seen = set()
    unique = []
    for card in cards:
        key = normalize_title(card.get("title", ""))
        if key in seen:
            continue
        seen.add(key)
        unique.append(card)
    return unique
