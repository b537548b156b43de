"""
Client-side filter and sort pipeline for card collections.

``filter_cards`` applies an optional fuzzy text match first, then every
active discrete filter with AND semantics across categories (any-of inside
the tag and section sets). ``sort_cards`` orders the result by title, date
or AI origin. Both recompute from scratch on every call; collections are
small.
"""

import locale
import logging
import re
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from pydantic import BaseModel, Field
from rapidfuzz import fuzz
from rapidfuzz.utils import default_process

from medcards.client.cards_store import card_sections
from medcards.localized import searchable_text, text_of

logger = logging.getLogger(__name__)

FUZZY_THRESHOLD = 60.0
MIN_QUERY_LENGTH = 2
SORT_KEYS = ("title", "date", "ai")

_HTML_TAG = re.compile(r"<[^>]+>")
_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class CardFilter(BaseModel):
    """Filter state; empty/None fields do not filter."""
    query: str = ""
    tags: List[str] = Field(default_factory=list)
    sections: List[str] = Field(default_factory=list)
    specialty: Optional[str] = None
    ai_generated: Optional[bool] = None
    favorites_only: bool = False


def fuzzy_score(card: dict, query: str) -> float:
    """Best `partial_ratio` of `query` against the title, the HTML-stripped content and each tag."""
    fields = [
        searchable_text(card.get("title")),
        _HTML_TAG.sub(" ", searchable_text(card.get("content"))),
    ]
    fields.extend(str(tag) for tag in card.get("tags") or [])
    return max(
        (fuzz.partial_ratio(query, field, processor=default_process) for field in fields if field),
        default=0.0,
    )


def fuzzy_filter(cards: Iterable[dict], query: str, threshold: float = FUZZY_THRESHOLD) -> List[dict]:
    """
    Cards scoring at least `threshold`, in input order.

    A query shorter than MIN_QUERY_LENGTH keeps everything: a single character
    scores 100 against almost any field.
    """
    query = (query or "").strip()
    if len(query) < MIN_QUERY_LENGTH:
        return list(cards)
    return [card for card in cards if fuzzy_score(card, query) >= threshold]


def _matches(card: dict, spec: CardFilter, favorites: set) -> bool:
    if spec.tags and not set(spec.tags) & set(card.get("tags") or []):
        return False
    if spec.sections and not set(spec.sections) & set(card_sections(card)):
        return False
    if spec.specialty and card.get("specialty") != spec.specialty:
        return False
    if spec.ai_generated is not None and bool(card.get("aiGenerated")) != spec.ai_generated:
        return False
    if spec.favorites_only and card.get("id") not in favorites:
        return False
    return True


def filter_cards(cards: Iterable[dict], spec: Optional[CardFilter] = None, favorites: Iterable[str] = ()) -> List[dict]:
    """
    Apply `spec` to `cards`.

    Parameters
    ----------
    cards : iterable of dict
        Wire-shaped cards (camelCase keys).
    spec : CardFilter, optional
        No spec (or an empty one) returns the input unchanged.
    favorites : iterable of str
        Favorite card ids, used by `favorites_only`.
    """
    spec = spec or CardFilter()
    favorite_ids = set(favorites)
    candidates = fuzzy_filter(cards, spec.query)
    return [card for card in candidates if _matches(card, spec, favorite_ids)]


def _title_key(card: dict) -> str:
    text = text_of(card.get("title")).casefold()
    try:
        return locale.strxfrm(text)
    except (OSError, ValueError) as e:
        logger.debug("strxfrm failed, falling back to plain ordering: %s", e)
        return text


def _created_at(card: dict) -> datetime:
    raw = card.get("createdAt") or card.get("created_at")
    if isinstance(raw, datetime):
        value = raw
    elif isinstance(raw, str) and raw:
        try:
            value = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            return _EPOCH
    else:
        return _EPOCH
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def sort_cards(cards: Iterable[dict], key: str) -> List[dict]:
    """
    Sort by `title` (locale-aware ascending), `date` (newest first) or `ai`
    (AI-generated first). Any other key keeps the input order.
    """
    cards = list(cards)
    if key == "title":
        return sorted(cards, key=_title_key)
    if key == "date":
        return sorted(cards, key=_created_at, reverse=True)
    if key == "ai":
        return sorted(cards, key=lambda card: not card.get("aiGenerated"))
    return cards
