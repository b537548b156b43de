"""
Target sizing for a generation request.

Two ways of saying how many cards are wanted:

- a number phrase in the request ("top 75", "75 cards", "generate 30"),
  defaulting to 50;
- an explicit enumerated list pasted by the user (one card per item).
"""

import re
from typing import List, Optional

DEFAULT_TARGET = 50

_COUNT_PATTERNS = [
    re.compile(r"\b(?:top|generate|create|make|write|give(?:\s+me)?|produce)\s+(\d{1,4})\b", re.I),
    re.compile(r"\b(\d{1,4})\s+(?:\w+\s+){0,3}?(?:cards?|fiches?|items?|topics?|medications?|drugs?)\b", re.I),
]

_BULLET = re.compile(r"^\s*(?:[-*•·]|\d{1,3}[.)])\s+(.+?)\s*$")


def parse_requested_count(request: str, default: Optional[int] = DEFAULT_TARGET) -> Optional[int]:
    """
    Return the first number phrase in `request`, or `default`.

    >>> parse_requested_count("top 75 obstetric emergencies")
    75
    >>> parse_requested_count("cards on preeclampsia")
    50
    """
    for pattern in _COUNT_PATTERNS:
        match = pattern.search(request or "")
        if match:
            value = int(match.group(1))
            if value > 0:
                return value
    return default


def _dedupe_exact(items: List[str]) -> List[str]:
    seen = set()
    unique = []
    for item in items:
        if item and item not in seen:
            seen.add(item)
            unique.append(item)
    return unique


def extract_item_list(request: str) -> List[str]:
    """
    Explicit item list contained in `request`.

    Recognized shapes, checked in order:

    1. two or more bullet / numbered lines;
    2. a comma- or semicolon-separated list after the last colon
       ("cards for: estradiol, levonorgestrel, norethindrone").

    Items are trimmed and deduplicated by exact string, order preserved.
    An empty list means the request is not in list mode.
    """
    text = request or ""

    bullets = []
    for line in text.splitlines():
        match = _BULLET.match(line)
        if match:
            bullets.append(match.group(1).strip().rstrip(",;"))
    if len(bullets) >= 2:
        return _dedupe_exact(bullets)

    if ":" in text:
        tail = text.rsplit(":", 1)[1]
        parts = [p.strip().rstrip(".") for p in re.split(r"[;,\n]", tail)]
        parts = [p for p in parts if p]
        if len(parts) >= 2:
            return _dedupe_exact(parts)
    return []


def uncovered_items(items: List[str], cards: List[dict]) -> List[str]:
    """Items whose text appears in no card's title or content (case-insensitive)."""
    haystack = "\n".join(
        f"{card.get('title', '')}\n{card.get('content', '')}" for card in cards
    ).casefold()
    return [item for item in items if item.casefold() not in haystack]
