"""
Scope filtering of generated cards.

When the request asks for prescriptions, cards that read like pure anatomy,
physiology, classification or diagnostic material are dropped. The check is
a keyword heuristic over title and content; a card is not dropped merely for
naming a disease.
"""

import logging
import re
from typing import List

logger = logging.getLogger(__name__)

_PRESCRIPTION_INTENT = re.compile(
    r"prescription|prescribe|medication|dose|dosing|mg|q\d+h|tablet|capsule"
    r"|\bpo\b|\biv\b|\bim\b|\bsc\b|subcut|topical|treatment.*prescription",
    re.I,
)

_OUT_OF_SCOPE = re.compile(
    r"anatomical|anatomy(?!-based|\sinhibitor|\sdifference)|pure physiology|pathophysiology"
    r"|classification|stage\s(?!management|treatment)|clinical finding|examination"
    r"|presentation|laboratory finding|imaging finding|ultrasound|assessment|diagnosis"
    r"|differential|etiology|epidemiology",
    re.I,
)

_HTML_TAG = re.compile(r"<[^>]+>")

STRICT_PRESCRIPTION_CONSTRAINT = (
    "⚠️ STRICT: Output ONLY prescription-related content. Each card must be a "
    "prescription protocol (medication, dose, route, frequency, duration, "
    "indication). Do NOT include anatomy, physiology, classification, "
    "diagnosis, differential or epidemiology content."
)
DEFAULT_CONSTRAINT = "- Follow the USER REQUEST exactly. Do not include unrelated topics."


def wants_prescriptions(request: str) -> bool:
    return bool(_PRESCRIPTION_INTENT.search(request or ""))


def build_user_constraints(request: str) -> str:
    """Extra instruction appended to the system prompt for the request's scope."""
    return STRICT_PRESCRIPTION_CONSTRAINT if wants_prescriptions(request) else DEFAULT_CONSTRAINT


def is_out_of_scope(card: dict) -> bool:
    text = _HTML_TAG.sub(" ", f"{card.get('title', '')} {card.get('content', '')}")
    return bool(_OUT_OF_SCOPE.search(text))


def filter_cards_by_scope(cards: List[dict], request: str) -> List[dict]:
    """
    Drop out-of-scope cards when `request` is prescription-scoped.

    Requests without a prescription intent return `cards` unchanged.
    """
    if not wants_prescriptions(request):
        return list(cards)
    kept = [card for card in cards if not is_out_of_scope(card)]
    if len(kept) != len(cards):
        logger.info("Scope filter dropped %d of %d cards", len(cards) - len(kept), len(cards))
    return kept
