"""
Card generation: single-card drafting, and batched multi-card generation
with chunking, target sizing, response parsing, deduplication, scope
filtering and the session state machine.
"""

from medcards.generation.chunking import split_document
from medcards.generation.drafting import draft_messages, parse_draft_response
from medcards.generation.parsing import CardParseError, dedupe_by_title, normalize_title, parse_cards_response
from medcards.generation.scope import build_user_constraints, filter_cards_by_scope, wants_prescriptions
from medcards.generation.session import GenerationSession, GenerationState, to_card_payload
from medcards.generation.targets import extract_item_list, parse_requested_count

__all__ = [
    "CardParseError",
    "GenerationSession",
    "GenerationState",
    "build_user_constraints",
    "dedupe_by_title",
    "draft_messages",
    "extract_item_list",
    "filter_cards_by_scope",
    "normalize_title",
    "parse_cards_response",
    "parse_draft_response",
    "parse_requested_count",
    "split_document",
    "to_card_payload",
    "wants_prescriptions",
]
