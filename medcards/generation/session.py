"""
Batched multi-card generation session.

A ``GenerationSession`` turns one free-form request (optionally anchored to a
document's extracted text) into a deduplicated, scope-filtered set of cards,
working around the provider's per-call output limit by issuing sequential
batches.

States::

    IDLE -> CHUNKING -> BATCHING -> GENERATING -> DEDUPLICATING
         -> SCOPE_FILTERING -> READY -> SAVING -> IDLE

A failing batch is recorded in ``errors`` and never discards earlier
batches. A malformed or duplicate-only response skips only that batch, and
every chunk or item batch is still sent; only open-ended prompt batches stop
after repeated empty results. A provider error stops the loop and keeps what
was gathered. If the very first batch fails the session goes back to IDLE.
"""

import logging
import math
from enum import Enum
from typing import Any, Callable, Iterable, List, Optional

from medcards.generation.chunking import DEFAULT_MAX_CHARS, split_document
from medcards.generation.parsing import CardParseError, dedupe_by_title, normalize_title, parse_cards_response
from medcards.generation.prompts import document_mode_messages, list_mode_messages, prompt_mode_messages
from medcards.generation.scope import build_user_constraints, filter_cards_by_scope
from medcards.generation.targets import extract_item_list, parse_requested_count, uncovered_items

logger = logging.getLogger(__name__)

PROMPT_BATCH_SIZE = 20
LIST_BATCH_SIZE = 10
SAFETY_CEILING = 200
MAX_GAP_ROUNDS = 3
MAX_IDLE_BATCHES = 2

CompleteFn = Callable[[List[dict]], str]
ProgressFn = Callable[[str], None]


class GenerationState(str, Enum):
    IDLE = "idle"
    CHUNKING = "chunking"
    BATCHING = "batching"
    GENERATING = "generating"
    DEDUPLICATING = "deduplicating"
    SCOPE_FILTERING = "scope_filtering"
    READY = "ready"
    SAVING = "saving"


class _BatchFailed(Exception):
    def __init__(self, fatal: bool):
        super().__init__()
        self.fatal = fatal


def to_card_payload(card: dict, specialty: Optional[str] = None, color: str = "blue") -> dict:
    """Shape a generated card as a create-card body."""
    return {
        "title": card["title"],
        "content": card["content"],
        "specialty": specialty,
        "sections": list(card.get("sections") or []),
        "tags": [],
        "color": color,
        "aiGenerated": True,
        "aiSources": list(card.get("sources") or []),
    }


class GenerationSession:
    """
    One generation session at a time; calls are strictly sequential.

    Parameters
    ----------
    complete : callable
        ``complete(messages) -> str``; sends chat messages to the provider and
        returns the raw text answer. Any exception counts as a provider error.
    max_chars : int
        Chunk bound for attached documents.
    prompt_batch_size, list_batch_size : int
        Cards requested per call in prompt mode / items per call in list mode.
    safety_ceiling : int
        Absolute maximum number of cards a session may accumulate.
    """

    def __init__(
        self,
        complete: CompleteFn,
        max_chars: int = DEFAULT_MAX_CHARS,
        prompt_batch_size: int = PROMPT_BATCH_SIZE,
        list_batch_size: int = LIST_BATCH_SIZE,
        safety_ceiling: int = SAFETY_CEILING,
        max_gap_rounds: int = MAX_GAP_ROUNDS,
    ):
        self.complete = complete
        self.max_chars = max_chars
        self.prompt_batch_size = prompt_batch_size
        self.list_batch_size = list_batch_size
        self.safety_ceiling = safety_ceiling
        self.max_gap_rounds = max_gap_rounds
        self._reset()

    def _reset(self) -> None:
        self.state = GenerationState.IDLE
        self.request = ""
        self.mode: Optional[str] = None
        self.target = 0
        self.cards: List[dict] = []
        self.errors: List[str] = []
        self.progress: List[str] = []
        self.calls = 0
        self._cap = 0
        self._seen = set()
        self._selected = set()

    def _set_state(self, state: GenerationState) -> None:
        logger.debug("Generation session: %s -> %s", self.state.value, state.value)
        self.state = state

    def _emit(self, message: str, on_progress: Optional[ProgressFn]) -> None:
        self.progress.append(message)
        logger.info(message)
        if on_progress:
            on_progress(message)

    @property
    def last_error(self) -> Optional[str]:
        return self.errors[-1] if self.errors else None

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def run(self, request: str, document_text: Optional[str] = None, on_progress: Optional[ProgressFn] = None) -> List[dict]:
        """
        Generate cards for `request`.

        Returns
        -------
        list[dict]
            The ready cards (all selected by default). Empty when the first
            batch failed; the error is then in `errors` and the state is IDLE.
        """
        if self.state not in (GenerationState.IDLE, GenerationState.READY):
            raise RuntimeError(f"Cannot start generation while {self.state.value}")
        if not (request or "").strip():
            raise ValueError("request is required")

        self._reset()
        self.request = request.strip()

        self._set_state(GenerationState.CHUNKING)
        chunks = split_document(document_text, self.max_chars) if document_text and document_text.strip() else []
        if len(chunks) > 1:
            self._emit(f"Split document into {len(chunks)} chunks", on_progress)

        self._set_state(GenerationState.BATCHING)
        items = extract_item_list(self.request)
        constraints = build_user_constraints(self.request)
        if items:
            self.mode = "list"
            self.target = min(len(items), self.safety_ceiling)
            self._cap = self.safety_ceiling
        elif chunks:
            self.mode = "document"
            self.target = min(parse_requested_count(self.request, default=None) or self.safety_ceiling, self.safety_ceiling)
            self._cap = self.target
        else:
            self.mode = "prompt"
            self.target = min(parse_requested_count(self.request), self.safety_ceiling)
            self._cap = self.target
        logger.info("Generation started: mode=%s target=%d", self.mode, self.target)

        self._set_state(GenerationState.GENERATING)
        try:
            if self.mode == "list":
                self._generate_list(items, constraints, chunks[0] if chunks else None, on_progress)
            elif self.mode == "document":
                self._generate_document(chunks, constraints, on_progress)
            else:
                self._generate_prompt(constraints, on_progress)
        except _BatchFailed:
            logger.warning("First batch failed, session aborted: %s", self.last_error)
            errors = self.errors
            self._reset()
            self.errors = errors
            return []

        self._set_state(GenerationState.DEDUPLICATING)
        self.cards = dedupe_by_title(self.cards)

        self._set_state(GenerationState.SCOPE_FILTERING)
        self.cards = filter_cards_by_scope(self.cards, self.request)

        if not self.cards:
            self._set_state(GenerationState.IDLE)
            return []

        self._selected = set(range(len(self.cards)))
        self._set_state(GenerationState.READY)
        self._emit(f"Generated {len(self.cards)} cards", on_progress)
        return list(self.cards)

    def _run_batch(self, messages: List[dict], on_progress: Optional[ProgressFn]) -> int:
        self.calls += 1
        batch_number = self.calls
        try:
            raw = self.complete(messages)
        except Exception as e:
            logger.exception("Batch %d: provider call failed", batch_number)
            self.errors.append(f"Batch {batch_number}: {e}")
            raise _BatchFailed(fatal=True) from e
        try:
            parsed = parse_cards_response(raw)
        except CardParseError as e:
            logger.warning("Batch %d: %s", batch_number, e)
            self.errors.append(f"Batch {batch_number}: {e}")
            raise _BatchFailed(fatal=False) from e

        fresh = dedupe_by_title(parsed, set(self._seen))
        accepted = fresh[:max(self._cap - len(self.cards), 0)]
        self._seen.update(normalize_title(card["title"]) for card in accepted)
        self.cards.extend(accepted)
        self._emit(
            f"Batch {batch_number}: {len(accepted)} new cards ({len(self.cards)}/{self.target})",
            on_progress,
        )
        return len(accepted)

    def _drive(
        self,
        batches: Iterable[List[dict]],
        on_progress: Optional[ProgressFn],
        stop_at: int,
        idle_limit: Optional[int] = None,
    ) -> bool:
        """
        Run `batches` until `stop_at` cards are held, the ceiling is reached
        or the batches run out. With `idle_limit`, also stop after that many
        batches in a row add nothing; open-ended prompt batches need it, while
        chunk and item batches are each visited once.

        Returns False when a provider error stopped the loop.
        """
        idle = 0
        for messages in batches:
            if len(self.cards) >= min(stop_at, self.safety_ceiling):
                break
            try:
                accepted = self._run_batch(messages, on_progress)
            except _BatchFailed as failure:
                if self.calls == 1:
                    raise
                if failure.fatal:
                    return False
                accepted = 0
            idle = 0 if accepted else idle + 1
            if idle_limit is not None and idle >= idle_limit:
                logger.info("Stopping after %d batches without new cards", idle)
                break
        return True

    def _titles(self) -> List[str]:
        return [card["title"] for card in self.cards]

    def _generate_prompt(self, constraints: str, on_progress: Optional[ProgressFn]) -> None:
        max_calls = math.ceil(self.target / self.prompt_batch_size) + MAX_IDLE_BATCHES

        def batches():
            for _ in range(max_calls):
                count = min(self.prompt_batch_size, self.target - len(self.cards))
                yield prompt_mode_messages(self.request, count, constraints, self._titles())

        self._drive(batches(), on_progress, stop_at=self.target, idle_limit=MAX_IDLE_BATCHES)

    def _generate_document(self, chunks: List[str], constraints: str, on_progress: Optional[ProgressFn]) -> None:
        def batches():
            for index, chunk in enumerate(chunks):
                remaining = self.target - len(self.cards)
                hint = math.ceil(remaining / (len(chunks) - index)) if self.target < self.safety_ceiling else None
                yield document_mode_messages(
                    self.request, chunk, index + 1, len(chunks), constraints, self._titles(), target=hint
                )

        self._drive(batches(), on_progress, stop_at=self.target)

    def _generate_list(self, items: List[str], constraints: str, context: Optional[str], on_progress: Optional[ProgressFn]) -> None:
        def batches(pending: List[str]):
            for start in range(0, len(pending), self.list_batch_size):
                yield list_mode_messages(self.request, pending[start:start + self.list_batch_size], constraints, context)

        if not self._drive(batches(items), on_progress, stop_at=self.safety_ceiling):
            return

        for round_number in range(1, self.max_gap_rounds + 1):
            missing = uncovered_items(items, self.cards)
            if not missing or len(self.cards) >= self.safety_ceiling:
                return
            self._emit(f"Gap fill {round_number}: {len(missing)} items not covered yet", on_progress)
            if not self._drive(batches(missing), on_progress, stop_at=self.safety_ceiling):
                return

    # ------------------------------------------------------------------
    # Selection & saving
    # ------------------------------------------------------------------

    def select(self, indices: Iterable[int]) -> None:
        if self.state != GenerationState.READY:
            raise RuntimeError("No generated cards to select from")
        selected = set(indices)
        for index in selected:
            if not 0 <= index < len(self.cards):
                raise IndexError(f"Card index out of range: {index}")
        self._selected = selected

    def selected_cards(self) -> List[dict]:
        return [card for index, card in enumerate(self.cards) if index in self._selected]

    def save(self, saver: Callable[[dict], Any]) -> List[Any]:
        """
        Persist the selected cards with `saver(card)`, in preview order.

        Returns the saver's result for every card and moves the session back
        to IDLE. If the saver raises, the session stays READY.
        """
        if self.state != GenerationState.READY:
            raise RuntimeError("No generated cards to save")
        cards = self.selected_cards()
        if not cards:
            raise ValueError("Please select at least one card to save.")

        self._set_state(GenerationState.SAVING)
        results = []
        try:
            for card in cards:
                results.append(saver(card))
        except Exception:
            self._set_state(GenerationState.READY)
            raise
        logger.info("Saved %d generated cards", len(results))
        self._reset()
        return results
