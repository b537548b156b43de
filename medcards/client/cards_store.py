"""
Card collection state: active cards, trash, favorites, recents and notes.

Server-backed operations (`add_card`, `update_card`, `delete_card`) return
either ``Persisted(card)`` when the API accepted the change or
``LocalOnly(card, error)`` when the call failed and the change was applied to
the local mirror only. Trash, favorites, recents and personal notes never
leave the client.
"""

import copy
import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel

from medcards.client.api_client import ApiClient, ApiError
from medcards.client.storage import (
    CARDS_KEY,
    FAVORITES_KEY,
    NOTES_KEY,
    RECENTS_KEY,
    TRASH_KEY,
    LocalStorage,
)
from medcards.localized import searchable_text

logger = logging.getLogger(__name__)

MAX_RECENTS = 10
RECENT_CARDS_SHOWN = 5


class Persisted(BaseModel):
    kind: Literal["persisted"] = "persisted"
    card: dict


class LocalOnly(BaseModel):
    kind: Literal["local_only"] = "local_only"
    card: dict
    error: str


SaveResult = Union[Persisted, LocalOnly]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def card_sections(card: dict) -> List[str]:
    sections = list(card.get("sections") or [])
    if card.get("section") and card["section"] not in sections:
        sections.append(card["section"])
    return sections


class CardsStore:
    def __init__(self, api: ApiClient, storage: LocalStorage):
        self.api = api
        self.storage = storage
        self.cards: List[dict] = storage.get_item(CARDS_KEY, [])
        self.trashed: List[dict] = storage.get_item(TRASH_KEY, [])
        self.favorites: List[str] = storage.get_item(FAVORITES_KEY, [])
        self.recents: List[str] = storage.get_item(RECENTS_KEY, [])
        self.notes: Dict[str, str] = storage.get_item(NOTES_KEY, {})

    # -- persistence ------------------------------------------------------

    def _save_cards(self) -> None:
        self.storage.set_item(CARDS_KEY, self.cards)

    def _save_trash(self) -> None:
        self.storage.set_item(TRASH_KEY, self.trashed)

    def _save_favorites(self) -> None:
        self.storage.set_item(FAVORITES_KEY, self.favorites)

    def _save_recents(self) -> None:
        self.storage.set_item(RECENTS_KEY, self.recents)

    def load(self) -> bool:
        """
        Replace the local mirror with the caller's cards from the API.

        Returns False (keeping the cached mirror) when signed out or when the
        API call fails. Cards sitting in the local trash stay out of the
        active list.
        """
        if not self.api.token:
            return False
        try:
            remote = self.api.list_cards()
        except ApiError as e:
            logger.warning("Failed to load cards, using local copy: %s", e)
            return False
        trashed_ids = {card.get("id") for card in self.trashed}
        self.cards = [card for card in remote if card.get("id") not in trashed_ids]
        self._save_cards()
        return True

    # -- server-backed CRUD -----------------------------------------------

    def add_card(self, card: dict) -> SaveResult:
        try:
            saved = self.api.create_card(card)
        except ApiError as e:
            logger.warning("Failed to add card, keeping it locally: %s", e)
            now = _now()
            local = {**card, "id": f"local-{uuid.uuid4().hex}", "createdAt": now, "updatedAt": now}
            self.cards.insert(0, local)
            self._save_cards()
            return LocalOnly(card=local, error=str(e))
        self.cards.insert(0, saved)
        self._save_cards()
        return Persisted(card=saved)

    def update_card(self, card_id: str, updates: dict) -> SaveResult:
        try:
            saved = self.api.update_card(card_id, updates)
        except ApiError as e:
            logger.warning("Failed to update card %s, updating locally: %s", card_id, e)
            local = None
            for index, card in enumerate(self.cards):
                if card.get("id") == card_id:
                    local = {**card, **updates, "id": card_id, "updatedAt": _now()}
                    self.cards[index] = local
            self._save_cards()
            return LocalOnly(card=local or {**updates, "id": card_id}, error=str(e))
        self.cards = [saved if card.get("id") == card_id else card for card in self.cards]
        self._save_cards()
        return Persisted(card=saved)

    def delete_card(self, card_id: str) -> SaveResult:
        removed = self.get_card(card_id) or {"id": card_id}
        self.cards = [card for card in self.cards if card.get("id") != card_id]
        self._save_cards()
        try:
            self.api.delete_card(card_id)
        except ApiError as e:
            logger.warning("Failed to delete card %s on the server: %s", card_id, e)
            return LocalOnly(card=removed, error=str(e))
        return Persisted(card=removed)

    # -- trash ------------------------------------------------------------

    def trash_card(self, card_id: str) -> Optional[dict]:
        """Move an active card to the trash (stamped `trashedAt`) and unfavorite it."""
        card = self.get_card(card_id)
        if card is None:
            return None
        self.cards = [c for c in self.cards if c.get("id") != card_id]
        trashed = {**card, "trashedAt": _now()}
        self.trashed.insert(0, trashed)
        if card_id in self.favorites:
            self.favorites = [fav for fav in self.favorites if fav != card_id]
            self._save_favorites()
        self._save_cards()
        self._save_trash()
        return trashed

    def restore_card(self, card_id: str) -> Optional[dict]:
        for card in self.trashed:
            if card.get("id") == card_id:
                restored = {k: v for k, v in card.items() if k != "trashedAt"}
                self.trashed = [c for c in self.trashed if c.get("id") != card_id]
                self.cards.insert(0, restored)
                self._save_cards()
                self._save_trash()
                return restored
        return None

    def permanently_delete(self, card_id: str) -> Optional[SaveResult]:
        """Drop a trashed card for good, also deleting it on the server."""
        card = next((c for c in self.trashed if c.get("id") == card_id), None)
        if card is None:
            return None
        self.trashed = [c for c in self.trashed if c.get("id") != card_id]
        self.favorites = [fav for fav in self.favorites if fav != card_id]
        self.notes.pop(card_id, None)
        self._save_trash()
        self._save_favorites()
        self.storage.set_item(NOTES_KEY, self.notes)
        if str(card_id).startswith("local-"):
            return Persisted(card=card)
        try:
            self.api.delete_card(card_id)
        except ApiError as e:
            logger.warning("Failed to delete card %s on the server: %s", card_id, e)
            return LocalOnly(card=card, error=str(e))
        return Persisted(card=card)

    def empty_trash(self) -> List[SaveResult]:
        return [self.permanently_delete(card["id"]) for card in list(self.trashed)]

    # -- favorites, recents, notes ----------------------------------------

    def toggle_favorite(self, card_id: str) -> bool:
        """Returns True when the card is now a favorite."""
        if card_id in self.favorites:
            self.favorites = [fav for fav in self.favorites if fav != card_id]
            favorite = False
        else:
            self.favorites.insert(0, card_id)
            favorite = True
        self._save_favorites()
        return favorite

    def is_favorite(self, card_id: str) -> bool:
        return card_id in self.favorites

    def favorite_cards(self) -> List[dict]:
        return [card for card in self.cards if card.get("id") in self.favorites]

    def track_recent(self, card_id: str) -> None:
        self.recents = [card_id] + [rid for rid in self.recents if rid != card_id]
        self.recents = self.recents[:MAX_RECENTS]
        self._save_recents()

    def recent_cards(self) -> List[dict]:
        by_id = {card.get("id"): card for card in self.cards}
        return [by_id[rid] for rid in self.recents if rid in by_id][:RECENT_CARDS_SHOWN]

    def set_note(self, card_id: str, text: str) -> None:
        if text and text.strip():
            self.notes[card_id] = text
        else:
            self.notes.pop(card_id, None)
        self.storage.set_item(NOTES_KEY, self.notes)

    def get_note(self, card_id: str) -> str:
        return self.notes.get(card_id, "")

    # -- queries ----------------------------------------------------------

    def get_card(self, card_id: str) -> Optional[dict]:
        return next((card for card in self.cards if card.get("id") == card_id), None)

    def cards_by_section(self, specialty: str, section: str) -> List[dict]:
        return [
            card for card in self.cards
            if card.get("specialty") == specialty and section in card_sections(card)
        ]

    def search_cards(self, query: str) -> List[dict]:
        """Plain substring search over title, content and tags."""
        q = (query or "").strip().casefold()
        if not q:
            return list(self.cards)
        return [
            card for card in self.cards
            if q in searchable_text(card.get("title")).casefold()
            or q in searchable_text(card.get("content")).casefold()
            or any(q in str(tag).casefold() for tag in card.get("tags") or [])
        ]

    # -- snapshots --------------------------------------------------------

    def snapshot(self) -> dict:
        return copy.deepcopy({
            "cards": self.cards,
            "trashed": self.trashed,
            "favorites": self.favorites,
            "recents": self.recents,
            "notes": self.notes,
        })

    def restore(self, snapshot: dict) -> None:
        state = copy.deepcopy(snapshot)
        self.cards = state.get("cards", [])
        self.trashed = state.get("trashed", [])
        self.favorites = state.get("favorites", [])
        self.recents = state.get("recents", [])
        self.notes = state.get("notes", {})
        self._save_cards()
        self._save_trash()
        self._save_favorites()
        self._save_recents()
        self.storage.set_item(NOTES_KEY, self.notes)
