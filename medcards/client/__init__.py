"""
Client-side state for MedCards.

Contents
--------
- storage            : JSON key/value store standing in for browser storage
- api_client         : REST client raising `ApiError(status, message)`
- auth_store         : bearer token and signed-in user
- specialties_store  : specialty → sections → links, with full-snapshot undo
- cards_store        : cards, trash, favorites, recents, notes; `Persisted` / `LocalOnly` results
- settings_store     : UI settings and theme
- filtering          : fuzzy search, discrete filters and sorting
"""

from medcards.client.api_client import ApiClient, ApiError
from medcards.client.auth_store import AuthStore
from medcards.client.cards_store import CardsStore, LocalOnly, Persisted
from medcards.client.filtering import CardFilter, filter_cards, sort_cards
from medcards.client.settings_store import SettingsStore
from medcards.client.specialties_store import SpecialtiesStore
from medcards.client.storage import LocalStorage

__all__ = [
    "ApiClient",
    "ApiError",
    "AuthStore",
    "CardFilter",
    "CardsStore",
    "LocalOnly",
    "LocalStorage",
    "Persisted",
    "SettingsStore",
    "SpecialtiesStore",
    "filter_cards",
    "sort_cards",
]
