"""
Key/value persistence for the client stores.

``LocalStorage`` keeps one JSON document per key, all inside a single JSON
file (or in memory when no path is given). Values are written through on
every ``set_item``; there is no versioning or migration of stored blobs.
"""

import copy
import json
import logging
import os
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

AUTH_TOKEN_KEY = "authToken"
AUTH_USER_KEY = "authUser"
SPECIALTIES_KEY = "specialties"
CARDS_KEY = "medicalCards"
TRASH_KEY = "trashedCards"
FAVORITES_KEY = "favoritedCards"
RECENTS_KEY = "recentCards"
NOTES_KEY = "cardNotes"
SETTINGS_KEY = "appSettings"


class LocalStorage:
    """
    JSON-file backed key/value store.

    Parameters
    ----------
    path : str, optional
        File holding every key. ``None`` keeps the data in memory only.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = path
        self._data: Dict[str, Any] = {}
        if path and os.path.exists(path):
            try:
                with open(path, "r", encoding="utf-8") as fh:
                    loaded = json.load(fh)
                if isinstance(loaded, dict):
                    self._data = loaded
            except (OSError, json.JSONDecodeError) as e:
                logger.warning("Ignoring unreadable storage file %s: %s", path, e)

    def get_item(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    def set_item(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)
        self._flush()

    def remove_item(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self._flush()

    def clear(self) -> None:
        self._data = {}
        self._flush()

    def keys(self):
        return list(self._data)

    def _flush(self) -> None:
        if not self.path:
            return
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as fh:
            json.dump(self._data, fh, ensure_ascii=False, indent=2, default=str)
        os.replace(tmp_path, self.path)
