"""UI settings and theme, saved under ``appSettings``."""

import copy
from typing import Any, Dict

from medcards.client.storage import SETTINGS_KEY, LocalStorage

DEFAULT_SETTINGS: Dict[str, Any] = {
    "language": "en",
    "theme": "light",
    "fontSize": "medium",
    "cardView": "grid",
    "defaultSort": "date",
    "showAiBadge": True,
    "aiModel": "anthropic/claude-3.5-sonnet",
}


class SettingsStore:
    """Defaults merged under whatever was saved; unknown saved keys are kept."""

    def __init__(self, storage: LocalStorage):
        self.storage = storage
        saved = storage.get_item(SETTINGS_KEY, {})
        self.settings: Dict[str, Any] = {**DEFAULT_SETTINGS, **(saved if isinstance(saved, dict) else {})}

    def get(self, key: str, default: Any = None) -> Any:
        return self.settings.get(key, default)

    def update(self, **changes: Any) -> Dict[str, Any]:
        self.settings.update(changes)
        self.storage.set_item(SETTINGS_KEY, self.settings)
        return copy.deepcopy(self.settings)

    def reset(self) -> Dict[str, Any]:
        self.settings = copy.deepcopy(DEFAULT_SETTINGS)
        self.storage.set_item(SETTINGS_KEY, self.settings)
        return copy.deepcopy(self.settings)
