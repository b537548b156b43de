"""
Specialty configuration: specialty → ordered sections → reference links.

Every mutation pushes a deep copy of the whole configuration onto the undo
history before changing anything; ``undo()`` restores the latest snapshot
wholesale. There is no redo, and the history lives in memory only.
"""

import copy
import logging
from typing import Dict, List, Optional

from medcards.client.storage import SPECIALTIES_KEY, LocalStorage

logger = logging.getLogger(__name__)

DEFAULT_SECTIONS = [
    "consultations",
    "prescriptions",
    "investigations",
    "procedures",
    "templates",
    "calculators",
    "urgences",
]

DEFAULT_SPECIALTIES: Dict[str, dict] = {
    "gynecology": {
        "name": "Gynecology",
        "sections": list(DEFAULT_SECTIONS),
        "links": [
            {"name": "SOGC Guidelines", "url": "https://www.sogc.org/guidelines"},
            {"name": "UpToDate Gynecology", "url": "https://www.uptodate.com/contents/gynecology"},
        ],
    },
    "obstetrics": {
        "name": "Obstetrics",
        "sections": list(DEFAULT_SECTIONS),
        "links": [
            {"name": "SOGC Obstetrics", "url": "https://www.sogc.org/guidelines"},
            {"name": "UpToDate Obstetrics", "url": "https://www.uptodate.com/contents/obstetrics"},
        ],
    },
    "surgery": {
        "name": "Surgery",
        "sections": list(DEFAULT_SECTIONS),
        "links": [
            {
                "name": "ACS Surgery Guidelines",
                "url": "https://www.facs.org/education/patient-education/patient-resources/surgery-guidelines/",
            },
            {"name": "UpToDate Surgery", "url": "https://www.uptodate.com/contents/surgery"},
        ],
    },
}


class SpecialtiesStore:
    def __init__(self, storage: LocalStorage):
        self.storage = storage
        saved = storage.get_item(SPECIALTIES_KEY)
        self.specialties: Dict[str, dict] = saved if isinstance(saved, dict) else copy.deepcopy(DEFAULT_SPECIALTIES)
        self.history: List[Dict[str, dict]] = []

    def _persist(self) -> None:
        self.storage.set_item(SPECIALTIES_KEY, self.specialties)

    def _push_history(self) -> None:
        self.history.append(copy.deepcopy(self.specialties))

    def _require(self, specialty_id: str) -> dict:
        if specialty_id not in self.specialties:
            raise KeyError(f"Unknown specialty: {specialty_id}")
        return self.specialties[specialty_id]

    # -- queries ----------------------------------------------------------

    def get(self, specialty_id: str) -> Optional[dict]:
        spec = self.specialties.get(specialty_id)
        return copy.deepcopy(spec) if spec is not None else None

    def all(self) -> Dict[str, dict]:
        return copy.deepcopy(self.specialties)

    # -- mutations --------------------------------------------------------

    def add_specialty(self, specialty_id: str, name: str) -> None:
        if specialty_id in self.specialties:
            raise ValueError(f"Specialty already exists: {specialty_id}")
        self._push_history()
        self.specialties[specialty_id] = {"name": name, "sections": list(DEFAULT_SECTIONS), "links": []}
        self._persist()

    def delete_specialty(self, specialty_id: str) -> None:
        self._require(specialty_id)
        self._push_history()
        del self.specialties[specialty_id]
        self._persist()

    def rename_specialty(self, specialty_id: str, name: str) -> None:
        self._require(specialty_id)
        self._push_history()
        self.specialties[specialty_id]["name"] = name
        self._persist()

    def set_sections(self, specialty_id: str, sections: List[str]) -> None:
        """Replace (add, remove or reorder) the sections of a specialty."""
        self._require(specialty_id)
        self._push_history()
        self.specialties[specialty_id]["sections"] = list(sections)
        self._persist()

    def set_links(self, specialty_id: str, links: List[dict]) -> None:
        self._require(specialty_id)
        self._push_history()
        self.specialties[specialty_id]["links"] = [dict(link) for link in links]
        self._persist()

    # -- undo / snapshots -------------------------------------------------

    def can_undo(self) -> bool:
        return bool(self.history)

    def undo(self) -> bool:
        """Restore the most recent snapshot. Returns False when there is nothing to undo."""
        if not self.history:
            return False
        self.specialties = self.history.pop()
        self._persist()
        return True

    def snapshot(self) -> Dict[str, dict]:
        return copy.deepcopy(self.specialties)

    def restore(self, snapshot: Dict[str, dict]) -> None:
        """Replace the configuration with `snapshot`; the change itself is undoable."""
        self._push_history()
        self.specialties = copy.deepcopy(snapshot)
        self._persist()

    def reset_to_defaults(self) -> None:
        self.restore(DEFAULT_SPECIALTIES)
