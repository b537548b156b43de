"""
MedicalCard ORM Model
=====================

The ``MedicalCard`` ORM model is the unit of reference content shown in the
card grid. It maps to the ``medical_card`` table.

Key features
~~~~~~~~~~~~
- UUID primary key and a foreign key to the owning ``app_user`` row
- ``title``/``content`` stored as JSON so that either a plain string or an
  ``{"en": ..., "fr": ...}`` localization object round-trips unchanged
- Specialty + one or more section keys used for browsing
- AI provenance (``ai_generated``, ``ai_sources``) and public visibility

Integration notes
~~~~~~~~~~~~~~~~~
- ``user_id`` is set once at creation; the card service never copies it from
  an update payload.
- Trash, favorites and recents are client-side only and have no columns here.
"""

from medcards.database.config.connection_engine import declarativeBase
from sqlalchemy import ForeignKey, DateTime, Boolean, VARCHAR, JSON, Uuid, Index
from sqlalchemy.orm import Mapped, mapped_column
from uuid import UUID
import uuid
from datetime import datetime, timezone
from typing import Any, Optional


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MedicalCard(declarativeBase):
    """
    ORM model for the `medical_card` table.

    Attributes
    ----------
    id : UUID
        Primary key.
    user_id : UUID
        Owner of the card (FK → app_user.id). Immutable after creation.
    specialty : str
        Specialty key (e.g. "gynecology").
    sections : list[str]
        Section keys the card appears under (e.g. ["prescriptions"]).
    title, content : str | dict
        Plain string or {"en", "fr"} localization object.
    tags : list[str]
        Free-text tags.
    urgency : str
        "standard", "high" or "urgent".
    references : list[dict]
        Items shaped {"name", "type", "url"}.
    ai_generated : bool
        True when the card came out of an AI-assisted flow.
    ai_sources : list[str]
        Sources cited by the model.
    is_public : bool
        Visible through the public cards listing.
    color : str | None
        Display accent chosen in the editor.
    created_at, updated_at : datetime
        UTC timestamps.
    """

    __tablename__ = "medical_card"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False
    )

    specialty: Mapped[Optional[str]] = mapped_column(VARCHAR(120), nullable=True)
    sections: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    title: Mapped[Any] = mapped_column(JSON, nullable=False)
    content: Mapped[Any] = mapped_column(JSON, nullable=False)

    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    urgency: Mapped[str] = mapped_column(VARCHAR(20), nullable=False, default="standard")
    references: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    ai_generated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    ai_sources: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    color: Mapped[Optional[str]] = mapped_column(VARCHAR(40), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        Index("idx_medical_card_user_id", "user_id"),
        Index("idx_medical_card_specialty", "specialty"),
    )

    def __str__(self) -> str:
        return f"MedicalCard: id:{self.id}, owner:{self.user_id}, specialty:{self.specialty}"
