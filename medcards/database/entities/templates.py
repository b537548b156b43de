"""
Template & Entry ORM Models
===========================

``Template`` describes a reusable card layout (a named list of fields) and
``Entry`` is a filled-in instance of a template. Both are plain records with
generic CRUD; the only invariant is that an entry's ``template_id`` points at
an existing template.
"""

from medcards.database.config.connection_engine import declarativeBase
from sqlalchemy import ForeignKey, DateTime, VARCHAR, TEXT, JSON, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from uuid import UUID
import uuid
from datetime import datetime, timezone
from typing import Optional


class Template(declarativeBase):
    """ORM model for the `template` table."""

    __tablename__ = "template"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(VARCHAR(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    layout: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    """Ordered field definitions, e.g. [{"key": "dose", "label": "Dose"}]."""
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )


class Entry(declarativeBase):
    """ORM model for the `entry` table (FK → template.id)."""

    __tablename__ = "entry"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    template_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("template.id", ondelete="CASCADE"), nullable=False
    )
    data: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
