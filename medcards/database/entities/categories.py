"""
Category & Link ORM Models
==========================

``Category`` groups reference material per specialty and ``Link`` is an
external reference (guideline site, calculator...) optionally filed under a
category.
"""

from medcards.database.config.connection_engine import declarativeBase
from sqlalchemy import ForeignKey, VARCHAR, TEXT, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from uuid import UUID
import uuid
from typing import Optional


class Category(declarativeBase):
    """ORM model for the `category` table."""

    __tablename__ = "category"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(VARCHAR(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    specialty: Mapped[Optional[str]] = mapped_column(VARCHAR(120), nullable=True)


class Link(declarativeBase):
    """ORM model for the `link` table (optional FK → category.id)."""

    __tablename__ = "link"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(VARCHAR(255), nullable=False)
    url: Mapped[str] = mapped_column(TEXT, nullable=False)
    category_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("category.id", ondelete="SET NULL"), nullable=True
    )
    specialty: Mapped[Optional[str]] = mapped_column(VARCHAR(120), nullable=True)
