"""
User ORM Model
==============

The ``User`` ORM model represents a registered account. It maps to the
``app_user`` table and stores the credentials used by the bearer-token gate.

Key features
~~~~~~~~~~~~
- UUID primary key (``id``)
- Unique e-mail address used as the login identifier
- bcrypt password hash (never the plaintext)
- Display name and creation timestamp

"""

from medcards.database.config.connection_engine import declarativeBase
from sqlalchemy import VARCHAR, TEXT, DateTime, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from uuid import UUID
import uuid
from datetime import datetime, timezone
from typing import Optional


class User(declarativeBase):
    """
    A MedCards account; owns medical cards through `medical_card.user_id`.

    Attributes
    ----------
    id : UUID
        Primary key, generated on construction.
    email : str
        Unique e-mail address of the user.
    password : str
        bcrypt hash of the user's password.
    name : str
        Display name; defaults to the local part of the e-mail.
    created_at : datetime
        Account creation time (UTC).
    """

    __tablename__ = "app_user"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)

    email: Mapped[str] = mapped_column(VARCHAR(255), nullable=False, unique=True, index=True)

    password: Mapped[str] = mapped_column(TEXT, nullable=False)
    """bcrypt hash; plaintext never reaches this column."""

    name: Mapped[Optional[str]] = mapped_column(VARCHAR(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    def __init__(self, email: str, password: str, name: Optional[str] = None):
        """
        Build an account row ready for `session.add`.

        Parameters
        ----------
        email : str
            E-mail address of the user.
        password : str
            Password of the user; hashed by the DAO before insert.
        name : str, optional
            Display name. Falls back to the e-mail local part.
        """
        self.id = uuid.uuid4()
        self.email = email
        self.password = password
        self.name = name or email.split("@")[0]
        self.created_at = datetime.now(timezone.utc)

    def to_public_dict(self) -> dict:
        """Serializable view of the user without the password hash."""
        return {
            "id": str(self.id),
            "email": self.email,
            "name": self.name,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    def __str__(self) -> str:
        return f"User: id:{self.id}, email: {self.email}"
