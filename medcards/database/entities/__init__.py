"""
Entities Package: SQLAlchemy 2.0 ORM Models (UUID + UTC)
=========================================================

The `entities` package defines the ORM models of the application, mapping
database tables to Python classes using SQLAlchemy 2.0-typed mappings.
These classes are consumed by DAOs (`daos` package).

Tech Stack & Conventions
------------------------
- Generic `Uuid` columns (native on PostgreSQL, CHAR(32) on SQLite)
- Timezone-aware timestamps (UTC)
- SQLAlchemy 2.0 style `Mapped[...]` + `mapped_column(...)`
- JSON columns for list/object fields (sections, tags, references, localized text)

Contents
--------
- User           : account with unique e-mail and bcrypt hash
- MedicalCard    : owned reference card
- Template, Entry: reusable layouts and their filled instances
- Category, Link : reference groupings and external links
"""

from medcards.database.entities.user import User
from medcards.database.entities.medical_card import MedicalCard
from medcards.database.entities.templates import Template, Entry
from medcards.database.entities.categories import Category, Link

__all__ = ["User", "MedicalCard", "Template", "Entry", "Category", "Link"]
