"""
Connection Engine (SQLAlchemy)

Purpose
-------
Centralizes database initialization for the application:
- Builds the SQLAlchemy connection URL from environment-backed settings.
- Creates the Engine (connection pool + SQL execution entry point).
- Defines shared MetaData for table and schema objects.
- Exposes a Declarative Base class for ORM models.

Notes
-----
- Uses `URL.create(...)` so credentials never live in source.
- SQLite engines are created with `check_same_thread=False` because FastAPI
  runs sync endpoints in a worker thread pool.
- All ORM models must inherit from `declarativeBase`.
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import URL
from sqlalchemy.orm import declarative_base
from sqlalchemy.schema import MetaData
from medcards.database.config.config import settings

connection_url = URL.create(
    drivername=settings.DB_DRIVER_NAME,
    username=settings.DB_USERNAME,
    password=settings.DB_PASSWORD,
    host=settings.DB_HOST,
    port=settings.DB_PORT,
    database=settings.DB_DATABASE_NAME,
)
"""SQLAlchemy connection URL assembled from Settings."""

_connect_args = {"check_same_thread": False} if settings.DB_DRIVER_NAME.startswith("sqlite") else {}

connection_engine = create_engine(connection_url, pool_pre_ping=True, connect_args=_connect_args)
"""Engine object: manages connections, executes SQL, pools."""

metadata = MetaData()
"""Schema-level information about tables, constraints and indexes, shared across all models."""

declarativeBase = declarative_base(metadata=metadata)
"""Root class for ORM models."""


def init_db() -> None:
    """Create every table registered on `metadata` (idempotent)."""
    # entities must be imported so their tables are registered
    import medcards.database.entities  # noqa: F401

    metadata.create_all(bind=connection_engine)
