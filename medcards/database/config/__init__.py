"""
Settings and database bootstrap.

- config: `Settings` (pydantic-settings, `.env` aware) and the `settings` singleton
- connection_engine: engine built from the `DB_*` settings, shared `metadata`,
  `declarativeBase` for the ORM models, and `init_db()` creating missing tables
"""
