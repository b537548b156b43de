"""
MedCards settings (pydantic-settings)
=====================================

Every value comes from an environment variable of the same name, falling
back to `.env` and then to the development default declared below, so the
API and the tests boot without any file. Unknown variables are ignored.

Groups
------
- Server:   PORT, FRONTEND_URL, CORS_ORIGINS
- Database: DB_DRIVER_NAME, DB_USERNAME, DB_PASSWORD, DB_HOST, DB_PORT, DB_DATABASE_NAME
- Tokens:   SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES
- AI:       LLM_API_KEY, LLM_BASE_URL, LLM_MODEL, LLM_TIMEOUT_SECONDS
- Uploads:  MAX_UPLOAD_SIZE_MB

Usage
-----
from medcards.database.config.config import settings

settings.LLM_MODEL

`SECRET_KEY` and `LLM_API_KEY` are secrets: keep them out of source control
and override the SECRET_KEY default outside local development.
"""

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed view of the environment; see the module docstring for the groups."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    PORT: int = Field(3001, description="Port the API server listens on.")
    FRONTEND_URL: Optional[str] = Field(None, description="Deployed frontend origin, appended to the CORS allowlist.")
    CORS_ORIGINS: List[str] = Field(
        default=["http://localhost:5173", "http://localhost:3000"],
        description="Origins allowed to call the API cross-origin.",
    )

    DB_DRIVER_NAME: str = Field("sqlite", description="Database driver (e.g., `postgresql+psycopg2`, `sqlite`).")
    DB_USERNAME: Optional[str] = Field(None, description="Database username credential.")
    DB_PASSWORD: Optional[str] = Field(None, description="Database password credential.")
    DB_HOST: Optional[str] = Field(None, description="Hostname or IP address of the database server.")
    DB_PORT: Optional[int] = Field(None, description="Port of the database server.")
    DB_DATABASE_NAME: str = Field("medcards.db", description="Database name (file path for SQLite).")

    SECRET_KEY: str = Field("change-me-in-production", description="HMAC secret used to sign JWT access tokens.")
    ALGORITHM: str = Field("HS256", description="JWT signing algorithm.")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(7 * 24 * 60, description="Access token lifetime in minutes (7 days).")

    LLM_API_KEY: Optional[str] = Field(None, description="Server-held key for the external LLM provider.")
    LLM_BASE_URL: str = Field("https://openrouter.ai/api/v1", description="OpenAI-compatible base URL of the provider.")
    LLM_MODEL: str = Field("anthropic/claude-3.5-sonnet", description="Default model when the request names none.")
    LLM_TIMEOUT_SECONDS: float = Field(120.0, description="Timeout applied to each provider call.")

    MAX_UPLOAD_SIZE_MB: int = Field(100, description="Largest document accepted for text extraction.")

    @property
    def allowed_origins(self) -> List[str]:
        """CORS allowlist including `FRONTEND_URL` when it is set."""
        origins = list(self.CORS_ORIGINS)
        if self.FRONTEND_URL and self.FRONTEND_URL not in origins:
            origins.append(self.FRONTEND_URL)
        return origins


settings = Settings()
"""Process-wide settings; tests override attributes with monkeypatch."""
