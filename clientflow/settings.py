"""
clientflow.settings
===================

Where clientflow keeps its data and how it talks to the outside world.

Plain constants cover the SQLite defaults; everything an operator is likely
to change goes through :class:`Settings` and the ``CLIENTFLOW_`` env prefix.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from pydantic import Field, HttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------------------------------------
# Base directories
# ---------------------------------------------------------------------------
# Base directory of the project
BASE_DIR = Path(__file__).resolve().parent.parent

# Database settings
# ---------------------------------------------------------------------------
DB_FILE = os.environ.get("CLIENTFLOW_DB_FILE", BASE_DIR / "clientflow.db")
DB_URL = f"sqlite:///{DB_FILE}"
DB_ECHO = os.environ.get("CLIENTFLOW_DB_ECHO", "False").lower() == "true"

# Unlogged transitions waiting for backfill
RECONCILIATION_FILE = BASE_DIR / "reconciliation.json"


# ---------------------------------------------------------------------------
# Pydantic settings model
# ---------------------------------------------------------------------------
class Settings(BaseSettings):
    """Pydantic model for application settings, loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CLIENTFLOW_",
        env_file=".env",          # load from .env file if present
        case_sensitive=False,
        extra="ignore",
    )

    database_url: Optional[str] = Field(
        default=None,
        description="SQLAlchemy URL; falls back to the SQLite file in DB_FILE",
    )
    portal_url: HttpUrl = Field(
        default="https://fastlanesites.com",
        description="Base URL of the customer portal used to build state links",
    )
    log_level: str = Field(default="INFO", description="Root logging level")
    reconciliation_file: Path = Field(
        default=RECONCILIATION_FILE,
        description="JSON spool for transitions whose ledger append failed",
    )

    @property
    def effective_database_url(self) -> str:
        return self.database_url or DB_URL


# Initialize settings
settings = Settings()
