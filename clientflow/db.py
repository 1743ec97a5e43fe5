"""
clientflow.db
=============

SQL persistence layer for clientflow.

This module exposes:

* ``make_engine()`` – build a SQLModel engine (SQLite file by default)
* ``SessionLocal`` – a session factory used via ``with SessionLocal(engine) as s:``
* ``create_all()`` – helper to create tables at first run
* ``ClientAccountDB`` / ``TransitionRecordDB`` – the two tables
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Column, DateTime
from sqlalchemy.engine import Engine
from sqlmodel import Field, Session, SQLModel, create_engine

from clientflow.models import ActorCategory, ClientAccount, ClientState, TransitionRecord
from clientflow.settings import DB_ECHO, settings


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------
def make_engine(url: Optional[str] = None, echo: bool = DB_ECHO) -> Engine:
    """Return an engine for *url* (defaults to the configured database)."""
    url = url or settings.effective_database_url
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, echo=echo, connect_args=connect_args)


# ---------------------------------------------------------------------------
# Session factory
# ---------------------------------------------------------------------------
def SessionLocal(engine: Engine) -> Session:  # noqa: N802 (factory camel‑case for consistency with FastAPI docs)
    """Return a new Session bound to *engine*."""
    return Session(engine)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# ---------------------------------------------------------------------------
# ORM models mirroring clientflow.models
# ---------------------------------------------------------------------------
class ClientAccountDB(SQLModel, table=True):
    """
    SQL representation of a :class:`clientflow.models.ClientAccount`.

    ``version`` is bumped on every state write; it is informational, the
    compare‑and‑swap itself is keyed on ``state``.
    """

    __tablename__ = "client_accounts"

    account_id: str = Field(primary_key=True, index=True)
    state: ClientState = Field(default=ClientState.INTAKE, index=True)
    state_changed_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    version: int = Field(default=1)
    email: Optional[str] = None
    business_name: Optional[str] = None
    payload: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))

    # ---------------------------------------------------------------------
    # Converters
    # ---------------------------------------------------------------------
    @classmethod
    def from_account(cls, acct: ClientAccount) -> "ClientAccountDB":
        """Create a DB row from an in‑memory account."""
        return cls(
            account_id=acct.account_id,
            state=acct.state,
            state_changed_at=_as_utc(acct.state_changed_at),
            email=acct.email,
            business_name=acct.business_name,
            payload=dict(acct.payload),
        )

    def to_account(self) -> ClientAccount:
        """Convert the DB row back into a plain ClientAccount."""
        return ClientAccount(
            account_id=self.account_id,
            state=ClientState(self.state),
            state_changed_at=_as_utc(self.state_changed_at),
            email=self.email,
            business_name=self.business_name,
            payload=dict(self.payload or {}),
        )


class TransitionRecordDB(SQLModel, table=True):
    """
    One ledger row.  Rows are inserted, never updated or deleted.

    The Python attribute is ``context`` because ``metadata`` is taken by
    SQLModel; the column itself is still called ``metadata``.
    """

    __tablename__ = "state_transitions"

    id: Optional[int] = Field(default=None, primary_key=True)
    account_id: str = Field(foreign_key="client_accounts.account_id", index=True)
    from_state: Optional[ClientState] = None
    to_state: ClientState
    actor: ActorCategory
    actor_id: Optional[str] = None
    context: Dict[str, Any] = Field(default_factory=dict, sa_column=Column("metadata", JSON))
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))

    @classmethod
    def from_record(cls, rec: TransitionRecord) -> "TransitionRecordDB":
        return cls(
            account_id=rec.account_id,
            from_state=rec.from_state,
            to_state=rec.to_state,
            actor=rec.actor,
            actor_id=rec.actor_id,
            context=dict(rec.metadata),
            created_at=_as_utc(rec.created_at),
        )

    def to_record(self) -> TransitionRecord:
        return TransitionRecord(
            account_id=self.account_id,
            from_state=ClientState(self.from_state) if self.from_state else None,
            to_state=ClientState(self.to_state),
            actor=ActorCategory(self.actor),
            created_at=_as_utc(self.created_at),
            actor_id=self.actor_id,
            metadata=dict(self.context or {}),
            record_id=self.id,
        )


# ---------------------------------------------------------------------------
# Utility: create tables
# ---------------------------------------------------------------------------
def create_all(engine: Engine) -> None:
    """Create all tables for imported SQLModel subclasses."""
    SQLModel.metadata.create_all(engine)


# ---------------------------------------------------------------------------
# Lightweight CLI
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    """
    Quick bootstrap helper.

    Examples
    --------
    $ python -m clientflow.db --create        # first‑time table creation
    """
    import argparse

    parser = argparse.ArgumentParser(prog="python -m clientflow.db", description="clientflow DB utilities")
    parser.add_argument("--create", action="store_true", help="create tables")
    parser.add_argument("--url", default=None, help="database URL (defaults to settings)")
    args = parser.parse_args()

    if args.create:
        create_all(make_engine(args.url))
        print("✅ clientflow schema initialised")
