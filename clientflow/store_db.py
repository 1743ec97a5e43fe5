"""
clientflow.store_db
===================

SQL‑backed implementations of the Account Store and Transition Ledger.

These adapters wrap the tables in :pymod:`clientflow.db` so that the
executor can switch from the in‑memory store to a persistent one without
changing its calls.  Each operation runs in its own short session, which
keeps them safe to share between request handlers and worker threads.
"""

from __future__ import annotations

import logging
from typing import Iterator, List

from sqlalchemy import update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import select

from clientflow.db import ClientAccountDB, SessionLocal, TransitionRecordDB, _as_utc
from clientflow.errors import (
    AccountExists,
    AccountNotFound,
    Conflict,
    LedgerWriteFailure,
    StorageReadFailure,
    StoreWriteFailure,
)
from clientflow.ledger import TransitionLedger
from clientflow.models import ClientAccount, ClientState, TransitionRecord
from clientflow.store import AccountStore

logger = logging.getLogger(__name__)


class SQLAccountStore(AccountStore):
    """
    Account Store on top of SQLModel.

    ``set_state`` is a single conditional ``UPDATE`` keyed on the expected
    state, so two writers racing from the same state cannot both win.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    # ------------------------------------------------------------------ CRUD
    def get(self, account_id: str) -> ClientAccount:
        try:
            with SessionLocal(self._engine) as s:
                row = s.get(ClientAccountDB, account_id)
                account = row.to_account() if row is not None else None
        except SQLAlchemyError as exc:
            logger.error("Failed to read account %s: %s", account_id, exc)
            raise StorageReadFailure("account store", account_id, exc) from exc
        if account is None:
            raise AccountNotFound(account_id)
        return account

    def add(self, account: ClientAccount) -> None:
        try:
            with SessionLocal(self._engine) as s:
                s.add(ClientAccountDB.from_account(account))
                s.commit()
        except IntegrityError as exc:
            raise AccountExists(account.account_id) from exc
        except SQLAlchemyError as exc:
            logger.error("Failed to insert account %s: %s", account.account_id, exc)
            raise StoreWriteFailure(account.account_id, exc) from exc

    def set_state(self, account_id, expected, new_state, changed_at):
        stmt = (
            update(ClientAccountDB)
            .where(ClientAccountDB.account_id == account_id)
            .where(ClientAccountDB.state == expected)
            .values(
                state=new_state,
                state_changed_at=_as_utc(changed_at),
                version=ClientAccountDB.version + 1,
            )
        )
        try:
            with SessionLocal(self._engine) as s:
                result = s.connection().execute(stmt)
                if result.rowcount == 1:
                    s.commit()
                    row = s.get(ClientAccountDB, account_id)
                    return row.to_account()
                s.rollback()
                row = s.get(ClientAccountDB, account_id)
        except SQLAlchemyError as exc:
            logger.error("State write failed for account %s: %s", account_id, exc)
            raise StoreWriteFailure(account_id, exc) from exc

        if row is None:
            raise AccountNotFound(account_id)
        raise Conflict(account_id, expected, ClientState(row.state))

    # ------------------------------------------------------ dunder helpers
    def _select(self, stmt) -> List[ClientAccount]:
        try:
            with SessionLocal(self._engine) as s:
                return [row.to_account() for row in s.exec(stmt).all()]
        except SQLAlchemyError as exc:
            logger.error("Failed to list accounts: %s", exc)
            raise StorageReadFailure("account store", cause=exc) from exc

    def __iter__(self) -> Iterator[ClientAccount]:
        return iter(self._select(select(ClientAccountDB)))

    def find_by_state(self, state: ClientState) -> List[ClientAccount]:
        return self._select(select(ClientAccountDB).where(ClientAccountDB.state == state))


class SQLTransitionLedger(TransitionLedger):
    """Insert‑only ledger table; history is ordered by ``(created_at, id)``."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def append(self, record: TransitionRecord) -> TransitionRecord:
        try:
            with SessionLocal(self._engine) as s:
                row = TransitionRecordDB.from_record(record)
                s.add(row)
                s.commit()
                return record.with_id(row.id)
        except SQLAlchemyError as exc:
            raise LedgerWriteFailure(record, exc) from exc

    def history(self, account_id: str) -> List[TransitionRecord]:
        stmt = (
            select(TransitionRecordDB)
            .where(TransitionRecordDB.account_id == account_id)
            .order_by(TransitionRecordDB.created_at, TransitionRecordDB.id)
        )
        try:
            with SessionLocal(self._engine) as s:
                return [row.to_record() for row in s.exec(stmt).all()]
        except SQLAlchemyError as exc:
            logger.error("Failed to read ledger for account %s: %s", account_id, exc)
            raise StorageReadFailure("transition ledger", account_id, exc) from exc
