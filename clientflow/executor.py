"""
clientflow.executor
===================

The one entry point that changes an account's state.

:class:`TransitionExecutor` loads the account, asks the authorizer, writes
the new state with a compare‑and‑swap on the state it read, and then
appends the ledger record.  Store and ledger are injected so the same
executor runs against the in‑memory adapters in tests and the SQL adapters
in production.

Outcomes
--------
* success – :class:`TransitionResult` with ``ledger_written=True``
* success with warning – the state changed but the ledger append failed;
  the result carries ``ledger_error`` and the unlogged record is queued on
  the :class:`ReconciliationQueue` for backfill
* failure – :class:`AccountNotFound`, :class:`InvalidTransition`,
  :class:`Conflict`, :class:`StoreWriteFailure` or
  :class:`StorageReadFailure` is raised and nothing was written

There are no retries here.  A caller that receives :class:`Conflict` may
start over from the top.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import TypeAdapter

from .clock import Clock, SystemClock
from .errors import Conflict, InvalidTransition, LedgerWriteFailure
from .ledger import TransitionLedger
from .lifecycle import check_transition, next_states, next_timestamp
from .models import (
    INITIAL_STATE,
    ActorCategory,
    ClientAccount,
    ClientState,
    TransitionRecord,
)
from .store import AccountStore

logger = logging.getLogger(__name__)

_SPOOL_FORMAT = TypeAdapter(List[TransitionRecord])


@dataclass(frozen=True)
class TransitionResult:
    """What :pymeth:`TransitionExecutor.execute` hands back on success."""
    account_id: str
    from_state: ClientState
    new_state: ClientState
    changed_at: datetime
    record: Optional[TransitionRecord] = None
    ledger_error: Optional[LedgerWriteFailure] = None

    @property
    def ledger_written(self) -> bool:
        return self.ledger_error is None

    @property
    def ok_with_warning(self) -> bool:
        return self.ledger_error is not None


class ReconciliationQueue:
    """
    Transitions whose state write landed but whose ledger record did not.

    Records wait here until :pymeth:`backfill` manages to append them.
    With *spool* set the queue is mirrored to that JSON file after every
    change and reloaded from it on start, so pending records survive a
    restart and can be drained by a later process (``clientflow.cli
    backfill``).
    """

    def __init__(self, spool: Optional[Path] = None) -> None:
        self._spool = Path(spool) if spool is not None else None
        self._items: List[Tuple[TransitionRecord, Optional[LedgerWriteFailure]]] = []
        self._lock = threading.Lock()
        if self._spool is not None and self._spool.exists():
            records = _SPOOL_FORMAT.validate_json(self._spool.read_bytes())
            self._items = [(rec, None) for rec in records]
            if records:
                logger.warning("Loaded %d unlogged transitions from %s", len(records), self._spool)

    def _flush(self) -> None:
        # caller holds the lock
        if self._spool is None:
            return
        try:
            if self._items:
                self._spool.write_bytes(_SPOOL_FORMAT.dump_json([rec for rec, _ in self._items], indent=2))
            else:
                self._spool.unlink(missing_ok=True)
        except OSError as exc:
            logger.error("Could not update reconciliation spool %s: %s", self._spool, exc)

    def push(self, record: TransitionRecord, error: Optional[LedgerWriteFailure] = None) -> None:
        with self._lock:
            self._items.append((record, error))
            self._flush()

    def pending(self) -> List[TransitionRecord]:
        with self._lock:
            return [rec for rec, _ in self._items]

    def backfill(self, ledger: TransitionLedger) -> int:
        """
        Append queued records to *ledger* in queue order.

        Stops at the first failure; whatever is left stays queued.  The
        ledger sorts history by ``created_at``, so records written since
        the failure do not push a backfilled one out of place.  Returns the
        number written.
        """
        written = 0
        with self._lock:
            while self._items:
                record, _ = self._items[0]
                try:
                    ledger.append(record)
                except LedgerWriteFailure as exc:
                    logger.warning("Backfill stopped at account %s: %s", record.account_id, exc)
                    self._items[0] = (record, exc)
                    break
                self._items.pop(0)
                written += 1
            if written:
                self._flush()
        if written:
            logger.info("Backfilled %d ledger records, %d still pending", written, len(self))
        return written

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class TransitionExecutor:
    """
    Orchestrates one transition: read, authorize, CAS write, append.

    Parameters
    ----------
    store : AccountStore
        Source of truth for the current state.
    ledger : TransitionLedger
        Append‑only history.
    clock : Clock, optional
        Timestamp source; defaults to :class:`SystemClock`.
    reconciliation : ReconciliationQueue, optional
        Where unlogged transitions are parked; a private queue is created
        if none is given.
    """

    def __init__(
        self,
        store: AccountStore,
        ledger: TransitionLedger,
        clock: Optional[Clock] = None,
        reconciliation: Optional[ReconciliationQueue] = None,
    ) -> None:
        self.store = store
        self.ledger = ledger
        self.clock = clock or SystemClock()
        self.reconciliation = reconciliation if reconciliation is not None else ReconciliationQueue()

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def execute(
        self,
        account_id: str,
        to_state: ClientState,
        actor: ActorCategory,
        actor_id: Optional[str] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> TransitionResult:
        """Attempt to move *account_id* to *to_state* on behalf of *actor*."""
        to_state = ClientState(to_state)
        actor = ActorCategory(actor)

        account = self.store.get(account_id)
        from_state = account.state

        try:
            check_transition(from_state, to_state, actor)
        except InvalidTransition as exc:
            logger.info("Rejected transition for %s: %s", account_id, exc)
            raise

        changed_at = next_timestamp(self.clock.now(), account.state_changed_at)
        try:
            self.store.set_state(account_id, from_state, to_state, changed_at)
        except Conflict as exc:
            logger.warning("Lost race on account %s: %s", account_id, exc)
            raise

        record = TransitionRecord(
            account_id=account_id,
            from_state=from_state,
            to_state=to_state,
            actor=actor,
            actor_id=actor_id,
            metadata=dict(metadata or {}),
            created_at=changed_at,
        )
        try:
            stored = self.ledger.append(record)
        except LedgerWriteFailure as exc:
            logger.error(
                "Account %s moved %s → %s but the ledger append failed: %s",
                account_id, from_state, to_state, exc,
            )
            self.reconciliation.push(record, exc)
            return TransitionResult(account_id, from_state, to_state, changed_at, ledger_error=exc)

        logger.info(
            "Account %s moved %s → %s by %s%s",
            account_id, from_state, to_state, actor,
            f" ({actor_id})" if actor_id else "",
        )
        return TransitionResult(account_id, from_state, to_state, changed_at, record=stored)

    # ------------------------------------------------------------------
    # Account creation (intake collaborator)
    # ------------------------------------------------------------------
    def open_account(
        self,
        account_id: str,
        actor: ActorCategory = ActorCategory.CUSTOMER,
        actor_id: Optional[str] = None,
        email: Optional[str] = None,
        business_name: Optional[str] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> ClientAccount:
        """
        Create *account_id* in the initial state and log the creation record.

        Raises :class:`AccountExists` if the id is taken.  A ledger failure
        here is queued for reconciliation like any other.
        """
        now = self.clock.now()
        account = ClientAccount(
            account_id=account_id,
            state=INITIAL_STATE,
            state_changed_at=now,
            email=email,
            business_name=business_name,
            payload=dict(payload or {}),
        )
        self.store.add(account)

        record = TransitionRecord(
            account_id=account_id,
            from_state=None,
            to_state=INITIAL_STATE,
            actor=ActorCategory(actor),
            actor_id=actor_id,
            created_at=now,
        )
        try:
            self.ledger.append(record)
        except LedgerWriteFailure as exc:
            logger.error("Account %s opened but the ledger append failed: %s", account_id, exc)
            self.reconciliation.push(record, exc)
        else:
            logger.info("Opened account %s in %s", account_id, INITIAL_STATE)
        return account

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------
    def available_transitions(self, account_id: str, actor: ActorCategory) -> List[ClientState]:
        """States *actor* could legally move *account_id* to right now."""
        return next_states(self.store.get(account_id).state, ActorCategory(actor))

    def history(self, account_id: str) -> List[TransitionRecord]:
        self.store.get(account_id)  # AccountNotFound for unknown ids
        return self.ledger.history(account_id)

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------
    def reconcile(self) -> int:
        """Backfill queued records into the ledger; returns how many were written."""
        return self.reconciliation.backfill(self.ledger)
