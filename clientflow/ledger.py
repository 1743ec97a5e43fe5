"""
clientflow.ledger
=================

Append‑only transition ledger.

The ledger is the source of truth for *history*; the account store is the
source of truth for the *current* state.  Replaying an account's records
in creation order must land on the state the store holds.
"""

from __future__ import annotations

import itertools
import threading
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from .errors import HistoryGap
from .models import INITIAL_STATE, ClientState, TransitionRecord


class TransitionLedger(ABC):
    """Persistence contract for transition records.  No update, no delete."""

    @abstractmethod
    def append(self, record: TransitionRecord) -> TransitionRecord:
        """
        Persist *record* and return it with ``record_id`` assigned.

        Raises :class:`LedgerWriteFailure` when the write fails.
        """

    @abstractmethod
    def history(self, account_id: str) -> List[TransitionRecord]:
        """
        All records for *account_id* ordered by ``(created_at, record_id)``.

        A record backfilled after later appends still sorts into its place
        in the chain.
        """


class InMemoryTransitionLedger(TransitionLedger):
    """List‑backed ledger; record ids come from a monotonic counter."""

    def __init__(self) -> None:
        self._records: List[TransitionRecord] = []
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def append(self, record: TransitionRecord) -> TransitionRecord:
        with self._lock:
            stored = record.with_id(next(self._ids))
            self._records.append(stored)
        return stored

    def history(self, account_id: str) -> List[TransitionRecord]:
        with self._lock:
            mine = [r for r in self._records if r.account_id == account_id]
        return sorted(mine, key=lambda r: (r.created_at, r.record_id))

    def __iter__(self):
        with self._lock:
            return iter(list(self._records))

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


# ---------------------------------------------------------------------
# History reconstruction
# ---------------------------------------------------------------------
def replay(
    records: Iterable[TransitionRecord],
    start: Optional[ClientState] = None,
) -> List[ClientState]:
    """
    Return the sequence of states visited by replaying *records*.

    The walk starts at *start* if given, otherwise at the first record's
    ``from_state`` (the initial state for a creation record).  Every
    following record must start where the previous one ended, else
    :class:`HistoryGap` is raised.

    >>> replay([])
    []
    """
    states: List[ClientState] = [start] if start is not None else []
    current = start
    for rec in records:
        if rec.is_creation:
            if current is not None:
                raise HistoryGap(rec, current)
            current = rec.to_state
            states.append(current)
            continue
        if current is None:
            current = rec.from_state
            states.append(current)
        elif rec.from_state != current:
            raise HistoryGap(rec, current)
        current = rec.to_state
        states.append(current)
    return states


def reconstruct_state(records: Iterable[TransitionRecord]) -> ClientState:
    """Final state implied by *records* (the initial state if empty)."""
    states = replay(records)
    return states[-1] if states else INITIAL_STATE
