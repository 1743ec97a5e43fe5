"""
clientflow.store
================

Account Store contract plus a dictionary‑backed implementation.

The in‑memory store is intentionally simple (standard library only) so
the executor can be unit‑tested without a database.  The SQL adapter in
:pymod:`clientflow.store_db` honours the same contract.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Iterator, List

from .errors import AccountExists, AccountNotFound, Conflict
from .models import ClientAccount, ClientState


class AccountStore(ABC):
    """
    Persistence contract the executor relies on.

    ``set_state`` must be a compare‑and‑swap: it only writes when the
    stored state still equals *expected*, atomically with respect to other
    callers on the same account.
    """

    @abstractmethod
    def get(self, account_id: str) -> ClientAccount:
        """Return the account or raise :class:`AccountNotFound`."""

    @abstractmethod
    def add(self, account: ClientAccount) -> None:
        """Insert a new account; raise :class:`AccountExists` on duplicates."""

    @abstractmethod
    def set_state(
        self,
        account_id: str,
        expected: ClientState,
        new_state: ClientState,
        changed_at: datetime,
    ) -> ClientAccount:
        """
        Move the account to *new_state* iff it is still in *expected*.

        Raises :class:`Conflict`, :class:`AccountNotFound` or
        :class:`StoreWriteFailure`.
        """

    @abstractmethod
    def __iter__(self) -> Iterator[ClientAccount]:
        ...

    def find_by_state(self, state: ClientState) -> List[ClientAccount]:
        """Return all accounts currently at the given state."""
        return [a for a in self if a.state == state]

    def __len__(self) -> int:
        return sum(1 for _ in self)


class InMemoryAccountStore(AccountStore):
    """
    Dictionary‑backed store guarded by a single lock.

    Accounts are copied on the way in and out so callers can never touch
    the stored state except through :pymeth:`set_state`.

    Example
    -------
    >>> store = InMemoryAccountStore()
    >>> store.add(ClientAccount("acct-1"))
    >>> store.get("acct-1").state
    <ClientState.INTAKE: 'intake'>
    """

    def __init__(self) -> None:
        self._accounts: Dict[str, ClientAccount] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def get(self, account_id: str) -> ClientAccount:
        with self._lock:
            try:
                return self._accounts[account_id].copy()
            except KeyError:
                raise AccountNotFound(account_id) from None

    def add(self, account: ClientAccount) -> None:
        with self._lock:
            if account.account_id in self._accounts:
                raise AccountExists(account.account_id)
            self._accounts[account.account_id] = account.copy()

    def set_state(self, account_id, expected, new_state, changed_at):
        with self._lock:
            current = self._accounts.get(account_id)
            if current is None:
                raise AccountNotFound(account_id)
            if current.state != expected:
                raise Conflict(account_id, expected, current.state)
            current.state = new_state
            current.state_changed_at = changed_at
            return current.copy()

    # ------------------------------------------------------------------
    # Dunder helpers for convenience
    # ------------------------------------------------------------------
    def __iter__(self) -> Iterator[ClientAccount]:
        with self._lock:
            snapshot = [a.copy() for a in self._accounts.values()]
        return iter(snapshot)

    def __len__(self) -> int:
        with self._lock:
            return len(self._accounts)
