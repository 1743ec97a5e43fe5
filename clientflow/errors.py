"""
clientflow.errors
=================

Typed failures raised by the lifecycle core.

Every exception carries a machine‑readable ``code`` plus the structured
fields a caller needs to report it, so HTTP handlers, webhook receivers
and scheduled jobs can branch on type instead of parsing messages::

    LifecycleError
    ├── AccountNotFound        ACCOUNT_NOT_FOUND
    ├── AccountExists          ACCOUNT_EXISTS
    ├── InvalidTransition      INVALID_TRANSITION
    ├── Conflict               CONCURRENT_UPDATE
    ├── StoreWriteFailure      STORE_WRITE_FAILED
    ├── LedgerWriteFailure     LEDGER_WRITE_FAILED
    ├── StorageReadFailure     STORAGE_READ_FAILED
    ├── HistoryGap             HISTORY_GAP
    └── RegistryError          INVALID_REGISTRY

All of them are recoverable at the caller boundary.  The core never
retries on its own.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .models import ActorCategory, ClientState, TransitionRecord


class LifecycleError(Exception):
    """Base class for every clientflow failure."""

    code: str = "LIFECYCLE_ERROR"


class AccountNotFound(LifecycleError, KeyError):
    code = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"account {account_id!r} not found")

    def __str__(self) -> str:        # KeyError would repr() the message
        return self.args[0]


class AccountExists(LifecycleError):
    code = "ACCOUNT_EXISTS"

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"account {account_id!r} already exists")


class InvalidTransition(LifecycleError, ValueError):
    """
    No rule permits ``actor`` to move an account from ``source`` to
    ``target``.  An expected business outcome, not a system fault.
    """

    code = "INVALID_TRANSITION"

    def __init__(self, source: "ClientState", target: "ClientState", actor: "ActorCategory"):
        self.source = source
        self.target = target
        self.actor = actor
        super().__init__(
            f"illegal transition {source.value} → {target.value} by {actor.value}"
        )


class Conflict(LifecycleError):
    """The account's state changed between read and write (race lost)."""

    code = "CONCURRENT_UPDATE"

    def __init__(
        self,
        account_id: str,
        expected: "ClientState",
        actual: Optional["ClientState"] = None,
    ):
        self.account_id = account_id
        self.expected = expected
        self.actual = actual
        found = actual.value if actual is not None else "unknown"
        super().__init__(
            f"account {account_id!r} is no longer in {expected.value} (found {found})"
        )


class StoreWriteFailure(LifecycleError):
    """Persistence fault while writing state.  No state change took effect."""

    code = "STORE_WRITE_FAILED"

    def __init__(self, account_id: str, cause: Optional[BaseException] = None):
        self.account_id = account_id
        self.cause = cause
        super().__init__(f"could not write state for account {account_id!r}: {cause}")


class LedgerWriteFailure(LifecycleError):
    """
    The audit record could not be persisted.

    When this happens after a state write the transition *did* take effect;
    the executor reports it on the result instead of raising it.
    """

    code = "LEDGER_WRITE_FAILED"

    def __init__(self, record: "TransitionRecord", cause: Optional[BaseException] = None):
        self.record = record
        self.cause = cause
        super().__init__(
            f"could not append ledger record for account {record.account_id!r}: {cause}"
        )


class StorageReadFailure(LifecycleError):
    """The store or ledger could not be read.  Nothing was changed."""

    code = "STORAGE_READ_FAILED"

    def __init__(self, what: str, account_id: Optional[str] = None, cause: Optional[BaseException] = None):
        self.what = what
        self.account_id = account_id
        self.cause = cause
        target = f" for account {account_id!r}" if account_id else ""
        super().__init__(f"could not read {what}{target}: {cause}")


class HistoryGap(LifecycleError):
    """Replayed records do not chain (``from_state`` ≠ previous ``to_state``)."""

    code = "HISTORY_GAP"

    def __init__(self, record: "TransitionRecord", expected: "ClientState"):
        self.record = record
        self.expected = expected
        found = record.from_state.value if record.from_state else None
        super().__init__(
            f"record {record.record_id} starts from {found}, expected {expected.value}"
        )


class RegistryError(LifecycleError):
    code = "INVALID_REGISTRY"
