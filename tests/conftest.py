"""
Pytest configuration: make sure `import clientflow` works regardless of
where pytest is invoked, and provide the shared fixtures.

It prepends the project root (one directory above *tests/*) to
``sys.path`` **before** any tests are collected.
"""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# /path/to/project/tests -> project root
PROJECT_ROOT = Path(__file__).resolve().parent.parent

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from clientflow.clock import FixedClock  # noqa: E402
from clientflow.errors import LedgerWriteFailure  # noqa: E402
from clientflow.executor import TransitionExecutor  # noqa: E402
from clientflow.ledger import InMemoryTransitionLedger  # noqa: E402
from clientflow.models import ClientAccount, ClientState  # noqa: E402
from clientflow.store import InMemoryAccountStore  # noqa: E402

T0 = datetime(2024, 3, 1, 9, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    """Clock that moves forward one second on every read."""
    return FixedClock(T0, step=1)


@pytest.fixture
def store():
    return InMemoryAccountStore()


@pytest.fixture
def ledger():
    return InMemoryTransitionLedger()


class FlakyLedger(InMemoryTransitionLedger):
    """Ledger whose appends fail while ``broken`` is set."""

    def __init__(self):
        super().__init__()
        self.broken = False

    def append(self, record):
        if self.broken:
            raise LedgerWriteFailure(record, RuntimeError("disk full"))
        return super().append(record)


@pytest.fixture
def flaky_ledger():
    return FlakyLedger()


@pytest.fixture
def executor(store, ledger, clock):
    return TransitionExecutor(store, ledger, clock)


@pytest.fixture
def make_account(store):
    """Insert an account directly in the given state (bypasses the ledger)."""
    def _make(account_id="acct-1", state=ClientState.INTAKE):
        acct = ClientAccount(account_id, state=state, state_changed_at=T0)
        store.add(acct)
        return acct
    return _make


@pytest.fixture
def sql_engine(tmp_path):
    """Fresh SQLite file per test, schema created."""
    from clientflow.db import create_all, make_engine

    engine = make_engine(f"sqlite:///{tmp_path / 'clientflow-test.db'}", echo=False)
    create_all(engine)
    yield engine
    engine.dispose()
