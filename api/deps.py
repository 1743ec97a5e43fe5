"""
api.deps
========

FastAPI dependency providers.

`get_executor` returns a process‑wide **TransitionExecutor** wired to the
SQL store and ledger.  Tests swap it out through
``app.dependency_overrides[get_executor]``.
"""

from functools import lru_cache

from clientflow.db import create_all, make_engine
from clientflow.executor import ReconciliationQueue, TransitionExecutor
from clientflow.settings import settings
from clientflow.store_db import SQLAccountStore, SQLTransitionLedger


@lru_cache
def get_executor() -> TransitionExecutor:
    """Singleton SQL‑backed executor; unlogged transitions spool to ``settings.reconciliation_file``."""
    engine = make_engine(settings.effective_database_url)
    create_all(engine)
    return TransitionExecutor(
        SQLAccountStore(engine),
        SQLTransitionLedger(engine),
        reconciliation=ReconciliationQueue(settings.reconciliation_file),
    )
