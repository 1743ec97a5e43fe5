"""
tests/test_cli.py
=================

Tests for the `python -m clientflow.cli` entry point, run in‑process with
an injected in‑memory executor.
"""

import pytest

from clientflow.cli import main
from clientflow.db import ClientAccountDB, TransitionRecordDB, make_engine
from clientflow.executor import ReconciliationQueue, TransitionExecutor
from clientflow.models import ClientState
from clientflow.store_db import SQLAccountStore, SQLTransitionLedger


def test_states_lists_every_state(capsys):
    assert main(["states"]) == 0
    out = capsys.readouterr().out
    for s in ClientState:
        assert s.value in out


def test_open_transition_history(executor, capsys):
    assert main(["open", "acct-1", "--email", "a@example.com"], executor=executor) == 0
    assert main(["transition", "acct-1", "design-review", "--actor", "customer",
                 "--meta", "via=cli"], executor=executor) == 0
    assert executor.store.get("acct-1").state is ClientState.DESIGN_REVIEW
    assert executor.history("acct-1")[-1].metadata == {"via": "cli"}

    capsys.readouterr()
    assert main(["history", "acct-1"], executor=executor) == 0
    out = capsys.readouterr().out
    assert "- → intake" in out
    assert "intake → design-review  by customer" in out


def test_rejection_exits_one(executor, capsys):
    main(["open", "acct-1"], executor=executor)
    assert main(["transition", "acct-1", "live", "--actor", "administrator"], executor=executor) == 1
    assert "INVALID_TRANSITION" in capsys.readouterr().err


def test_unknown_account_exits_one(executor, capsys):
    assert main(["history", "ghost"], executor=executor) == 1
    assert "ACCOUNT_NOT_FOUND" in capsys.readouterr().err


def test_bad_meta_is_usage_error(executor):
    main(["open", "acct-1"], executor=executor)
    with pytest.raises(SystemExit):
        main(["transition", "acct-1", "design-review", "--actor", "customer", "--meta", "oops"],
             executor=executor)


def test_init_db_creates_schema(tmp_path):
    db = tmp_path / "cli.db"
    assert main(["--db-url", f"sqlite:///{db}", "init-db"]) == 0
    assert db.exists()


def test_pending_and_backfill(store, flaky_ledger, clock, capsys):
    executor = TransitionExecutor(store, flaky_ledger, clock)
    main(["open", "acct-1"], executor=executor)
    flaky_ledger.broken = True
    assert main(["transition", "acct-1", "design-review", "--actor", "customer"], executor=executor) == 0
    assert "warning:" in capsys.readouterr().err

    assert main(["pending"], executor=executor) == 0
    assert "acct-1  intake → design-review" in capsys.readouterr().out

    assert main(["backfill"], executor=executor) == 1
    assert "backfilled 0, 1 pending" in capsys.readouterr().out

    flaky_ledger.broken = False
    assert main(["backfill"], executor=executor) == 0
    assert "backfilled 1, 0 pending" in capsys.readouterr().out
    assert [r.to_state for r in executor.history("acct-1")] == [ClientState.INTAKE, ClientState.DESIGN_REVIEW]


def test_backfill_drains_spool_from_earlier_run(tmp_path, flaky_ledger, clock, capsys):
    url = f"sqlite:///{tmp_path / 'cli.db'}"
    spool = tmp_path / "pending.json"
    assert main(["--db-url", url, "--spool", str(spool), "open", "acct-1"]) == 0

    # an earlier process moved the account but could not log it
    engine = make_engine(url)
    earlier = TransitionExecutor(SQLAccountStore(engine), flaky_ledger, clock, ReconciliationQueue(spool))
    flaky_ledger.broken = True
    earlier.execute("acct-1", "design-review", "customer")
    assert spool.exists()

    capsys.readouterr()
    assert main(["--db-url", url, "--spool", str(spool), "backfill"]) == 0
    assert "backfilled 1, 0 pending" in capsys.readouterr().out
    assert main(["--db-url", url, "--spool", str(spool), "history", "acct-1"]) == 0
    assert "intake → design-review" in capsys.readouterr().out
    engine.dispose()


def test_unreadable_database_exits_one(sql_engine, clock, capsys):
    executor = TransitionExecutor(SQLAccountStore(sql_engine), SQLTransitionLedger(sql_engine), clock)
    executor.open_account("acct-1")
    TransitionRecordDB.__table__.drop(sql_engine)
    ClientAccountDB.__table__.drop(sql_engine)

    assert main(["history", "acct-1"], executor=executor) == 1
    assert "STORAGE_READ_FAILED" in capsys.readouterr().err
