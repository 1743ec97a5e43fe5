"""
Tests for the HTTP adapter in api.main.

These use FastAPI TestClient with the executor dependency overridden by an
in‑memory one, so no database is touched.
"""

import pytest
from fastapi.testclient import TestClient

from api.deps import get_executor
from api.main import app
from clientflow.errors import StorageReadFailure
from clientflow.executor import TransitionExecutor
from clientflow.models import ClientState
from clientflow.store import InMemoryAccountStore


@pytest.fixture
def client(executor):
    app.dependency_overrides[get_executor] = lambda: executor
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def _open(client, account_id="acct-1"):
    resp = client.post("/accounts", json={"account_id": account_id, "email": "owner@example.com"})
    assert resp.status_code == 201
    return resp.json()


def _move(client, to_state, actor, account_id="acct-1", **extra):
    return client.post(
        f"/accounts/{account_id}/transitions",
        json={"to_state": to_state, "actor": actor, **extra},
    )


def test_health(client):
    assert client.get("/").json()["status"] == "ok"


def test_states_catalog(client):
    data = client.get("/states").json()
    assert len(data) == 7
    assert data[1]["state"] == "design-review"


def test_open_and_get_account(client):
    body = _open(client)
    assert body["state"] == "intake"
    assert body["route"] == "/client/intake"
    assert client.get("/accounts/acct-1").json()["email"] == "owner@example.com"


def test_duplicate_open_is_conflict(client):
    _open(client)
    resp = client.post("/accounts", json={"account_id": "acct-1"})
    assert resp.status_code == 409
    assert resp.json()["detail"]["code"] == "ACCOUNT_EXISTS"


def test_unknown_account_is_404(client):
    assert client.get("/accounts/ghost").status_code == 404
    assert _move(client, "design-review", "customer", account_id="ghost").status_code == 404
    assert client.get("/accounts/ghost/history").status_code == 404


def test_valid_transition(client):
    _open(client)
    resp = _move(client, "design-review", "customer", metadata={"via": "intake-form"})
    assert resp.status_code == 200
    body = resp.json()
    assert (body["from_state"], body["state"]) == ("intake", "design-review")
    assert body["route"] == "/client/locked"
    assert body["ledger_written"] is True


def test_invalid_transition_is_422_with_details(client):
    _open(client)
    resp = _move(client, "live", "customer")
    assert resp.status_code == 422
    assert resp.json()["detail"] == {
        "code": "INVALID_TRANSITION",
        "from": "intake",
        "to": "live",
        "actor": "customer",
    }


def test_unknown_state_is_rejected_by_validation(client):
    _open(client)
    assert _move(client, "archived", "administrator").status_code == 422


def test_next_actions(client):
    _open(client)
    assert client.get("/accounts/acct-1/next", params={"actor": "customer"}).json() == ["design-review"]
    assert client.get("/accounts/acct-1/next", params={"actor": "webhook"}).json() == []


def test_history_and_status(client):
    _open(client)
    _open(client, "acct-2")
    _move(client, "design-review", "customer")
    _move(client, "preview-ready", "administrator", actor_id="admin-1")

    history = client.get("/accounts/acct-1/history").json()
    assert [(h["from_state"], h["to_state"]) for h in history] == [
        (None, "intake"),
        ("intake", "design-review"),
        ("design-review", "preview-ready"),
    ]
    assert history[-1]["actor_id"] == "admin-1"

    counts = client.get("/status").json()
    assert counts["preview-ready"] == 1
    assert counts["intake"] == 1
    assert set(counts) == {s.value for s in ClientState}


def test_executor_dependency_is_overridable(client, executor):
    assert app.dependency_overrides[get_executor]() is executor
    assert isinstance(executor, TransitionExecutor)


@pytest.fixture
def flaky_client(store, flaky_ledger, clock):
    executor = TransitionExecutor(store, flaky_ledger, clock)
    app.dependency_overrides[get_executor] = lambda: executor
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def test_ledger_failure_is_200_with_warning(flaky_client, flaky_ledger):
    _open(flaky_client)
    flaky_ledger.broken = True
    resp = _move(flaky_client, "design-review", "customer")
    assert resp.status_code == 200
    body = resp.json()
    assert body["state"] == "design-review"
    assert body["ledger_written"] is False
    assert "ledger record" in body["warning"] and "disk full" in body["warning"]
    assert flaky_client.get("/accounts/acct-1").json()["state"] == "design-review"


def test_reconciliation_backfill(flaky_client, flaky_ledger):
    _open(flaky_client)
    flaky_ledger.broken = True
    _move(flaky_client, "design-review", "customer")

    pending = flaky_client.get("/reconciliation").json()
    assert [(p["account_id"], p["from_state"], p["to_state"]) for p in pending] == [
        ("acct-1", "intake", "design-review"),
    ]
    assert flaky_client.post("/reconciliation/backfill").json() == {"written": 0, "pending": 1}

    flaky_ledger.broken = False
    _move(flaky_client, "preview-ready", "administrator")
    assert flaky_client.post("/reconciliation/backfill").json() == {"written": 1, "pending": 0}
    assert flaky_client.get("/reconciliation").json() == []

    history = flaky_client.get("/accounts/acct-1/history").json()
    assert [h["to_state"] for h in history] == ["intake", "design-review", "preview-ready"]


class _UnreadableStore(InMemoryAccountStore):
    def get(self, account_id):
        raise StorageReadFailure("account store", account_id, RuntimeError("connection refused"))


def test_unreadable_store_is_503(ledger, clock):
    executor = TransitionExecutor(_UnreadableStore(), ledger, clock)
    app.dependency_overrides[get_executor] = lambda: executor
    try:
        with TestClient(app) as c:
            resp = c.get("/accounts/acct-1")
            assert resp.status_code == 503
            assert resp.json()["detail"]["code"] == "STORAGE_READ_FAILED"
            assert _move(c, "design-review", "customer", account_id="acct-1").status_code == 503
    finally:
        app.dependency_overrides.clear()
