"""
api.main
========

HTTP layer over the lifecycle core.

Routes only translate request shapes into calls on
:class:`clientflow.executor.TransitionExecutor`; every decision about
what may happen lives in the core.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from clientflow.errors import (
    AccountExists,
    AccountNotFound,
    Conflict,
    InvalidTransition,
    StorageReadFailure,
    StoreWriteFailure,
)
from clientflow.executor import TransitionExecutor
from clientflow.models import ActorCategory, ClientAccount, ClientState, TransitionRecord
from clientflow.routes import route_for, state_catalog
from clientflow.settings import settings
from .deps import get_executor

logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)

app = FastAPI(
    title="clientflow API",
    version="0.1.0",
    description="HTTP layer over the client lifecycle state machine and transition ledger.",
)


# ---------- request / response shapes ----------
class OpenAccountRequest(BaseModel):
    account_id: str = Field(..., min_length=1)
    actor: ActorCategory = ActorCategory.CUSTOMER
    actor_id: Optional[str] = None
    email: Optional[str] = None
    business_name: Optional[str] = None
    payload: Dict[str, Any] = Field(default_factory=dict)


class TransitionRequest(BaseModel):
    to_state: ClientState
    actor: ActorCategory
    actor_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class AccountView(BaseModel):
    account_id: str
    state: ClientState
    state_changed_at: datetime
    route: str
    email: Optional[str] = None
    business_name: Optional[str] = None

    @classmethod
    def of(cls, acct: ClientAccount) -> "AccountView":
        return cls(
            account_id=acct.account_id,
            state=acct.state,
            state_changed_at=acct.state_changed_at,
            route=route_for(acct.state),
            email=acct.email,
            business_name=acct.business_name,
        )


class TransitionView(BaseModel):
    account_id: str
    from_state: ClientState
    state: ClientState
    state_changed_at: datetime
    route: str
    ledger_written: bool
    warning: Optional[str] = None


class RecordView(BaseModel):
    account_id: str
    record_id: Optional[int]
    from_state: Optional[ClientState]
    to_state: ClientState
    actor: ActorCategory
    actor_id: Optional[str]
    metadata: Dict[str, Any]
    created_at: datetime

    @classmethod
    def of(cls, rec: TransitionRecord) -> "RecordView":
        return cls(
            account_id=rec.account_id,
            record_id=rec.record_id,
            from_state=rec.from_state,
            to_state=rec.to_state,
            actor=rec.actor,
            actor_id=rec.actor_id,
            metadata=rec.metadata,
            created_at=rec.created_at,
        )


class BackfillView(BaseModel):
    written: int
    pending: int


def _not_found(exc: AccountNotFound) -> HTTPException:
    return HTTPException(status_code=404, detail={"code": exc.code, "account_id": exc.account_id})


@app.exception_handler(StorageReadFailure)
def storage_unavailable(request: Request, exc: StorageReadFailure):
    logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": {"code": exc.code}})


# ---------- health-check ----------
@app.get("/")
def root():
    return {"status": "ok", "msg": "clientflow API is alive"}


# ---------- GET /states ----------
@app.get("/states")
def states():
    return state_catalog()


# ---------- GET /status ----------
@app.get("/status")
def status_snapshot(ex: TransitionExecutor = Depends(get_executor)):
    counts: dict[str, int] = {s.value: 0 for s in ClientState}
    for acct in ex.store:
        counts[acct.state.value] += 1
    return counts


# ---------- POST /accounts ----------
@app.post("/accounts", status_code=201, response_model=AccountView)
def open_account(body: OpenAccountRequest, ex: TransitionExecutor = Depends(get_executor)):
    try:
        acct = ex.open_account(
            body.account_id,
            actor=body.actor,
            actor_id=body.actor_id,
            email=body.email,
            business_name=body.business_name,
            payload=body.payload,
        )
    except AccountExists as exc:
        raise HTTPException(status_code=409, detail={"code": exc.code, "account_id": exc.account_id})
    return AccountView.of(acct)


# ---------- GET /accounts/{account_id} ----------
@app.get("/accounts/{account_id}", response_model=AccountView)
def get_account(account_id: str, ex: TransitionExecutor = Depends(get_executor)):
    try:
        return AccountView.of(ex.store.get(account_id))
    except AccountNotFound as exc:
        raise _not_found(exc)


# ---------- GET /accounts/{account_id}/next ----------
@app.get("/accounts/{account_id}/next", response_model=List[ClientState])
def next_actions(
    account_id: str,
    actor: ActorCategory = Query(..., description="Actor category asking"),
    ex: TransitionExecutor = Depends(get_executor),
):
    try:
        return ex.available_transitions(account_id, actor)
    except AccountNotFound as exc:
        raise _not_found(exc)


# ---------- POST /accounts/{account_id}/transitions ----------
@app.post("/accounts/{account_id}/transitions", response_model=TransitionView)
def attempt_transition(
    account_id: str,
    body: TransitionRequest,
    ex: TransitionExecutor = Depends(get_executor),
):
    """
    Attempt one transition.

    404 unknown account, 422 no rule allows it, 409 lost a race (re‑fetch
    and retry), 503 the store could not be read or written.  A 200 with
    ``ledger_written=false`` means the state did change but the audit
    record is waiting for reconciliation.
    """
    try:
        result = ex.execute(account_id, body.to_state, body.actor, body.actor_id, body.metadata)
    except AccountNotFound as exc:
        raise _not_found(exc)
    except InvalidTransition as exc:
        raise HTTPException(
            status_code=422,
            detail={
                "code": exc.code,
                "from": exc.source.value,
                "to": exc.target.value,
                "actor": exc.actor.value,
            },
        )
    except Conflict as exc:
        raise HTTPException(status_code=409, detail={"code": exc.code, "message": str(exc)})
    except StoreWriteFailure as exc:
        raise HTTPException(status_code=503, detail={"code": exc.code})

    return TransitionView(
        account_id=result.account_id,
        from_state=result.from_state,
        state=result.new_state,
        state_changed_at=result.changed_at,
        route=route_for(result.new_state),
        ledger_written=result.ledger_written,
        warning=str(result.ledger_error) if result.ledger_error else None,
    )


# ---------- GET /accounts/{account_id}/history ----------
@app.get("/accounts/{account_id}/history", response_model=List[RecordView])
def account_history(account_id: str, ex: TransitionExecutor = Depends(get_executor)):
    try:
        return [RecordView.of(r) for r in ex.history(account_id)]
    except AccountNotFound as exc:
        raise _not_found(exc)


# ---------- GET /reconciliation ----------
@app.get("/reconciliation", response_model=List[RecordView])
def pending_records(ex: TransitionExecutor = Depends(get_executor)):
    """Transitions that took effect but are still missing from the ledger."""
    return [RecordView.of(r) for r in ex.reconciliation.pending()]


# ---------- POST /reconciliation/backfill ----------
@app.post("/reconciliation/backfill", response_model=BackfillView)
def backfill(ex: TransitionExecutor = Depends(get_executor)):
    written = ex.reconcile()
    return BackfillView(written=written, pending=len(ex.reconciliation))
