"""
clientflow.models
=================

Enums and dataclasses describing a client account and the transitions it
goes through.  Like the rest of the domain layer these objects carry **no**
external‑library dependencies; persistence lives in :pymod:`clientflow.db`.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional


class ClientState(str, Enum):
    """Production stages a client account moves through."""
    INTAKE = "intake"
    DESIGN_REVIEW = "design-review"
    PREVIEW_READY = "preview-ready"
    ACTIVATION = "activation"
    FINAL_ONBOARDING = "final-onboarding"
    LIVE = "live"
    SUPPORT = "support"

    def __str__(self) -> str:        # nicer REPL / log display
        return self.value


class ActorCategory(str, Enum):
    """Coarse permission class of whoever triggers a transition."""
    CUSTOMER = "customer"
    ADMINISTRATOR = "administrator"
    SYSTEM = "system"
    WEBHOOK = "webhook"

    def __str__(self) -> str:
        return self.value


INITIAL_STATE = ClientState.INTAKE


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TransitionRule:
    """
    One edge of the lifecycle graph.

    Parameters
    ----------
    source : ClientState
        State the account must currently be in.
    target : ClientState
        State the account moves to.
    actors : frozenset[ActorCategory]
        Actor categories allowed to fire this edge.
    note : str, default=""
        Short business description ("send back for edits", ...).
    """
    source: ClientState
    target: ClientState
    actors: FrozenSet[ActorCategory]
    note: str = ""

    def permits(self, actor: ActorCategory) -> bool:
        return actor in self.actors


@dataclass
class ClientAccount:
    """
    Core record tracked by clientflow.

    Parameters
    ----------
    account_id : str
        Unique identifier assigned by the intake collaborator.
    state : ClientState, default=INTAKE
        Current production stage.
    state_changed_at : datetime.datetime
        When the account entered ``state`` (timezone‑aware, UTC).
    email : str | None, default=None
        Contact address captured at sign‑up.
    business_name : str | None, default=None
        Display name of the customer's business.
    payload : dict, default={}
        Opaque business attributes.  Never interpreted by the core.
    """
    account_id: str
    state: ClientState = INITIAL_STATE
    state_changed_at: datetime = field(default_factory=utcnow)
    email: Optional[str] = None
    business_name: Optional[str] = None
    payload: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.account_id:
            raise ValueError("account_id must not be empty")
        self.state = ClientState(self.state)
        if self.state_changed_at.tzinfo is None:
            raise ValueError("state_changed_at must be timezone-aware")

    def copy(self) -> "ClientAccount":
        """Return a detached copy (payload included)."""
        return replace(self, payload=dict(self.payload))


@dataclass(frozen=True)
class TransitionRecord:
    """
    Immutable ledger fact for one successful transition.

    ``from_state`` is ``None`` only for the record written when the account
    is opened.  ``record_id`` is assigned by the ledger on append.
    """
    account_id: str
    from_state: Optional[ClientState]
    to_state: ClientState
    actor: ActorCategory
    created_at: datetime
    actor_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    record_id: Optional[int] = None

    @property
    def is_creation(self) -> bool:
        return self.from_state is None

    def with_id(self, record_id: int) -> "TransitionRecord":
        return replace(self, record_id=record_id)
