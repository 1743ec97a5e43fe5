"""
clientflow.lifecycle
====================

Transition authorizer for a :class:`clientflow.models.ClientAccount`.

Pure functions over :pymod:`clientflow.registry`: given the current
state, the requested state and the acting party's category, decide
whether the move is legal.  Anything not listed in the rule table is
rejected, including self‑transitions and skipped stages.

The helper :pyfunc:`advance_status` mutates an account **in‑place** after
validating the transition.  Durable writes go through
:class:`clientflow.executor.TransitionExecutor` instead.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import List, Optional, Set

from .errors import InvalidTransition
from .models import ActorCategory, ClientAccount, ClientState, utcnow
from .registry import rules_for


def is_allowed(source: ClientState, target: ClientState, actor: ActorCategory) -> bool:
    """True iff some rule leaving *source* reaches *target* and lists *actor*."""
    return any(r.target == target and r.permits(actor) for r in rules_for(source))


def next_states(source: ClientState, actor: ActorCategory) -> List[ClientState]:
    """Targets *actor* may move to from *source*, in rule‑table order."""
    return [r.target for r in rules_for(source) if r.permits(actor)]


def reachable_states(source: ClientState, actor: ActorCategory) -> Set[ClientState]:
    """Same as :pyfunc:`next_states`, as a set."""
    return set(next_states(source, actor))


def check_transition(source: ClientState, target: ClientState, actor: ActorCategory) -> None:
    """Raise :class:`InvalidTransition` unless the move is allowed."""
    source, target, actor = ClientState(source), ClientState(target), ActorCategory(actor)
    if not is_allowed(source, target, actor):
        raise InvalidTransition(source, target, actor)


TICK = timedelta(microseconds=1)


def next_timestamp(now: datetime, previous: datetime) -> datetime:
    """
    Timestamp for a state change that follows one made at *previous*.

    Always strictly later than *previous*, so an account's records sort
    into transition order by ``created_at`` alone.
    """
    return now if now > previous else previous + TICK


def advance_status(
    account: ClientAccount,
    new_state: ClientState,
    actor: ActorCategory,
    now: Optional[datetime] = None,
) -> None:
    """
    Change :pyattr:`account.state` if the transition is legal,
    otherwise raise :class:`InvalidTransition` (a ``ValueError``).

    Examples
    --------
    >>> a = ClientAccount("acct-1")
    >>> advance_status(a, ClientState.DESIGN_REVIEW, ActorCategory.CUSTOMER)
    >>> advance_status(a, ClientState.LIVE, ActorCategory.ADMINISTRATOR)
    Traceback (most recent call last):
        ...
    clientflow.errors.InvalidTransition: illegal transition design-review → live by administrator
    """
    check_transition(account.state, new_state, actor)
    account.state = new_state
    account.state_changed_at = next_timestamp(now or utcnow(), account.state_changed_at)
