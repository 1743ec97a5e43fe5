"""
clientflow.registry
===================

Static definition of the client lifecycle.

The rule table below is the single source of truth for which stage may
follow which, and who may trigger each move.  It is business policy, not
configuration, so it is frozen at import time and validated once.

The graph is deliberately *not* a DAG: ``design-review ⇄ preview-ready``
and ``live ⇄ support`` loop so an account can go back for revisions or
support without extra states.
"""

from __future__ import annotations

from collections import defaultdict
from functools import lru_cache
from typing import Dict, Iterable, List, Tuple

import networkx as nx

from .errors import RegistryError
from .models import INITIAL_STATE, ActorCategory, ClientState, TransitionRule

C = ActorCategory.CUSTOMER
A = ActorCategory.ADMINISTRATOR
S = ActorCategory.SYSTEM
W = ActorCategory.WEBHOOK


def _rule(source, target, *actors, note=""):
    return TransitionRule(source, target, frozenset(actors), note)


# ---------------------------------------------------------------------
# Allowed transitions: source → target, permitted actor categories
# ---------------------------------------------------------------------
RULES: Tuple[TransitionRule, ...] = (
    _rule(ClientState.INTAKE,           ClientState.DESIGN_REVIEW,    C,    note="submit intake"),
    _rule(ClientState.DESIGN_REVIEW,    ClientState.PREVIEW_READY,    A,    note="publish preview"),
    _rule(ClientState.DESIGN_REVIEW,    ClientState.INTAKE,           A,    note="send back for edits"),
    _rule(ClientState.PREVIEW_READY,    ClientState.ACTIVATION,       C,    note="approve preview"),
    _rule(ClientState.PREVIEW_READY,    ClientState.DESIGN_REVIEW,    C,    note="request revision"),
    _rule(ClientState.ACTIVATION,       ClientState.FINAL_ONBOARDING, W, S, note="payment succeeded"),
    _rule(ClientState.FINAL_ONBOARDING, ClientState.LIVE,             A,    note="deploy site"),
    _rule(ClientState.LIVE,             ClientState.SUPPORT,          S, C, note="support requested"),
    _rule(ClientState.SUPPORT,          ClientState.LIVE,             A,    note="support resolved"),
)


def validate_registry(rules: Iterable[TransitionRule]) -> None:
    """
    Raise :class:`RegistryError` unless *rules* form a usable lifecycle.

    Checks: no self‑loops, every rule names at least one actor, no
    duplicated ``(source, target)`` pair, every state has an outbound rule
    and every state is reachable from the initial state.
    """
    rules = list(rules)
    seen = set()
    for r in rules:
        if r.source is r.target:
            raise RegistryError(f"self-transition on {r.source.value}")
        if not r.actors:
            raise RegistryError(f"rule {r.source.value} → {r.target.value} has no actors")
        if (r.source, r.target) in seen:
            raise RegistryError(f"duplicate rule {r.source.value} → {r.target.value}")
        seen.add((r.source, r.target))

    g = _build_graph(rules)
    dead_ends = [s.value for s in ClientState if g.out_degree(s) == 0]
    if dead_ends:
        raise RegistryError(f"states without outbound rule: {', '.join(dead_ends)}")

    reachable = nx.descendants(g, INITIAL_STATE) | {INITIAL_STATE}
    orphans = [s.value for s in ClientState if s not in reachable]
    if orphans:
        raise RegistryError(f"states unreachable from {INITIAL_STATE.value}: {', '.join(orphans)}")


def _build_graph(rules: Iterable[TransitionRule]) -> nx.DiGraph:
    g = nx.DiGraph()
    g.add_nodes_from(ClientState)
    for r in rules:
        g.add_edge(r.source, r.target, actors=r.actors, note=r.note)
    return g


def _index(rules: Iterable[TransitionRule]) -> Dict[ClientState, Tuple[TransitionRule, ...]]:
    by_source: Dict[ClientState, List[TransitionRule]] = defaultdict(list)
    for r in rules:
        by_source[r.source].append(r)
    return {s: tuple(by_source.get(s, ())) for s in ClientState}


validate_registry(RULES)
_BY_SOURCE = _index(RULES)


# ---------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------
def rules_for(state: ClientState) -> List[TransitionRule]:
    """Outbound rules of *state*, in table order."""
    return list(_BY_SOURCE[ClientState(state)])


def all_rules() -> Tuple[TransitionRule, ...]:
    return RULES


@lru_cache(maxsize=1)
def transition_graph() -> nx.DiGraph:
    """
    Lifecycle as a NetworkX DiGraph.

    Nodes are :class:`ClientState` members; each edge has an ``actors``
    attribute (frozenset of :class:`ActorCategory`) and a ``note``.
    Treat the returned graph as read‑only.
    """
    return _build_graph(RULES)
