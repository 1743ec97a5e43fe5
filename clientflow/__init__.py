"""
clientflow
==========

Lifecycle engine for a web‑design service business: tracks every client
account through intake, design review, preview, payment activation, final
onboarding, go‑live and support, and records each move in an append‑only
ledger.

Import structure
----------------
`import clientflow` is intentionally cheap: no sub‑module is imported by
default.  SQL persistence
(:pymod:`clientflow.db`, :pymod:`clientflow.store_db`) pulls in SQLModel
and is only imported when you ask for it.

Sub‑modules
~~~~~~~~~~~
- :pymod:`clientflow.models`     – ``ClientAccount``, ``TransitionRecord`` + enums
- :pymod:`clientflow.registry`   – the rule table and its NetworkX graph
- :pymod:`clientflow.lifecycle`  – authorizer (`is_allowed`, `reachable_states`)
- :pymod:`clientflow.store`      – Account Store contract + in‑memory store
- :pymod:`clientflow.ledger`     – Transition Ledger contract + replay helpers
- :pymod:`clientflow.executor`   – ``TransitionExecutor``
- :pymod:`clientflow.routes`     – state → portal route / label lookups

Quick start
-----------
>>> from clientflow.executor import TransitionExecutor
>>> from clientflow.ledger import InMemoryTransitionLedger
>>> from clientflow.models import ActorCategory, ClientState
>>> from clientflow.store import InMemoryAccountStore
>>> ex = TransitionExecutor(InMemoryAccountStore(), InMemoryTransitionLedger())
>>> _ = ex.open_account("acct-1")
>>> ex.execute("acct-1", ClientState.DESIGN_REVIEW, ActorCategory.CUSTOMER).new_state
<ClientState.DESIGN_REVIEW: 'design-review'>

"""

__all__ = [
    "models",
    "registry",
    "lifecycle",
    "store",
    "ledger",
    "executor",
    "routes",
]

__version__ = "0.1.0"
