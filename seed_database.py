#!/usr/bin/env python
"""
Seed database with sample client accounts for testing.

Every account is opened in intake and then walked through real transitions
with the executor, so the ledger holds a consistent history for each one.
"""

import sys

from clientflow.db import create_all, make_engine
from clientflow.errors import AccountExists
from clientflow.executor import TransitionExecutor
from clientflow.models import ActorCategory, ClientState
from clientflow.store_db import SQLAccountStore, SQLTransitionLedger

C = ActorCategory.CUSTOMER
A = ActorCategory.ADMINISTRATOR
S = ActorCategory.SYSTEM
W = ActorCategory.WEBHOOK

# (account_id, business name, email, path of (target, actor) steps)
SAMPLE_ACCOUNTS = [
    ("acct-harbor-cafe", "Harbor Café", "hello@harborcafe.example", []),
    ("acct-brightline", "Brightline Electric", "ops@brightline.example", [
        (ClientState.DESIGN_REVIEW, C),
    ]),
    ("acct-lumen-spa", "Lumen Spa", "front@lumenspa.example", [
        (ClientState.DESIGN_REVIEW, C),
        (ClientState.PREVIEW_READY, A),
    ]),
    ("acct-oak-realty", "Oak & Pine Realty", "team@oakpine.example", [
        (ClientState.DESIGN_REVIEW, C),
        (ClientState.PREVIEW_READY, A),
        (ClientState.DESIGN_REVIEW, C),
        (ClientState.PREVIEW_READY, A),
        (ClientState.ACTIVATION, C),
    ]),
    ("acct-northside-gym", "Northside Gym", "coach@northside.example", [
        (ClientState.DESIGN_REVIEW, C),
        (ClientState.PREVIEW_READY, A),
        (ClientState.ACTIVATION, C),
        (ClientState.FINAL_ONBOARDING, W),
    ]),
    ("acct-redline-auto", "Redline Auto", "shop@redline.example", [
        (ClientState.DESIGN_REVIEW, C),
        (ClientState.PREVIEW_READY, A),
        (ClientState.ACTIVATION, C),
        (ClientState.FINAL_ONBOARDING, S),
        (ClientState.LIVE, A),
    ]),
    ("acct-willow-books", "Willow Books", "owner@willowbooks.example", [
        (ClientState.DESIGN_REVIEW, C),
        (ClientState.PREVIEW_READY, A),
        (ClientState.ACTIVATION, C),
        (ClientState.FINAL_ONBOARDING, W),
        (ClientState.LIVE, A),
        (ClientState.SUPPORT, C),
    ]),
]


def seed_database(db_url=None):
    """Seed the database with sample accounts."""
    engine = make_engine(db_url)
    create_all(engine)
    ex = TransitionExecutor(SQLAccountStore(engine), SQLTransitionLedger(engine))

    created = 0
    for account_id, name, email, steps in SAMPLE_ACCOUNTS:
        try:
            ex.open_account(account_id, email=email, business_name=name)
        except AccountExists:
            print(f"Skipping {account_id} (already present)")
            continue
        for target, actor in steps:
            ex.execute(account_id, target, actor, metadata={"source": "seed"})
        created += 1
        print(f"Added account: {name} → {ex.store.get(account_id).state.value}")

    print(f"Successfully seeded {created} accounts")
    return created


if __name__ == "__main__":
    seed_database(sys.argv[1] if len(sys.argv) > 1 else None)
