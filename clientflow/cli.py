"""
clientflow.cli
==============

Command line access to the lifecycle core, mainly for schedulers and
operators that need to fire transitions outside the HTTP app.

Examples
--------
$ python -m clientflow.cli init-db
$ python -m clientflow.cli open acct-42 --email owner@example.com
$ python -m clientflow.cli transition acct-42 design-review --actor customer
$ python -m clientflow.cli transition acct-42 final-onboarding --actor system --meta job=payment-sync
$ python -m clientflow.cli history acct-42
$ python -m clientflow.cli pending
$ python -m clientflow.cli backfill

Exit status is 0 on success and 1 when the core rejects the request.
``backfill`` also exits 1 while records remain queued.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Dict, List, Optional, Sequence

from clientflow.errors import LifecycleError
from clientflow.executor import ReconciliationQueue, TransitionExecutor
from clientflow.models import ActorCategory, ClientState
from clientflow.routes import label_for, route_for
from clientflow.settings import settings


def _parse_meta(pairs: List[str]) -> Dict[str, str]:
    meta: Dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"--meta expects key=value, got {pair!r}")
        meta[key] = value
    return meta


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="python -m clientflow.cli", description="clientflow lifecycle tools")
    parser.add_argument("--db-url", default=None, help="database URL (defaults to settings)")
    parser.add_argument("--spool", default=None, help="reconciliation spool file (defaults to settings)")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="create tables")
    sub.add_parser("states", help="list states with routes and labels")

    p_open = sub.add_parser("open", help="open a new account in intake")
    p_open.add_argument("account_id")
    p_open.add_argument("--email")
    p_open.add_argument("--business-name")

    p_tr = sub.add_parser("transition", help="attempt a state transition")
    p_tr.add_argument("account_id")
    p_tr.add_argument("to_state", choices=[s.value for s in ClientState])
    p_tr.add_argument("--actor", required=True, choices=[a.value for a in ActorCategory])
    p_tr.add_argument("--actor-id")
    p_tr.add_argument("--meta", action="append", default=[], metavar="KEY=VALUE")

    p_hist = sub.add_parser("history", help="print an account's ledger")
    p_hist.add_argument("account_id")

    sub.add_parser("pending", help="list transitions whose ledger record is still missing")
    sub.add_parser("backfill", help="append queued records to the ledger")
    return parser


def _sql_executor(db_url: Optional[str], spool: Optional[str]) -> TransitionExecutor:
    from clientflow.db import create_all, make_engine
    from clientflow.store_db import SQLAccountStore, SQLTransitionLedger

    engine = make_engine(db_url)
    create_all(engine)
    queue = ReconciliationQueue(spool or settings.reconciliation_file)
    return TransitionExecutor(SQLAccountStore(engine), SQLTransitionLedger(engine), reconciliation=queue)


def main(argv: Optional[Sequence[str]] = None, executor: Optional[TransitionExecutor] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=settings.log_level.upper())

    if args.command == "states":
        for s in ClientState:
            label = label_for(s)
            print(f"{s.value:<18} {route_for(s):<18} {label.display_name} – {label.description}")
        return 0

    if args.command == "init-db":
        from clientflow.db import create_all, make_engine

        create_all(make_engine(args.db_url))
        print("✅ clientflow schema initialised")
        return 0

    executor = executor or _sql_executor(args.db_url, args.spool)
    try:
        if args.command == "open":
            acct = executor.open_account(args.account_id, email=args.email, business_name=args.business_name)
            print(f"{acct.account_id}: {acct.state.value}")
        elif args.command == "transition":
            try:
                meta = _parse_meta(args.meta)
            except argparse.ArgumentTypeError as exc:
                parser.error(str(exc))
            result = executor.execute(args.account_id, args.to_state, args.actor, args.actor_id, meta)
            print(f"{result.account_id}: {result.from_state.value} → {result.new_state.value}")
            if result.ok_with_warning:
                print(f"warning: {result.ledger_error}", file=sys.stderr)
        elif args.command == "history":
            for rec in executor.history(args.account_id):
                src = rec.from_state.value if rec.from_state else "-"
                who = f"{rec.actor.value}:{rec.actor_id}" if rec.actor_id else rec.actor.value
                print(f"{rec.created_at.isoformat()}  {src} → {rec.to_state.value}  by {who}")
        elif args.command == "pending":
            for rec in executor.reconciliation.pending():
                src = rec.from_state.value if rec.from_state else "-"
                print(f"{rec.created_at.isoformat()}  {rec.account_id}  {src} → {rec.to_state.value}")
        elif args.command == "backfill":
            written = executor.reconcile()
            remaining = len(executor.reconciliation)
            print(f"backfilled {written}, {remaining} pending")
            if remaining:
                return 1
    except LifecycleError as exc:
        print(f"error [{exc.code}]: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
