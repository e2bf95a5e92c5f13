#!/usr/bin/env python3
from __future__ import annotations

import argparse
import logging
import sys
from typing import Any

from tubeheads_backend.config import load_env, load_settings
from tubeheads_backend.db import create_store
from tubeheads_backend.db.store import SHOWS, DocumentStore
from tubeheads_backend.db.supabase import SupabaseDocumentStore
from tubeheads_backend.errors import CatalogError
from tubeheads_backend.services import CoreServices
from tubeheads_backend.services.ratings import aggregate_patch


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="reconcile_show_aggregates",
        description="Recount review_count and re-apply review ratings on social.shows.",
    )
    parser.add_argument("--all", action="store_true", help="Reconcile every show.")
    parser.add_argument("--show-id", action="append", default=[], help="social.shows id. Repeatable.")
    parser.add_argument("--dry-run", action="store_true", help="Report drift without writing.")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging.")
    return parser.parse_args(argv)


def _target_show_ids(store: DocumentStore, args: argparse.Namespace) -> list[str]:
    show_ids = [str(show_id).strip() for show_id in (args.show_id or []) if str(show_id).strip()]
    if show_ids:
        return show_ids
    return [str(row["id"]) for row in store.query(SHOWS, order_by="id")]


def _drift(services: CoreServices, show_id: str) -> dict[str, Any]:
    show = services.catalog.get_show(show_id)
    reviews = services.reviews.for_show(show.id)
    expected = aggregate_patch(
        show.model_dump(include={"ratings", "review_count"}),
        set_ratings={review.user_id: review.rating for review in reviews},
    )
    return {
        "review_count": (show.review_count, len(reviews)),
        "ratings": (len(show.ratings), len(expected["ratings"])),
        "changed": show.review_count != len(reviews) or show.ratings != expected["ratings"],
    }


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv if argv is not None else sys.argv[1:])
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    if not args.all and not args.show_id:
        print("reconcile_show_aggregates: pass --all or at least one --show-id", file=sys.stderr)
        return 2

    load_env()
    settings = load_settings()
    store = create_store(settings)
    if isinstance(store, SupabaseDocumentStore):
        store.assert_tables_exist()
    services = CoreServices.create(store, max_attempts=settings.cas_max_attempts)

    show_ids = _target_show_ids(store, args)
    print(f"reconcile_show_aggregates: candidates={len(show_ids)} dry_run={args.dry_run}")

    repaired = 0
    unchanged = 0
    failed = 0
    for show_id in show_ids:
        try:
            drift = _drift(services, show_id)
            if not drift["changed"]:
                unchanged += 1
                continue
            before_count, after_count = drift["review_count"]
            if args.dry_run:
                print(f"DRIFT show={show_id} review_count={before_count}->{after_count}")
            else:
                services.reviews.reconcile_show(show_id)
                print(f"REPAIRED show={show_id} review_count={before_count}->{after_count}")
            repaired += 1
        except CatalogError as exc:
            failed += 1
            print(f"ERROR: reconcile failed show={show_id} error={exc}")

    print(
        "reconcile_show_aggregates: "
        f"{'drifted' if args.dry_run else 'repaired'}={repaired} unchanged={unchanged} failed={failed}"
    )
    return 1 if failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
