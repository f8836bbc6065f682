"""
Palm_Task.main

Command line front end for the offline sync engine.

    palm-task sync
    palm-task status
    palm-task tasks --sector 305 --search "coffee" --sort-coins
    palm-task non-buyers --sector 305
    palm-task stats --sector 305
    palm-task image "Cafe Pilao 500g"

Everything except `sync` works offline from the local store.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from Palm_Task.config.config_store import load_config
from Palm_Task.data.schema import COLLECTIONS, initialize_database
from Palm_Task.domain.errors import NetworkUnavailable, SyncError, UpstreamError
from Palm_Task.services.performance_service import summarize
from Palm_Task.services.sync_service import SyncService
from Palm_Task.services.task_query_service import (
    filter_by_sector,
    filter_non_buyers,
    filter_tasks,
    find_consultant,
)
from Palm_Task.utils.app_logging import configure_logging

EXIT_SUCCESS = 0
EXIT_COMMAND_ERROR = 1
EXIT_OFFLINE = 2
EXIT_UPSTREAM = 3
EXIT_STORAGE = 4


def _build_service(args: argparse.Namespace) -> SyncService:
    cfg = load_config(Path(args.config) if args.config else None)
    base_dir = Path(args.db_dir) if args.db_dir else None
    return SyncService(config=cfg, base_dir=base_dir)


# ---------- Commands ----------

def cmd_init_db(args: argparse.Namespace) -> int:
    svc = _build_service(args)
    initialize_database(svc.base_dir)
    print("Local store ready.")
    return EXIT_SUCCESS


def cmd_sync(args: argparse.Namespace) -> int:
    svc = _build_service(args)
    outcome = svc.synchronize()
    if not outcome.ok:
        print(f"Sync failed: {outcome.error}", file=sys.stderr)
        if isinstance(outcome.error, NetworkUnavailable):
            return EXIT_OFFLINE
        if isinstance(outcome.error, UpstreamError):
            return EXIT_UPSTREAM
        return EXIT_STORAGE

    print(f"Synced at {outcome.synced_at}")
    for name, n in outcome.counts.items():
        print(f" - {name}: {n}")
    if outcome.skipped_feeds:
        print(f" (kept cached copy of: {', '.join(outcome.skipped_feeds)})")
    print(f" avatars cached: {outcome.avatars_inlined}")
    return EXIT_SUCCESS


def cmd_status(args: argparse.Namespace) -> int:
    svc = _build_service(args)
    print(f"Last sync: {svc.last_synced_at() or 'never'}")
    for name in COLLECTIONS:
        print(f" - {name}: {svc.store.count(name)}")
    return EXIT_SUCCESS


def cmd_tasks(args: argparse.Namespace) -> int:
    data = _build_service(args).load_cached()
    tasks = filter_tasks(
        filter_by_sector(data.tasks, args.sector),
        cluster=args.cluster,
        category=args.category,
        subject=args.subject,
        flag_score=args.flag_score,
        search=args.search or "",
        sort_by_coins=args.sort_coins,
    )
    for t in tasks:
        flag = " [NON-BUYER]" if t.is_non_buyer else ""
        print(f"[{t.id}] {t.pdv_name} ({t.pdv_code}) {t.coins} coins {t.priority}{flag}")
        if t.mix_total:
            print(f"      mix {t.bought_count}/{t.mix_total} ({t.mix_percent}%), missing {t.missing_count}")
        for sku in t.associated_skus:
            print(f"      - {sku}: {data.resolve_image(sku) or 'no image'}")
    print(f"{len(tasks)} task(s)")
    return EXIT_SUCCESS


def cmd_non_buyers(args: argparse.Namespace) -> int:
    data = _build_service(args).load_cached()
    rows = filter_non_buyers(data.non_buyers, args.sector, args.search or "")
    for nb in rows:
        print(f"{nb.pdv_code}  {nb.fantasy_name}  last visit: {nb.last_visit or '-'}")
    print(f"{len(rows)} non-buyer(s)")
    return EXIT_SUCCESS


def cmd_stats(args: argparse.Namespace) -> int:
    data = _build_service(args).load_cached()
    tasks = filter_by_sector(data.tasks, args.sector)
    summary = summarize(tasks, filter_by_sector(data.non_buyers, args.sector))

    consultant = find_consultant(data.consultants, args.sector)
    who = consultant.name if consultant and consultant.name else f"Sector {args.sector}"
    print(f"{who}: {summary.task_count} tasks, {summary.total_coins} coins, "
          f"{summary.non_buyer_count} non-buyers")

    for title, entries in (
        ("Cluster", summary.by_cluster),
        ("Category", summary.by_category),
        ("Subject", summary.by_subject),
    ):
        print(f"\n{title}:")
        for e in entries:
            print(f"  {e.label:<30} {e.value:>4}  {e.percent:5.1f}%")

    print("\nTop SKUs:")
    for s in summary.top_skus:
        suggestion = ""
        if data.resolve_image(s.name) is None:
            close = data.resolver.suggest(s.name, limit=1)
            suggestion = f"  (no image; closest: {close[0][0]})" if close else "  (no image)"
        print(f"  {s.name:<30} {s.count:>4} tasks, avg {s.avg_coins} coins{suggestion}")
    return EXIT_SUCCESS


def cmd_image(args: argparse.Namespace) -> int:
    data = _build_service(args).load_cached()
    match = data.resolver.match(args.name)
    if match.url is None:
        print(f"No image for {args.name!r}")
        for name, score in data.resolver.suggest(args.name):
            print(f"  maybe: {name} ({score:.0f})")
        return EXIT_COMMAND_ERROR
    print(f"{match.url}  (via {match.method})")
    return EXIT_SUCCESS


# ---------- Parser ----------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="palm-task", description="Palm Task offline data engine")
    parser.add_argument("--config", help="path to sync_config.json")
    parser.add_argument("--db-dir", help="directory holding the local store")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    parser.add_argument("--log-file", help="also write logs to this file")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="create the local store").set_defaults(func=cmd_init_db)
    sub.add_parser("sync", help="download all feeds (needs network)").set_defaults(func=cmd_sync)
    sub.add_parser("status", help="last sync and collection sizes").set_defaults(func=cmd_status)

    p = sub.add_parser("tasks", help="list tasks for a sector")
    p.add_argument("--sector", required=True)
    p.add_argument("--cluster")
    p.add_argument("--category")
    p.add_argument("--subject")
    p.add_argument("--flag-score", help="score flag, e.g. Sim")
    p.add_argument("--search")
    p.add_argument("--sort-coins", action="store_true")
    p.set_defaults(func=cmd_tasks)

    p = sub.add_parser("non-buyers", help="list non-buyers for a sector")
    p.add_argument("--sector", required=True)
    p.add_argument("--search")
    p.set_defaults(func=cmd_non_buyers)

    p = sub.add_parser("stats", help="performance summary for a sector")
    p.add_argument("--sector", required=True)
    p.set_defaults(func=cmd_stats)

    p = sub.add_parser("image", help="resolve a SKU name to an image url")
    p.add_argument("name")
    p.set_defaults(func=cmd_image)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(
        level=logging.DEBUG if args.verbose else logging.INFO,
        log_file=Path(args.log_file) if args.log_file else None,
    )
    try:
        return args.func(args)
    except SyncError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_STORAGE
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_COMMAND_ERROR


if __name__ == "__main__":
    sys.exit(main())
