"""CLI entry point for the discovery extraction listener."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from src.core.config import Settings
from src.core.db import count_contacts, init_db, list_run_reports
from src.core.errors import HistoryError
from src.core.fingerprint import compute_fingerprint
from src.core.schemas import Job, JobType
from src.pipeline.fetcher import compute_target_pages
from src.pipeline.orchestrator import listen, run_job
from src.storage.history import HistoryStore


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        default=None,
        help="Path to settings YAML file (optional; env vars are always applied)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Discovery extraction listener - fetch every page of UI-triggered searches",
    )
    subparsers = parser.add_subparsers(dest="command")

    # --- listen subcommand (default) ---
    listen_parser = subparsers.add_parser(
        "listen", help="Open the browser and extract searches triggered in the UI",
    )
    _add_common(listen_parser)

    # --- run subcommand ---
    run_parser = subparsers.add_parser("run", help="Run a single extraction job without a browser")
    run_parser.add_argument("--filters", required=True, help="Search filters as a JSON object")
    run_parser.add_argument("--total", required=True, type=int, help="Expected total records")
    run_parser.add_argument(
        "--type",
        dest="job_type",
        default=JobType.PEOPLE.value,
        choices=[t.value for t in JobType],
        help="Job type (default: people)",
    )
    run_parser.add_argument("--created-by", default=None, help="Owner user id (companies)")
    run_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show target pages and duplicate status without fetching",
    )
    _add_common(run_parser)

    # --- history subcommand ---
    history_parser = subparsers.add_parser("history", help="List or clear the run history")
    history_parser.add_argument("--clear", action="store_true", help="Remove every history entry")
    _add_common(history_parser)

    # --- backward compat: top-level flags for listen ---
    parser.add_argument("--config", default=None, help=argparse.SUPPRESS)
    parser.add_argument("--verbose", "-v", action="store_true", help=argparse.SUPPRESS)

    args = parser.parse_args(argv)

    if args.command is None:
        args.command = "listen"

    return args


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def build_job(args: argparse.Namespace) -> Job:
    """Build a Job from ``run`` arguments. Raises ValueError on bad input."""
    filters = json.loads(args.filters)
    if not isinstance(filters, dict) or not filters:
        msg = "--filters must be a non-empty JSON object"
        raise ValueError(msg)
    if args.total <= 0:
        msg = "--total must be greater than zero"
        raise ValueError(msg)
    return Job(
        filters=filters,
        total_entries=args.total,
        job_type=JobType(args.job_type),
        created_by=args.created_by,
    )


def dry_run(settings: Settings, job: Job) -> None:
    """Print what a run would do without any network call."""
    pages = compute_target_pages(
        job.total_entries, settings.fetcher.page_size, settings.fetcher.max_pages,
    )
    fingerprint = compute_fingerprint(job.job_type, job.filters)
    previous = HistoryStore(settings.storage.history_path).get(fingerprint)

    print(f"[DRY RUN] {job.job_type.value} job, {job.total_entries} expected records")
    print(f"  Fingerprint: {fingerprint}")
    print(f"  Target pages: {pages} x {settings.fetcher.page_size}")
    if previous is None:
        print("  Status: would run")
    else:
        print(
            f"  Status: DUPLICATE (scraped {previous.date.isoformat(timespec='seconds')}, "
            f"{previous.stats.inserted} new inserts), would skip",
        )


def cmd_history(settings: Settings, clear: bool) -> None:
    store = HistoryStore(settings.storage.history_path)
    if clear:
        removed = store.clear()
        print(f"Cleared {removed} history entries from {store.path}")
        return

    entries = store.all()
    print(f"{len(entries)} history entries in {store.path}")
    for fingerprint, entry in sorted(entries.items(), key=lambda kv: kv[1].date, reverse=True):
        print(
            f"  {fingerprint[:12]}  {entry.date.isoformat(timespec='seconds')}  "
            f"{entry.job_type.value:<9}  processed={entry.stats.processed} "
            f"inserted={entry.stats.inserted} pages={entry.stats.pages_fetched}",
        )

    if settings.storage.backend == "sqlite" and Path(settings.storage.database_path).exists():
        _print_local_store(settings)


def _print_local_store(settings: Settings, limit: int = 10) -> None:
    conn = init_db(settings.storage.database_path)
    try:
        contacts = count_contacts(conn, settings.remote.organization_id)
        reports = list_run_reports(conn, limit=limit)
    finally:
        conn.close()

    print(f"{contacts} contacts in {settings.storage.database_path}")
    for row in reports:
        print(
            f"  {row['run_date']}  {row['job_type']:<9}  {row['status']:<18} "
            f"inserted={row['total_inserted']} pages={row['pages_fetched']}",
        )


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        settings = Settings.load(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        if args.command == "history":
            cmd_history(settings, args.clear)
        elif args.command == "run":
            job = build_job(args)
            if args.dry_run:
                dry_run(settings, job)
            else:
                asyncio.run(run_job(settings, job))
        else:
            asyncio.run(listen(settings))
    except (ValueError, ValidationError, HistoryError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("Stopped.", file=sys.stderr)


if __name__ == "__main__":
    main()
