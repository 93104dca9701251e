"""CLI entry point.

Track BLAST searches submitted to the remote service.

Examples:
    python run_jobs.py create query.fasta
    cat query.fasta | python run_jobs.py create -
    python run_jobs.py sync
    python run_jobs.py info
    python run_jobs.py info XYZ123 ABC456
    python run_jobs.py search query.fasta
    python run_jobs.py delete XYZ123

Jobs are stored under $BLAST_JOBS_DATA_DIR (default ~/.blast-jobs).
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from blast_jobs.config import Settings, get_settings
from blast_jobs.errors import BlastJobsError, UnknownRemoteError
from blast_jobs.log import configure_logging
from blast_jobs.models import SyncSummary
from blast_jobs.remote.base import RemoteJobClient
from blast_jobs.remote.qblast import QBlastClient
from blast_jobs.search import find_matching_jobs
from blast_jobs.status import render_details, render_overview
from blast_jobs.store import FileJobStore, JobStore, create_job
from blast_jobs.sync import sync_jobs
from blast_jobs.utils import read_input


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="blast-jobs", description="Submit and track remote BLAST searches.")
    p.add_argument("--data-dir", type=Path, default=None, help="Store root (overrides BLAST_JOBS_DATA_DIR).")
    sub = p.add_subparsers(dest="command", metavar="COMMAND", required=True)

    c = sub.add_parser("create", help="Submit a sequence and start tracking it.")
    c.add_argument("file", nargs="?", default="-", help="Sequence file, or - for stdin (default).")

    d = sub.add_parser("delete", help="Forget a request locally (the remote job is untouched).")
    d.add_argument("id")

    i = sub.add_parser("info", help="Overview of all requests, or details for the given ids.")
    i.add_argument("ids", nargs="*", metavar="ID")

    s = sub.add_parser("search", help="List requests whose sequence equals the input exactly.")
    s.add_argument("file", nargs="?", default="-", help="Sequence file, or - for stdin (default).")

    sub.add_parser("sync", help="Poll waiting requests and download finished reports.")
    sub.add_parser("help", help="Show this message.")
    return p


def build_store(settings: Settings) -> JobStore:
    """Open the store rooted at the configured data directory."""
    return FileJobStore(settings.data_dir)


def build_client(settings: Settings) -> RemoteJobClient:
    """Create the remote client; tests replace this to avoid the network."""
    return QBlastClient(
        base_url=settings.base_url,
        program=settings.program,
        database=settings.database,
        timeout_s=settings.timeout_s,
    )


def format_summary(summary: SyncSummary) -> str:
    """Render a sync summary as an old/new count table followed by the ids touched this run."""
    rows = [
        ("", "old", "new"),
        ("matched", summary.old_matched, len(summary.new_matched)),
        ("unmatched", summary.old_unmatched, len(summary.new_unmatched)),
        ("failed", summary.old_failed, len(summary.new_failed)),
    ]
    lines = [f"{name:<10}{old:>5}{new:>5}" for name, old, new in rows]
    lines.append(f"{'waiting':<10}{summary.waiting:>5}")

    for label, ids in (
        ("new matched", summary.new_matched),
        ("new unmatched", summary.new_unmatched),
        ("new failed", summary.new_failed),
        ("not synced (still waiting)", summary.errors),
    ):
        if ids:
            lines.append(f"{label}: {' '.join(ids)}")
    return "\n".join(lines)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:
        return int(exc.code or 0)

    if args.command == "help":
        parser.print_help()
        return 0

    settings = get_settings()
    if args.data_dir is not None:
        settings = settings.model_copy(update={"data_dir": args.data_dir.expanduser()})
    configure_logging(settings.log_level)

    store = build_store(settings)

    content = None
    if args.command in ("create", "search"):
        try:
            content = read_input(args.file)
        except (OSError, UnicodeDecodeError) as exc:
            print(f"error: cannot read {args.file}: {exc}", file=sys.stderr)
            return 2

    if args.command == "delete":
        if store.delete(args.id):
            print(f"deleted {args.id}")
        else:
            print(f"no such request: {args.id}")
        return 0

    if args.command == "search":
        for job_id in sorted(find_matching_jobs(store, content)):
            print(job_id)
        return 0

    client = build_client(settings)

    if args.command == "create":
        try:
            job = create_job(store, client, content)
        except UnknownRemoteError as exc:
            print(f"error: {exc}; please report it", file=sys.stderr)
            return 1
        except BlastJobsError as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 1
        print(job.id)
        return 0

    if args.command == "info":
        if not args.ids:
            print(render_overview(store))
            return 0
        text, missing = render_details(store, client, args.ids)
        print(text)
        return 1 if missing else 0

    if args.command == "sync":
        print(format_summary(sync_jobs(store, client, max_workers=settings.fetch_workers)))
        return 0

    return 2


if __name__ == "__main__":
    sys.exit(main())
