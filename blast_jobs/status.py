"""Read-only status reports built from the store."""

from __future__ import annotations

from itertools import zip_longest
from typing import Iterable, List, Tuple

from .errors import NotFoundError
from .models import Job
from .remote.base import RemoteJobClient
from .store import JobStore


STATUS_LABELS = {
    "ready": "ready",
    "failed": "failed (try creating a new request)",
    "no_match": "unmatched",
    "waiting": "waiting",
}


def status_label(job: Job) -> str:
    """Human-readable status of a job as shown by `info`."""
    return STATUS_LABELS[job.state]


def partition_jobs(store: JobStore) -> Tuple[List[str], List[str]]:
    """Split all ids into (waiting, finished), each sorted.

    Finished lumps every terminal outcome together: ready, failed and no_match.
    """
    waiting: List[str] = []
    finished: List[str] = []
    for job_id in sorted(store.list()):
        (finished if store.get(job_id).is_terminal else waiting).append(job_id)
    return waiting, finished


def render_overview(store: JobStore) -> str:
    """Two-column table: waiting ids on the left, finished ids on the right."""
    waiting, finished = partition_jobs(store)
    left = ["waiting", "-------"] + waiting
    right = ["ready", "-----"] + finished
    width = max(len(s) for s in left)
    rows = [f"{a.ljust(width)}  {b}".rstrip() for a, b in zip_longest(left, right, fillvalue="")]
    return "\n".join(rows)


def describe_job(store: JobStore, client: RemoteJobClient, job_id: str) -> str:
    """Detail view of one job. Raises NotFoundError for an unknown id."""
    job = store.get(job_id)
    fields = [
        ("request", job.id),
        ("status", status_label(job)),
        ("created", job.created_at.isoformat()),
        ("sequence", job.sequence_location),
    ]
    fields += sorted(job.artifacts.items())
    fields.append(("remote", client.job_url(job.id)))
    return "\n".join(f"{name + ':':<12}{value}" for name, value in fields)


def render_details(store: JobStore, client: RemoteJobClient, job_ids: Iterable[str]) -> Tuple[str, List[str]]:
    """Describe each id in turn; unknown ids are reported inline, not raised.

    Returns the rendered text and the list of ids that were not found.
    """
    blocks: List[str] = []
    missing: List[str] = []
    for job_id in job_ids:
        try:
            blocks.append(describe_job(store, client, job_id))
        except NotFoundError as exc:
            blocks.append(f"error: {exc}")
            missing.append(job_id)
    return "\n\n".join(blocks), missing
