"""Sync engine: advance waiting jobs from their remote status.

A job that has reached a terminal state is never queried again. The remote
service limits outstanding requests, so extra polling is a bug, not just waste.

Per waiting job, in priority order:
1. remote failed                -> failed
2. remote still waiting         -> unchanged, counted as waiting
3. remote ready without hits    -> no_match, no report downloaded
4. remote ready with hits       -> both reports downloaded, TSV derived, ready

An error for one job leaves it waiting and never aborts the pass.
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from typing import Dict, Tuple

from .errors import BlastJobsError
from .log import get_logger
from .models import ArtifactKind, SyncSummary
from .normalize import normalize_tabular
from .remote.base import RemoteJobClient
from .store import JobStore

logger = get_logger(__name__)


def _fetch_tabular(client: RemoteJobClient, job_id: str) -> Tuple[bytes, bytes]:
    raw = client.fetch_artifact(job_id, "tabular")
    return raw, normalize_tabular(raw)


def fetch_artifacts(client: RemoteJobClient, job_id: str, max_workers: int = 2) -> Dict[ArtifactKind, bytes]:
    """Download both reports of a ready job and derive the normalized one.

    The two downloads run concurrently; the TSV is computed as the continuation
    of the tabular download. Returns only after all three are available.
    """
    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=f"fetch-{job_id}") as pool:
        tabular: Future = pool.submit(_fetch_tabular, client, job_id)
        text: Future = pool.submit(client.fetch_artifact, job_id, "text")
        raw_tabular, normalized = tabular.result()
        raw_text = text.result()

    return {"tabular": raw_tabular, "text": raw_text, "normalized": normalized}


def sync_job(store: JobStore, client: RemoteJobClient, job_id: str, summary: SyncSummary, max_workers: int = 2) -> None:
    """Classify one job into `summary`, finalizing it when its outcome is known.

    Any failure specific to this job (remote error, unreadable record, report that
    does not parse, failed write) is recorded in `summary.errors` and the job
    stays waiting.
    """
    try:
        job = store.get(job_id)
        if job.is_terminal:
            summary.count_old(job.state)
            return

        status = client.query_status(job_id)
        if status.state == "failed":
            store.finalize(job_id, "failed")
            summary.new_failed.append(job_id)
        elif status.state == "waiting":
            summary.waiting += 1
        elif not status.has_hits:
            store.finalize(job_id, "no_match")
            summary.new_unmatched.append(job_id)
        else:
            artifacts = fetch_artifacts(client, job_id, max_workers=max_workers)
            store.finalize(job_id, "ready", artifacts)
            summary.new_matched.append(job_id)
    except (BlastJobsError, OSError) as exc:
        logger.warning("sync_job_error", job_id=job_id, error=str(exc))
        summary.errors.append(job_id)


def sync_jobs(store: JobStore, client: RemoteJobClient, max_workers: int = 2) -> SyncSummary:
    """Run one sync pass over every stored job."""
    summary = SyncSummary()
    for job_id in sorted(store.list()):
        sync_job(store, client, job_id, summary, max_workers=max_workers)

    logger.info(
        "sync_finished",
        new_matched=len(summary.new_matched),
        new_unmatched=len(summary.new_unmatched),
        new_failed=len(summary.new_failed),
        waiting=summary.waiting,
        errors=len(summary.errors),
    )
    return summary
