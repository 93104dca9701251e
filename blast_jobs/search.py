"""Exact-content search over stored sequences."""

from __future__ import annotations

from typing import Set

from .store import JobStore


def find_matching_jobs(store: JobStore, content: str) -> Set[str]:
    """Return the ids whose stored sequence equals `content` exactly.

    Whitespace and line breaks count: a prefix, suffix or extension of a stored
    sequence does not match it.
    """
    return {job_id for job_id in store.list() if store.get(job_id).sequence == content}
