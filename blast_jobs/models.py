"""Data models for the job tracker.

The key idea: the tracker owns a *stable* local record per remote job regardless
of how the remote service phrases its responses. The remote client decodes its
responses into `RemoteStatus` so nothing downstream ever parses raw text.

This file uses Pydantic v2.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, FrozenSet, List, Literal, Optional

from pydantic import BaseModel, Field


JobState = Literal["waiting", "ready", "failed", "no_match"]

TERMINAL_STATES: FrozenSet[str] = frozenset({"ready", "failed", "no_match"})

# Reports the remote service can produce for a finished job.
RemoteFormat = Literal["tabular", "text"]

# Everything stored for a ready job: both remote reports plus the derived TSV.
ArtifactKind = Literal["tabular", "text", "normalized"]

ARTIFACT_KINDS: List[str] = ["tabular", "text", "normalized"]


def is_terminal(state: str) -> bool:
    return state in TERMINAL_STATES


class Job(BaseModel):
    """A tracked search job.

    Only `id`, `state` and the timestamps are persisted in the job record; the
    sequence and artifacts live beside it and are filled in by the store when a
    job is loaded.
    """

    id: str = Field(..., description="Opaque id assigned by the remote service.")
    state: JobState = "waiting"
    created_at: datetime
    finalized_at: Optional[datetime] = Field(
        default=None,
        description="When the job left the waiting state; set exactly once.",
    )

    sequence: str = Field(default="", exclude=True)
    location: Optional[str] = Field(default=None, exclude=True)
    sequence_location: Optional[str] = Field(default=None, exclude=True)
    artifacts: Dict[ArtifactKind, str] = Field(
        default_factory=dict,
        exclude=True,
        description="Artifact locations; present only for ready jobs.",
    )

    @property
    def is_terminal(self) -> bool:
        return is_terminal(self.state)


class RemoteStatus(BaseModel):
    """Decoded answer of a remote status query."""

    state: Literal["waiting", "failed", "ready"]
    has_hits: bool = False


class SyncSummary(BaseModel):
    """Outcome of one sync pass, split into jobs finished before and during it."""

    old_matched: int = 0
    old_unmatched: int = 0
    old_failed: int = 0
    waiting: int = 0

    new_matched: List[str] = Field(default_factory=list)
    new_unmatched: List[str] = Field(default_factory=list)
    new_failed: List[str] = Field(default_factory=list)
    errors: List[str] = Field(
        default_factory=list,
        description="Ids whose status could not be determined this run; left waiting.",
    )

    def count_old(self, state: str) -> None:
        if state == "ready":
            self.old_matched += 1
        elif state == "no_match":
            self.old_unmatched += 1
        elif state == "failed":
            self.old_failed += 1
