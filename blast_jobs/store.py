"""Local job store.

`JobStore` is the interface the lifecycle logic is written against;
`FileJobStore` keeps one directory per job:

    <root>/jobs/<id>/job.json     persisted record (id, state, timestamps)
    <root>/jobs/<id>/query.txt    sequence exactly as submitted
    <root>/jobs/<id>/report.csv   tabular report        (ready only)
    <root>/jobs/<id>/report.txt   plain-text report     (ready only)
    <root>/jobs/<id>/report.tsv   normalized report     (ready only)
    <root>/diagnostics/           unparseable submission responses

Whole-record operations go through directory renames, so a job directory is
either complete or absent. Names starting with a dot are work in progress and
never listed.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Set, Union

from pydantic import ValidationError

from .errors import (
    CorruptRecordError,
    EmptySequenceError,
    InvalidJobIdError,
    InvalidTransitionError,
    JobExistsError,
    NotFoundError,
    UnknownRemoteError,
)
from .log import get_logger
from .models import ARTIFACT_KINDS, ArtifactKind, Job, JobState, is_terminal
from .remote.base import RemoteJobClient
from .utils import atomic_write

logger = get_logger(__name__)


RECORD_FILE = "job.json"
SEQUENCE_FILE = "query.txt"
ARTIFACT_FILES: Dict[str, str] = {
    "tabular": "report.csv",
    "text": "report.txt",
    "normalized": "report.tsv",
}


class JobStore(ABC):
    """Persistent mapping from job id to Job."""

    @abstractmethod
    def add(self, job_id: str, sequence: str) -> Job:
        """Persist a new waiting job.

        Raises JobExistsError for a known id and InvalidJobIdError for an id that
        cannot be stored.
        """
        raise NotImplementedError

    @abstractmethod
    def get(self, job_id: str) -> Job:
        """Load a job. Raises NotFoundError for an unknown id, CorruptRecordError for an unreadable one."""
        raise NotImplementedError

    @abstractmethod
    def list(self) -> Set[str]:
        raise NotImplementedError

    @abstractmethod
    def delete(self, job_id: str) -> bool:
        """Remove a job and everything stored for it; False if it was absent."""
        raise NotImplementedError

    @abstractmethod
    def finalize(
        self,
        job_id: str,
        state: JobState,
        artifacts: Optional[Dict[ArtifactKind, bytes]] = None,
    ) -> Job:
        """Move a waiting job to a terminal state, storing artifacts for ready."""
        raise NotImplementedError

    @abstractmethod
    def save_diagnostic(self, payload: str) -> str:
        """Keep a raw remote response for manual inspection; return where."""
        raise NotImplementedError


def _check_transition(job: Job, state: JobState, artifacts: Optional[Dict[ArtifactKind, bytes]]) -> None:
    if job.is_terminal or not is_terminal(state):
        raise InvalidTransitionError(job.id, job.state, state)
    if state == "ready":
        missing = [k for k in ARTIFACT_KINDS if k not in (artifacts or {})]
        if missing:
            raise ValueError(f"ready job {job.id} is missing artifacts: {', '.join(missing)}")
    elif artifacts:
        raise ValueError(f"artifacts can only be stored for ready jobs, not {state}")


class FileJobStore(JobStore):
    """Filesystem-backed store; see the module docstring for the layout."""

    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(root)
        self.jobs_dir = self.root / "jobs"
        self.diagnostics_dir = self.root / "diagnostics"
        self.jobs_dir.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def _usable_id(job_id: str) -> bool:
        return bool(job_id) and not job_id.startswith(".") and "/" not in job_id and "\\" not in job_id

    def _job_dir(self, job_id: str) -> Path:
        if not self._usable_id(job_id):
            raise NotFoundError(job_id)
        return self.jobs_dir / job_id

    def add(self, job_id: str, sequence: str) -> Job:
        if not self._usable_id(job_id):
            raise InvalidJobIdError(job_id)
        target = self._job_dir(job_id)
        if target.exists():
            raise JobExistsError(job_id)

        job = Job(id=job_id, created_at=datetime.now(timezone.utc))
        staging = Path(tempfile.mkdtemp(dir=self.jobs_dir, prefix=f".new-{job_id}-"))
        try:
            (staging / SEQUENCE_FILE).write_bytes(sequence.encode("utf-8"))
            (staging / RECORD_FILE).write_text(job.model_dump_json(indent=2), encoding="utf-8")
            os.rename(staging, target)
        except Exception:
            shutil.rmtree(staging, ignore_errors=True)
            raise

        logger.info("job_stored", job_id=job_id)
        return self.get(job_id)

    def get(self, job_id: str) -> Job:
        d = self._job_dir(job_id)
        record = d / RECORD_FILE
        if not record.is_file():
            raise NotFoundError(job_id)

        seq_path = d / SEQUENCE_FILE
        try:
            job = Job.model_validate_json(record.read_text(encoding="utf-8"))
            sequence = seq_path.read_bytes().decode("utf-8")
        except (ValidationError, UnicodeDecodeError, OSError) as exc:
            raise CorruptRecordError(job_id, str(exc).partition("\n")[0]) from exc

        artifacts: Dict[str, str] = {}
        if job.state == "ready":
            artifacts = {k: str(d / ARTIFACT_FILES[k]) for k in ARTIFACT_KINDS}
        return job.model_copy(
            update={
                "sequence": sequence,
                "location": str(d),
                "sequence_location": str(seq_path),
                "artifacts": artifacts,
            }
        )

    def list(self) -> Set[str]:
        return {
            p.name
            for p in self.jobs_dir.iterdir()
            if p.is_dir() and not p.name.startswith(".") and (p / RECORD_FILE).is_file()
        }

    def delete(self, job_id: str) -> bool:
        try:
            d = self._job_dir(job_id)
        except NotFoundError:
            return False
        if not d.is_dir():
            return False

        # Rename first so the job disappears in one step, then clean up.
        trash = self.jobs_dir / f".deleted-{job_id}-{os.getpid()}"
        os.rename(d, trash)
        shutil.rmtree(trash)
        logger.info("job_deleted", job_id=job_id)
        return True

    def finalize(
        self,
        job_id: str,
        state: JobState,
        artifacts: Optional[Dict[ArtifactKind, bytes]] = None,
    ) -> Job:
        job = self.get(job_id)
        _check_transition(job, state, artifacts)

        d = self._job_dir(job_id)
        for kind in ARTIFACT_KINDS:
            if artifacts and kind in artifacts:
                atomic_write(d / ARTIFACT_FILES[kind], artifacts[kind])

        # The record is written last: a job only reads as ready once every
        # artifact is in place.
        updated = job.model_copy(update={"state": state, "finalized_at": datetime.now(timezone.utc)})
        atomic_write(d / RECORD_FILE, updated.model_dump_json(indent=2))
        logger.info("job_finalized", job_id=job_id, state=state)
        return self.get(job_id)

    def save_diagnostic(self, payload: str) -> str:
        self.diagnostics_dir.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        path = self.diagnostics_dir / f"submit-{stamp}.txt"
        atomic_write(path, payload)
        return str(path)


def create_job(store: JobStore, client: RemoteJobClient, sequence: str) -> Job:
    """Submit `sequence` remotely and start tracking it.

    Nothing is stored locally unless the service returned an id. When the
    response looked successful but had no id, it is saved as a diagnostic and
    the error is re-raised with its location.
    """
    if not sequence.strip():
        raise EmptySequenceError()

    try:
        job_id = client.submit(sequence)
    except UnknownRemoteError as exc:
        exc.diagnostic_path = store.save_diagnostic(exc.payload)
        logger.warning("submission_unrecognized", diagnostic=exc.diagnostic_path)
        raise

    return store.add(job_id, sequence)
