from __future__ import annotations

from typing import Dict, Iterator, List, Tuple, Union

import pytest
import structlog

from blast_jobs.config import get_settings
from blast_jobs.models import RemoteStatus
from blast_jobs.remote.base import RemoteJobClient
from blast_jobs.store import FileJobStore


class FakeClient(RemoteJobClient):
    """Scripted remote client that records every call it receives."""

    name = "fake"

    def __init__(
        self,
        ids: List[Union[str, Exception]] = None,
        statuses: Dict[str, Union[RemoteStatus, Exception]] = None,
        artifacts: Dict[Tuple[str, str], bytes] = None,
    ) -> None:
        self.ids = list(ids or [])
        self.statuses = dict(statuses or {})
        self.artifacts = dict(artifacts or {})
        self.calls: List[tuple] = []

    def submit(self, sequence: str) -> str:
        self.calls.append(("submit", sequence))
        result = self.ids.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    def query_status(self, job_id: str) -> RemoteStatus:
        self.calls.append(("status", job_id))
        result = self.statuses[job_id]
        if isinstance(result, Exception):
            raise result
        return result

    def fetch_artifact(self, job_id: str, kind: str) -> bytes:
        self.calls.append(("fetch", job_id, kind))
        return self.artifacts[(job_id, kind)]

    def job_url(self, job_id: str) -> str:
        return f"https://blast.example.test/Blast.cgi?CMD=Get&RID={job_id}"

    def calls_for(self, job_id: str) -> List[tuple]:
        return [c for c in self.calls if c[1] == job_id]


TABULAR = (
    b'"Description","Scientific Name","Max Score","Accession"\r\n'
    b'"Homo sapiens chromosome 1, clone X","Homo sapiens","42.1",'
    b'"<a href=""https://www.ncbi.nlm.nih.gov/nuccore/NM_0001"">NM_0001</a>"\r\n'
    b"\r\n"
)

TEXT_REPORT = b"BLASTN 2.15.0+\n\nQuery= ACGT\n"


@pytest.fixture(autouse=True)
def reset_caches() -> Iterator[None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
    structlog.reset_defaults()


@pytest.fixture
def store(tmp_path) -> FileJobStore:
    return FileJobStore(tmp_path / "data")


@pytest.fixture
def client() -> FakeClient:
    return FakeClient()
