"""Base class for remote job clients."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..models import RemoteFormat, RemoteStatus


class RemoteJobClient(ABC):
    """Abstract client for an asynchronous remote search service.

    Implementations own every detail of the wire format; callers only see job
    ids, `RemoteStatus` values and raw report bytes.
    """

    name: str

    @abstractmethod
    def submit(self, sequence: str) -> str:
        """Submit a sequence and return the id the service assigned to it.

        Raises RateLimitError when the service refuses more outstanding jobs and
        UnknownRemoteError when the response carries no id.
        """
        raise NotImplementedError

    @abstractmethod
    def query_status(self, job_id: str) -> RemoteStatus:
        """Return the decoded remote status of a job."""
        raise NotImplementedError

    @abstractmethod
    def fetch_artifact(self, job_id: str, kind: RemoteFormat) -> bytes:
        """Download one report of a finished job."""
        raise NotImplementedError

    @abstractmethod
    def job_url(self, job_id: str) -> str:
        """Return a URL a person can open to see the job on the service."""
        raise NotImplementedError
