"""Exception taxonomy for the job tracker."""

from __future__ import annotations

from typing import Optional


class BlastJobsError(Exception):
    """Base class for all tracker errors."""


class EmptySequenceError(BlastJobsError):
    """The sequence given to create is empty or whitespace only."""

    def __init__(self) -> None:
        super().__init__("sequence is empty")


class NotFoundError(BlastJobsError):
    """No job with the given id is stored locally."""

    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        super().__init__(f"no such request: {job_id}")


class JobExistsError(BlastJobsError):
    """A job with the given id is already stored."""

    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        super().__init__(f"request already stored: {job_id}")


class InvalidTransitionError(BlastJobsError):
    """A state change that does not leave the waiting state."""

    def __init__(self, job_id: str, current: str, target: str) -> None:
        self.job_id = job_id
        self.current = current
        self.target = target
        super().__init__(f"cannot move {job_id} from {current} to {target}")


class RemoteError(BlastJobsError):
    """The remote service could not be reached or answered unexpectedly."""


class RateLimitError(RemoteError):
    """The remote service refuses new submissions until older ones finish."""


class UnknownRemoteError(RemoteError):
    """A submission looked accepted but carried no job id.

    `payload` holds the raw response; `diagnostic_path` is set once it has been
    saved for manual inspection.
    """

    def __init__(self, payload: str, diagnostic_path: Optional[str] = None) -> None:
        self.payload = payload
        self.diagnostic_path = diagnostic_path
        super().__init__("remote response did not contain a request id")

    def __str__(self) -> str:
        msg = self.args[0]
        if self.diagnostic_path:
            msg = f"{msg} (response saved to {self.diagnostic_path})"
        return msg


class RemoteResponseError(RemoteError):
    """A status response matched none of the known markers."""


class InvalidJobIdError(BlastJobsError):
    """The remote service assigned an id that cannot name a stored job."""

    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        super().__init__(f"remote assigned an unusable request id: {job_id!r}")


class CorruptRecordError(BlastJobsError):
    """A stored job record can no longer be read."""

    def __init__(self, job_id: str, reason: str) -> None:
        self.job_id = job_id
        super().__init__(f"stored request {job_id} is unreadable: {reason}")


class ReportFormatError(BlastJobsError):
    """A downloaded tabular report could not be parsed."""
