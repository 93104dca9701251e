"""QBlast remote client.

The NCBI BLAST URL API accepts a search with `CMD=Put`, and reports on it with
`CMD=Get`. Status and ids are embedded in `QBlastInfoBegin ... QBlastInfoEnd`
comment blocks of otherwise human-oriented HTML, so all of the scraping lives
in `decode_submission` / `decode_status` and nothing outside this module ever
sees a raw response.

Docs: https://blast.ncbi.nlm.nih.gov/doc/blast-help/developerinfo.html

Note: the service caps outstanding requests per user, and repeated polling of a
finished job counts against it. No request is retried.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Optional

import httpx

from ..errors import RateLimitError, RemoteError, RemoteResponseError, UnknownRemoteError
from ..log import get_logger
from ..models import RemoteFormat, RemoteStatus
from .base import RemoteJobClient

logger = get_logger(__name__)


RID_RE = re.compile(r"^\s*RID\s*=\s*(\S+)", flags=re.MULTILINE)
STATUS_RE = re.compile(r"^\s*Status=(\w+)", flags=re.MULTILINE)
HITS_RE = re.compile(r"^\s*ThereAreHits=yes\b", flags=re.MULTILINE)
RATE_LIMIT_RE = re.compile(
    r"too many (?:requests|searches)|(?:request|search) limit (?:reached|exceeded)",
    flags=re.IGNORECASE,
)

FORMAT_TYPES: Dict[str, str] = {
    "tabular": "CSV",
    "text": "Text",
}


def decode_submission(body: str) -> str:
    """Extract the job id from a `CMD=Put` response."""
    if RATE_LIMIT_RE.search(body):
        raise RateLimitError("remote service refused the request: too many outstanding searches")
    m = RID_RE.search(body)
    if not m:
        raise UnknownRemoteError(body)
    return m.group(1)


def decode_status(body: str) -> RemoteStatus:
    """Map a `FORMAT_OBJECT=SearchInfo` response onto a RemoteStatus.

    `UNKNOWN` is what the service answers for an expired or purged id, which is
    as final as `FAILED` from the tracker's point of view.
    """
    m = STATUS_RE.search(body)
    status = m.group(1).upper() if m else None

    if status == "WAITING":
        return RemoteStatus(state="waiting")
    if status in ("FAILED", "UNKNOWN"):
        return RemoteStatus(state="failed")
    if status == "READY":
        return RemoteStatus(state="ready", has_hits=bool(HITS_RE.search(body)))

    raise RemoteResponseError(f"unrecognized status response: {status or body[:80]!r}")


class QBlastClient(RemoteJobClient):
    """Submit, poll and download BLAST searches over HTTP."""

    name = "qblast"

    def __init__(
        self,
        base_url: str = "https://blast.ncbi.nlm.nih.gov/Blast.cgi",
        program: str = "blastn",
        database: str = "core_nt",
        timeout_s: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = base_url
        self._program = program
        self._database = database
        self._timeout = timeout_s
        self._transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self._timeout, follow_redirects=True, transport=self._transport)

    def _request(self, method: str, **kwargs: Any) -> httpx.Response:
        try:
            with self._client() as client:
                resp = client.request(method, self.base_url, **kwargs)
                resp.raise_for_status()
                return resp
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code == 429:
                raise RateLimitError("remote service answered 429 Too Many Requests") from exc
            raise RemoteError(str(exc)) from exc
        except httpx.HTTPError as exc:
            raise RemoteError(str(exc)) from exc

    def submit(self, sequence: str) -> str:
        data = {
            "CMD": "Put",
            "PROGRAM": self._program,
            "DATABASE": self._database,
            "QUERY": sequence,
        }
        resp = self._request("POST", data=data)
        job_id = decode_submission(resp.text)
        logger.info("job_submitted", job_id=job_id, program=self._program, database=self._database)
        return job_id

    def query_status(self, job_id: str) -> RemoteStatus:
        params = {"CMD": "Get", "FORMAT_OBJECT": "SearchInfo", "RID": job_id}
        resp = self._request("GET", params=params)
        status = decode_status(resp.text)
        logger.debug("status_queried", job_id=job_id, state=status.state, has_hits=status.has_hits)
        return status

    def fetch_artifact(self, job_id: str, kind: RemoteFormat) -> bytes:
        params = {"CMD": "Get", "RID": job_id, "FORMAT_TYPE": FORMAT_TYPES[kind]}
        resp = self._request("GET", params=params)
        return resp.content

    def job_url(self, job_id: str) -> str:
        return str(httpx.URL(self.base_url, params={"CMD": "Get", "RID": job_id}))
