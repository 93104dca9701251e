"""Tests for the sync engine."""

from pathlib import Path

import pytest

from blast_jobs.errors import RemoteError, RemoteResponseError
from blast_jobs.models import RemoteStatus
from blast_jobs.normalize import normalize_tabular
from blast_jobs.sync import fetch_artifacts, sync_jobs

from conftest import TABULAR, TEXT_REPORT, FakeClient


WAITING = RemoteStatus(state="waiting")
FAILED = RemoteStatus(state="failed")
NO_HITS = RemoteStatus(state="ready", has_hits=False)
HITS = RemoteStatus(state="ready", has_hits=True)


def snapshot(root: Path) -> dict:
    return {str(p.relative_to(root)): p.read_bytes() for p in sorted(root.rglob("*")) if p.is_file()}


def ready_client(job_id: str) -> FakeClient:
    return FakeClient(
        statuses={job_id: HITS},
        artifacts={(job_id, "tabular"): TABULAR, (job_id, "text"): TEXT_REPORT},
    )


class TestClassification:
    def test_remote_failure_marks_job_failed(self, store):
        store.add("R1", "ACGT")
        client = FakeClient(statuses={"R1": FAILED})

        summary = sync_jobs(store, client)

        assert store.get("R1").state == "failed"
        assert summary.new_failed == ["R1"]
        assert ("fetch", "R1", "tabular") not in client.calls

    def test_still_waiting_writes_nothing(self, store):
        store.add("R1", "ACGT")
        before = snapshot(store.root)

        summary = sync_jobs(store, FakeClient(statuses={"R1": WAITING}))

        assert summary.waiting == 1
        assert store.get("R1").state == "waiting"
        assert snapshot(store.root) == before

    def test_ready_without_hits_is_unmatched_and_fetches_nothing(self, store):
        store.add("XYZ123", "ACGT")
        client = FakeClient(statuses={"XYZ123": NO_HITS})

        summary = sync_jobs(store, client)

        job = store.get("XYZ123")
        assert job.state == "no_match"
        assert job.artifacts == {}
        assert summary.new_unmatched == ["XYZ123"]
        assert client.calls == [("status", "XYZ123")]
        assert sorted(p.name for p in Path(job.location).iterdir()) == ["job.json", "query.txt"]

    def test_ready_with_hits_stores_three_artifacts(self, store):
        store.add("R1", "ACGT")
        client = ready_client("R1")

        summary = sync_jobs(store, client)

        job = store.get("R1")
        assert job.state == "ready"
        assert summary.new_matched == ["R1"]
        assert Path(job.artifacts["tabular"]).read_bytes() == TABULAR
        assert Path(job.artifacts["text"]).read_bytes() == TEXT_REPORT
        assert Path(job.artifacts["normalized"]).read_bytes() == normalize_tabular(TABULAR)
        assert sorted(c for c in client.calls if c[0] == "fetch") == [
            ("fetch", "R1", "tabular"),
            ("fetch", "R1", "text"),
        ]


class TestTerminalJobsAreNeverPolled:
    @pytest.mark.parametrize("status", [FAILED, NO_HITS, HITS])
    def test_second_pass_issues_no_remote_call(self, store, status):
        store.add("R1", "ACGT")
        client = ready_client("R1")
        client.statuses["R1"] = status
        sync_jobs(store, client)

        second = ready_client("R1")
        summary = sync_jobs(store, second)

        assert second.calls == []
        assert summary.new_matched == summary.new_unmatched == summary.new_failed == []
        assert summary.old_matched + summary.old_unmatched + summary.old_failed == 1

    def test_second_pass_leaves_store_byte_identical(self, store):
        for job_id in ("A", "B", "C", "D"):
            store.add(job_id, f"seq-{job_id}")
        client = FakeClient(
            statuses={"A": HITS, "B": NO_HITS, "C": FAILED, "D": WAITING},
            artifacts={("A", "tabular"): TABULAR, ("A", "text"): TEXT_REPORT},
        )
        sync_jobs(store, client)
        after_first = snapshot(store.root)

        client.calls.clear()
        summary = sync_jobs(store, client)

        assert snapshot(store.root) == after_first
        assert client.calls == [("status", "D")]
        assert (summary.old_matched, summary.old_unmatched, summary.old_failed) == (1, 1, 1)
        assert summary.waiting == 1

    def test_waiting_job_is_finalized_when_remote_changes(self, store):
        store.add("R1", "ACGT")
        client = FakeClient(statuses={"R1": WAITING})
        sync_jobs(store, client)

        client.statuses["R1"] = NO_HITS
        summary = sync_jobs(store, client)

        assert summary.new_unmatched == ["R1"]
        assert client.calls_for("R1") == [("status", "R1"), ("status", "R1")]


class TestErrorsAreAbsorbed:
    def test_unrecognized_status_keeps_job_waiting(self, store):
        store.add("A", "ACGT")
        store.add("B", "TTTT")
        client = FakeClient(statuses={"A": RemoteResponseError("garbage"), "B": NO_HITS})

        summary = sync_jobs(store, client)

        assert summary.errors == ["A"]
        assert summary.waiting == 0
        assert store.get("A").state == "waiting"
        assert store.get("B").state == "no_match"

    def test_failed_download_leaves_job_waiting_without_artifacts(self, store):
        store.add("R1", "ACGT")

        class BrokenText(FakeClient):
            def fetch_artifact(self, job_id, kind):
                if kind == "text":
                    raise RemoteError("connection reset")
                return super().fetch_artifact(job_id, kind)

        client = BrokenText(statuses={"R1": HITS}, artifacts={("R1", "tabular"): TABULAR})
        summary = sync_jobs(store, client)

        job = store.get("R1")
        assert summary.errors == ["R1"]
        assert job.state == "waiting"
        assert not list(Path(job.location).glob("report.*"))


def test_fetch_artifacts_derives_normalized_from_tabular():
    client = ready_client("R1")

    artifacts = fetch_artifacts(client, "R1")

    assert artifacts == {
        "tabular": TABULAR,
        "text": TEXT_REPORT,
        "normalized": normalize_tabular(TABULAR),
    }


class TestLocalFailuresAreAbsorbed:
    def test_unparseable_report_does_not_stop_later_jobs(self, store):
        store.add("A", "ACGT")
        store.add("B", "TTTT")
        oversized = b'"unterminated,' + b"x" * 200000
        client = FakeClient(
            statuses={"A": HITS, "B": NO_HITS},
            artifacts={("A", "tabular"): oversized, ("A", "text"): TEXT_REPORT},
        )

        summary = sync_jobs(store, client)

        assert summary.errors == ["A"]
        assert summary.new_unmatched == ["B"]
        job = store.get("A")
        assert job.state == "waiting"
        assert not list(Path(job.location).glob("report.*"))

    def test_corrupt_record_does_not_stop_later_jobs(self, store):
        store.add("A", "ACGT")
        store.add("B", "TTTT")
        (store.jobs_dir / "A" / "job.json").write_text("{not json")
        client = FakeClient(statuses={"A": HITS, "B": FAILED})

        summary = sync_jobs(store, client)

        assert summary.errors == ["A"]
        assert summary.new_failed == ["B"]
        assert client.calls_for("A") == []

    def test_failed_artifact_write_leaves_job_waiting(self, store, monkeypatch):
        import blast_jobs.store as store_module

        real_write = store_module.atomic_write

        def failing_write(path, data):
            if Path(path).name == "report.txt":
                raise OSError(28, "No space left on device")
            return real_write(path, data)

        monkeypatch.setattr(store_module, "atomic_write", failing_write)
        store.add("A", "ACGT")
        store.add("B", "TTTT")
        client = FakeClient(
            statuses={"A": HITS, "B": NO_HITS},
            artifacts={("A", "tabular"): TABULAR, ("A", "text"): TEXT_REPORT},
        )

        summary = sync_jobs(store, client)

        assert summary.errors == ["A"]
        assert summary.new_unmatched == ["B"]
        assert store.get("A").state == "waiting"

        monkeypatch.setattr(store_module, "atomic_write", real_write)
        retry = sync_jobs(store, client)
        assert retry.new_matched == ["A"]
        assert Path(store.get("A").artifacts["text"]).read_bytes() == TEXT_REPORT
