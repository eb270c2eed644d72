"""Tests for FileStore (pull, job and event records)."""

from datetime import UTC, datetime
from pathlib import Path
from unittest.mock import patch

import pytest

from mergebot.models import RefPayload
from mergebot.store import FileStore, JobRecord, JobStatus, PullRecord, StoreError


@pytest.fixture
def store(tmp_path: Path) -> FileStore:
    return FileStore(tmp_path)


class TestPulls:
    """Pull records: insert, load, partial update."""

    def test_insert_writes_yaml(self, store: FileStore, tmp_path: Path) -> None:
        """insert_pull writes .mergebot/pulls/{n}.yaml."""
        store.insert_pull(PullRecord(pull_number=42, head_revision="abc123"))
        path = tmp_path / ".mergebot" / "pulls" / "42.yaml"
        assert path.is_file()
        assert "abc123" in path.read_text(encoding="utf-8")

    def test_load_missing_returns_none(self, store: FileStore) -> None:
        assert store.load_pull(1) is None

    def test_update_sets_fields_and_keeps_others(self, store: FileStore) -> None:
        """update_pull changes only the given fields."""
        created = datetime(2024, 1, 15, 10, 0, tzinfo=UTC)
        seen = datetime(2024, 1, 16, 12, 0, tzinfo=UTC)
        store.insert_pull(PullRecord(pull_number=7, created_at=created))
        store.update_pull(7, head_revision="def456", last_seen_at=seen)

        record = store.load_pull(7)
        assert record is not None
        assert record.head_revision == "def456"
        assert record.last_seen_at == seen
        assert record.created_at == created

    def test_update_creates_missing_record(self, store: FileStore) -> None:
        store.update_pull(9, head_revision="abc")
        record = store.load_pull(9)
        assert record is not None and record.head_revision == "abc"

    def test_invalid_yaml_returns_none(self, store: FileStore, tmp_path: Path) -> None:
        """A broken file is treated as missing."""
        path = tmp_path / ".mergebot" / "pulls" / "3.yaml"
        path.parent.mkdir(parents=True)
        path.write_text("pull_number: [unclosed", encoding="utf-8")
        assert store.load_pull(3) is None


class TestJobs:
    """Job records and compare-and-set status transitions."""

    def test_insert_and_load(self, store: FileStore) -> None:
        store.insert_job(JobRecord(job_id="t1", pull_number=42))
        job = store.load_job("t1")
        assert job is not None
        assert job.pull_number == 42
        assert job.status == JobStatus.NEW

    def test_insert_twice_raises(self, store: FileStore) -> None:
        """A job is created exactly once."""
        store.insert_job(JobRecord(job_id="t1", pull_number=42))
        with pytest.raises(StoreError):
            store.insert_job(JobRecord(job_id="t1", pull_number=43))

    def test_unknown_or_unsafe_token_returns_none(self, store: FileStore) -> None:
        assert store.load_job("nope") is None
        assert store.load_job("../../etc/passwd") is None

    def test_list_jobs_unfinished_only(self, store: FileStore) -> None:
        store.insert_job(JobRecord(job_id="a", pull_number=1))
        store.insert_job(JobRecord(job_id="b", pull_number=1, status=JobStatus.STARTED))
        store.insert_job(JobRecord(job_id="c", pull_number=2, status=JobStatus.FINISHED))
        assert {j.job_id for j in store.list_jobs()} == {"a", "b", "c"}
        assert {j.job_id for j in store.list_jobs(unfinished_only=True)} == {"a", "b"}

    def test_compare_and_set_forward(self, store: FileStore) -> None:
        store.insert_job(JobRecord(job_id="t1", pull_number=42))
        assert store.compare_and_set_job_status("t1", JobStatus.NEW, JobStatus.STARTED) is True
        assert store.load_job("t1").status == JobStatus.STARTED

    def test_compare_and_set_wrong_expected(self, store: FileStore) -> None:
        """Second caller with a stale expectation loses."""
        store.insert_job(JobRecord(job_id="t1", pull_number=42))
        assert store.compare_and_set_job_status("t1", JobStatus.NEW, JobStatus.STARTED)
        assert store.compare_and_set_job_status("t1", JobStatus.NEW, JobStatus.STARTED) is False

    def test_compare_and_set_never_backwards(self, store: FileStore) -> None:
        store.insert_job(JobRecord(job_id="t1", pull_number=42, status=JobStatus.FINISHED))
        assert store.compare_and_set_job_status("t1", JobStatus.FINISHED, JobStatus.NEW) is False
        assert store.load_job("t1").status == JobStatus.FINISHED

    def test_compare_and_set_missing_job(self, store: FileStore) -> None:
        assert store.compare_and_set_job_status("ghost", JobStatus.NEW, JobStatus.STARTED) is False

    def test_finished_job_leaves_active_index(self, store: FileStore, tmp_path: Path) -> None:
        active = tmp_path / ".mergebot" / "jobs" / "active"
        store.insert_job(JobRecord(job_id="t1", pull_number=42))
        store.insert_job(JobRecord(job_id="t2", pull_number=43, status=JobStatus.FINISHED))
        assert sorted(p.name for p in active.iterdir()) == ["t1"]

        store.compare_and_set_job_status("t1", JobStatus.NEW, JobStatus.STARTED)
        assert (active / "t1").is_file()
        store.compare_and_set_job_status("t1", JobStatus.STARTED, JobStatus.FINISHED)
        assert list(active.iterdir()) == []
        assert store.list_jobs(unfinished_only=True) == []
        assert len(store.list_jobs()) == 2

    def test_unfinished_listing_reads_only_active_jobs(self, store: FileStore) -> None:
        """Finished history is never parsed when listing unfinished jobs."""
        for i in range(20):
            store.insert_job(JobRecord(job_id=f"done{i}", pull_number=i, status=JobStatus.FINISHED))
        store.insert_job(JobRecord(job_id="live", pull_number=99))

        with patch.object(store, "_load", wraps=store._load) as load:
            jobs = store.list_jobs(unfinished_only=True)

        assert [j.job_id for j in jobs] == ["live"]
        assert load.call_count == 1

    def test_insert_unsafe_token_raises(self, store: FileStore, tmp_path: Path) -> None:
        with pytest.raises(StoreError):
            store.insert_job(JobRecord(job_id="../escape", pull_number=1))
        assert not (tmp_path / ".mergebot" / "jobs").exists()


class TestEvents:
    """Logged ref events: dedup lookup and master branch lookup."""

    def test_find_event_matches_ref_head_after(self, store: FileStore) -> None:
        store.insert_event(RefPayload(id="100", repo="r", actor_id=1, ref="feature", head="a1", after="b2"))
        assert store.find_event("feature", "a1", "b2") is not None
        assert store.find_event("feature", "a1", "c3") is None

    def test_find_master_event(self, store: FileStore) -> None:
        store.insert_event(RefPayload(id="1", repo="r", actor_id=1, ref="feature", master_branch="main"))
        store.insert_event(RefPayload(id="2", repo="r", actor_id=1, ref="other"))
        found = store.find_master_event("feature")
        assert found is not None and found.master_branch == "main"
        assert store.find_master_event("other") is None

    def test_insert_event_write_failure_raises(self, tmp_path: Path) -> None:
        """Write errors surface as StoreError."""
        blocker = tmp_path / "blocked"
        blocker.write_text("file, not a dir", encoding="utf-8")
        store = FileStore(blocker)
        with pytest.raises(StoreError):
            store.insert_event(RefPayload(id="1", repo="r", actor_id=1, ref="x"))

    def test_lookups_use_index_without_scanning(self, store: FileStore) -> None:
        """Dedup and master lookups read one index entry, not every logged event."""
        for i in range(20):
            store.insert_event(RefPayload(id=str(i), repo="r", actor_id=1, ref=f"b{i}", head="h", after="a"))
        store.insert_event(RefPayload(id="m", repo="r", actor_id=1, ref="feature", master_branch="main"))

        with patch.object(store, "_iter", side_effect=AssertionError("full scan")):
            assert store.find_event("b7", "h", "a").id == "7"
            assert store.find_event("b7", "h", None) is None
            assert store.find_master_event("feature").id == "m"
            assert store.find_master_event("b7") is None

    def test_none_and_empty_head_are_distinct_keys(self, store: FileStore) -> None:
        store.insert_event(RefPayload(id="1", repo="r", actor_id=1, ref="x", head="", after=None))
        assert store.find_event("x", "", None) is not None
        assert store.find_event("x", None, "") is None
