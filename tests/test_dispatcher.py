"""Tests for BuildDispatcher."""

from datetime import UTC, datetime
from pathlib import Path
from unittest.mock import Mock, patch

from mergebot.adapters.base import BuildRunnerError
from mergebot.dispatcher import BuildDispatcher
from mergebot.store import FileStore, JobStatus, PullRecord

UPDATED = datetime(2024, 1, 16, 12, 0, tzinfo=UTC)


def test_dispatch_triggers_and_records_job(tmp_path: Path) -> None:
    """Trigger carries JOB and PULL; pull record and new job are written after success."""
    store = FileStore(tmp_path)
    store.insert_pull(PullRecord(pull_number=42))
    runner = Mock()

    with patch("mergebot.dispatcher.new_job_id", return_value="T1"):
        job_id = BuildDispatcher(runner, store).dispatch(
            42, "abc123", "git@github.com:o/r.git", "origin/feature", UPDATED
        )

    assert job_id == "T1"
    runner.trigger_build.assert_called_once_with(
        {
            "cause": "Testing Pull Request: 42",
            "REPOSITORY_URL": "git@github.com:o/r.git",
            "BRANCH_NAME": "origin/feature",
            "JOB": "T1",
            "PULL": 42,
        }
    )
    record = store.load_pull(42)
    assert record.head_revision == "abc123"
    assert record.last_seen_at == UPDATED
    job = store.load_job("T1")
    assert job.pull_number == 42
    assert job.status == JobStatus.NEW


def test_dispatch_failure_writes_nothing(tmp_path: Path) -> None:
    """A failed trigger leaves the pull record unchanged and creates no job."""
    store = FileStore(tmp_path)
    store.insert_pull(PullRecord(pull_number=42, head_revision="old"))
    runner = Mock()
    runner.trigger_build.side_effect = BuildRunnerError("503: unavailable")

    job_id = BuildDispatcher(runner, store).dispatch(42, "new", "url", "origin/b", UPDATED)

    assert job_id is None
    assert store.load_pull(42).head_revision == "old"
    assert store.list_jobs() == []


def test_tokens_are_unique(tmp_path: Path) -> None:
    store = FileStore(tmp_path)
    dispatcher = BuildDispatcher(Mock(), store)
    first = dispatcher.dispatch(1, "a", "url", "origin/a", UPDATED)
    second = dispatcher.dispatch(2, "b", "url", "origin/b", UPDATED)
    assert first != second
    assert len(store.list_jobs()) == 2
