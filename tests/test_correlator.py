"""Tests for BuildCorrelator: token matching and exactly-once notifications."""

from pathlib import Path
from unittest.mock import Mock

import pytest

from mergebot.adapters.base import BuildRunnerError
from mergebot.correlator import BuildCorrelator
from mergebot.models import Build
from mergebot.notifier import Notifier
from mergebot.store import FileStore, JobRecord, JobStatus

REPO = "owner/repo"
URL = "http://jenkins/job/pr/7/"


def _build(token: str | None, result: str | None = None, building: bool = True, url: str = URL) -> Build:
    params = {"JOB": token, "PULL": "42"} if token else {}
    return Build(number=7, url=url, building=building, result=result, parameters=params)


@pytest.fixture
def store(tmp_path: Path) -> FileStore:
    return FileStore(tmp_path)


@pytest.fixture
def github() -> Mock:
    return Mock()


@pytest.fixture
def runner() -> Mock:
    runner = Mock()
    runner.list_builds.return_value = []
    return runner


@pytest.fixture
def correlator(runner: Mock, store: FileStore, github: Mock) -> BuildCorrelator:
    return BuildCorrelator(runner, store, Notifier(github, REPO))


def _bodies(github: Mock) -> list[str]:
    return [c.args[2] for c in github.create_comment.call_args_list]


def test_new_job_started_once(correlator: BuildCorrelator, runner: Mock, store: FileStore, github: Mock) -> None:
    store.insert_job(JobRecord(job_id="T1", pull_number=42))
    runner.list_builds.return_value = [_build("T1")]

    assert correlator.run_cycle() == 1
    assert correlator.run_cycle() == 0

    assert store.load_job("T1").status == JobStatus.STARTED
    assert _bodies(github) == [f"Testing Pull Request\nBuild: {URL}"]
    github.create_comment.assert_called_once()
    assert github.create_comment.call_args.args[1] == 42


def test_started_job_success_posts_victory(
    correlator: BuildCorrelator, runner: Mock, store: FileStore, github: Mock
) -> None:
    """Started job with SUCCESS: finished and exactly one success comment."""
    store.insert_job(JobRecord(job_id="T1", pull_number=42, status=JobStatus.STARTED))
    runner.list_builds.return_value = [_build("T1", result="SUCCESS", building=False)]

    assert correlator.run_cycle() == 1

    assert store.load_job("T1").status == JobStatus.FINISHED
    assert _bodies(github) == [":+1: Victory!"]


def test_new_job_already_failed_posts_started_then_failure(
    correlator: BuildCorrelator, runner: Mock, store: FileStore, github: Mock
) -> None:
    """A build first seen finished still reports started before the result."""
    store.insert_job(JobRecord(job_id="T1", pull_number=42))
    runner.list_builds.return_value = [_build("T1", result="FAILURE", building=False)]

    assert correlator.run_cycle() == 2

    assert _bodies(github) == [
        f"Testing Pull Request\nBuild: {URL}",
        ":-1: Defeated\nhttp://jenkins/job/pr/7/console",
    ]


def test_finished_job_is_idempotent(correlator: BuildCorrelator, runner: Mock, store: FileStore, github: Mock) -> None:
    """Re-running against an unchanged list after finish: no writes, no comments, no poll."""
    store.insert_job(JobRecord(job_id="T1", pull_number=42))
    runner.list_builds.return_value = [_build("T1", result="SUCCESS", building=False)]
    correlator.run_cycle()
    github.create_comment.reset_mock()
    runner.list_builds.reset_mock()
    path = store.base_dir / "jobs" / "T1.yaml"
    mtime = path.stat().st_mtime_ns

    assert correlator.run_cycle() == 0

    github.create_comment.assert_not_called()
    runner.list_builds.assert_not_called()
    assert path.stat().st_mtime_ns == mtime


def test_running_build_without_result_stays_started(
    correlator: BuildCorrelator, runner: Mock, store: FileStore, github: Mock
) -> None:
    store.insert_job(JobRecord(job_id="T1", pull_number=42, status=JobStatus.STARTED))
    runner.list_builds.return_value = [_build("T1", result=None)]
    assert correlator.run_cycle() == 0
    assert store.load_job("T1").status == JobStatus.STARTED
    github.create_comment.assert_not_called()


def test_tokens_never_cross_match(correlator: BuildCorrelator, runner: Mock, store: FileStore, github: Mock) -> None:
    """A build carrying T2 only advances T2."""
    store.insert_job(JobRecord(job_id="T1", pull_number=1))
    store.insert_job(JobRecord(job_id="T2", pull_number=2))
    runner.list_builds.return_value = [_build("T2", result="SUCCESS", building=False)]

    correlator.run_cycle()

    assert store.load_job("T1").status == JobStatus.NEW
    assert store.load_job("T2").status == JobStatus.FINISHED
    assert {c.args[1] for c in github.create_comment.call_args_list} == {2}


def test_foreign_and_parameterless_builds_ignored(
    correlator: BuildCorrelator, runner: Mock, store: FileStore, github: Mock
) -> None:
    store.insert_job(JobRecord(job_id="T1", pull_number=42))
    runner.list_builds.return_value = [_build(None, result="SUCCESS"), _build("someone-else", result="FAILURE")]

    assert correlator.run_cycle() == 0

    assert store.load_job("T1").status == JobStatus.NEW
    github.create_comment.assert_not_called()


def test_poll_failure_leaves_state(correlator: BuildCorrelator, runner: Mock, store: FileStore, github: Mock) -> None:
    """A failed poll changes nothing; the next cycle catches up."""
    store.insert_job(JobRecord(job_id="T1", pull_number=42))
    runner.list_builds.side_effect = BuildRunnerError("connection refused")
    assert correlator.run_cycle() == 0
    assert store.load_job("T1").status == JobStatus.NEW

    runner.list_builds.side_effect = None
    runner.list_builds.return_value = [_build("T1", result="SUCCESS", building=False)]
    assert correlator.run_cycle() == 2
    assert store.load_job("T1").status == JobStatus.FINISHED


def test_failed_comment_still_advances(correlator: BuildCorrelator, runner: Mock, store: FileStore, github: Mock) -> None:
    """Comment failures are not retried: the transition stands."""
    from mergebot.adapters.base import GitPlatformError

    store.insert_job(JobRecord(job_id="T1", pull_number=42))
    github.create_comment.side_effect = GitPlatformError("500")
    runner.list_builds.return_value = [_build("T1")]

    assert correlator.run_cycle() == 1
    assert correlator.run_cycle() == 0
    assert store.load_job("T1").status == JobStatus.STARTED
    assert github.create_comment.call_count == 1


def test_duplicate_builds_same_token_notify_once(
    correlator: BuildCorrelator, runner: Mock, store: FileStore, github: Mock
) -> None:
    store.insert_job(JobRecord(job_id="T1", pull_number=42))
    runner.list_builds.return_value = [
        _build("T1", result="SUCCESS", building=False),
        _build("T1", result="SUCCESS", building=False),
    ]
    correlator.run_cycle()
    assert github.create_comment.call_count == 2  # started + victory
