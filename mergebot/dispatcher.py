"""Trigger Jenkins builds for pull requests and record them as jobs."""

import logging
import uuid
from datetime import datetime

from mergebot.adapters.base import BuildRunner, BuildRunnerError
from mergebot.store import FileStore, JobRecord, JobStatus

LOG = logging.getLogger("mergebot.dispatcher")

# Build parameter names of the Jenkins project
PARAM_REPOSITORY_URL = "REPOSITORY_URL"
PARAM_BRANCH_NAME = "BRANCH_NAME"
PARAM_JOB = "JOB"
PARAM_PULL = "PULL"


def new_job_id() -> str:
    return uuid.uuid4().hex


class BuildDispatcher:
    """Queues builds with a fresh correlation token.

    Nothing is written to the store unless Jenkins accepted the trigger, so a
    failed trigger is retried by the next watcher cycle.
    """

    def __init__(self, runner: BuildRunner, store: FileStore) -> None:
        self._runner = runner
        self._store = store

    def dispatch(
        self,
        pull_number: int,
        revision: str,
        repository_url: str,
        branch: str,
        update_time: datetime | None,
    ) -> str | None:
        """Trigger a build of revision for the pull request.

        Returns the job id (correlation token), or None if the trigger failed.
        """
        job_id = new_job_id()
        parameters = {
            "cause": f"Testing Pull Request: {pull_number}",
            PARAM_REPOSITORY_URL: repository_url,
            PARAM_BRANCH_NAME: branch,
            PARAM_JOB: job_id,
            PARAM_PULL: pull_number,
        }
        try:
            self._runner.trigger_build(parameters)
        except BuildRunnerError as e:
            LOG.warning("PR #%s: failed to trigger build of %s: %s", pull_number, revision, e)
            return None

        self._store.update_pull(pull_number, head_revision=revision, last_seen_at=update_time)
        self._store.insert_job(
            JobRecord(job_id=job_id, pull_number=pull_number, status=JobStatus.NEW, revision=revision)
        )
        LOG.info("PR #%s: build of %s dispatched as job %s (%s)", pull_number, revision[:12], job_id, branch)
        return job_id
