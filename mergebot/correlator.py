"""
Match Jenkins builds back to dispatched jobs and report their progress.

Every cycle fetches the project's full build list and looks for the JOB
parameter of each unfinished job. Transitions are derived from the build's
current state, so a missed cycle only delays a comment:

    new      -> started   when the build shows up ("Testing Pull Request")
    started  -> finished  when the result is SUCCESS or FAILURE

Each transition is a compare-and-set in the store and only the caller that
wins it posts the comment.
"""

import logging
from typing import Dict

from mergebot.adapters.base import BuildRunner, BuildRunnerError
from mergebot.dispatcher import PARAM_JOB
from mergebot.models import Build
from mergebot.models.build import SUCCESS
from mergebot.notifier import Notifier
from mergebot.store import FileStore, JobRecord, JobStatus

LOG = logging.getLogger("mergebot.correlator")


class BuildCorrelator:
    """One polling cycle over the Jenkins build list."""

    def __init__(self, runner: BuildRunner, store: FileStore, notifier: Notifier) -> None:
        self._runner = runner
        self._store = store
        self._notifier = notifier

    def active_jobs(self) -> Dict[str, JobRecord]:
        return {job.job_id: job for job in self._store.list_jobs(unfinished_only=True)}

    def run_cycle(self) -> int:
        """Poll the build list once. Returns the number of status transitions."""
        active = self.active_jobs()
        if not active:
            LOG.debug("Correlator: no unfinished jobs")
            return 0

        try:
            builds = self._runner.list_builds()
        except BuildRunnerError as e:
            LOG.warning("Failed to fetch build list: %s", e)
            return 0

        transitions = 0
        for build in builds:
            job_id = build.parameter(PARAM_JOB)
            if not job_id or job_id not in active:
                continue
            transitions += self.process_build(job_id, build)
        LOG.debug("Correlator: %s build(s), %s unfinished job(s), %s transition(s)", len(builds), len(active), transitions)
        return transitions

    def process_build(self, job_id: str, build: Build) -> int:
        """Advance the job matching build. Returns the number of transitions made."""
        job = self._store.load_job(job_id)
        if job is None:
            return 0

        transitions = 0
        if job.status == JobStatus.NEW:
            if self._store.compare_and_set_job_status(job_id, JobStatus.NEW, JobStatus.STARTED):
                transitions += 1
                self._notifier.build_started(job.pull_number, build.url)
            job = self._store.load_job(job_id) or job

        if job.status != JobStatus.FINISHED and build.is_terminal:
            if self._store.compare_and_set_job_status(job_id, job.status, JobStatus.FINISHED):
                transitions += 1
                if build.result == SUCCESS:
                    self._notifier.build_succeeded(job.pull_number)
                else:
                    self._notifier.build_failed(job.pull_number, build.console_url)
        return transitions
