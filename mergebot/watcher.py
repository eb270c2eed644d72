"""
Watch open pull requests and decide which ones need a build.

A pull request is built when it is seen for the first time, when its head
moved since the last dispatched build, or when someone comments
"@<mention> retest" after the last evaluated update. A description
containing "@<mention> ignore" opts the pull request out.
"""

import logging
from datetime import datetime
from typing import List

from mergebot.adapters.base import GitPlatformAdapter, GitPlatformError
from mergebot.dispatcher import BuildDispatcher
from mergebot.models import Comment, PullRequest
from mergebot.notifier import Notifier, retest_ack_message
from mergebot.store import FileStore, PullRecord, StoreError

LOG = logging.getLogger("mergebot.watcher")


def ignore_directive(mention: str) -> str:
    return f"@{mention} ignore"


def retest_directive(mention: str) -> str:
    return f"@{mention} retest"


def find_retest_comment(comments: List[Comment], record: PullRecord, mention: str) -> Comment | None:
    """First retest comment newer than the record's last evaluated update."""
    directive = retest_directive(mention)
    for comment in comments:
        if record.last_seen_at is not None and comment.created_at <= record.last_seen_at:
            continue
        if directive in comment.body:
            return comment
    return None


class PullWatcher:
    """One polling cycle over the open pull requests of a repository."""

    def __init__(
        self,
        adapter: GitPlatformAdapter,
        dispatcher: BuildDispatcher,
        store: FileStore,
        notifier: Notifier,
        repo: str,
        mention: str,
    ) -> None:
        self._adapter = adapter
        self._dispatcher = dispatcher
        self._store = store
        self._notifier = notifier
        self._repo = repo
        self._mention = mention

    def run_cycle(self) -> int:
        """Poll open pull requests once. Returns the number of dispatched builds."""
        try:
            pulls = self._adapter.list_open_pulls(self._repo)
        except GitPlatformError as e:
            LOG.warning("Failed to list open pull requests of %s: %s", self._repo, e)
            return 0

        LOG.debug("Watcher: %s open pull request(s) in %s", len(pulls), self._repo)
        dispatched = 0
        for pull in pulls:
            if not pull.number:
                continue
            if ignore_directive(self._mention) in pull.body:
                LOG.debug("PR #%s: ignored by description", pull.number)
                continue
            try:
                if self.process_pull(pull):
                    dispatched += 1
            except (GitPlatformError, StoreError) as e:
                LOG.warning("PR #%s: skipped this cycle: %s", pull.number, e)
        return dispatched

    def process_pull(self, pull: PullRequest) -> bool:
        """Dispatch a build for the pull request if it needs one. Returns True if dispatched."""
        record = self._store.load_pull(pull.number)
        if record is None:
            # head_revision stays unset until a dispatch succeeds, so a failed
            # first trigger is retried on the next cycle
            self._store.insert_pull(PullRecord(pull_number=pull.number, created_at=pull.created_at))
            LOG.info("PR #%s: first seen at %s", pull.number, pull.head_sha[:12])
            return self._dispatch(pull, pull.updated_at)

        if record.head_revision != pull.head_sha:
            LOG.info(
                "PR #%s: head moved %s -> %s",
                pull.number,
                (record.head_revision or "none")[:12],
                pull.head_sha[:12],
            )
            return self._dispatch(pull, pull.updated_at)

        # since filters on updated_at; find_retest_comment re-checks created_at
        comments = self._adapter.get_issue_comments(self._repo, pull.number, since=record.last_seen_at)
        comment = find_retest_comment(comments, record, self._mention)
        if comment is None:
            return False

        LOG.info("PR #%s: retest requested by @%s", pull.number, comment.author)
        if not self._dispatch(pull, max(pull.updated_at, comment.created_at)):
            return False
        # acknowledged only once the build is queued; a failed trigger is retried silently
        self._notifier.notify(pull.number, retest_ack_message(comment.author))
        return True

    def _dispatch(self, pull: PullRequest, update_time: datetime) -> bool:
        job_id = self._dispatcher.dispatch(
            pull.number,
            pull.head_sha,
            pull.ssh_url,
            pull.branch,
            update_time,
        )
        return job_id is not None
