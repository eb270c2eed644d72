"""Post status comments on pull requests.

A failed post is logged and dropped; there is no retry queue.
"""

import logging

from mergebot.adapters.base import GitPlatformAdapter, GitPlatformError

LOG = logging.getLogger("mergebot.notifier")


def started_message(build_url: str) -> str:
    return f"Testing Pull Request\nBuild: {build_url}"


SUCCESS_MESSAGE = ":+1: Victory!"


def failure_message(console_url: str) -> str:
    return f":-1: Defeated\n{console_url}"


def retest_ack_message(author: str) -> str:
    return f"Got it @{author}. Queueing up a new build."


class Notifier:
    """Comments on pull requests of one repository."""

    def __init__(self, adapter: GitPlatformAdapter, repo: str) -> None:
        self._adapter = adapter
        self._repo = repo

    def notify(self, pull_number: int, body: str) -> bool:
        """Post body as a comment on the pull request. Returns False if the post failed."""
        try:
            self._adapter.create_comment(self._repo, pull_number, body)
        except GitPlatformError as e:
            LOG.warning("PR #%s: failed to post comment: %s", pull_number, e)
            return False
        LOG.debug("PR #%s: posted comment %r", pull_number, body.splitlines()[0] if body else "")
        return True

    def build_started(self, pull_number: int, build_url: str) -> bool:
        return self.notify(pull_number, started_message(build_url))

    def build_succeeded(self, pull_number: int) -> bool:
        return self.notify(pull_number, SUCCESS_MESSAGE)

    def build_failed(self, pull_number: int, console_url: str) -> bool:
        return self.notify(pull_number, failure_message(console_url))
