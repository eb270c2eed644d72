"""Abstract bases for the review platform and the build runner."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List

from mergebot.models import Build, Comment, PullRequest, RepoEvent


class GitPlatformError(Exception):
    """Raised when a Git platform API call fails."""

    pass


class BuildRunnerError(Exception):
    """Raised when a build runner call fails."""

    pass


class GitPlatformAdapter(ABC):
    """Interface of a Git hosting platform (GitHub) used by the watcher and notifier."""

    @abstractmethod
    def list_open_pulls(self, repo: str) -> List[PullRequest]:
        """List open pull requests."""
        ...

    @abstractmethod
    def get_issue_comments(
        self,
        repo: str,
        issue_number: int,
        since: datetime | None = None,
    ) -> List[Comment]:
        """Fetch comments on an issue or pull request."""
        ...

    @abstractmethod
    def create_comment(self, repo: str, issue_number: int, body: str) -> Comment:
        """Post a comment on an issue or pull request."""
        ...

    def list_repo_events(self, repo: str) -> List[RepoEvent]:
        """List recent repository events. Override if needed."""
        raise NotImplementedError("list_repo_events")

    def get_user(self, login: str) -> Dict[str, Any]:
        """Fetch a user profile. Override if needed."""
        raise NotImplementedError("get_user")


class BuildRunner(ABC):
    """Interface of a build runner (Jenkins) used by the dispatcher and correlator."""

    @abstractmethod
    def trigger_build(self, parameters: Dict[str, Any]) -> None:
        """Queue a build of the configured project with the given parameters."""
        ...

    @abstractmethod
    def list_builds(self) -> List[Build]:
        """Return the project's builds with parameters, running state and result."""
        ...
