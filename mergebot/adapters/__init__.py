"""Review platform and build runner adapters."""

from mergebot.adapters.base import BuildRunner, BuildRunnerError, GitPlatformAdapter, GitPlatformError
from mergebot.adapters.github import GitHubAdapter
from mergebot.adapters.jenkins import JenkinsClient

__all__ = [
    "BuildRunner",
    "BuildRunnerError",
    "GitHubAdapter",
    "GitPlatformAdapter",
    "GitPlatformError",
    "JenkinsClient",
]
