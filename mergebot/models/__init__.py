"""Data models for pull requests, comments, Jenkins builds and repo events (Pydantic)."""

from mergebot.models.build import TERMINAL_RESULTS, Build
from mergebot.models.comment import Comment
from mergebot.models.event import RefPayload, RepoEvent
from mergebot.models.pull import PullRequest

__all__ = ["TERMINAL_RESULTS", "Build", "Comment", "PullRequest", "RefPayload", "RepoEvent"]
