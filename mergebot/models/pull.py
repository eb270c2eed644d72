"""Open pull request as seen by the watcher."""

from datetime import datetime

from pydantic import BaseModel


class PullRequest(BaseModel):
    """Pull request with the head fields needed to build it."""

    number: int
    title: str = ""
    body: str = ""
    author: str = ""
    state: str = "open"
    head_sha: str
    head_label: str = ""
    head_ref: str = ""
    ssh_url: str = ""
    html_url: str | None = None
    created_at: datetime
    updated_at: datetime

    @property
    def branch(self) -> str:
        """Remote branch Jenkins checks out, e.g. origin/feature-x.

        Taken from the head label (user:branch); falls back to head ref.
        """
        name = self.head_label.split(":", 1)[1] if ":" in self.head_label else self.head_ref
        return f"origin/{name}"
