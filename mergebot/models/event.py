"""Repository events (push, branch creation) and the payload logged for them."""

from typing import Any, Dict

from pydantic import BaseModel, Field


class RepoEvent(BaseModel):
    """Entry of GET /repos/{repo}/events."""

    id: str
    type: str
    repo_name: str
    actor_id: int
    actor_login: str
    payload: Dict[str, Any] = Field(default_factory=dict)


class RefPayload(BaseModel):
    """Normalized ref update built from a push or branch creation event."""

    id: str
    repo: str
    actor_id: int
    ref: str
    master_branch: str | None = None
    head: str | None = None
    after: str | None = None
    email: str | None = None
