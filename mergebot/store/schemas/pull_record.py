"""Pull request record as stored in .mergebot/pulls/{pull_number}.yaml."""

from datetime import datetime

from pydantic import BaseModel, Field


class PullRecord(BaseModel):
    """Pull request record: the revision last sent to Jenkins and the last evaluated update."""

    pull_number: int = Field(..., description="Pull request number")
    head_revision: str | None = Field(
        default=None,
        description="Head SHA of the most recently dispatched build; None until the first dispatch succeeds",
    )
    last_seen_at: datetime | None = Field(
        default=None,
        description="Pull request update time evaluated at the last dispatch; older comments are ignored",
    )
    created_at: datetime | None = Field(default=None, description="Pull request creation time")

    model_config = {"extra": "forbid"}
