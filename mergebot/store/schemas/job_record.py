"""Build job record as stored in .mergebot/jobs/{job_id}.yaml.

job_id is the correlation token sent to Jenkins as the JOB parameter.
Status only moves forward: new -> started -> finished.
"""

from enum import Enum

from pydantic import BaseModel, Field


class JobStatus(str, Enum):
    NEW = "new"
    STARTED = "started"
    FINISHED = "finished"

    @property
    def rank(self) -> int:
        return _RANK[self]


_RANK = {JobStatus.NEW: 0, JobStatus.STARTED: 1, JobStatus.FINISHED: 2}


class JobRecord(BaseModel):
    """One dispatched build attempt."""

    job_id: str = Field(..., description="Correlation token (JOB build parameter)")
    pull_number: int = Field(..., description="Pull request the build was dispatched for")
    status: JobStatus = Field(default=JobStatus.NEW, description="new, started or finished")
    revision: str | None = Field(default=None, description="Head SHA the build was dispatched for")

    model_config = {"extra": "forbid"}
