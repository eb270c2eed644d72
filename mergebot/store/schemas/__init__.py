"""Schemas for store YAML files (pull, job and event records)."""

from mergebot.store.schemas.event_record import EventRecord
from mergebot.store.schemas.job_record import JobRecord, JobStatus
from mergebot.store.schemas.pull_record import PullRecord

__all__ = ["EventRecord", "JobRecord", "JobStatus", "PullRecord"]
