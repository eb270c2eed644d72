"""Record storage for pulls, build jobs and ref events (.mergebot/)."""

from mergebot.store.file_store import FileStore, StoreError
from mergebot.store.schemas import EventRecord, JobRecord, JobStatus, PullRecord

__all__ = ["EventRecord", "FileStore", "JobRecord", "JobStatus", "PullRecord", "StoreError"]
