"""Record storage in .mergebot/ as YAML files.

One file per record:
- .mergebot/pulls/{pull_number}.yaml
- .mergebot/jobs/{job_id}.yaml
- .mergebot/events/{event_id}.yaml

Index files, so the polling cycles never scan every record:
- .mergebot/jobs/active/{job_id}: empty marker while the job is not finished
- .mergebot/events/keys/{digest}: event id, digest of (ref, head, after)
- .mergebot/events/master/{digest}: event id of the ref's master branch event, digest of ref

Each write replaces the whole file, so a record is never seen half written.
Read-modify-write operations hold a process-wide lock; the watcher and
correlator threads share one FileStore.
"""

import hashlib
import json
import logging
import os
import re
import threading
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Iterator, List, Type, TypeVar

import yaml
from pydantic import BaseModel

from mergebot.models import RefPayload
from mergebot.store.schemas import EventRecord, JobRecord, JobStatus, PullRecord

STORE_DIR = ".mergebot"
PULLS = "pulls"
JOBS = "jobs"
EVENTS = "events"
ACTIVE_JOBS = "jobs/active"
EVENT_KEYS = "events/keys"
MASTER_EVENTS = "events/master"

LOG = logging.getLogger("mergebot.store")

# Keys come from Jenkins build parameters and GitHub; never let them leave the store dir
_KEY_RE = re.compile(r"^[A-Za-z0-9_\-]+$")

M = TypeVar("M", bound=BaseModel)


def _digest(*parts: str | None) -> str:
    return hashlib.sha1(json.dumps(parts).encode("utf-8")).hexdigest()


class StoreError(Exception):
    """Raised when a record cannot be written."""

    pass


class FileStore:
    """YAML file store for pull, job and event records."""

    def __init__(self, workspace: Path) -> None:
        self._base = Path(workspace) / STORE_DIR
        self._lock = threading.RLock()

    @property
    def base_dir(self) -> Path:
        return self._base

    def _path(self, kind: str, key: Any) -> Path | None:
        key = str(key)
        if not _KEY_RE.match(key):
            return None
        return self._base / kind / f"{key}.yaml"

    def _load(self, kind: str, key: Any, model: Type[M]) -> M | None:
        path = self._path(kind, key)
        if path is None or not path.is_file():
            return None
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
            if not data:
                return None
            return model.model_validate(data)
        except (OSError, yaml.YAMLError, ValueError) as e:
            LOG.warning("Failed to load %s %s: %s", kind, key, e)
            return None

    def _save(self, kind: str, key: Any, record: BaseModel) -> Path:
        path = self._path(kind, key)
        if path is None:
            raise StoreError(f"Invalid {kind} key: {key!r}")
        payload = record.model_dump(mode="json", exclude_none=True)
        raw = yaml.dump(
            payload,
            default_flow_style=False,
            allow_unicode=True,
            sort_keys=False,
            width=1000,
        )
        self._write(path, raw)
        LOG.debug("Saved %s %s to %s", kind, key, path)
        return path

    def _write(self, path: Path, raw: str) -> None:
        tmp = path.with_name(path.name + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(raw, encoding="utf-8")
            os.replace(tmp, path)
        except OSError as e:
            raise StoreError(f"Failed to write {path}: {e}") from e

    def _read_index(self, kind: str, name: str) -> str | None:
        path = self._base / kind / name
        if not path.is_file():
            return None
        try:
            return path.read_text(encoding="utf-8").strip() or None
        except OSError as e:
            LOG.warning("Failed to read index %s/%s: %s", kind, name, e)
            return None

    def _iter(self, kind: str, model: Type[M]) -> Iterator[M]:
        base = self._base / kind
        if not base.is_dir():
            return
        for f in sorted(base.glob("*.yaml")):
            record = self._load(kind, f.stem, model)
            if record is not None:
                yield record

    # pulls

    def load_pull(self, pull_number: int) -> PullRecord | None:
        """Load pull record. Returns None if missing or invalid."""
        return self._load(PULLS, pull_number, PullRecord)

    def insert_pull(self, record: PullRecord) -> PullRecord:
        with self._lock:
            self._save(PULLS, record.pull_number, record)
        LOG.info("PR #%s: record created", record.pull_number)
        return record

    def update_pull(self, pull_number: int, **fields: Any) -> PullRecord:
        """Set the given fields on the pull record, creating it if missing."""
        with self._lock:
            record = self.load_pull(pull_number) or PullRecord(pull_number=pull_number)
            record = PullRecord.model_validate({**record.model_dump(), **fields})
            self._save(PULLS, pull_number, record)
        return record

    # jobs

    def load_job(self, job_id: str) -> JobRecord | None:
        """Load job by correlation token. Returns None for unknown tokens."""
        return self._load(JOBS, job_id, JobRecord)

    def insert_job(self, record: JobRecord) -> JobRecord:
        if self._path(JOBS, record.job_id) is None:
            raise StoreError(f"Invalid jobs key: {record.job_id!r}")
        with self._lock:
            if self.load_job(record.job_id) is not None:
                raise StoreError(f"Job {record.job_id} already exists")
            # marker first: a marker without its job file is skipped by list_jobs
            if record.status != JobStatus.FINISHED:
                self._write(self._base / ACTIVE_JOBS / record.job_id, "")
            self._save(JOBS, record.job_id, record)
        LOG.info("Job %s created for PR #%s", record.job_id, record.pull_number)
        return record

    def list_jobs(self, unfinished_only: bool = False) -> List[JobRecord]:
        """All jobs, or only those still marked active (no scan of finished ones)."""
        if not unfinished_only:
            return list(self._iter(JOBS, JobRecord))
        active = self._base / ACTIVE_JOBS
        if not active.is_dir():
            return []
        jobs = []
        for marker in sorted(active.iterdir()):
            job = self.load_job(marker.name)
            if job is not None and job.status != JobStatus.FINISHED:
                jobs.append(job)
        return jobs

    def compare_and_set_job_status(self, job_id: str, expected: JobStatus, new: JobStatus) -> bool:
        """Move job from expected to new status. Returns False if the job is
        missing, its status is no longer expected, or new is not forward."""
        with self._lock:
            job = self.load_job(job_id)
            if job is None or job.status != expected:
                return False
            if new.rank <= expected.rank:
                return False
            job.status = new
            self._save(JOBS, job_id, job)
            if new == JobStatus.FINISHED:
                self._clear_active(job_id)
        LOG.info("Job %s (PR #%s) status %s -> %s", job_id, job.pull_number, expected.value, new.value)
        return True

    def _clear_active(self, job_id: str) -> None:
        try:
            (self._base / ACTIVE_JOBS / job_id).unlink(missing_ok=True)
        except OSError as e:
            # list_jobs still filters the job out by its status
            LOG.warning("Failed to clear active marker of job %s: %s", job_id, e)

    # events

    def find_event(self, ref: str, head: str | None, after: str | None) -> EventRecord | None:
        """Return a logged event with the same ref, head and after, if any."""
        event_id = self._read_index(EVENT_KEYS, _digest(ref, head, after))
        if event_id is None:
            return None
        event = self._load(EVENTS, event_id, EventRecord)
        if event is None or (event.ref, event.head, event.after) != (ref, head, after):
            return None
        return event

    def find_master_event(self, ref: str) -> EventRecord | None:
        """Return the logged event for ref that carries a master branch, if any."""
        event_id = self._read_index(MASTER_EVENTS, _digest(ref))
        if event_id is None:
            return None
        event = self._load(EVENTS, event_id, EventRecord)
        if event is None or event.ref != ref or not event.master_branch:
            return None
        return event

    def insert_event(self, payload: RefPayload) -> EventRecord:
        record = EventRecord(**payload.model_dump(), logged_at=datetime.now(UTC))
        with self._lock:
            self._save(EVENTS, record.id, record)
            self._write(self._base / EVENT_KEYS / _digest(record.ref, record.head, record.after), record.id)
            if record.master_branch:
                self._write(self._base / MASTER_EVENTS / _digest(record.ref), record.id)
        return record
