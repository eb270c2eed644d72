"""
Poll repository events and log new ref updates.

Only pushes and branch creations are considered. Each one is turned into a
RefPayload, deduplicated against the logged events (same ref, head and
after), filtered by the configured ref patterns, written to the store and
handed to the ref update callback. A failed store write is fatal: it raises
StoreError out of the cycle.
"""

import logging
import re
from typing import Callable, Iterable, List

from mergebot.adapters.base import GitPlatformAdapter, GitPlatformError
from mergebot.models import RefPayload, RepoEvent
from mergebot.store import FileStore

LOG = logging.getLogger("mergebot.events")

PUSH_EVENT = "PushEvent"
CREATE_EVENT = "CreateEvent"


def _log_ref_update(payload: RefPayload) -> None:
    LOG.info("Ref update: %s/%s %s -> %s", payload.repo, payload.ref, payload.head, payload.after)


class EventPoller:
    """Logs push and branch creation events of the configured repositories."""

    def __init__(
        self,
        adapter: GitPlatformAdapter,
        store: FileStore,
        owner: str,
        repos: Iterable[str],
        polling_regex: Iterable[str] = (),
        on_ref_update: Callable[[RefPayload], None] | None = None,
    ) -> None:
        self._adapter = adapter
        self._store = store
        self._owner = owner
        self._repos = list(repos)
        self._patterns = [re.compile(p) for p in polling_regex]
        self._on_ref_update = on_ref_update or _log_ref_update

    def run_cycle(self) -> int:
        """Poll every repository once. Returns the number of logged payloads."""
        LOG.info("Polling for GitHub events")
        logged = 0
        for event in self.check_events():
            payload = self.build_payload(event)
            if payload is None or not self.validate_ref(payload):
                continue
            self.log_payload(payload)
            logged += 1
        return logged

    def check_events(self) -> List[RepoEvent]:
        """Fetch push and branch creation events of all repositories."""
        out: List[RepoEvent] = []
        for repo in self._repos:
            try:
                events = self._adapter.list_repo_events(f"{self._owner}/{repo}")
            except GitPlatformError as e:
                LOG.error("Error fetching events of %s: %s", repo, e)
                continue
            for event in events:
                if event.type not in (PUSH_EVENT, CREATE_EVENT):
                    continue
                if event.type == CREATE_EVENT and event.payload.get("ref_type") != "branch":
                    LOG.info("CreateEvent #%s is not a branch creation, skipping", event.id)
                    continue
                out.append(event)
        return out

    def build_payload(self, event: RepoEvent) -> RefPayload | None:
        """Normalize an event into a RefPayload. Returns None if it cannot be built."""
        ref = event.payload.get("ref") or ""
        head = after = master_branch = None
        if event.type == CREATE_EVENT:
            master_branch = event.payload.get("master_branch")
        if event.type == PUSH_EVENT:
            ref = ref.split("/")[-1]
            head = event.payload.get("before")
            after = event.payload.get("head")
            # pushes carry no master branch; reuse the one logged at branch creation
            master = self._store.find_master_event(ref)
            master_branch = master.master_branch if master else None
        if not ref:
            LOG.warning("Event #%s has no ref, skipping", event.id)
            return None

        email = None
        try:
            email = self._adapter.get_user(event.actor_login).get("email")
        except GitPlatformError as e:
            LOG.warning("Event #%s: failed to fetch user %s: %s", event.id, event.actor_login, e)

        return RefPayload(
            id=event.id,
            repo=event.repo_name.split("/")[-1],
            actor_id=event.actor_id,
            ref=ref,
            master_branch=master_branch,
            head=head,
            after=after,
            email=email,
        )

    def validate_ref(self, payload: RefPayload) -> bool:
        """True if the payload is new and its ref matches the patterns (if any)."""
        LOG.debug("Evaluating event #%s", payload.id)
        if self._store.find_event(payload.ref, payload.head, payload.after) is not None:
            LOG.debug("Event #%s already logged", payload.id)
            return False
        if not self._patterns:
            return True
        if any(p.search(payload.ref) for p in self._patterns):
            return True
        LOG.debug("Skipped event #%s: ref %s matches no pattern", payload.id, payload.ref)
        return False

    def log_payload(self, payload: RefPayload) -> None:
        """Write the payload to the store and emit the ref update."""
        LOG.info("Logging payload #%s (%s/%s)", payload.id, payload.repo, payload.ref)
        self._store.insert_event(payload)
        self._on_ref_update(payload)
