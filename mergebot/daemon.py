"""
Mergebot daemon: wires adapters, store and the polling cycles.

Two recurring tasks always run: the pull request watcher (dispatches
builds) and the build correlator (reports build progress). When events are
enabled a third task logs push and branch creation events.
"""

import logging
from dataclasses import dataclass

from mergebot.adapters import GitHubAdapter, JenkinsClient
from mergebot.config import AppConfig
from mergebot.correlator import BuildCorrelator
from mergebot.dispatcher import BuildDispatcher
from mergebot.events import EventPoller
from mergebot.logging import MergebotLogging
from mergebot.notifier import Notifier
from mergebot.scheduler import Scheduler
from mergebot.store import FileStore, StoreError
from mergebot.watcher import PullWatcher

LOG = logging.getLogger("mergebot.daemon")


@dataclass
class Components:
    """Everything one daemon process polls with."""

    store: FileStore
    watcher: PullWatcher
    correlator: BuildCorrelator
    events: EventPoller | None = None


def build_components(config: AppConfig) -> Components:
    """Create adapters, store and the cycle objects from config."""
    repo = config.bot.repository
    github = GitHubAdapter(token=config.github_token_resolved, api_url=config.github.api_url)
    jenkins = JenkinsClient(
        base_url=config.jenkins.url,
        project=config.jenkins.project,
        token=config.jenkins_token_resolved,
        user=config.jenkins.user,
        api_token=config.jenkins_api_token_resolved,
    )
    store = FileStore(config.workspace_dir)
    notifier = Notifier(github, repo)
    dispatcher = BuildDispatcher(jenkins, store)
    watcher = PullWatcher(github, dispatcher, store, notifier, repo, config.bot.mention_name)
    correlator = BuildCorrelator(jenkins, store, notifier)

    events = None
    if config.events.enabled:
        events = EventPoller(
            github,
            store,
            owner=config.bot.owner,
            repos=config.events.repos or [config.bot.repo_name],
            polling_regex=config.events.polling_regex,
        )
    return Components(store=store, watcher=watcher, correlator=correlator, events=events)


def build_scheduler(config: AppConfig, components: Components) -> Scheduler:
    scheduler = Scheduler()
    scheduler.add("pulls", components.watcher.run_cycle, config.scheduler.pulls_interval_seconds)
    scheduler.add("builds", components.correlator.run_cycle, config.scheduler.builds_interval_seconds)
    if components.events is not None:
        scheduler.add(
            "events",
            components.events.run_cycle,
            config.events.interval_seconds,
            fatal=(StoreError,),
        )
    return scheduler


def run_daemon(config: AppConfig, once: bool = False) -> int:
    """Run the polling cycles until interrupted (or one pass with once).

    Returns exit code: 1 if a task stopped on a fatal error.
    """
    MergebotLogging(config.logging).setup()
    components = build_components(config)
    scheduler = build_scheduler(config, components)
    LOG.info(
        "Mergebot started | repo=%s | jenkins=%s/job/%s | store=%s | events=%s | once=%s",
        config.bot.repository,
        config.jenkins.url.rstrip("/"),
        config.jenkins.project,
        components.store.base_dir,
        components.events is not None,
        once,
    )

    if once:
        try:
            scheduler.run_once()
        except StoreError as e:
            LOG.error("Fatal store error: %s", e)
            return 1
        return 0

    scheduler.start()
    try:
        error = scheduler.wait()
    finally:
        scheduler.stop()
    if error is not None:
        LOG.error("Stopped on fatal error: %s", error)
        return 1
    return 0
