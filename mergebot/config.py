"""Configuration loading from YAML and environment.

Secrets (GitHub token, Jenkins trigger token and API token) are taken from
environment variables or from files (Docker secrets). Never put real tokens
in config files committed to the repo.
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _read_secret(env_key: str, file_env_key: str) -> str | None:
    """Read secret from env var or from file path in env (e.g. Docker
    secrets)."""
    value = _current_env.get(env_key)
    if value:
        return value.strip()
    file_path = _current_env.get(file_env_key)
    if file_path:
        return Path(file_path).read_text().strip()
    return None


# Injected by load_config so secret resolution can read env/file
_current_env: dict[str, str] = {}


def _is_placeholder(value: str | None) -> bool:
    return not value or value.startswith("${")


class BotConfig(BaseSettings):
    """Bot identity, target repo and state directory."""

    model_config = SettingsConfigDict(env_prefix="BOT_", extra="ignore")

    repository: str = Field(default="owner/repo", description="Target repo e.g. octocat/hello-world")
    mention: str | None = Field(
        default=None,
        description="Name addressed by directives (@<mention> retest / ignore); defaults to repo owner",
    )
    workspace: str = Field(default=".", description="Directory holding the .mergebot/ state store")

    @property
    def owner(self) -> str:
        return self.repository.split("/", 1)[0]

    @property
    def repo_name(self) -> str:
        return self.repository.split("/", 1)[-1]

    @property
    def mention_name(self) -> str:
        return self.mention or self.owner


class GitHubConfig(BaseSettings):
    """GitHub API settings."""

    model_config = SettingsConfigDict(env_prefix="GITHUB_", extra="ignore")

    token: str | None = Field(default=None, description="PAT or app token; use env or secret file")
    api_url: str = Field(default="https://api.github.com", description="API base URL")


class JenkinsConfig(BaseSettings):
    """Jenkins build runner settings."""

    model_config = SettingsConfigDict(env_prefix="JENKINS_", extra="ignore")

    url: str = Field(default="http://localhost:8080", description="Jenkins base URL (protocol and host)")
    project: str = Field(default="pull-requests", description="Parameterized job that builds pull requests")
    token: str | None = Field(default=None, description="Remote trigger token of the job")
    user: str | None = Field(default=None, description="User for HTTP basic auth (optional)")
    api_token: str | None = Field(default=None, description="API token for HTTP basic auth (optional)")


class SchedulerConfig(BaseSettings):
    """Polling intervals of the two cycles."""

    model_config = SettingsConfigDict(env_prefix="SCHEDULER_", extra="ignore")

    pulls_interval_seconds: int = Field(default=60, ge=1, description="Pause between pull request polls")
    builds_interval_seconds: int = Field(default=30, ge=1, description="Pause between Jenkins build list polls")


class EventsConfig(BaseSettings):
    """Push / branch creation event polling (optional front-end)."""

    model_config = SettingsConfigDict(env_prefix="EVENTS_", extra="ignore")

    enabled: bool = Field(default=False, description="Poll repository events")
    repos: list[str] = Field(default_factory=list, description="Repo names under the bot owner to poll")
    polling_regex: list[str] = Field(
        default_factory=list,
        description="Only log events whose ref matches one of these patterns (all when empty)",
    )
    interval_seconds: int = Field(default=60, ge=1, description="Pause between event polls")


class LoggingConfig(BaseSettings):
    """Logging settings."""

    model_config = SettingsConfigDict(env_prefix="LOGGING_", extra="ignore")

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format",
    )
    loggers: dict[str, str] = Field(
        default_factory=lambda: {"urllib3": "WARNING"},
        description="Per-logger levels, e.g. {\"mergebot.correlator\": \"DEBUG\"}",
    )


class AppConfig(BaseSettings):
    """Root application config from YAML + env."""

    model_config = SettingsConfigDict(extra="ignore")

    bot: BotConfig = Field(default_factory=BotConfig)
    github: GitHubConfig = Field(default_factory=GitHubConfig)
    jenkins: JenkinsConfig = Field(default_factory=JenkinsConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    events: EventsConfig = Field(default_factory=EventsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def github_token_resolved(self) -> str | None:
        """Resolve GitHub token from config, env or Docker secret file."""
        t = self.github.token
        if not _is_placeholder(t):
            return t
        return _read_secret("GITHUB_TOKEN", "GITHUB_TOKEN_FILE")

    @property
    def jenkins_token_resolved(self) -> str | None:
        """Resolve Jenkins remote trigger token."""
        t = self.jenkins.token
        if not _is_placeholder(t):
            return t
        return _read_secret("JENKINS_TOKEN", "JENKINS_TOKEN_FILE")

    @property
    def jenkins_api_token_resolved(self) -> str | None:
        """Resolve Jenkins API token used for basic auth."""
        t = self.jenkins.api_token
        if not _is_placeholder(t):
            return t
        return _read_secret("JENKINS_API_TOKEN", "JENKINS_API_TOKEN_FILE")

    @property
    def workspace_dir(self) -> Path:
        return Path(self.bot.workspace or ".").resolve()


def _substitute_env(value: Any) -> Any:
    """Replace ${VAR} and $VAR in strings with os.environ."""
    if isinstance(value, str):
        if value.startswith("${") and value.endswith("}"):
            key = value[2:-1].strip()
            return _current_env.get(key, value)
        if value.startswith("$") and not value.startswith("${"):
            key = value[1:].strip()
            return _current_env.get(key, value)
        return value
    if isinstance(value, dict):
        return {k: _substitute_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_substitute_env(v) for v in value]
    return value


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load config from YAML file and environment.

    Secrets: GITHUB_TOKEN / GITHUB_TOKEN_FILE, JENKINS_TOKEN / JENKINS_TOKEN_FILE,
    JENKINS_API_TOKEN / JENKINS_API_TOKEN_FILE.
    """
    global _current_env
    import os

    _current_env = dict(os.environ)

    path = config_path or Path("config.yaml")
    if not path.is_file():
        return AppConfig()

    raw = yaml.safe_load(path.read_text()) or {}
    raw = _substitute_env(raw)

    bot_raw = raw.get("bot") or {}
    if _current_env.get("BOT_REPOSITORY"):
        bot_raw = {**bot_raw, "repository": _current_env.get("BOT_REPOSITORY")}

    return AppConfig(
        bot=BotConfig(**bot_raw),
        github=GitHubConfig(**(raw.get("github") or {})),
        jenkins=JenkinsConfig(**(raw.get("jenkins") or {})),
        scheduler=SchedulerConfig(**(raw.get("scheduler") or {})),
        events=EventsConfig(**(raw.get("events") or {})),
        logging=LoggingConfig(**(raw.get("logging") or {})),
    )
