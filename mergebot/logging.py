"""Log setup for the mergebot daemon.

The root level covers every logger; ``logging.loggers`` overrides single
loggers by name, e.g. to trace only the correlator:

    logging:
      level: INFO
      loggers:
        mergebot.correlator: DEBUG

urllib3 is held at WARNING by default, otherwise every poll of GitHub and
Jenkins logs its connection lines at DEBUG.
"""

import logging

from mergebot.config import LoggingConfig

LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _resolve_level(level: str) -> int:
    """Level constant for a name; unknown names mean INFO."""
    return LEVELS.get(level.upper().strip(), logging.INFO)


class MergebotLogging:
    """Root handler plus per-logger levels from LoggingConfig."""

    def __init__(self, config: LoggingConfig) -> None:
        self._level = _resolve_level(config.level)
        self._format = config.format or DEFAULT_FORMAT
        self._overrides = {name: _resolve_level(level) for name, level in config.loggers.items()}

    def setup(self) -> None:
        logging.basicConfig(level=self._level, format=self._format, force=True)
        for name, level in self._overrides.items():
            logging.getLogger(name).setLevel(level)
