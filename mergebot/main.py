"""Mergebot entry point.

Two modes: daemon (poll forever) and once (one pass of every cycle, e.g.
from cron). Usage: mergebot daemon | mergebot once.
"""

import argparse
import logging
import sys
from pathlib import Path

from mergebot.config import load_config

SUBCOMMANDS = ("daemon", "once")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI with optional subcommand (daemon | once)."""
    argv = argv if argv is not None else sys.argv[1:]
    sub = "daemon"
    rest = list(argv)
    if argv and not argv[0].startswith("-") and argv[0] in SUBCOMMANDS:
        sub = argv[0]
        rest = argv[1:]

    parser = argparse.ArgumentParser(
        prog="mergebot",
        description="Mergebot - build pull requests on Jenkins and report results",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=Path("config.yaml"),
        help="Path to YAML config file",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Only load and validate config, then exit",
    )
    parsed = parser.parse_args(rest)
    parsed.subcommand = sub
    return parsed


def main(argv: list[str] | None = None) -> int:
    """Entry point: dispatch to daemon or a single pass."""
    args = parse_args(argv)

    config_path = args.config
    if not config_path.is_file() and config_path == Path("config.yaml"):
        if Path("config.example.yaml").is_file():
            config_path = Path("config.example.yaml")
            logging.basicConfig(level=logging.INFO)
            logging.getLogger("mergebot").warning("config.yaml not found, using config.example.yaml")

    config = load_config(config_path)

    if args.check:
        print("Config OK:", config.bot.repository, f"{config.jenkins.url}/job/{config.jenkins.project}")
        return 0

    from mergebot.daemon import run_daemon

    try:
        return run_daemon(config, once=args.subcommand == "once")
    except KeyboardInterrupt:
        return 0
    except Exception as e:
        logging.getLogger("mergebot.daemon").exception("Fatal error: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
