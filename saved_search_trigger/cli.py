from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from saved_search_trigger.config import ConfigError, TriggerConfig, load_config
from saved_search_trigger.dispatcher import AlertTrigger
from saved_search_trigger.report import build_summary, log_summary
from saved_search_trigger.splunk_client import SplunkClient

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _setup_logging(verbose: bool = False) -> None:
    # Progress goes to stdout; warnings and errors go to stderr.
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.addFilter(lambda record: record.levelno < logging.WARNING)
    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(logging.WARNING)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=[stdout_handler, stderr_handler],
        force=True,
    )
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def _attach_log_file(path: Path) -> None:
    handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    logging.getLogger().addHandler(handler)


def read_alerts_file(path: str) -> List[str]:
    alerts = []
    with open(path, "r", encoding="utf-8") as handle:
        for line in handle:
            name = line.strip()
            if not name or name.startswith("#"):
                continue
            alerts.append(name)
    return alerts


def _validate(args: argparse.Namespace) -> TriggerConfig:
    config = load_config(
        check_log_file=True,
        management_endpoint=args.endpoint,
        owner=args.owner,
        app=args.app,
        splunk_home=args.splunk_home,
        script_name=args.script_name,
        enable_logging=False if args.no_log_file else None,
    )
    if config.log_file is not None:
        _attach_log_file(config.log_file)
    return config


def run(args: argparse.Namespace) -> int:
    logger.info("Validating configuration parameters...")
    try:
        config = _validate(args)
    except ConfigError as exc:
        for error in exc.errors:
            logger.error("ERROR: %s", error)
        logger.error("Total validation errors: %d", len(exc.errors))
        logger.error("Configuration validation failed. Exiting.")
        return 1
    logger.info("Configuration validation passed.")
    logger.info("Script started")

    alerts = list(args.alerts)
    if args.alerts_file:
        try:
            alerts.extend(read_alerts_file(args.alerts_file))
        except OSError as exc:
            logger.error("ERROR: Cannot read alerts file %s: %s", args.alerts_file, exc)
            return 1
    if not alerts:
        logger.error("ERROR: No alerts defined. Please configure alerts to trigger.")
        return 1
    logger.info("Found %d alerts configured to trigger", len(alerts))

    client = SplunkClient(config)
    try:
        outcomes = AlertTrigger(client, config).trigger_all(alerts)
    finally:
        client.close()
    log_summary(build_summary(outcomes))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Trigger Splunk saved searches with infinite-loop protection",
    )
    parser.add_argument("alerts", nargs="*", help="Exact saved search names to trigger")
    parser.add_argument("--alerts-file", help="File with one saved search name per line")
    parser.add_argument("--endpoint", help="Management endpoint, overrides SPLUNK_MANAGEMENT_ENDPOINT")
    parser.add_argument("--owner", help="Saved search owner, overrides OWNER")
    parser.add_argument("--app", help="App context, overrides APP")
    parser.add_argument("--splunk-home", help="Splunk installation path, overrides SPLUNK_HOME")
    parser.add_argument("--script-name", help="Name this script is invoked by in alert actions")
    parser.add_argument("--no-log-file", action="store_true", help="Log to the console only")
    parser.add_argument("-v", "--verbose", action="store_true")
    parser.set_defaults(func=run)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
