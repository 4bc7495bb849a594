from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from .config import DEFAULT_HOST, DEFAULT_NOTEBOOK, DEFAULT_TIMEOUT, ConfigurationError, build_config
from .errors import JournalImportError
from .exporter import ImportReport, import_journal
from .joplin_client import JoplinClient
from .parser import load_export
from .tags import TagDirectory

LOG_PATH = Path("import.log")
DEBUG_LOG_PATH = Path("import.debug.log")
LOGGER_NAME = "dayone_to_joplin"


def build_arg_parser() -> argparse.ArgumentParser:
    """Construct the command-line parser for the importer CLI."""

    parser = argparse.ArgumentParser(description="Import a Day One journal export into Joplin.")
    parser.add_argument(
        "-host", "--host"
        ,default=DEFAULT_HOST
        ,help="Fully qualified host address of your local Joplin instance."
    )
    parser.add_argument(
        "-journalFolder", "--journal-folder"
        ,dest="journal_folder"
        ,required=True
        ,help="Full path to the directory containing your extracted journal data."
    )
    parser.add_argument(
        "-notebook", "--notebook"
        ,default=DEFAULT_NOTEBOOK
        ,help="ID of the notebook to import your journal entries into."
    )
    parser.add_argument("-token", "--token", required=True, help="API token for your local Joplin instance.")
    parser.add_argument(
        "--timeout"
        ,type=float
        ,default=DEFAULT_TIMEOUT
        ,help="Seconds to wait for each Joplin request."
    )
    parser.add_argument("--fail-fast", action="store_true", help="Abort the whole run on the first failing entry.")
    parser.add_argument("--log-file", default=str(LOG_PATH), help="Where to write the import log.")
    parser.add_argument(
        "--debug-log"
        ,action="store_true"
        ,help=f"Write full note payloads and Joplin responses to {DEBUG_LOG_PATH}"
    )
    return parser


def print_report(report: ImportReport, logger: logging.Logger) -> None:
    """Summarise a finished run on stdout and in the log."""

    print(f"[info] Imported {len(report.succeeded)} of {len(report.results)} entries")
    logger.info("Imported %d of %d entries", len(report.succeeded), len(report.results))

    if report.created_tags:
        created = ", ".join(report.created_tags)
        print(f"[info] Created tags: {created}")
        logger.info("Created tags: %s", created)

    for result in report.failed:
        print(f"[warn] {result.entry.uuid} ({result.title}): {result.error.describe()}")
        logger.warning("Entry %s failed: %s", result.entry.uuid, result.error.describe())
    for result in report.orphaned:
        linked = ", ".join(result.linked_tags) or "none"
        print(f"⚠ Note {result.note_id} was created for {result.entry.uuid} but is missing tags (linked: {linked})")


def run_cli(argv: Optional[list[str]] = None) -> int:
    """Entry point invoked by import_journal_to_joplin.py, the console script, or tests."""

    parser = build_arg_parser()
    args = parser.parse_args(argv)

    logger = configure_logging(Path(args.log_file))
    debug_logger = configure_debug_logger() if args.debug_log else None

    try:
        config = build_config(
            args.journal_folder
            ,args.token
            ,host=args.host
            ,notebook=args.notebook
            ,timeout=args.timeout
            ,fail_fast=args.fail_fast
        )
        logger.info("Starting import from %s into notebook %s", config.journal_folder, config.notebook)

        export = load_export(config.journal_folder)
        print(f"[info] Read {len(export.entries)} entries from {config.entries_path}")

        client = JoplinClient(config.host, config.token, timeout=config.timeout)
        tags = TagDirectory.load(client)
        report = import_journal(client, config, export, tags, debug_logger=debug_logger)
    except ConfigurationError as exc:
        print(f"[error] {exc}")
        logger.error("Configuration error: %s", exc)
        return 1
    except JournalImportError as exc:
        print(f"[error] {exc.describe()}")
        logger.error("Import aborted: %s", exc.describe())
        return 1

    print_report(report, logger)
    return 0 if report.ok else 1


def main() -> None:
    sys.exit(run_cli(sys.argv[1:]))


def _attach_file_handler(logger: logging.Logger, log_path: Path, fmt: str) -> None:
    """Point the logger at log_path, replacing a file handler left over from an earlier run."""

    target = str(log_path.resolve())
    for handler in list(logger.handlers):
        if isinstance(handler, logging.FileHandler):
            if handler.baseFilename == target:
                return
            logger.removeHandler(handler)
            handler.close()

    handler = logging.FileHandler(target, encoding="utf-8")
    handler.setFormatter(logging.Formatter(fmt))
    logger.addHandler(handler)


def configure_logging(log_path: Path = LOG_PATH) -> logging.Logger:
    """Set up the primary info-level logger that writes to import.log."""

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.INFO)
    _attach_file_handler(logger, log_path, "%(asctime)s [%(levelname)s] %(message)s")
    return logger


def configure_debug_logger(log_path: Path = DEBUG_LOG_PATH) -> logging.Logger:
    """Create or return the debug logger that captures payloads/API responses."""

    debug_logger = logging.getLogger(f"{LOGGER_NAME}.debug")
    debug_logger.setLevel(logging.INFO)
    debug_logger.propagate = False
    _attach_file_handler(debug_logger, log_path, "%(asctime)s [DEBUG] %(message)s")
    return debug_logger
