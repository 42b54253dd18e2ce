from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from flexabsence.config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from flexabsence.logging.error_log import ErrorLogBuffer
from flexabsence.logging.init import log_summary, setup_logging
from flexabsence.mail.mailbox import EmlDirectoryMailbox
from flexabsence.models.config_models import AppConfig
from flexabsence.models.error_record import ErrorRecord
from flexabsence.models.errors import FlexAbsenceError
from flexabsence.services.comments import sync_comments
from flexabsence.services.enrichment import enrich_roster
from flexabsence.services.headers import ensure_enrichment_headers
from flexabsence.services.importer import import_reports
from flexabsence.services.roster import create_todays_roster, find_roster
from flexabsence.services.summary import (
    describe_import,
    render_comment_summary,
    render_enrichment_summary,
    render_import_summary,
)
from flexabsence.store.workbook import WorkbookStore

"""CLI entrypoint.

Subcommands (one workbook per invocation, saved only when the command completes):

- ``create-roster``  create today's roster table from the template
- ``import``         pull the three report emails into their tables
- ``enrich``         join the reports onto the roster and rebuild the staging table
- ``sync-comments``  copy staging comments back onto the roster
- ``setup-headers``  restore the roster's derived header band

Exit codes: 0 success, 2 partial import, 1 fatal.
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

DEFAULT_WORKBOOK = "flex.xlsx"
DEFAULT_MAILBOX = "mail"

SUMMARY_PREFIX = "SUMMARY "


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env using python-dotenv; values in the file win over the process environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="YAML config file")
    common.add_argument(
        "--workbook",
        type=Path,
        default=None,
        help=f"Workbook file (default: $FLEX_WORKBOOK or {DEFAULT_WORKBOOK})",
    )
    common.add_argument("--debug", action="store_true", help="Enable debug logging")

    roster = argparse.ArgumentParser(add_help=False)
    roster.add_argument("--roster", default=None, help="Roster table name (when several match)")

    p = argparse.ArgumentParser(prog="flexabsence", description="Flex absence tracker")
    sub = p.add_subparsers(dest="command", required=True)

    sub.add_parser("create-roster", parents=[common], help="Create today's roster table")

    imp = sub.add_parser("import", parents=[common], help="Import the report emails")
    imp.add_argument(
        "--mailbox",
        type=Path,
        default=None,
        help=f"Directory of .eml files (default: $FLEX_MAILBOX or {DEFAULT_MAILBOX})",
    )
    imp.add_argument(
        "--from",
        dest="from_address",
        default=None,
        help="Sender address (default: $FLEX_USER_EMAIL, then mail.from_address)",
    )

    sub.add_parser("enrich", parents=[common, roster], help="Enrich the roster and stage skippers")
    sub.add_parser("sync-comments", parents=[common, roster], help="Copy staging comments to the roster")
    sub.add_parser("setup-headers", parents=[common, roster], help="Restore the roster header band")
    return p


def _record_error(error_log: ErrorLogBuffer, operation: str, exc: Exception) -> None:
    error_log.append(
        ErrorRecord.create(
            operation=operation,
            table=getattr(exc, "table_name", ""),
            row=-1,
            error_type=ErrorRecord.error_type_for(exc),
            message=str(exc),
        )
    )


def _flush_error_log(error_log: ErrorLogBuffer, logger) -> None:
    if not len(error_log):
        return
    logger.info(f"errors by operation: {error_log.describe()}")
    try:
        path = error_log.flush()
    except OSError as e:
        logger.error(f"failed to write error log: {e}")
        return
    logger.info(f"error log written: {path}")


def _run_import(
    args: argparse.Namespace, cfg: AppConfig, store: WorkbookStore, logger, error_log: ErrorLogBuffer
) -> int:
    mailbox_dir = args.mailbox or Path(os.getenv("FLEX_MAILBOX") or DEFAULT_MAILBOX)
    if not mailbox_dir.is_dir():
        logger.error(f"mailbox directory not found: {mailbox_dir}")
        return EXIT_FATAL
    from_address = args.from_address or os.getenv("FLEX_USER_EMAIL") or None

    logger.info(f"importing reports from: {mailbox_dir}")
    summary = import_reports(
        cfg, EmlDirectoryMailbox(mailbox_dir), store, from_address=from_address, error_log=error_log
    )
    # Per-report notes are kept even when some kinds failed.
    store.save()

    log_summary(render_import_summary(summary)[len(SUMMARY_PREFIX):])
    if summary.imported == summary.total:
        logger.info(describe_import(summary))
        return EXIT_SUCCESS_ALL
    logger.warning(describe_import(summary))
    if summary.imported > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_FATAL


def _run_enrich(args: argparse.Namespace, cfg: AppConfig, store: WorkbookStore, logger) -> int:
    result = enrich_roster(store, cfg, roster_name=args.roster)
    store.save()
    log_summary(render_enrichment_summary(result)[len(SUMMARY_PREFIX):])
    if result.skippers == 0:
        logger.info("enrichment complete! no skippers found")
    else:
        logger.info(
            f"enrichment complete! found {result.skippers} skipper(s); "
            f"check the {cfg.staging.table_name!r} table"
        )
    return EXIT_SUCCESS_ALL


def _run_sync_comments(args: argparse.Namespace, cfg: AppConfig, store: WorkbookStore, logger) -> int:
    result = sync_comments(store, cfg, roster_name=args.roster)
    store.save()
    log_summary(render_comment_summary(result)[len(SUMMARY_PREFIX):])
    if result.comments_available == 0:
        logger.info(f"no comments found in {cfg.staging.table_name!r}")
    return EXIT_SUCCESS_ALL


def _run_setup_headers(args: argparse.Namespace, cfg: AppConfig, store: WorkbookStore, logger) -> int:
    table = find_roster(store, cfg, roster_name=args.roster)
    if ensure_enrichment_headers(table, cfg.roster):
        store.save()
        logger.info(f"enrichment headers set up in {table.name!r}")
    else:
        logger.info(f"enrichment headers already in place in {table.name!r}")
    return EXIT_SUCCESS_ALL


def _run_create_roster(args: argparse.Namespace, cfg: AppConfig, store: WorkbookStore, logger) -> int:
    table, created = create_todays_roster(store, cfg)
    if created:
        store.save()
        logger.info(f"created new roster table {table.name!r}; paste FlexiSched data starting at A1")
    else:
        logger.info(f"table {table.name!r} already exists")
    return EXIT_SUCCESS_ALL


_COMMANDS = {
    "create-roster": _run_create_roster,
    "enrich": _run_enrich,
    "sync-comments": _run_sync_comments,
    "setup-headers": _run_setup_headers,
}


def main(argv: list[str] | None = None) -> int:
    # None only: an empty list from tests must not pick up pytest's own arguments.
    if argv is None:
        argv = sys.argv[1:]
    args = _build_parser().parse_args(argv)

    logger = setup_logging(debug=args.debug)
    if args.debug:
        logger.debug("debug mode enabled")

    _load_env_file(Path(".env"), override=True)

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    workbook_path = args.workbook or Path(os.getenv("FLEX_WORKBOOK") or DEFAULT_WORKBOOK)
    store = WorkbookStore.open(workbook_path)
    error_log = ErrorLogBuffer()

    try:
        if args.command == "import":
            return _run_import(args, cfg, store, logger, error_log)
        return _COMMANDS[args.command](args, cfg, store, logger)
    except FlexAbsenceError as e:
        logger.error(f"{args.command}: {e}")
        _record_error(error_log, args.command, e)
        return EXIT_FATAL
    finally:
        _flush_error_log(error_log, logger)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
