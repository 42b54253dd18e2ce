from __future__ import annotations

import logging
import re
from datetime import date, datetime

from ..config.loader import resolve_timezone
from ..models.config_models import AppConfig
from ..models.errors import EmptyRoster, RosterNotFound
from ..store.workbook import Table, WorkbookStore
from .headers import write_enrichment_headers

"""Roster table management: locating the active roster and creating today's one.

The roster is found by a date-stamped name pattern (``11.3 flex absences``). When more
than one table matches, the caller must name the roster explicitly; the first match is
never guessed.
"""

__all__ = [
    "INSTRUCTION_NOTE",
    "create_todays_roster",
    "find_roster",
    "format_date_for_table_name",
    "roster_table_name",
    "require_data_rows",
]

logger = logging.getLogger(__name__)

INSTRUCTION_NOTE = (
    "Instructions:\n"
    "1. Delete all data from this sheet\n"
    "2. Paste FlexiSched report data (includes 2 header rows)\n"
    "3. Run enrichment to add attendance, teacher and contact columns\n\n"
    "The enrichment headers will be automatically restored if overwritten."
)


def format_date_for_table_name(day: date) -> str:
    """``M.D`` without zero padding (3 Nov -> ``"11.3"``)."""
    return f"{day.month}.{day.day}"


def roster_table_name(config: AppConfig, day: date) -> str:
    """Roster name for ``day``; the default format gives ``"11.3 flex absences"`` for 3 Nov."""
    return config.roster.name_format.format(
        month=day.month, day=day.day, date=format_date_for_table_name(day)
    )


def find_roster(store: WorkbookStore, config: AppConfig, roster_name: str | None = None) -> Table:
    """Locate the active roster table.

    Raises
    ------
    RosterNotFound: no table matches, the named table does not exist, or several tables
        match and no name was given.
    """
    if roster_name:
        table = store.get_table(roster_name)
        if table is None:
            raise RosterNotFound(f"roster table not found: {roster_name!r}")
        return table

    pattern = re.compile(config.roster.name_pattern, re.IGNORECASE)
    matches = store.find_tables(pattern)
    if not matches:
        raise RosterNotFound(
            "could not find a flex absences table; create one with a name like "
            f"\"{roster_table_name(config, date(2000, 11, 3))}\""
        )
    if len(matches) > 1:
        names = ", ".join(repr(t.name) for t in matches)
        raise RosterNotFound(f"several roster tables match ({names}); choose one with --roster")
    logger.info("found flex absences table: %s", matches[0].name)
    return matches[0]


def require_data_rows(table: Table, config: AppConfig) -> int:
    """Return the number of roster data rows, raising EmptyRoster when there are none."""
    last_row = table.last_row()
    header_rows = config.roster.header_rows
    if last_row <= header_rows:
        raise EmptyRoster(
            f"no data found in {table.name!r}; paste FlexiSched data first "
            f"(need at least {header_rows + 1} rows: {header_rows} headers + data)"
        )
    return last_row - header_rows


def create_todays_roster(
    store: WorkbookStore, config: AppConfig, today: date | None = None
) -> tuple[Table, bool]:
    """Create the roster table for ``today`` from the template.

    Returns ``(table, created)``; an existing table is returned untouched.
    """
    if today is None:
        today = datetime.now(resolve_timezone(config.timezone)).date()
    name = roster_table_name(config, today)

    existing = store.get_table(name)
    if existing is not None:
        logger.info("table %r already exists", name)
        return existing, False

    table = store.create_table(name)
    table.set_values(1, 1, [[config.roster.instruction]])
    table.set_italic("A1", color="666666")
    table.set_note("A1", INSTRUCTION_NOTE)
    write_enrichment_headers(table, config.roster)
    logger.info("created new roster table: %s", name)
    return table, True
