from __future__ import annotations

import json
import re
from datetime import UTC, tzinfo
from pathlib import Path
from types import MappingProxyType
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError
from openpyxl.utils import column_index_from_string

from ..models.config_models import (
    AppConfig,
    AttendanceReportConfig,
    ContactsReportConfig,
    CoursesReportConfig,
    MailConfig,
    ReportConfig,
    ReportKind,
    RosterConfig,
    StagingConfig,
)

"""Config loader.

Responsibilities:
- Load the YAML config (default ``config/flex.yml``)
- Validate it against ``config_schema.json`` (unknown keys rejected)
- Apply defaults (timezone=UTC, header_rows=2, id columns=A, sentinel=#N/A)
- Convert column letters to zero-based indexes once, validating arity and the
  contiguous derived header band so services never re-check positions per cell
"""

__all__ = [
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "SCHEMA_PATH",
    "column_index",
    "load_config",
    "resolve_timezone",
]

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/flex.yml")

DEFAULT_NAME_FORMAT = "{month}.{day} flex absences"

# Order of the derived header band keys, matched against their configured columns.
_LABEL_KEYS = ("comment", "attendance_code", "teacher", "student_email", "guardian1_email", "guardian2_email")


class ConfigError(Exception):
    pass


def column_index(letter: str) -> int:
    """Convert a spreadsheet column letter (``"A"``) to a zero-based index (``0``)."""
    try:
        return column_index_from_string(letter.strip().upper()) - 1
    except ValueError as e:
        raise ConfigError(f"invalid column letter: {letter!r}") from e


def resolve_timezone(name: str) -> tzinfo:
    """Return the tzinfo for a configured timezone name (UTC needs no tz database)."""
    if name.upper() == "UTC":
        return UTC
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigError(f"unknown timezone: {name!r}") from e


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against JSON schema.

    Raises:
        ConfigError: If the schema file is missing or invalid, or the config data fails
            schema validation (missing required keys, wrong types, unknown keys).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _columns(letters: list[str]) -> tuple[int, ...]:
    return tuple(column_index(c) for c in letters)


def _build_reports(raw: dict[str, Any]) -> dict[ReportKind, ReportConfig]:
    att = raw["attendance"]
    crs = raw["courses"]
    con = raw["contacts"]

    original = tuple(str(c).strip() for c in crs["original_columns"])
    target = tuple(str(c).strip() for c in crs["target_columns"])
    teacher_cols = _columns(crs["value_columns"])
    if teacher_cols[0] >= len(target):
        raise ConfigError(
            f"courses value column {crs['value_columns'][0]} lies outside the "
            f"{len(target)} target columns"
        )

    reports: dict[ReportKind, ReportConfig] = {
        ReportKind.ATTENDANCE: AttendanceReportConfig(
            kind=ReportKind.ATTENDANCE,
            subject=att["subject"],
            table_name=att["table"],
            id_column=column_index(att.get("id_column", "A")),
            value_columns=_columns(att["value_columns"]),
            period_column=column_index(att["period_column"]),
            period_filter=str(att["period_filter"]).strip(),
        ),
        ReportKind.COURSES: CoursesReportConfig(
            kind=ReportKind.COURSES,
            subject=crs["subject"],
            table_name=crs["table"],
            id_column=column_index(crs.get("id_column", "A")),
            value_columns=teacher_cols,
            original_columns=original,
            target_columns=target,
        ),
        ReportKind.CONTACTS: ContactsReportConfig(
            kind=ReportKind.CONTACTS,
            subject=con["subject"],
            table_name=con["table"],
            id_column=column_index(con.get("id_column", "A")),
            value_columns=_columns(con["value_columns"]),
        ),
    }
    return reports


def _build_roster(raw: dict[str, Any]) -> RosterConfig:
    try:
        re.compile(raw["name_pattern"])
    except re.error as e:
        raise ConfigError(f"invalid roster name_pattern: {e}") from e

    emails = _columns(raw["email_columns"])
    if list(emails) != list(range(emails[0], emails[0] + 3)):
        raise ConfigError("roster email_columns must be three adjacent columns in order")
    positions = {
        "comment": column_index(raw["comment_column"]),
        "attendance_code": column_index(raw["attendance_code_column"]),
        "teacher": column_index(raw["teacher_column"]),
        "student_email": emails[0],
        "guardian1_email": emails[1],
        "guardian2_email": emails[2],
    }
    ordered = sorted(_LABEL_KEYS, key=lambda k: positions[k])
    start = positions[ordered[0]]
    if [positions[k] for k in ordered] != list(range(start, start + len(ordered))):
        raise ConfigError(
            "roster derived columns must form one contiguous band "
            f"(got {sorted(positions.values())})"
        )
    id_col = column_index(raw.get("id_column", "A"))
    if start <= id_col < start + len(ordered):
        raise ConfigError("roster id_column overlaps the derived header band")

    labels = raw["labels"]
    return RosterConfig(
        name_pattern=raw["name_pattern"],
        name_format=raw.get("name_format", DEFAULT_NAME_FORMAT),
        header_rows=int(raw.get("header_rows", 2)),
        id_column=id_col,
        comment_column=positions["comment"],
        attendance_code_column=positions["attendance_code"],
        teacher_column=positions["teacher"],
        email_columns=(emails[0], emails[1], emails[2]),
        band_start=start,
        band_labels=tuple(labels[k] for k in ordered),
        sentinel=raw.get("sentinel", "#N/A"),
        instruction=raw.get(
            "instruction", "Paste FlexiSched data here (will overwrite this row and row 2)"
        ),
    )


def load_config(path: Path) -> AppConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e

    _validate_config_schema(data)

    tz = data.get("timezone", "UTC")
    resolve_timezone(tz)
    mail_raw = data.get("mail") or {}
    mail = MailConfig(
        from_address=mail_raw.get("from_address"),
        attachment_extensions=tuple(
            e.lower() for e in mail_raw.get("attachment_extensions", [".xlsx"])
        ),
        attachment_mime_types=tuple(
            mail_raw.get(
                "attachment_mime_types",
                ["application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"],
            )
        ),
    )
    staging_raw = data["staging"]
    return AppConfig(
        timezone=tz,
        mail=mail,
        reports=MappingProxyType(_build_reports(data["reports"])),
        roster=_build_roster(data["roster"]),
        staging=StagingConfig(
            table_name=staging_raw["table"],
            headers=tuple(str(h) for h in staging_raw["headers"]),
        ),
    )
