# Shared pytest fixtures
from __future__ import annotations

import tempfile
from collections.abc import Callable
from datetime import datetime
from email.message import EmailMessage
from email.utils import format_datetime
from io import BytesIO
from pathlib import Path
from typing import Any

import pandas as pd
import pytest

from flexabsence.config.loader import load_config
from flexabsence.logging.init import reset_logging
from flexabsence.models.config_models import AppConfig
from flexabsence.store.workbook import Table, WorkbookStore

PROJECT_ROOT = Path(__file__).resolve().parents[1]
XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

ATTENDANCE_SUBJECT = "A new version of My ATT - Attendance Bulletin is available"
COURSES_SUBJECT = "A new version of My Student CY List - Course, Teacher & Room is available"
CONTACTS_SUBJECT = (
    "A new version of My Student CY List - Student Email/Contact Info - Next Year Option is available"
)

COURSES_HEADERS = [
    "Student Name",
    "Student Id",
    "Grade",
    "9th Grd Entry",
    "Period",
    "Description",
    "Room",
    "Instructor",
    "Instructor ID",
    "Instructor Email",
]


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "mail").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        for var in ("FLEX_USER_EMAIL", "FLEX_WORKBOOK", "FLEX_MAILBOX"):
            monkeypatch.delenv(var, raising=False)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    text = (PROJECT_ROOT / "config" / "flex.yml").read_text(encoding="utf-8")
    return text.replace("timezone: America/New_York", "timezone: UTC")


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "flex.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def app_config(write_config: Path) -> AppConfig:
    return load_config(write_config)


@pytest.fixture()
def store() -> WorkbookStore:
    return WorkbookStore()


@pytest.fixture()
def make_xlsx() -> Callable[[list[list[Any]]], bytes]:
    """Build .xlsx bytes holding ``rows`` on the first sheet (no header inference)."""

    def _make(rows: list[list[Any]]) -> bytes:
        buf = BytesIO()
        with pd.ExcelWriter(buf, engine="openpyxl") as writer:
            pd.DataFrame(rows).to_excel(writer, index=False, header=False)
        return buf.getvalue()

    return _make


@pytest.fixture()
def write_eml(temp_workdir: Path) -> Callable[..., Path]:
    """Write a report email with optional attachments into ``<workdir>/mail``."""

    def _write(
        name: str,
        subject: str,
        date: datetime,
        attachments: list[tuple[str, bytes]] | None = None,
        sender: str = "teacher@school.example",
        mime_type: str = XLSX_MIME,
    ) -> Path:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = f"Teacher <{sender}>"
        msg["To"] = sender
        msg["Date"] = format_datetime(date)
        msg.set_content("Report attached.")
        maintype, subtype = mime_type.split("/", 1)
        for filename, payload in attachments or []:
            msg.add_attachment(payload, maintype=maintype, subtype=subtype, filename=filename)
        path = temp_workdir / "mail" / f"{name}.eml"
        path.write_bytes(bytes(msg))
        return path

    return _write


def roster_row(student_id: Any, first: str = "Ann", comment: str = "") -> list[Any]:
    """One pasted FlexiSched row (A..K) plus the comment column; derived cells empty."""
    return [
        student_id, first, "Lee", 2026, "Study Hall", "Flex", "Req", "Mon", "2", "11/3/2025",
        "Absent", comment, "", "", "", "", "",
    ]


def attendance_row(student_id: Any, code: Any, period: Any = "02") -> list[Any]:
    return [student_id, "Lee, Ann", "", "", "", "", "", "", "", period, code]


def courses_row(student_id: Any, teacher: str) -> list[Any]:
    # Already reordered: Student Id first, Instructor at G.
    return [student_id, "Lee, Ann", "10", "02", "English", "101", teacher, "", ""]


def contacts_row(student_id: Any, student: str, guardian1: str, guardian2: str) -> list[Any]:
    row: list[Any] = [""] * 14
    row[0] = "Lee, Ann"
    row[1] = student_id
    row[6] = guardian1
    row[10] = guardian2
    row[13] = student
    return row


def seed_roster(store: WorkbookStore, rows: list[list[Any]], name: str = "11.3 flex absences") -> Table:
    table = store.create_table(name)
    table.set_values(1, 1, [["FlexiSched export"] + [""] * 16])
    table.set_values(2, 1, [["ID", "First Name", "Last Name"] + [""] * 14])
    if rows:
        table.set_values(3, 1, rows)
    return table


def seed_sources(
    store: WorkbookStore,
    attendance: list[list[Any]],
    courses: list[list[Any]],
    contacts: list[list[Any]],
) -> None:
    att = store.create_table("BHS attendance")
    att.set_values(1, 1, [["Student Id", "Name", "", "", "", "", "", "", "", "Period", "Code"]] + attendance)
    crs = store.create_table("2nd period default")
    crs.set_values(
        1,
        1,
        [["Student Id", "Student Name", "Grade", "Period", "Description", "Room", "Instructor",
          "Instructor Id", "Instructor Email"]] + courses,
    )
    con = store.create_table("contact info")
    header = [""] * 14
    header[1] = "Student Id"
    con.set_values(1, 1, [header] + contacts)
