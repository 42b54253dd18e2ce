from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from conftest import ATTENDANCE_SUBJECT, CONTACTS_SUBJECT, COURSES_HEADERS, COURSES_SUBJECT, roster_row

from flexabsence.cli.__main__ import main as cli_main
from flexabsence.store.workbook import WorkbookStore

"""Full cycle: import the three report emails, paste a roster, enrich, comment, sync back."""

DATE = datetime(2025, 11, 3, 7, tzinfo=UTC)


def _att(student_id: str, period: str, code: str) -> list[str]:
    return [student_id, "", "", "", "", "", "", "", "", period, code]


def _write_reports(write_eml, make_xlsx) -> None:
    attendance = [
        ["Student Id", "b", "c", "d", "e", "f", "g", "h", "i", "Period", "Code"],
        _att("1001", "02", "P"),
        _att("1002", "03", "P"),  # other period only: 1002 is a skipper
        _att("1003", "02", "T"),
    ]
    courses = [
        COURSES_HEADERS,
        ["Lee, Ann", "1001", "10", "", "02", "English", "101", "Smith", "7", "smith@x"],
        ["Kim, Bob", "1002", "11", "", "02", "Math", "102", "Jones", "8", "jones@x"],
    ]
    contacts_header = ["Name", "Student Id"] + [f"c{i}" for i in range(2, 14)]
    contact = ["Kim, Bob", "1002"] + [""] * 12
    contact[6] = "mom@x.example"
    contact[10] = "dad@x.example"
    contact[13] = "bob@s.example"

    write_eml("att", ATTENDANCE_SUBJECT, DATE, attachments=[("att.xlsx", make_xlsx(attendance))])
    write_eml("crs", COURSES_SUBJECT, DATE, attachments=[("crs.xlsx", make_xlsx(courses))])
    write_eml("con", CONTACTS_SUBJECT, DATE, attachments=[("con.xlsx", make_xlsx([contacts_header, contact]))])


def test_full_cycle(write_config, temp_workdir: Path, write_eml, make_xlsx, capsys):
    workbook = temp_workdir / "flex.xlsx"
    _write_reports(write_eml, make_xlsx)

    assert cli_main(["import"]) == 0

    store = WorkbookStore.open(workbook)
    roster = store.create_table("11.3 flex absences")
    roster.set_values(1, 1, [["FlexiSched"] + [""] * 16, ["ID", "First"] + [""] * 15])
    roster.set_values(3, 1, [roster_row("1001", "Ann"), roster_row("1002", "Bob"), roster_row("1003", "Cam")])
    store.save()

    assert cli_main(["enrich"]) == 0
    out = capsys.readouterr().out
    assert (
        'SUMMARY roster="11.3 flex absences" rows=3 skippers=1 '
        "attendance_matched=2 teacher_matched=2 contact_matched=1"
    ) in out

    store = WorkbookStore.open(workbook)
    roster = store.get_table("11.3 flex absences")
    assert roster.get_values(4, 13, 1, 5) == [
        ["#N/A", "Jones", "bob@s.example", "mom@x.example", "dad@x.example"]
    ]
    assert roster.get_values(2, 12, 1, 6)[0][0] == "Comment"

    staging = store.get_table("Mail Out")
    assert staging.last_row() == 2
    assert staging.get_values(2, 1, 1, 2) == [["1002", "Bob"]]
    staging.set_values(2, 12, [["left voicemail"]])
    store.save()

    assert cli_main(["sync-comments"]) == 0
    out = capsys.readouterr().out
    assert 'SUMMARY roster="11.3 flex absences" comments_updated=1 unmatched=2' in out

    roster = WorkbookStore.open(workbook).get_table("11.3 flex absences")
    assert roster.get_values(4, 12, 1, 1) == [["left voicemail"]]

    # a second enrichment leaves the comment in place and reproduces the same staging rows
    assert cli_main(["enrich"]) == 0
    store = WorkbookStore.open(workbook)
    assert store.get_table("11.3 flex absences").get_values(4, 12, 1, 1) == [["left voicemail"]]
    assert store.get_table("Mail Out").get_values(2, 12, 1, 1) == [["left voicemail"]]
