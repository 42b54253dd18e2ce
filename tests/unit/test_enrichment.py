from __future__ import annotations

import pytest
from conftest import (
    attendance_row,
    contacts_row,
    courses_row,
    roster_row,
    seed_roster,
    seed_sources,
)

from flexabsence.models.errors import EmptyRoster, RosterNotFound, SourceTableMissing
from flexabsence.services.enrichment import enrich_roster, identify_skippers


def _seed_default(store):
    seed_roster(
        store,
        [
            roster_row("1001", "Ann"),
            roster_row("1002", "Bob"),
            roster_row("1003", "Cam"),
        ],
    )
    seed_sources(
        store,
        attendance=[attendance_row("1001", "P"), attendance_row("1003", "")],
        courses=[courses_row("1001", "Smith"), courses_row("1002", "Jones")],
        contacts=[contacts_row("1001", "ann@s.example", "g1@x.example", "g2@x.example")],
    )


def _derived(store, app_config):
    roster = app_config.roster
    table = store.get_table("11.3 flex absences")
    rows = table.get_values(roster.first_data_row, 1, table.last_row() - roster.header_rows, roster.band_end)
    return [r[roster.attendance_code_column:roster.band_end] for r in rows]


def test_enrich_fills_derived_columns(store, app_config):
    _seed_default(store)
    result = enrich_roster(store, app_config)

    assert _derived(store, app_config) == [
        ["P", "Smith", "ann@s.example", "g1@x.example", "g2@x.example"],
        ["#N/A", "Jones", "", "", ""],
        ["", "", "", "", ""],
    ]
    assert result.roster_name == "11.3 flex absences"
    assert result.rows_processed == 3
    assert result.attendance_matched == 2
    assert result.teacher_matched == 2
    assert result.contact_matched == 1
    assert result.headers_restored is True


def test_present_but_empty_attendance_is_not_a_skipper(store, app_config):
    _seed_default(store)
    result = enrich_roster(store, app_config)
    assert [row[0] for row in result.skipper_rows] == ["1002"]


def test_skippers_are_copied_to_staging(store, app_config):
    _seed_default(store)
    result = enrich_roster(store, app_config)

    staging = store.get_table("Mail Out")
    headers = list(app_config.staging.headers)
    assert staging.get_values(1, 1, 1, len(headers))[0] == headers
    assert staging.is_bold(1, 1)
    assert staging.last_row() == 1 + result.skippers
    copied = staging.get_values(2, 1, result.skippers, app_config.roster.band_end)
    assert copied == result.skipper_rows
    assert copied[0][1] == "Bob"
    assert copied[0][app_config.roster.attendance_code_column] == "#N/A"


def test_enrich_uses_three_batched_writes(store, app_config):
    _seed_default(store)
    table = store.get_table("11.3 flex absences")
    writes_before = table.writes

    enrich_roster(store, app_config)
    # one header restore + attendance, teacher and email blocks
    assert table.writes - writes_before == 4


def test_enrich_is_idempotent(store, app_config):
    _seed_default(store)
    first = enrich_roster(store, app_config)
    snapshot = store.get_table("11.3 flex absences").read_all()
    staging_snapshot = store.get_table("Mail Out").read_all()

    second = enrich_roster(store, app_config)
    assert second.headers_restored is False
    assert store.get_table("11.3 flex absences").read_all() == snapshot
    assert store.get_table("Mail Out").read_all() == staging_snapshot
    assert second.skipper_rows == first.skipper_rows


def test_empty_id_rows_keep_existing_derived_cells(store, app_config):
    roster = app_config.roster
    blank = roster_row("")
    blank[roster.attendance_code_column] = "kept"
    blank[roster.teacher_column] = "Teacher X"
    seed_roster(store, [roster_row("1001"), blank])
    seed_sources(store, [attendance_row("1001", "P")], [], [])

    result = enrich_roster(store, app_config)
    assert _derived(store, app_config)[1] == ["kept", "Teacher X", "", "", ""]
    assert result.skippers == 0


def test_empty_id_row_with_stale_sentinel_is_not_staged(store, app_config):
    roster = app_config.roster
    blank = roster_row("")
    blank[roster.attendance_code_column] = "#N/A"
    seed_roster(store, [roster_row("1001"), blank])
    seed_sources(store, [attendance_row("1001", "P")], [], [])

    result = enrich_roster(store, app_config)
    assert result.skippers == 0
    assert result.skipper_rows == []
    assert store.get_table("Mail Out").last_row() == 1
    assert _derived(store, app_config)[1][0] == "#N/A"


def test_numeric_ids_match_text_ids(store, app_config):
    seed_roster(store, [roster_row(1001)])
    seed_sources(store, [attendance_row("1001", "P")], [courses_row(1001.0, "Smith")], [])

    result = enrich_roster(store, app_config)
    assert result.attendance_matched == 1
    assert result.teacher_matched == 1


def test_duplicate_source_ids_last_row_wins(store, app_config):
    seed_roster(store, [roster_row("1001")])
    seed_sources(store, [attendance_row("1001", "P"), attendance_row("1001", "T")], [], [])

    enrich_roster(store, app_config)
    assert _derived(store, app_config)[0][0] == "T"


def test_empty_skipper_set_clears_old_staging(store, app_config):
    _seed_default(store)
    enrich_roster(store, app_config)
    assert store.get_table("Mail Out").last_row() == 2

    att = store.get_table("BHS attendance")
    att.set_values(att.last_row() + 1, 1, [attendance_row("1002", "P")])
    result = enrich_roster(store, app_config)

    assert result.skippers == 0
    assert store.get_table("Mail Out").last_row() == 1


def test_missing_roster(store, app_config):
    seed_sources(store, [], [], [])
    with pytest.raises(RosterNotFound):
        enrich_roster(store, app_config)


def test_empty_roster(store, app_config):
    seed_roster(store, [])
    seed_sources(store, [], [], [])
    with pytest.raises(EmptyRoster):
        enrich_roster(store, app_config)


def test_missing_source_table_aborts_before_any_write(store, app_config):
    table = seed_roster(store, [roster_row("1001")])
    seed_sources(store, [], [], [])
    store.workbook.remove(store.workbook["contact info"])
    writes_before = table.writes

    with pytest.raises(SourceTableMissing) as e:
        enrich_roster(store, app_config)
    assert e.value.table_name == "contact info"
    assert table.writes == writes_before
    assert store.get_table("Mail Out") is None


def test_identify_skippers_trims_text():
    rows = [["1", " #N/A "], ["2", "P"], ["3"]]
    assert identify_skippers(rows, 0, 1, "#N/A") == [["1", " #N/A "]]


def test_identify_skippers_ignores_rows_without_id():
    rows = [["", "#N/A"], ["  ", "#N/A"], [None, "#N/A"], ["7", "#N/A"]]
    assert identify_skippers(rows, 0, 1, "#N/A") == [["7", "#N/A"]]
