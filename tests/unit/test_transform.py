from __future__ import annotations

import logging

import pytest

from flexabsence.excel.transform import filter_by_period, reorder_columns
from flexabsence.models.errors import ColumnMappingError


def _att(period):
    return ["1001", "", "", "", "", "", "", "", "", period, "P"]


HEADER = ["ID", "", "", "", "", "", "", "", "", "Period", "Code"]


def test_filter_by_period_keeps_header_and_matches():
    data = [HEADER, _att("02"), _att("03"), _att("02 "), _att("2"), _att(2), _att("")]
    out = filter_by_period(data, 9, "02")
    assert out[0] == HEADER
    assert [r[9] for r in out[1:]] == ["02", "02 "]


def test_filter_by_period_short_rows_never_match():
    out = filter_by_period([HEADER, ["1001"]], 9, "02")
    assert out == [HEADER]


def test_filter_by_period_empty_input():
    assert filter_by_period([], 9, "02") == []


def test_reorder_columns_output_shape():
    data = [
        ["Student Name", "Student Id", "Grade", "Instructor"],
        ["Lee, Ann", "1001", "10", "Smith"],
    ]
    out = reorder_columns(
        data,
        ["Student Name", "Student Id", "Grade", "Instructor"],
        ["Student Id", "Student Name", "Instructor"],
    )
    assert out == [
        ["Student Id", "Student Name", "Instructor"],
        ["1001", "Lee, Ann", "Smith"],
    ]


def test_reorder_columns_missing_target_is_empty_column(caplog):
    data = [[" Student Id ", "Instructor ID"], ["1001", "77"]]
    with caplog.at_level(logging.WARNING, logger="flexabsence"):
        out = reorder_columns(data, ["Student Id", "Instructor ID"], ["Student Id", "Instructor Id"])
    assert out == [["Student Id", "Instructor Id"], ["1001", ""]]
    assert any("Instructor Id" in r.getMessage() for r in caplog.records)


def test_reorder_columns_first_duplicate_header_wins():
    data = [["Period", "Period"], ["02", "03"]]
    out = reorder_columns(data, ["Period"], ["Period"])
    assert out == [["Period"], ["02"]]


def test_reorder_columns_empty_input():
    assert reorder_columns([], ["a"], ["a"]) == []


@pytest.mark.parametrize(
    "original,target",
    [
        (None, ["a"]),
        (["a"], None),
        ([], ["a"]),
        (["a"], "a"),
        (["a"], [1]),
    ],
)
def test_reorder_columns_malformed_mapping(original, target):
    with pytest.raises(ColumnMappingError):
        reorder_columns([["a"], ["1"]], original, target)
