from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

import pytest

from sqldocx.sql_docx.builder import build_report, format_cell
from sqldocx.sql_docx.types import (
    QueryFailure,
    QuerySuccess,
    SectionKind,
    StatementResult,
    WriteMode,
)

GENERATED_AT = datetime(2025, 3, 14, 9, 26, 53)


def _success(rows, rows_affected: int = 0) -> QuerySuccess:
    columns = tuple(rows[0].keys()) if rows else ()
    return QuerySuccess(columns=columns, rows=rows, rows_affected=rows_affected)


def test_table_section_truncates_and_renders_cells() -> None:
    result = _success([{"a": 1, "b": None}, {"a": 2, "b": True}])

    report = build_report([StatementResult("SELECT a, b FROM t", result)], max_rows=1, generated_at=GENERATED_AT)

    (section,) = report.sections
    assert section.kind is SectionKind.TABLE
    assert section.columns == ("a", "b")
    assert section.cells == (("1", "NULL"),)
    assert section.displayed == 1
    assert section.total == 2
    assert section.truncated is True


def test_table_section_complete_when_under_cap() -> None:
    result = _success([{"a": 1, "b": False}, {"a": 2, "b": True}])

    report = build_report([StatementResult("SELECT 1", result)], max_rows=10, generated_at=GENERATED_AT)

    section = report.sections[0]
    assert section.truncated is False
    assert section.displayed == section.total == 2
    assert section.cells[1] == ("2", "TRUE")
    assert section.cells[0] == ("1", "FALSE")


def test_column_order_follows_first_row_keys() -> None:
    rows = [{"z": 1, "a": 2}]
    result = QuerySuccess(columns=("a", "z"), rows=rows)

    section = build_report([StatementResult("SELECT z, a", result)], max_rows=5).sections[0]

    assert section.columns == ("z", "a")
    assert section.cells == (("1", "2"),)


def test_zero_rows_produces_affected_section() -> None:
    result = QuerySuccess(columns=(), rows=[], rows_affected=3)

    section = build_report([StatementResult("DELETE FROM t", result)], max_rows=10).sections[0]

    assert section.kind is SectionKind.AFFECTED
    assert section.rows_affected == 3
    assert section.cells == ()


def test_failure_produces_error_section_and_processing_continues() -> None:
    results = [
        StatementResult("SELECT x FROM t", QueryFailure("Invalid column name 'x'.")),
        StatementResult("SELECT 1 AS one", _success([{"one": 1}])),
    ]

    report = build_report(results, max_rows=10, generated_at=GENERATED_AT)

    assert [section.kind for section in report.sections] == [SectionKind.ERROR, SectionKind.TABLE]
    assert report.sections[0].error == "Invalid column name 'x'."
    assert report.sections[0].statement == "SELECT x FROM t"


def test_statement_text_is_kept_verbatim() -> None:
    statement = "-- totals\nSELECT   a\n  FROM t"
    section = build_report([StatementResult(statement, _success([{"a": 1}]))], max_rows=1).sections[0]

    assert section.statement == statement
    assert section.statement_lines == ["-- totals", "SELECT   a", "  FROM t"]


def test_report_carries_mode_and_timestamp() -> None:
    report = build_report([], max_rows=3, mode=WriteMode.APPEND, generated_at=GENERATED_AT)

    assert report.sections == ()
    assert report.mode is WriteMode.APPEND
    assert report.generated_at == GENERATED_AT


def test_building_twice_is_structurally_identical() -> None:
    results = [
        StatementResult("SELECT a", _success([{"a": 1}, {"a": 2}, {"a": 3}])),
        StatementResult("UPDATE t SET a = 1", QuerySuccess(columns=(), rows=[], rows_affected=4)),
        StatementResult("SELECT nope", QueryFailure("boom")),
    ]

    first = build_report(results, max_rows=2, generated_at=GENERATED_AT)
    second = build_report(results, max_rows=2, generated_at=GENERATED_AT)

    assert first == second


@pytest.mark.parametrize("max_rows", [0, -1])
def test_non_positive_max_rows_is_rejected(max_rows: int) -> None:
    with pytest.raises(ValueError):
        build_report([], max_rows=max_rows)


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, "NULL"),
        (True, "TRUE"),
        (False, "FALSE"),
        (date(2024, 2, 29), "2024-02-29"),
        (datetime(2024, 2, 29, 23, 59, 1), "2024-02-29"),
        (Decimal("12.50"), "12.50"),
        (0, "0"),
        ("", ""),
        ("text", "text"),
    ],
)
def test_format_cell(value: object, expected: str) -> None:
    assert format_cell(value) == expected
