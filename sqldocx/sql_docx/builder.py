"""Turn statement results into a format-agnostic report."""

from __future__ import annotations

from datetime import date, datetime
from typing import Iterable

from .types import (
    QueryFailure,
    Report,
    ReportSection,
    SectionKind,
    StatementResult,
    WriteMode,
)

NULL_MARKER = "NULL"


def build_report(
    results: Iterable[StatementResult],
    *,
    max_rows: int,
    mode: WriteMode = WriteMode.FRESH,
    generated_at: datetime | None = None,
) -> Report:
    """Build one section per statement result, preserving order."""

    if max_rows <= 0:
        raise ValueError(f"max_rows must be a positive integer, got {max_rows}.")

    sections = tuple(build_section(item, max_rows=max_rows) for item in results)
    return Report(
        sections=sections,
        mode=mode,
        generated_at=generated_at or datetime.now(),
    )


def build_section(item: StatementResult, *, max_rows: int) -> ReportSection:
    result = item.result
    if isinstance(result, QueryFailure):
        return ReportSection(
            statement=item.statement,
            result=result,
            max_rows=max_rows,
            kind=SectionKind.ERROR,
            error=result.message,
        )

    total = len(result.rows)
    if total == 0:
        return ReportSection(
            statement=item.statement,
            result=result,
            max_rows=max_rows,
            kind=SectionKind.AFFECTED,
            rows_affected=result.rows_affected,
        )

    # Column order follows the first row's keys, not the cursor description.
    columns = tuple(result.rows[0].keys())
    shown = result.rows[:max_rows]
    cells = tuple(tuple(format_cell(row.get(column)) for column in columns) for row in shown)
    return ReportSection(
        statement=item.statement,
        result=result,
        max_rows=max_rows,
        kind=SectionKind.TABLE,
        columns=columns,
        cells=cells,
        displayed=len(cells),
        total=total,
        truncated=total > max_rows,
    )


def format_cell(value: object) -> str:
    """Render a single cell value for display."""
    if value is None:
        return NULL_MARKER
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (date, datetime)):
        return value.date().isoformat() if isinstance(value, datetime) else value.isoformat()
    return str(value)
