"""Data structures shared across sql-docx modules."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Sequence, Union


@dataclass(frozen=True, slots=True)
class QuerySuccess:
    """Result set returned for a statement that ran without error."""

    columns: tuple[str, ...]
    rows: Sequence[Mapping[str, Any]]
    rows_affected: int = 0


@dataclass(frozen=True, slots=True)
class QueryFailure:
    """Statement-level error reported by the database."""

    message: str


QueryResult = Union[QuerySuccess, QueryFailure]


@dataclass(frozen=True, slots=True)
class StatementResult:
    """A statement paired with the outcome of running it."""

    statement: str
    result: QueryResult


class WriteMode(str, enum.Enum):
    """Whether a report replaces the output file or is layered onto it."""

    FRESH = "fresh"
    APPEND = "append"


class ExistingFilePolicy(str, enum.Enum):
    """What a fresh run does when the output document already exists."""

    PROMPT = "prompt"
    OVERWRITE = "overwrite"
    APPEND = "append"
    CANCEL = "cancel"


class SectionKind(str, enum.Enum):
    """Which form a section renders as: error message, affected-row count or result table."""

    ERROR = "error"
    AFFECTED = "affected"
    TABLE = "table"


@dataclass(frozen=True, slots=True)
class ReportSection:
    """Presentation-ready data for one statement."""

    statement: str
    result: QueryResult
    max_rows: int
    kind: SectionKind
    columns: tuple[str, ...] = ()
    cells: tuple[tuple[str, ...], ...] = ()
    displayed: int = 0
    total: int = 0
    truncated: bool = False
    rows_affected: int = 0
    error: str | None = None

    @property
    def statement_lines(self) -> list[str]:
        return self.statement.split("\n")


@dataclass(frozen=True, slots=True)
class Report:
    """Ordered sections plus the write mode and generation time."""

    sections: tuple[ReportSection, ...]
    mode: WriteMode
    generated_at: datetime
