"""Public exports for the sql-docx package."""

from .builder import build_report, format_cell
from .document import output_path_for, persist_document, render_report
from .executor import Session, execute_statement
from .pipeline import RunOutcome, execute_and_save
from .splitter import split_statements
from .types import (
    ExistingFilePolicy,
    QueryFailure,
    QueryResult,
    QuerySuccess,
    Report,
    ReportSection,
    SectionKind,
    StatementResult,
    WriteMode,
)

__all__ = [
    "ExistingFilePolicy",
    "QueryFailure",
    "QueryResult",
    "QuerySuccess",
    "Report",
    "ReportSection",
    "RunOutcome",
    "SectionKind",
    "Session",
    "StatementResult",
    "WriteMode",
    "build_report",
    "execute_and_save",
    "execute_statement",
    "format_cell",
    "output_path_for",
    "persist_document",
    "render_report",
    "split_statements",
]
