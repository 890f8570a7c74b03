"""Project-wide custom exceptions."""

from __future__ import annotations


class SqlDocxError(Exception):
    """Base exception for the sql-docx tool."""


class ConfigurationError(SqlDocxError):
    """Raised when configuration loading or validation fails."""


class PreconditionError(SqlDocxError):
    """Raised when a run cannot start (no input, no statements, no connection)."""


class ConnectionFailedError(SqlDocxError):
    """Raised when a database connection cannot be opened."""


class QueryError(SqlDocxError):
    """Raised for connection-level faults while a statement is executing."""


class BatchAbortedError(QueryError):
    """Raised when an infrastructure fault stops a batch part-way through."""

    def __init__(self, message: str, *, completed: int, total: int, statement: str) -> None:
        super().__init__(message)
        self.completed = completed
        self.total = total
        self.statement = statement


class DocumentError(SqlDocxError):
    """Raised when the results document cannot be rendered or written."""
