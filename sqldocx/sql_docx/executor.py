"""Statement execution and the per-invocation database session."""

from __future__ import annotations

import re
import time
from collections.abc import Callable, Sequence
from typing import Any

from sqldocx.shared.config import ConnectionSettings, ExecutionSettings
from sqldocx.shared.exceptions import BatchAbortedError, ConnectionFailedError, QueryError
from sqldocx.shared.logging import Logger

from .connections import DriverErrors, driver_errors, open_connection
from .types import QueryFailure, QueryResult, QuerySuccess, StatementResult

ProgressCallback = Callable[[int, int, str], None]

STATUS_CONNECTED = "connected"
STATUS_DISCONNECTED = "not connected"

_ODBC_PREFIX = re.compile(r"^(?:\[[^\]]*\]\s*)+")
_ODBC_SUFFIX = re.compile(r"(?:\s*\(\d+\))?(?:\s*\(SQL\w+\))+\s*$")


def execute_statement(connection: Any, statement: str, *, errors: DriverErrors) -> QueryResult:
    """Run one statement and capture its first result set.

    The connection is in autocommit mode, so transactions the script opens itself
    (``BEGIN TRAN`` ... ``COMMIT``) stay under the script's control across statements.
    Statement-level database errors come back as ``QueryFailure``; connection-level
    errors raise ``QueryError`` so the caller can abort the batch.
    """

    cursor = connection.cursor()
    try:
        cursor.execute(statement)
        description = cursor.description
        if description:
            columns = tuple(str(column[0]) for column in description)
            rows = [dict(zip(columns, row)) for row in cursor.fetchall()]
        else:
            columns = ()
            rows = []
        rows_affected = max(cursor.rowcount, 0) if cursor.rowcount is not None else 0
    except errors.infrastructure as exc:
        raise QueryError(f"Connection error while executing statement: {exc}") from exc
    except errors.statement as exc:
        return QueryFailure(message=_error_message(exc))
    finally:
        _close_cursor(cursor)

    return QuerySuccess(columns=columns, rows=rows, rows_affected=rows_affected)


class Session:
    """Owns the connection handle, log sink and status for one invocation."""

    def __init__(
        self,
        settings: ConnectionSettings,
        *,
        logger: Logger,
        execution: ExecutionSettings | None = None,
        connector: Callable[[ConnectionSettings], Any] = open_connection,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.settings = settings
        self.logger = logger
        self.execution = execution or ExecutionSettings(connect_retries=0, retry_delay_seconds=1.0)
        self._connector = connector
        self._sleep = sleep
        self._connection: Any = None
        self.status = STATUS_DISCONNECTED

    def __enter__(self) -> Session:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def connected(self) -> bool:
        return self._connection is not None

    def ensure_connected(self) -> Any:
        """Return the open connection, opening it on first use."""
        if self._connection is not None:
            return self._connection

        attempts = self.execution.connect_retries + 1
        for attempt in range(1, attempts + 1):
            self.logger.info(f"Connecting to {self.settings.label}...")
            try:
                self._connection = self._connector(self.settings)
                break
            except ConnectionFailedError as exc:
                if attempt == attempts:
                    self._set_status(STATUS_DISCONNECTED)
                    raise
                self.logger.warning(
                    f"Connection attempt {attempt}/{attempts} failed: {exc}. "
                    f"Retrying in {self.execution.retry_delay_seconds:g}s."
                )
                self._sleep(self.execution.retry_delay_seconds)

        self.logger.success("✓ Connected successfully")
        self._set_status(STATUS_CONNECTED)
        return self._connection

    def run_batch(
        self,
        statements: Sequence[str],
        *,
        progress: ProgressCallback | None = None,
    ) -> list[StatementResult]:
        """Run statements strictly in order; SQL errors are kept, connection faults abort."""
        connection = self.ensure_connected()
        errors = driver_errors(self.settings)
        total = len(statements)
        results: list[StatementResult] = []
        for index, statement in enumerate(statements, start=1):
            if progress is not None:
                progress(index, total, statement)
            self.logger.debug(f"Executing query {index}/{total}...")
            try:
                result = execute_statement(connection, statement, errors=errors)
            except QueryError as exc:
                self._discard()
                completed = len(results)
                self.logger.error(
                    f"Batch aborted at query {index}/{total}; {completed} "
                    f"quer{'y' if completed == 1 else 'ies'} completed before the failure."
                )
                raise BatchAbortedError(
                    f"{exc} (query {index} of {total}; {completed} completed)",
                    completed=completed,
                    total=total,
                    statement=statement,
                ) from exc
            if isinstance(result, QueryFailure):
                self.logger.warning(f"Query {index} failed: {result.message}")
            results.append(StatementResult(statement=statement, result=result))
        return results

    def close(self) -> None:
        if self._connection is not None:
            try:
                self._connection.close()
            finally:
                self._connection = None
                self._set_status(STATUS_DISCONNECTED)

    def _discard(self) -> None:
        connection, self._connection = self._connection, None
        self._set_status(STATUS_DISCONNECTED)
        if connection is None:
            return
        try:
            connection.close()
        except Exception as exc:  # connection is already broken
            self.logger.debug(f"Ignoring error while closing broken connection: {exc}")

    def _set_status(self, status: str) -> None:
        if status == self.status:
            return
        self.status = status
        if status == STATUS_CONNECTED:
            self.logger.debug(f"Status: connected to {self.settings.label}")
        else:
            self.logger.debug("Status: not connected")


def _error_message(exc: BaseException) -> str:
    # pyodbc packs (sqlstate, message) into args.
    if len(exc.args) >= 2 and isinstance(exc.args[1], str):
        return _clean_odbc_message(exc.args[1])
    return str(exc)


def _clean_odbc_message(message: str) -> str:
    """Strip ODBC vendor prefixes and native error suffixes from a driver message."""
    cleaned = _ODBC_PREFIX.sub("", message.strip())
    cleaned = _ODBC_SUFFIX.sub("", cleaned)
    return cleaned or message


def _close_cursor(cursor: Any) -> None:
    close = getattr(cursor, "close", None)
    if close is not None:
        close()
