"""Connection descriptors and driver-specific connection opening."""

from __future__ import annotations

import sqlite3
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from sqldocx.shared.config import AppConfig, ConnectionSettings
from sqldocx.shared.exceptions import ConnectionFailedError, PreconditionError

Chooser = Callable[[Sequence[ConnectionSettings]], ConnectionSettings | None]


@dataclass(frozen=True, slots=True)
class DriverErrors:
    """Exception classes a driver raises, split by how the batch treats them."""

    statement: tuple[type[BaseException], ...]
    infrastructure: tuple[type[BaseException], ...]


def resolve_connection(
    config: AppConfig,
    name: str | None = None,
    *,
    chooser: Chooser | None = None,
) -> ConnectionSettings:
    """Pick one configured connection or raise if none is available.

    An explicit ``name`` wins, then ``default_connection``, then a sole configured
    connection. With several candidates left, ``chooser`` is asked to pick one.
    """

    if not config.connections:
        raise PreconditionError(
            f"No connections configured. Add a 'connections' entry to {config.source_path}."
        )

    if name:
        selected = config.find_connection(name)
        if selected is None:
            available = ", ".join(connection.name for connection in config.connections)
            raise PreconditionError(f"Connection '{name}' is not configured. Available: {available}.")
        return selected

    if config.default_connection:
        selected = config.find_connection(config.default_connection)
        if selected is not None:
            return selected

    if len(config.connections) == 1:
        return config.connections[0]

    if chooser is None:
        raise PreconditionError("Several connections are configured; pass --connection to pick one.")
    selected = chooser(config.connections)
    if selected is None:
        raise PreconditionError("No connection selected.")
    return selected


def build_odbc_connection_string(settings: ConnectionSettings) -> str:
    """Return a pyodbc connection string for a SQL Server connection."""
    server = f"{settings.server},{settings.port}" if settings.port else settings.server
    parts = [
        f"DRIVER={{{settings.odbc_driver}}}",
        f"SERVER={server}",
    ]
    if settings.database:
        parts.append(f"DATABASE={settings.database}")
    if settings.authentication == "sql_login":
        parts.append(f"UID={settings.username}")
        parts.append(f"PWD={{{_escape_braces(settings.password or '')}}}")
    else:
        parts.append("Trusted_Connection=yes")
    parts.append(f"Encrypt={'yes' if settings.encrypt else 'no'}")
    parts.append(f"TrustServerCertificate={'yes' if settings.trust_server_certificate else 'no'}")
    return ";".join(parts) + ";"


def open_connection(settings: ConnectionSettings) -> Any:
    """Open a DB-API connection for the given settings."""
    if settings.driver == "sqlite":
        return _open_sqlite(settings)
    return _open_mssql(settings)


def driver_errors(settings: ConnectionSettings) -> DriverErrors:
    """Return how the connection's driver errors map to statement or batch faults."""
    if settings.driver == "sqlite":
        return DriverErrors(
            statement=(sqlite3.DatabaseError,),
            infrastructure=(sqlite3.InterfaceError,),
        )

    pyodbc = _import_pyodbc()
    return DriverErrors(
        statement=(
            pyodbc.ProgrammingError,
            pyodbc.IntegrityError,
            pyodbc.DataError,
            pyodbc.NotSupportedError,
            # Unmapped SQLSTATEs (HY000, 40001 deadlock victim) arrive as the base class.
            pyodbc.Error,
        ),
        infrastructure=(
            pyodbc.OperationalError,
            pyodbc.InterfaceError,
            pyodbc.InternalError,
        ),
    )


def installed_odbc_drivers() -> list[str]:
    """Return the ODBC driver names registered with the driver manager."""
    return list(_import_pyodbc().drivers())


def _open_sqlite(settings: ConnectionSettings) -> sqlite3.Connection:
    target = settings.database or settings.server
    try:
        return sqlite3.connect(target, timeout=settings.timeout or 5.0, isolation_level=None)
    except sqlite3.Error as exc:
        raise ConnectionFailedError(f"Unable to open SQLite database '{target}': {exc}") from exc


def _open_mssql(settings: ConnectionSettings) -> Any:
    pyodbc = _import_pyodbc()
    connection_string = build_odbc_connection_string(settings)
    try:
        return pyodbc.connect(connection_string, autocommit=True, timeout=settings.timeout or 0)
    except pyodbc.Error as exc:
        raise ConnectionFailedError(f"Unable to connect to {settings.label}: {exc}") from exc


def _import_pyodbc() -> Any:
    try:
        import pyodbc
    except ImportError as exc:
        raise ConnectionFailedError(
            "pyodbc is required for SQL Server connections; install it and an ODBC driver "
            f"for SQL Server ({exc})."
        ) from exc
    return pyodbc


def _escape_braces(value: str) -> str:
    return value.replace("}", "}}")
