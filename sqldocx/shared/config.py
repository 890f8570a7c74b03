"""Configuration loading utilities for sql-docx."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping, MutableMapping

import yaml

from . import paths
from .exceptions import ConfigurationError

DRIVERS = ("mssql", "sqlite")
AUTHENTICATION_MODES = ("integrated", "sql_login")
DEFAULT_ODBC_DRIVER = "ODBC Driver 18 for SQL Server"


@dataclass(frozen=True, slots=True)
class ReportSettings:
    """Report layout configuration."""

    max_rows: int
    suffix: str


@dataclass(frozen=True, slots=True)
class ExecutionSettings:
    """Connection retry behaviour."""

    connect_retries: int
    retry_delay_seconds: float


@dataclass(frozen=True, slots=True)
class ConnectionSettings:
    """A named database connection as declared in the config file."""

    name: str
    driver: str
    server: str
    database: str | None
    port: int | None
    authentication: str
    username: str | None
    password: str | None
    password_env: str | None
    odbc_driver: str
    encrypt: bool
    trust_server_certificate: bool
    timeout: int | None

    @property
    def label(self) -> str:
        return " - ".join(part for part in (self.server, self.database) if part)


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Top-level application configuration."""

    source_path: Path
    report: ReportSettings
    execution: ExecutionSettings
    connections: tuple[ConnectionSettings, ...]
    default_connection: str | None

    def with_max_rows(self, max_rows: int) -> AppConfig:
        """Return a copy with an updated row cap."""
        if max_rows <= 0:
            raise ConfigurationError(f"max_rows must be a positive integer, got {max_rows}.")
        return replace(self, report=replace(self.report, max_rows=max_rows))

    def find_connection(self, name: str) -> ConnectionSettings | None:
        for connection in self.connections:
            if connection.name == name:
                return connection
        return None


def _default_config() -> dict[str, Any]:
    return {
        "report": {
            "max_rows": 10,
            "suffix": "_results",
        },
        "execution": {
            "connect_retries": 0,
            "retry_delay_seconds": 1.0,
        },
        "connections": [],
        "default_connection": None,
    }


ENV_OVERRIDE_SPEC: dict[str, tuple[str, type]] = {
    "report.max_rows": ("SQLDOCX_MAX_ROWS", int),
    "report.suffix": ("SQLDOCX_OUTPUT_SUFFIX", str),
    "default_connection": ("SQLDOCX_DEFAULT_CONNECTION", str),
    "execution.connect_retries": ("SQLDOCX_CONNECT_RETRIES", int),
    "execution.retry_delay_seconds": ("SQLDOCX_RETRY_DELAY", float),
}


def load_config(
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
) -> AppConfig:
    """Load configuration from defaults, YAML file, and env overrides."""
    env = dict(os.environ if env is None else env)
    resolved_config_path = _resolve_config_path(config_path, env)
    file_data = _load_yaml(resolved_config_path)
    defaults = _default_config()
    merged: dict[str, Any] = _deep_merge(defaults, file_data)
    merged = _apply_env_overrides(merged, env)
    return _build_config(merged, resolved_config_path, env)


def _resolve_config_path(config_path: str | Path | None, env: Mapping[str, str]) -> Path:
    if config_path:
        return paths.resolve_path(config_path)
    return paths.default_config_path(env=env)


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        try:
            data = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Config file at {path} is not valid YAML: {exc}") from exc
        if not isinstance(data, MutableMapping):
            raise ConfigurationError(f"Config file at {path} must define a mapping root object.")
        return dict(data)


def _deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], Mapping) and isinstance(value, Mapping):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _apply_env_overrides(config: dict[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
    config_copy = _deep_merge(config, {})
    for dotted_key, (env_key, expected_type) in ENV_OVERRIDE_SPEC.items():
        if env_key not in env:
            continue
        raw_value = env[env_key]
        try:
            value = _coerce_env_value(raw_value, expected_type)
        except ValueError as exc:
            raise ConfigurationError(
                f"Environment override {env_key} has invalid value '{raw_value}': {exc}"
            ) from exc
        _assign_nested(config_copy, dotted_key.split("."), value)
    return config_copy


def _coerce_env_value(raw: str, expected_type: type) -> Any:
    cleaned = raw.strip()
    if expected_type is int:
        return int(cleaned)
    if expected_type is float:
        return float(cleaned)
    return cleaned


def _coerce_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"expected boolean (true/false), got '{value}'")


def _assign_nested(target: MutableMapping[str, Any], keys: list[str], value: Any) -> None:
    current = target
    for key in keys[:-1]:
        if key not in current or not isinstance(current[key], MutableMapping):
            current[key] = {}
        current = current[key]  # type: ignore[assignment]
    current[keys[-1]] = value


def _build_connection(entry: Mapping[str, Any], env: Mapping[str, str]) -> ConnectionSettings:
    if not isinstance(entry, Mapping):
        raise ConfigurationError("Each connection entry must be a mapping of properties.")

    name = str(entry["name"])
    driver = str(entry.get("driver") or "mssql").lower()
    if driver not in DRIVERS:
        raise ConfigurationError(
            f"Connection '{name}' uses unsupported driver '{driver}'; expected one of {', '.join(DRIVERS)}."
        )
    authentication = str(entry.get("authentication") or "integrated").lower()
    if authentication not in AUTHENTICATION_MODES:
        raise ConfigurationError(
            f"Connection '{name}' has unknown authentication '{authentication}'."
        )

    password_env = entry.get("password_env")
    password = entry.get("password")
    if password is None and password_env:
        password = env.get(str(password_env))
    if authentication == "sql_login" and driver == "mssql" and not entry.get("username"):
        raise ConfigurationError(f"Connection '{name}' uses sql_login but defines no username.")

    server = str(entry.get("server") or "")
    if driver == "mssql" and not server:
        raise ConfigurationError(f"Connection '{name}' must define a server.")
    if driver == "sqlite" and not (server or entry.get("database")):
        raise ConfigurationError(f"Connection '{name}' must define a database file.")

    port = entry.get("port")
    timeout = entry.get("timeout")
    return ConnectionSettings(
        name=name,
        driver=driver,
        server=server,
        database=str(entry["database"]) if entry.get("database") else None,
        port=int(port) if port is not None else None,
        authentication=authentication,
        username=str(entry["username"]) if entry.get("username") else None,
        password=str(password) if password is not None else None,
        password_env=str(password_env) if password_env else None,
        odbc_driver=str(entry.get("odbc_driver") or DEFAULT_ODBC_DRIVER),
        encrypt=_connection_flag(name, entry, "encrypt"),
        trust_server_certificate=_connection_flag(name, entry, "trust_server_certificate"),
        timeout=int(timeout) if timeout is not None else None,
    )


def _connection_flag(name: str, entry: Mapping[str, Any], key: str) -> bool:
    try:
        return _coerce_flag(entry.get(key, True))
    except ValueError as exc:
        raise ConfigurationError(f"Connection '{name}' has invalid {key}: {exc}") from exc


def _build_config(data: Mapping[str, Any], source_path: Path, env: Mapping[str, str]) -> AppConfig:
    try:
        report = ReportSettings(
            max_rows=int(data["report"]["max_rows"]),
            suffix=str(data["report"]["suffix"]),
        )
        execution = ExecutionSettings(
            connect_retries=int(data["execution"]["connect_retries"]),
            retry_delay_seconds=float(data["execution"]["retry_delay_seconds"]),
        )
        raw_connections = data.get("connections") or []
        if not isinstance(raw_connections, list):
            raise ConfigurationError("'connections' must be a list of connection entries.")
        connections = tuple(_build_connection(entry, env) for entry in raw_connections)
        default_connection = data.get("default_connection")
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid configuration structure: {exc}") from exc

    if report.max_rows <= 0:
        raise ConfigurationError(f"report.max_rows must be a positive integer, got {report.max_rows}.")
    if execution.connect_retries < 0:
        raise ConfigurationError("execution.connect_retries must not be negative.")

    names = [connection.name for connection in connections]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise ConfigurationError(f"Duplicate connection names: {', '.join(duplicates)}.")
    if default_connection is not None and str(default_connection) not in names:
        raise ConfigurationError(
            f"default_connection '{default_connection}' does not match any configured connection."
        )

    return AppConfig(
        source_path=source_path,
        report=report,
        execution=execution,
        connections=connections,
        default_connection=str(default_connection) if default_connection is not None else None,
    )
