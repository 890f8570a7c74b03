from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from sqldocx.shared.config import ConnectionSettings


class StubLogger:
    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []

    def info(self, message: str) -> None:
        self.messages.append(("info", message))

    def success(self, message: str) -> None:
        self.messages.append(("success", message))

    def warning(self, message: str) -> None:
        self.messages.append(("warning", message))

    def error(self, message: str) -> None:
        self.messages.append(("error", message))

    def debug(self, message: str) -> None:
        self.messages.append(("debug", message))

    def lines(self, level: str) -> list[str]:
        return [message for recorded, message in self.messages if recorded == level]


@pytest.fixture
def stub_logger() -> StubLogger:
    return StubLogger()


@pytest.fixture
def sqlite_db(tmp_path: Path) -> Path:
    db_path = tmp_path / "reports.db"
    connection = sqlite3.connect(db_path)
    try:
        connection.executescript(
            """
            CREATE TABLE customers (id INTEGER PRIMARY KEY, name TEXT NOT NULL, active BOOLEAN, city TEXT);
            INSERT INTO customers (name, active, city) VALUES ('Ada', 1, 'London');
            INSERT INTO customers (name, active, city) VALUES ('Grace', 0, NULL);
            INSERT INTO customers (name, active, city) VALUES ('Linus', 1, 'Helsinki');
            """
        )
        connection.commit()
    finally:
        connection.close()
    return db_path


@pytest.fixture
def sqlite_settings(sqlite_db: Path) -> ConnectionSettings:
    return ConnectionSettings(
        name="local",
        driver="sqlite",
        server="",
        database=str(sqlite_db),
        port=None,
        authentication="integrated",
        username=None,
        password=None,
        password_env=None,
        odbc_driver="ODBC Driver 18 for SQL Server",
        encrypt=True,
        trust_server_certificate=True,
        timeout=None,
    )


@pytest.fixture
def config_file(tmp_path: Path, sqlite_db: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(
        f"""
report:
  max_rows: 2
connections:
  - name: local
    driver: sqlite
    database: {sqlite_db}
""",
        encoding="utf-8",
    )
    return path
