from __future__ import annotations

from pathlib import Path

import pytest

from sqldocx.shared import paths
from sqldocx.shared.config import AppConfig, load_config
from sqldocx.shared.exceptions import ConfigurationError


def _write(path: Path, content: str) -> Path:
    path.write_text(content, encoding="utf-8")
    return path


def test_load_config_defaults(tmp_path: Path) -> None:
    env = {paths.CONFIG_DIR_ENV: str(tmp_path / "config")}
    cfg = load_config(env=env)
    assert isinstance(cfg, AppConfig)
    assert cfg.source_path == tmp_path / "config" / "config.yaml"
    assert cfg.report.max_rows == 10
    assert cfg.report.suffix == "_results"
    assert cfg.execution.connect_retries == 0
    assert cfg.connections == ()
    assert cfg.default_connection is None


def test_load_config_from_yaml(tmp_path: Path) -> None:
    cfg_file = _write(
        tmp_path / "config.yaml",
        """
        report:
          max_rows: 25
        connections:
          - name: warehouse
            server: dw.example.com
            database: Sales
            port: 1433
            authentication: sql_login
            username: report
            password_env: DW_PASSWORD
          - name: local
            driver: sqlite
            database: /tmp/local.db
        default_connection: warehouse
        execution:
          connect_retries: 2
        """,
    )
    cfg = load_config(config_path=cfg_file, env={"DW_PASSWORD": "s3cret"})

    assert cfg.report.max_rows == 25
    assert cfg.report.suffix == "_results"
    assert cfg.execution.connect_retries == 2
    assert cfg.default_connection == "warehouse"
    warehouse = cfg.find_connection("warehouse")
    assert warehouse is not None
    assert warehouse.password == "s3cret"
    assert warehouse.port == 1433
    assert warehouse.odbc_driver == "ODBC Driver 18 for SQL Server"
    assert warehouse.label == "dw.example.com - Sales"
    local = cfg.find_connection("local")
    assert local is not None
    assert local.driver == "sqlite"
    assert local.label == "/tmp/local.db"


def test_load_config_env_overrides(tmp_path: Path) -> None:
    env = {
        paths.CONFIG_DIR_ENV: str(tmp_path),
        "SQLDOCX_MAX_ROWS": "50",
        "SQLDOCX_OUTPUT_SUFFIX": "_out",
        "SQLDOCX_CONNECT_RETRIES": "3",
        "SQLDOCX_RETRY_DELAY": "0.25",
    }
    cfg = load_config(env=env)
    assert cfg.report.max_rows == 50
    assert cfg.report.suffix == "_out"
    assert cfg.execution.connect_retries == 3
    assert cfg.execution.retry_delay_seconds == 0.25


def test_invalid_env_override_raises(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="SQLDOCX_MAX_ROWS"):
        load_config(env={paths.CONFIG_DIR_ENV: str(tmp_path), "SQLDOCX_MAX_ROWS": "many"})


@pytest.mark.parametrize("value", ["0", "-5"])
def test_non_positive_max_rows_rejected(tmp_path: Path, value: str) -> None:
    with pytest.raises(ConfigurationError, match="max_rows"):
        load_config(env={paths.CONFIG_DIR_ENV: str(tmp_path), "SQLDOCX_MAX_ROWS": value})


def test_non_mapping_yaml_rejected(tmp_path: Path) -> None:
    cfg_file = _write(tmp_path / "config.yaml", "- just\n- a list\n")
    with pytest.raises(ConfigurationError, match="mapping"):
        load_config(config_path=cfg_file, env={})


def test_unknown_default_connection_rejected(tmp_path: Path) -> None:
    cfg_file = _write(
        tmp_path / "config.yaml",
        """
        connections:
          - name: a
            server: localhost
        default_connection: b
        """,
    )
    with pytest.raises(ConfigurationError, match="default_connection"):
        load_config(config_path=cfg_file, env={})


def test_duplicate_connection_names_rejected(tmp_path: Path) -> None:
    cfg_file = _write(
        tmp_path / "config.yaml",
        """
        connections:
          - name: a
            server: one
          - name: a
            server: two
        """,
    )
    with pytest.raises(ConfigurationError, match="Duplicate"):
        load_config(config_path=cfg_file, env={})


@pytest.mark.parametrize(
    "entry, message",
    [
        ("- name: a\n    driver: oracle\n    server: x", "unsupported driver"),
        ("- name: a\n    server: x\n    authentication: kerberos", "authentication"),
        ("- name: a\n    server: x\n    authentication: sql_login", "username"),
        ("- name: a\n    database: Sales", "server"),
        ("- server: x", "Invalid configuration"),
        ("- name: a\n    server: x\n    encrypt: maybe", "invalid encrypt"),
    ],
)
def test_invalid_connection_entries(tmp_path: Path, entry: str, message: str) -> None:
    cfg_file = _write(tmp_path / "config.yaml", f"connections:\n  {entry}\n")
    with pytest.raises(ConfigurationError, match=message):
        load_config(config_path=cfg_file, env={})


def test_with_max_rows_validates(tmp_path: Path) -> None:
    cfg = load_config(env={paths.CONFIG_DIR_ENV: str(tmp_path)})
    assert cfg.with_max_rows(3).report.max_rows == 3
    with pytest.raises(ConfigurationError):
        cfg.with_max_rows(0)


def test_connection_flags_accept_quoted_strings(tmp_path: Path) -> None:
    cfg_file = _write(
        tmp_path / "config.yaml",
        """
connections:
  - name: prod
    server: db01
    encrypt: "false"
    trust_server_certificate: "no"
  - name: staging
    server: db02
    encrypt: "yes"
""",
    )

    cfg = load_config(config_path=cfg_file, env={})

    prod = cfg.find_connection("prod")
    staging = cfg.find_connection("staging")
    assert prod.encrypt is False
    assert prod.trust_server_certificate is False
    assert staging.encrypt is True
    assert staging.trust_server_certificate is True
