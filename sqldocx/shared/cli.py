"""Shared CLI helpers and decorators."""

from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

import click

from .config import AppConfig, load_config
from .exceptions import ConfigurationError, SqlDocxError
from .logging import Logger, get_logger

F = TypeVar("F", bound=Callable[..., Any])


@dataclass(slots=True)
class CLIContext:
    """Runtime state handed to every sql-docx command."""

    config: AppConfig
    verbose: bool
    logger: Logger


pass_cli_context = click.make_pass_decorator(CLIContext)


def common_cli_options(func: F) -> F:
    """Add --config, --verbose and --no-timestamps, then build the CLIContext."""

    @click.option("--config", "config_path", type=click.Path(path_type=str), help="Path to config file.")
    @click.option("--verbose", is_flag=True, help="Show debug output (connection status, per-query detail).")
    @click.option("--no-timestamps", is_flag=True, help="Omit the [HH:MM:SS] prefix on log lines.")
    @click.pass_context
    @functools.wraps(func)
    def wrapper(
        ctx: click.Context,
        *args: Any,
        config_path: str | None = None,
        verbose: bool = False,
        no_timestamps: bool = False,
        **kwargs: Any,
    ) -> Any:
        logger = get_logger(verbose=verbose, timestamps=not no_timestamps)
        try:
            app_config = load_config(config_path)
        except ConfigurationError as exc:
            raise click.ClickException(str(exc)) from exc
        logger.debug(
            f"Loaded configuration from {app_config.source_path} "
            f"({len(app_config.connections)} connection(s), max_rows={app_config.report.max_rows})"
        )

        cli_ctx = CLIContext(config=app_config, verbose=verbose, logger=logger)
        ctx.obj = cli_ctx
        kwargs["cli_ctx"] = cli_ctx
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def handle_cli_errors(func: F) -> F:
    """Turn sql-docx errors into a single ClickException message (exit code 1)."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except ConfigurationError as exc:
            raise click.ClickException(f"Configuration error: {exc}") from exc
        except SqlDocxError as exc:
            raise click.ClickException(str(exc)) from exc
        except (click.ClickException, click.Abort):
            raise
        except Exception as exc:  # pragma: no cover
            raise click.ClickException(f"Unexpected error: {exc}") from exc

    return wrapper  # type: ignore[return-value]
