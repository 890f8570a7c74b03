"""sql-docx CLI entrypoint."""

from __future__ import annotations

import re
from collections.abc import Sequence
from pathlib import Path

import click

from sqldocx.shared.cli import CLIContext, common_cli_options, handle_cli_errors, pass_cli_context
from sqldocx.shared.config import ConnectionSettings
from sqldocx.shared.exceptions import PreconditionError

from .connections import installed_odbc_drivers, resolve_connection
from .executor import Session
from .pipeline import ConflictResolver, RunOutcome, execute_and_save, read_script, select_lines
from .types import ExistingFilePolicy, WriteMode

EXISTING_CHOICES = tuple(policy.value for policy in ExistingFilePolicy)
LINE_RANGE = re.compile(r"^\s*(\d+)\s*(?:-\s*(\d+))?\s*$")


@click.group(help="Run SQL scripts and export the results to Word documents.")
@common_cli_options
@handle_cli_errors
def cli(cli_ctx: CLIContext) -> None:
    """Primary Click group for sql-docx commands."""
    cli_ctx.logger.debug("sql-docx initialised.")


@cli.command("run")
@click.argument("script", type=click.Path(path_type=Path, dir_okay=False))
@click.option("--connection", "connection_name", type=str, help="Name of the configured connection to use.")
@click.option("--max-rows", type=click.IntRange(min=1), help="Rows shown per result table (overrides config).")
@click.option(
    "--if-exists",
    "if_exists",
    type=click.Choice(EXISTING_CHOICES),
    default=ExistingFilePolicy.PROMPT.value,
    show_default=True,
    help="What to do when the results document already exists.",
)
@click.option("--output", type=click.Path(path_type=Path, dir_okay=False), help="Override the document path.")
@click.option("--open", "open_document", is_flag=True, help="Open the document when done.")
@pass_cli_context
@handle_cli_errors
def run_all(
    cli_ctx: CLIContext,
    script: Path,
    connection_name: str | None,
    max_rows: int | None,
    if_exists: str,
    output: Path | None,
    open_document: bool,
) -> None:
    """Run every statement in SCRIPT and write a fresh results document."""
    sql_text = read_script(script)
    policy = ExistingFilePolicy(if_exists)
    outcome = _run(
        cli_ctx,
        sql_text,
        script,
        mode=WriteMode.FRESH,
        connection_name=connection_name,
        max_rows=max_rows,
        output=output,
        on_existing=_prompt_existing if policy is ExistingFilePolicy.PROMPT else policy,
    )
    _finish(cli_ctx, outcome, open_document)


@cli.command("run-selection")
@click.argument("script", type=click.Path(path_type=Path, dir_okay=False))
@click.option("--lines", "line_range", type=str, metavar="START-END", help="Run only these lines of SCRIPT.")
@click.option("--text", "selected_text", type=str, help="Run this SQL text instead of reading SCRIPT.")
@click.option("--connection", "connection_name", type=str, help="Name of the configured connection to use.")
@click.option("--max-rows", type=click.IntRange(min=1), help="Rows shown per result table (overrides config).")
@click.option("--output", type=click.Path(path_type=Path, dir_okay=False), help="Override the document path.")
@click.option("--open", "open_document", is_flag=True, help="Open the document when done.")
@pass_cli_context
@handle_cli_errors
def run_selection(
    cli_ctx: CLIContext,
    script: Path,
    line_range: str | None,
    selected_text: str | None,
    connection_name: str | None,
    max_rows: int | None,
    output: Path | None,
    open_document: bool,
) -> None:
    """Run selected SQL and append the results to SCRIPT's document.

    The selection is taken from --text, from --lines of SCRIPT, or from stdin.
    """
    if line_range and selected_text is not None:
        raise click.UsageError("Use either --lines or --text, not both.")

    if selected_text is not None:
        text = selected_text
    elif line_range:
        if not script.exists():
            raise PreconditionError(f"No SQL file found at {script}.")
        start, end = _parse_line_range(line_range)
        text = select_lines(script.read_text(encoding="utf-8"), start, end)
    else:
        text = click.get_text_stream("stdin").read()

    text = text.strip()
    if not text:
        raise PreconditionError("No query selected. Please select a SQL query.")

    outcome = _run(
        cli_ctx,
        text,
        script,
        mode=WriteMode.APPEND,
        connection_name=connection_name,
        max_rows=max_rows,
        output=output,
        on_existing=ExistingFilePolicy.APPEND,
    )
    _finish(cli_ctx, outcome, open_document)


@cli.command("connections")
@pass_cli_context
@handle_cli_errors
def list_connections(cli_ctx: CLIContext) -> None:
    """List configured connections."""
    config = cli_ctx.config
    if not config.connections:
        cli_ctx.logger.warning(f"No connections configured in {config.source_path}.")
        return
    for connection in config.connections:
        marker = "*" if connection.name == config.default_connection else " "
        click.echo(f"{marker} {connection.name}\t{connection.driver}\t{connection.label}")


@cli.command("check")
@click.option("--connection", "connection_name", type=str, help="Name of the configured connection to check.")
@pass_cli_context
@handle_cli_errors
def check(cli_ctx: CLIContext, connection_name: str | None) -> None:
    """Check that the driver is installed and the connection opens."""
    logger = cli_ctx.logger
    settings = resolve_connection(cli_ctx.config, connection_name, chooser=_choose_connection)

    if settings.driver == "mssql":
        drivers = installed_odbc_drivers()
        if settings.odbc_driver not in drivers:
            raise PreconditionError(
                f"ODBC driver '{settings.odbc_driver}' is not installed. "
                f"Installed drivers: {', '.join(drivers) or 'none'}."
            )
        logger.success(f"✓ ODBC driver '{settings.odbc_driver}' is installed")

    with Session(settings, logger=logger, execution=cli_ctx.config.execution) as session:
        session.ensure_connected()
    logger.success(f"✓ Connection '{settings.name}' is ready")


def main() -> None:
    """Entry point for console_scripts."""
    cli()


def _run(
    cli_ctx: CLIContext,
    sql_text: str,
    script: Path,
    *,
    mode: WriteMode,
    connection_name: str | None,
    max_rows: int | None,
    output: Path | None,
    on_existing: ExistingFilePolicy | ConflictResolver,
) -> RunOutcome:
    config = cli_ctx.config
    if max_rows is not None:
        config = config.with_max_rows(max_rows)
    settings = resolve_connection(config, connection_name, chooser=_choose_connection)
    logger = cli_ctx.logger

    def progress(index: int, total: int, statement: str) -> None:
        logger.info(f"Executing query {index}/{total}...")

    with Session(settings, logger=logger, execution=config.execution) as session:
        return execute_and_save(
            session,
            sql_text,
            script,
            mode=mode,
            max_rows=config.report.max_rows,
            suffix=config.report.suffix,
            output_path=output,
            on_existing=on_existing,
            progress=progress,
        )


def _finish(cli_ctx: CLIContext, outcome: RunOutcome, open_document: bool) -> None:
    if outcome.cancelled or outcome.path is None:
        return
    cli_ctx.logger.debug(f"Report sections written: {len(outcome.report.sections) if outcome.report else 0}")
    click.echo(f"✓ Results exported to {outcome.path.name}")
    if open_document:
        click.launch(str(outcome.path))


def _prompt_existing(path: Path) -> ExistingFilePolicy:
    choice = click.prompt(
        f"Document {path.name} already exists. Overwrite, append or cancel?",
        type=click.Choice(["overwrite", "append", "cancel"]),
        default="cancel",
    )
    return ExistingFilePolicy(choice)


def _choose_connection(connections: Sequence[ConnectionSettings]) -> ConnectionSettings | None:
    for index, connection in enumerate(connections, start=1):
        click.echo(f"{index}. {connection.name} ({connection.label})", err=True)
    index = click.prompt(
        "Select SQL Server connection",
        type=click.IntRange(1, len(connections)),
        err=True,
    )
    return connections[index - 1]


def _parse_line_range(raw: str) -> tuple[int, int]:
    match = LINE_RANGE.match(raw)
    if not match:
        raise click.BadParameter(f"Expected START-END, got '{raw}'.", param_hint="--lines")
    start = int(match.group(1))
    end = int(match.group(2) or start)
    return start, end


if __name__ == "__main__":  # pragma: no cover
    main()
