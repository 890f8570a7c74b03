"""Run a script or selection end to end: split, execute, build, render, save."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from sqldocx.shared.exceptions import PreconditionError

from .builder import build_report
from .document import output_path_for, persist_document, render_report
from .executor import ProgressCallback, Session
from .splitter import split_statements
from .types import ExistingFilePolicy, Report, WriteMode

ConflictResolver = Callable[[Path], ExistingFilePolicy]


@dataclass(frozen=True, slots=True)
class RunOutcome:
    """What a run produced; ``path`` is ``None`` when the user cancelled."""

    path: Path | None
    report: Report | None
    backup_path: Path | None = None
    cancelled: bool = False


def read_script(script_path: Path) -> str:
    """Read a whole SQL script, enforcing the run-all preconditions."""
    if not script_path.exists():
        raise PreconditionError(f"No SQL file found at {script_path}.")
    if script_path.suffix.lower() != ".sql":
        raise PreconditionError(f"{script_path.name} is not a SQL file.")
    text = script_path.read_text(encoding="utf-8").strip()
    if not text:
        raise PreconditionError("SQL file is empty.")
    return text


def select_lines(text: str, start: int, end: int) -> str:
    """Return lines ``start``..``end`` (1-based, inclusive) of ``text``."""
    if start < 1 or end < start:
        raise PreconditionError(f"Invalid line range {start}-{end}.")
    lines = text.splitlines()
    if start > len(lines):
        raise PreconditionError(f"Line range {start}-{end} is past the end of the file ({len(lines)} lines).")
    return "\n".join(lines[start - 1 : end])


def execute_and_save(
    session: Session,
    sql_text: str,
    script_path: Path,
    *,
    mode: WriteMode,
    max_rows: int,
    suffix: str = "_results",
    output_path: Path | None = None,
    on_existing: ExistingFilePolicy | ConflictResolver = ExistingFilePolicy.PROMPT,
    progress: ProgressCallback | None = None,
    now: datetime | None = None,
) -> RunOutcome:
    """Run every statement in ``sql_text`` and write the results document.

    Fresh runs that target an existing document consult ``on_existing``; a callable is
    asked to choose overwrite, append or cancel. Cancelling leaves every file untouched.
    Connection faults part-way through propagate and no document is written.
    """

    logger = session.logger
    if not sql_text.strip():
        raise PreconditionError("No SQL text to run.")

    statements = split_statements(sql_text)
    if not statements:
        raise PreconditionError("No valid SQL queries found.")

    target = output_path or output_path_for(script_path, suffix)
    if mode is WriteMode.FRESH and target.exists():
        choice = on_existing(target) if callable(on_existing) else on_existing
        if choice is ExistingFilePolicy.PROMPT:
            raise PreconditionError(f"Document {target.name} already exists; choose overwrite, append or cancel.")
        if choice is ExistingFilePolicy.CANCEL:
            logger.info(f"Cancelled; {target.name} left unchanged.")
            return RunOutcome(path=None, report=None, cancelled=True)
        if choice is ExistingFilePolicy.APPEND:
            mode = WriteMode.APPEND

    session.ensure_connected()
    logger.info(f"Found {len(statements)} quer{'y' if len(statements) == 1 else 'ies'}")
    results = session.run_batch(statements, progress=progress)

    report = build_report(results, max_rows=max_rows, mode=mode, generated_at=now)
    payload = render_report(report, existing=target, logger=logger)
    backup = persist_document(target, payload, mode, logger=logger, now=now)
    return RunOutcome(path=target, report=report, backup_path=backup)
