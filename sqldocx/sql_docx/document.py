"""Word document rendering and persistence for query reports."""

from __future__ import annotations

import io
import zipfile
from datetime import datetime
from pathlib import Path
from typing import Any

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.opc.exceptions import PackageNotFoundError
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Pt, RGBColor

from sqldocx.shared.exceptions import DocumentError
from sqldocx.shared.logging import Logger

from .types import Report, ReportSection, SectionKind, WriteMode

DOCUMENT_EXTENSION = ".docx"
DEFAULT_SUFFIX = "_results"
REPORT_TITLE = "SQL Query Results"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

ERROR_COLOR = "DC143C"
SUCCESS_COLOR = "228B22"
MUTED_COLOR = "666666"
HEADER_FILL = "4472C4"
HEADER_TEXT = "FFFFFF"
STRIPE_FILLS = ("F2F2F2", "FFFFFF")
QUERY_FONT = "Consolas"
TABLE_STYLE = "Table Grid"

SECTION_RULE = "─" * 100
APPEND_RULE = "═" * 100


def output_path_for(script_path: str | Path, suffix: str = DEFAULT_SUFFIX) -> Path:
    """Return ``<dir>/<script stem><suffix>.docx`` for a SQL script path."""
    path = Path(script_path)
    base = path.stem if path.suffix.lower() == ".sql" else path.name
    return path.with_name(f"{base}{suffix}{DOCUMENT_EXTENSION}")


def backup_path_for(path: Path, *, now: datetime | None = None) -> Path:
    """Return the timestamped backup location used before an append overwrites ``path``."""
    stamp = round((now or datetime.now()).timestamp() * 1000)
    return path.with_name(f"{path.stem}_backup_{stamp}{path.suffix}")


def render_report(
    report: Report,
    *,
    existing: Path | None = None,
    logger: Logger | None = None,
) -> bytes:
    """Render ``report`` into DOCX bytes.

    In append mode with an ``existing`` document, the new sections are added after the
    document's current content under an "Appended Results" marker. An existing file that
    cannot be read is left alone and the output holds only the marker and new sections.
    """

    appending = report.mode is WriteMode.APPEND and existing is not None and existing.exists()
    document = _load_base_document(existing, logger) if appending else Document()

    timestamp = report.generated_at.strftime(TIMESTAMP_FORMAT)
    if appending:
        rule = document.add_paragraph(APPEND_RULE)
        _spacing(rule, before=20, after=10)
        marker = document.add_heading(f"Appended Results - {timestamp}", level=1)
        _spacing(marker, after=20)
    else:
        title = document.add_heading(REPORT_TITLE, level=0)
        _spacing(title, after=10)
        generated = document.add_paragraph(f"Generated on: {timestamp}")
        _spacing(generated, after=20)

    for index, section in enumerate(report.sections, start=1):
        _add_section(document, index, section)

    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def persist_document(
    path: Path,
    payload: bytes,
    mode: WriteMode,
    *,
    logger: Logger,
    now: datetime | None = None,
) -> Path | None:
    """Write ``payload`` to ``path``; in append mode an existing file is backed up first.

    Returns the backup path when one was made.
    """

    backup: Path | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        if mode is WriteMode.APPEND and path.exists():
            backup = backup_path_for(path, now=now)
            path.rename(backup)
            logger.info(f"Previous version backed up to: {backup.name}")
        path.write_bytes(payload)
    except OSError as exc:
        raise DocumentError(f"Unable to write document {path}: {exc}") from exc

    logger.success(f"✓ Document saved: {path}")
    return backup


def _load_base_document(path: Path | None, logger: Logger | None) -> Any:
    try:
        return Document(str(path))
    except (PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError, SyntaxError) as exc:
        if logger is not None:
            logger.warning(
                f"Could not read existing document {path}: {exc}. "
                "Writing the new results only; the previous file is kept as a backup."
            )
        return Document()


def _add_section(document: Any, index: int, section: ReportSection) -> None:
    heading = document.add_heading(f"Query {index}", level=1)
    _spacing(heading, before=20, after=10)

    for line in section.statement_lines:
        paragraph = document.add_paragraph()
        run = paragraph.add_run(line)
        run.font.name = QUERY_FONT
        run.font.size = Pt(10)
        _spacing(paragraph, after=0)

    _spacing(document.add_paragraph(""), after=10)

    if section.kind is SectionKind.ERROR:
        paragraph = document.add_paragraph()
        _colored_run(paragraph, "❌ Error: ", ERROR_COLOR, bold=True)
        _colored_run(paragraph, section.error or "", ERROR_COLOR)
        _spacing(paragraph, after=20)
    elif section.kind is SectionKind.AFFECTED:
        paragraph = document.add_paragraph()
        _colored_run(paragraph, "✓ Query executed successfully. ", SUCCESS_COLOR, bold=True)
        paragraph.add_run(f"Rows affected: {section.rows_affected}").italic = True
        _spacing(paragraph, after=20)
    else:
        _add_table(document, section)
        summary = document.add_paragraph()
        if section.truncated:
            _colored_run(
                summary,
                f"... showing {section.displayed} of {section.total} results",
                MUTED_COLOR,
                italic=True,
            )
        else:
            _colored_run(summary, f"✓ Total results: {section.total}", SUCCESS_COLOR, bold=True)
        _spacing(summary, before=5, after=20)

    _spacing(document.add_paragraph(SECTION_RULE), before=10, after=10)


def _add_table(document: Any, section: ReportSection) -> None:
    table = document.add_table(rows=1, cols=len(section.columns))
    if TABLE_STYLE in {style.name for style in document.styles}:
        table.style = TABLE_STYLE
    _set_full_width(table)

    header = table.rows[0]
    _mark_header_row(header)
    for cell, column in zip(header.cells, section.columns):
        paragraph = cell.paragraphs[0]
        paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
        _colored_run(paragraph, column, HEADER_TEXT, bold=True)
        _shade(cell, HEADER_FILL)

    for row_index, values in enumerate(section.cells):
        cells = table.add_row().cells
        fill = STRIPE_FILLS[row_index % 2]
        for cell, value in zip(cells, values):
            cell.text = value
            cell.paragraphs[0].alignment = WD_ALIGN_PARAGRAPH.LEFT
            _shade(cell, fill)


def _colored_run(paragraph: Any, text: str, color: str, *, bold: bool = False, italic: bool = False) -> Any:
    run = paragraph.add_run(text)
    run.bold = bold
    run.italic = italic
    run.font.color.rgb = RGBColor.from_string(color)
    return run


def _spacing(paragraph: Any, *, before: float | None = None, after: float | None = None) -> None:
    fmt = paragraph.paragraph_format
    if before is not None:
        fmt.space_before = Pt(before)
    if after is not None:
        fmt.space_after = Pt(after)


def _shade(cell: Any, fill: str) -> None:
    shading = OxmlElement("w:shd")
    shading.set(qn("w:val"), "clear")
    shading.set(qn("w:color"), "auto")
    shading.set(qn("w:fill"), fill)
    cell._element.get_or_add_tcPr().append(shading)


def _mark_header_row(row: Any) -> None:
    # Repeat the header row when a table spans pages.
    tr_pr = row._tr.get_or_add_trPr()
    header = OxmlElement("w:tblHeader")
    header.set(qn("w:val"), "true")
    tr_pr.append(header)


def _set_full_width(table: Any) -> None:
    tbl_pr = table._tbl.tblPr
    width = tbl_pr.find(qn("w:tblW"))
    if width is None:
        width = OxmlElement("w:tblW")
        tbl_pr.append(width)
    width.set(qn("w:type"), "pct")
    width.set(qn("w:w"), "5000")
