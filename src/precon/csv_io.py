"""CSV import/export for the estimate's log-style collections.

Column orders follow the estimating screens' download format.  Fields with
embedded quotes or commas are double-quote escaped by the ``csv`` module, so
exported documents read back through :func:`import_documents_csv`.
"""
from __future__ import annotations

import csv
import io
import logging
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .models import (
    DOCUMENT_CATEGORIES,
    Allowance,
    Breakdown,
    Clarification,
    CostCategory,
    CSVImportResult,
    Document,
    GCAndGRItem,
    ValueAnalysisItem,
)
from .reporting import breakdown_frame
from .session import EstimateState, new_id

LOGGER = logging.getLogger(__name__)

DOCUMENT_COLUMNS: Tuple[str, ...] = (
    "id",
    "sheetNumber",
    "description",
    "dateIssued",
    "dateReceived",
    "category",
    "notes",
    "revision",
)
ALLOWANCE_HEADERS = ("CSI Division", "Description", "Value", "Notes", "Created Date", "Updated Date")
GC_GR_HEADERS = ("Item Number", "Description", "Category", "Estimated Cost", "Included", "Notes")
CLARIFICATION_HEADERS = ("CSI Division", "Description", "Type", "Notes", "Created At", "Updated At")
VALUE_ANALYSIS_HEADERS = ("Item Number", "Description", "Notes", "Created Date", "Last Modified")

_REQUIRED_DOCUMENT_FIELDS = 5


def _date_text(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d") if value else ""


def _render(headers: Sequence[str], rows: Iterable[Sequence[object]]) -> str:
    buffer = io.StringIO()
    csv.writer(buffer, lineterminator="\n").writerow(headers)
    writer = csv.writer(buffer, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    for row in rows:
        writer.writerow(row)
    return buffer.getvalue()


def import_documents_csv(text: str, existing: Iterable[Document] = ()) -> CSVImportResult:
    """
    Parse document log rows.

    Expected column order: sheet number, description, date issued, date
    received, category, notes, revision.  The first five are required.  A
    leading header row is skipped when it mentions ``sheetNumber``.  Rows
    missing required values, or repeating a sheet number already in
    ``existing`` or earlier in the file, are reported, not raised.
    """

    known_sheets = {doc.sheet_number for doc in existing}

    rows = [row for row in csv.reader(io.StringIO(text)) if any(cell.strip() for cell in row)]
    offset = 0
    if rows and "sheetNumber" in ",".join(rows[0]):
        # Exports lead with an id column; skip it so columns line up.
        offset = 1 if rows[0][0].strip() == "id" else 0
        rows = rows[1:]

    imported: List[Document] = []
    errors: List[str] = []
    for index, row in enumerate(rows, start=1):
        cells = row[offset:]
        values = [cell.strip() for cell in cells] + [""] * (7 - len(cells))
        sheet_number, description, date_issued, date_received, category, notes, revision = values[:7]
        if not all(values[:_REQUIRED_DOCUMENT_FIELDS]):
            LOGGER.warning("Document import row %d is missing required fields", index)
            errors.append(f"Row {index}: Missing required fields.")
            continue
        if sheet_number in known_sheets:
            LOGGER.warning("Document import row %d repeats sheet number %s", index, sheet_number)
            errors.append(f"Row {index}: Duplicate sheet number {sheet_number}.")
            continue
        known_sheets.add(sheet_number)
        if category not in DOCUMENT_CATEGORIES:
            LOGGER.debug("Unknown document category %r on row %d; using Other", category, index)
            category = "Other"
        imported.append(
            Document(
                id=new_id("doc-csv"),
                sheet_number=sheet_number,
                description=description,
                date_issued=date_issued,
                date_received=date_received,
                category=category,
                notes=notes,
                revision=revision,
            )
        )

    return CSVImportResult(
        total_rows=len(rows),
        successful_rows=len(imported),
        error_rows=len(errors),
        errors=tuple(errors),
        imported_documents=tuple(imported),
    )


def import_documents_into(state: EstimateState, text: str) -> Tuple[EstimateState, CSVImportResult]:
    """Import document rows and append the successful ones to ``state``."""

    result = import_documents_csv(text, existing=state.documents)
    LOGGER.info(
        "Imported %d of %d document rows (%d errors)",
        result.successful_rows,
        result.total_rows,
        result.error_rows,
    )
    if not result.imported_documents:
        return state, result
    return replace(state, documents=state.documents + result.imported_documents), result


def export_documents_csv(documents: Iterable[Document]) -> str:
    rows = (
        (
            doc.id,
            doc.sheet_number,
            doc.description,
            doc.date_issued,
            doc.date_received,
            doc.category,
            doc.notes,
            doc.revision,
        )
        for doc in documents
    )
    return _render(DOCUMENT_COLUMNS, rows)


def export_allowances_csv(allowances: Iterable[Allowance]) -> str:
    rows = (
        (
            item.csi_division,
            item.description,
            item.value,
            item.notes,
            _date_text(item.created_at),
            _date_text(item.updated_at),
        )
        for item in allowances
    )
    return _render(ALLOWANCE_HEADERS, rows)


def export_gc_gr_csv(items: Iterable[GCAndGRItem]) -> str:
    rows = (
        (
            item.item_number,
            item.description,
            item.category,
            item.estimated_cost or 0,
            "Yes" if item.is_included else "No",
            item.notes,
        )
        for item in items
    )
    return _render(GC_GR_HEADERS, rows)


def export_clarifications_csv(clarifications: Iterable[Clarification]) -> str:
    rows = (
        (
            item.csi_division,
            item.description,
            item.type,
            item.notes,
            _date_text(item.created_at),
            _date_text(item.updated_at),
        )
        for item in clarifications
    )
    return _render(CLARIFICATION_HEADERS, rows)


def export_value_analysis_csv(items: Iterable[ValueAnalysisItem]) -> str:
    rows = (
        (
            item.item_number,
            item.description,
            item.notes,
            _date_text(item.created_at),
            _date_text(item.updated_at),
        )
        for item in items
    )
    return _render(VALUE_ANALYSIS_HEADERS, rows)


def export_cost_summary_csv(categories: Sequence[CostCategory], breakdown: Breakdown) -> str:
    return breakdown_frame(categories, breakdown).to_csv(index=False, lineterminator="\n")


def write_exports(state: EstimateState, output_dir: Path) -> Dict[str, Path]:
    """Write every CSV export for ``state`` into ``output_dir``."""

    output_dir.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().strftime("%Y-%m-%d")
    payloads = {
        "documents": (f"document_log_{stamp}.csv", export_documents_csv(state.documents)),
        "allowances": (f"project-allowances-{stamp}.csv", export_allowances_csv(state.allowances)),
        "gc_gr": (f"gc-and-gr-items-{stamp}.csv", export_gc_gr_csv(state.gc_gr_items)),
        "clarifications": ("clarifications_assumptions.csv", export_clarifications_csv(state.clarifications)),
        "value_analysis": (f"value-analysis-{stamp}.csv", export_value_analysis_csv(state.value_analysis)),
    }
    summary = state.cost_summary
    if summary is not None and summary.breakdown is not None:
        payloads["cost_summary"] = (
            f"cost-summary-{stamp}.csv",
            export_cost_summary_csv(summary.cost_categories, summary.breakdown),
        )

    written: Dict[str, Path] = {}
    for key, (filename, content) in payloads.items():
        path = output_dir / filename
        path.write_text(content, encoding="utf-8")
        written[key] = path
        LOGGER.debug("Wrote %s export to %s", key, path)
    return written


__all__ = [
    "ALLOWANCE_HEADERS",
    "CLARIFICATION_HEADERS",
    "DOCUMENT_COLUMNS",
    "GC_GR_HEADERS",
    "VALUE_ANALYSIS_HEADERS",
    "export_allowances_csv",
    "export_clarifications_csv",
    "export_cost_summary_csv",
    "export_documents_csv",
    "export_gc_gr_csv",
    "export_value_analysis_csv",
    "import_documents_csv",
    "import_documents_into",
    "write_exports",
]
