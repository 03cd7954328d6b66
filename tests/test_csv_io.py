from __future__ import annotations

import csv
import io

import pytest

from precon.costs import compute_cost_breakdown
from precon.csv_io import (
    GC_GR_HEADERS,
    export_allowances_csv,
    export_cost_summary_csv,
    export_documents_csv,
    export_gc_gr_csv,
    import_documents_csv,
    import_documents_into,
    write_exports,
)
from precon.models import Allowance, Document, GCAndGRItem
from precon.session import Action, reduce


def test_import_skips_header_and_reports_missing_fields():
    text = (
        "sheetNumber,description,dateIssued,dateReceived,category,notes,revision\n"
        "A-101,Floor Plan,2024-01-01,2024-01-02,Architectural,,\n"
        "S-201,,2024-01-01,2024-01-02,Structural,,\n"
    )
    result = import_documents_csv(text)

    assert result.total_rows == 2
    assert result.successful_rows == 1
    assert result.error_rows == 1
    assert result.errors == ("Row 2: Missing required fields.",)
    doc = result.imported_documents[0]
    assert doc.sheet_number == "A-101"
    assert doc.category == "Architectural"
    assert doc.id.startswith("doc-csv-")


def test_import_without_header_and_unknown_category():
    text = "M-301,Mechanical Plan,2024-02-01,2024-02-03,HVAC,See addendum,B\n\n"
    result = import_documents_csv(text)
    assert result.total_rows == 1
    doc = result.imported_documents[0]
    assert doc.category == "Other"
    assert doc.notes == "See addendum"
    assert doc.revision == "B"


def test_import_short_row_is_an_error():
    result = import_documents_csv("A-101,Floor Plan,2024-01-01\n")
    assert result.successful_rows == 0
    assert result.errors == ("Row 1: Missing required fields.",)


def test_export_escapes_quotes_and_commas():
    doc = Document(
        id="doc-1",
        sheet_number="A-101",
        description='Plan, "Level 1"',
        date_issued="2024-01-01",
        date_received="2024-01-02",
        category="Architectural",
    )
    text = export_documents_csv([doc])
    header, row = text.splitlines()
    assert header == "id,sheetNumber,description,dateIssued,dateReceived,category,notes,revision"
    assert '"Plan, ""Level 1"""' in row


def test_exported_documents_import_back():
    docs = [
        Document(
            id="doc-1",
            sheet_number="A-101",
            description='Plan, "Level 1"',
            date_issued="2024-01-01",
            date_received="2024-01-02",
            category="Architectural",
            notes="Issued for bid",
            revision="2",
        )
    ]
    result = import_documents_csv(export_documents_csv(docs))
    assert result.error_rows == 0
    imported = result.imported_documents[0]
    assert imported.sheet_number == "A-101"
    assert imported.description == 'Plan, "Level 1"'
    assert imported.revision == "2"


def test_import_documents_into_appends(sample_state):
    text = "E-101,Lighting Plan,2024-03-01,2024-03-02,Electrical,,\n"
    state, result = import_documents_into(sample_state, text)
    assert result.successful_rows == 1
    assert [doc.sheet_number for doc in state.documents] == ["A-101", "E-101"]

    unchanged, _ = import_documents_into(sample_state, "bad,row\n")
    assert unchanged is sample_state


def test_gc_gr_export_formats_inclusion_and_missing_cost():
    items = [
        GCAndGRItem(id="1", item_number="GC-001", description="PM", estimated_cost=150000),
        GCAndGRItem(id="2", item_number="GR-001", description="Testing", category="General Requirements", is_included=False),
    ]
    rows = list(csv.reader(io.StringIO(export_gc_gr_csv(items))))
    assert tuple(rows[0]) == GC_GR_HEADERS
    assert rows[1][3:5] == ["150000", "Yes"]
    assert rows[2][3:5] == ["0", "No"]


def test_allowance_export_has_dates(sample_state):
    text = export_allowances_csv(sample_state.allowances)
    rows = list(csv.reader(io.StringIO(text)))
    assert rows[1] == ["09 00 00", "Flooring Allowance", "50000.0", "", "2025-06-01", "2025-06-01"]

    empty = export_allowances_csv([Allowance(id="a", csi_division="01", description="x", value=1)])
    assert list(csv.reader(io.StringIO(empty)))[1][4:] == ["", ""]


def test_cost_summary_export(sample_categories):
    breakdown = compute_cost_breakdown(sample_categories)
    rows = list(csv.DictReader(io.StringIO(export_cost_summary_csv(sample_categories, breakdown))))
    assert rows[0]["LINE"] == "Trade Work"
    assert rows[-1]["LINE"] == "Total Bid"
    assert float(rows[-1]["AMOUNT"]) == pytest.approx(2_250_285)


def test_write_exports(tmp_path, sample_state, now):
    state = reduce(sample_state, Action("generate_cost_summary"), now=now)
    written = write_exports(state, tmp_path / "exports")
    assert set(written) == {"documents", "allowances", "gc_gr", "clarifications", "value_analysis", "cost_summary"}
    for path in written.values():
        assert path.exists()
        assert path.read_text(encoding="utf-8").strip()
    assert written["clarifications"].name == "clarifications_assumptions.csv"

    bare = write_exports(sample_state, tmp_path / "bare")
    assert "cost_summary" not in bare


def test_duplicate_sheet_numbers_are_row_errors(sample_state):
    text = (
        "A-101,Ground Floor Plan,2024-01-01,2024-01-02,Architectural,,\n"
        "A-201,Roof Plan,2024-01-01,2024-01-02,Architectural,,\n"
        "A-201,Roof Plan (dup),2024-01-01,2024-01-02,Architectural,,\n"
    )
    state, result = import_documents_into(sample_state, text)

    assert result.total_rows == 3
    assert result.successful_rows == 1
    assert result.errors == (
        "Row 1: Duplicate sheet number A-101.",
        "Row 3: Duplicate sheet number A-201.",
    )
    assert [doc.sheet_number for doc in state.documents] == ["A-101", "A-201"]
