"""Seed estimate loading and validation.

Estimates are seeded from a JSON document (the bundled sample mirrors the
demo dataset used by the estimating screens).  Documents are validated
against ``data/estimate.schema.json`` before conversion into model objects.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from jsonschema import Draft7Validator, ValidationError

from .models import (
    RFI,
    RFP,
    Allowance,
    ApprovalStatus,
    ApprovalStep,
    AreaCalculation,
    AreaType,
    BidStatus,
    CategoryStatus,
    Clarification,
    CostCategory,
    CostSummary,
    Document,
    GCAndGRItem,
    LineItem,
    StepStatus,
    Unit,
    ValueAnalysisItem,
    VendorBid,
)
from .session import EstimateState

LOGGER = logging.getLogger(__name__)

DATA_SAMPLE_DIR = Path(__file__).resolve().parent / "data"
SAMPLE_ESTIMATE_PATH = DATA_SAMPLE_DIR / "sample_estimate.json"
SCHEMA_PATH = DATA_SAMPLE_DIR / "estimate.schema.json"


class EstimateValidationError(ValueError):
    """Raised when a seed estimate document does not match the schema."""


@lru_cache(maxsize=1)
def _validator() -> Draft7Validator:
    with SCHEMA_PATH.open("r", encoding="utf-8") as f:
        schema = json.load(f)
    return Draft7Validator(schema)


def validate_estimate(raw: Mapping[str, Any]) -> None:
    try:
        _validator().validate(raw)
    except ValidationError as exc:
        location = "/".join(str(part) for part in exc.absolute_path) or "<root>"
        raise EstimateValidationError(f"Invalid estimate at {location}: {exc.message}") from exc


def _date(record: Mapping[str, Any], key: str) -> Optional[datetime]:
    """ISO-8601 date or timestamp from ``record[key]``; a trailing ``Z`` means UTC."""

    value = record.get(key)
    if not value:
        return None
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        return datetime.fromisoformat(text)
    except ValueError as exc:
        owner = record.get("id", "<record>")
        raise EstimateValidationError(f"Invalid estimate at {owner}/{key}: {value!r} is not an ISO date") from exc


def _line_item(raw: Mapping[str, Any]) -> LineItem:
    return LineItem(
        id=raw["id"],
        description=raw["description"],
        quantity=float(raw["quantity"]),
        unit=Unit(raw["unit"]),
        unit_price=float(raw["unit_price"]),
        category=raw.get("category", ""),
        notes=raw.get("notes", ""),
    )


def _vendor_bid(raw: Mapping[str, Any]) -> VendorBid:
    return VendorBid(
        id=raw["id"],
        vendor_name=raw["vendor_name"],
        trade=raw["trade"],
        total_amount=float(raw["total_amount"]),
        line_items=tuple(_line_item(item) for item in raw.get("line_items", [])),
        confidence=float(raw.get("confidence", 0)),
        status=BidStatus(raw.get("status", "received")),
        inclusions=tuple(raw.get("inclusions", [])),
        exclusions=tuple(raw.get("exclusions", [])),
        submitted_at=_date(raw, "submitted_at"),
        vendor_id=raw.get("vendor_id", ""),
        notes=raw.get("notes", ""),
    )


def _rfp(raw: Optional[Mapping[str, Any]]) -> Optional[RFP]:
    if not raw:
        return None
    return RFP(
        id=raw["id"],
        project_name=raw["project_name"],
        client=raw.get("client", ""),
        location=raw.get("location", ""),
        due_date=_date(raw, "due_date"),
        status=raw.get("status", "active"),
        description=raw.get("description", ""),
        estimated_value=float(raw.get("estimated_value", 0)),
        trades_required=tuple(raw.get("trades_required", [])),
        gross_sf=raw.get("gross_sf"),
        net_sf=raw.get("net_sf"),
        duration_months=raw.get("duration_months"),
    )


def _cost_summary(raw: Optional[Mapping[str, Any]]) -> Optional[CostSummary]:
    if not raw:
        return None
    categories = tuple(
        CostCategory(
            id=cat["id"],
            name=cat["name"],
            amount=float(cat["amount"]),
            status=CategoryStatus(cat.get("status", "draft")),
            items=int(cat.get("items", 0)),
            last_updated=_date(cat, "last_updated"),
        )
        for cat in raw.get("cost_categories", [])
    )
    steps = tuple(
        ApprovalStep(
            id=step["id"],
            title=step["title"],
            description=step.get("description", ""),
            status=StepStatus(step.get("status", "pending")),
            completed_by=step.get("completed_by"),
            completed_at=_date(step, "completed_at"),
        )
        for step in raw.get("approval_steps", [])
    )
    return CostSummary(
        id=raw["id"],
        rfp_id=raw.get("rfp_id", "N/A"),
        cost_categories=categories,
        approval_steps=steps,
        approval_status=ApprovalStatus(raw.get("approval_status", "draft")),
        notes=raw.get("notes", ""),
        approved_by=raw.get("approved_by"),
        approved_at=_date(raw, "approved_at"),
    )


def estimate_from_dict(raw: Mapping[str, Any]) -> EstimateState:
    """Validate and convert a seed document into an :class:`EstimateState`."""

    validate_estimate(raw)

    bids = tuple(_vendor_bid(bid) for bid in raw.get("vendor_bids", []))
    bids_by_id = {bid.id: bid for bid in bids}
    selected: Dict[str, VendorBid] = {}
    for trade, bid_id in (raw.get("selected_bids") or {}).items():
        bid = bids_by_id.get(bid_id)
        if bid is None or bid.trade != trade:
            LOGGER.warning("Dropping selection %s for trade %s; no matching bid", bid_id, trade)
            continue
        selected[trade] = bid

    return EstimateState(
        id=raw["id"],
        name=raw["name"],
        client=raw.get("client", ""),
        estimator=raw.get("estimator", ""),
        project_number=raw.get("project_number", ""),
        status=raw.get("status", "draft"),
        rfp=_rfp(raw.get("rfp")),
        area_calculations=tuple(
            AreaCalculation(
                id=calc["id"],
                building=calc["building"],
                level=calc["level"],
                area_type=AreaType(calc["area_type"]),
                square_footage=float(calc["square_footage"]),
                notes=calc.get("notes", ""),
            )
            for calc in raw.get("area_calculations", [])
        ),
        total_gross_sf=float(raw.get("total_gross_sf", 0)),
        total_ac_sf=float(raw.get("total_ac_sf", 0)),
        site_acres=float(raw.get("site_acres", 0)),
        parking_spaces=int(raw.get("parking_spaces", 0)),
        clarifications=tuple(
            Clarification(
                id=item["id"],
                csi_division=item["csi_division"],
                description=item["description"],
                type=item.get("type", "Assumption"),
                notes=item.get("notes", ""),
                created_at=_date(item, "created_at"),
                updated_at=_date(item, "updated_at"),
            )
            for item in raw.get("clarifications", [])
        ),
        rfis=tuple(
            RFI(
                id=item["id"],
                number=item["number"],
                question=item["question"],
                status=item.get("status", "Pending"),
                date_submitted=item.get("date_submitted", ""),
                response=item.get("response", ""),
                date_answered=item.get("date_answered", ""),
                assigned_to=item.get("assigned_to", ""),
                priority=item.get("priority", ""),
            )
            for item in raw.get("rfis", [])
        ),
        documents=tuple(
            Document(
                id=item["id"],
                sheet_number=item["sheet_number"],
                description=item["description"],
                date_issued=item["date_issued"],
                date_received=item["date_received"],
                category=item.get("category", "Other"),
                notes=item.get("notes", ""),
                revision=item.get("revision", ""),
            )
            for item in raw.get("documents", [])
        ),
        gc_gr_items=tuple(
            GCAndGRItem(
                id=item["id"],
                item_number=item["item_number"],
                description=item["description"],
                category=item.get("category", "General Conditions"),
                estimated_cost=item.get("estimated_cost"),
                is_included=bool(item.get("is_included", True)),
                notes=item.get("notes", ""),
                created_at=_date(item, "created_at"),
                updated_at=_date(item, "updated_at"),
            )
            for item in raw.get("gc_gr_items", [])
        ),
        allowances=tuple(
            Allowance(
                id=item["id"],
                csi_division=item["csi_division"],
                description=item["description"],
                value=float(item["value"]),
                notes=item.get("notes", ""),
                created_at=_date(item, "created_at"),
                updated_at=_date(item, "updated_at"),
            )
            for item in raw.get("allowances", [])
        ),
        value_analysis=tuple(
            ValueAnalysisItem(
                id=item["id"],
                item_number=item["item_number"],
                description=item["description"],
                notes=item.get("notes", ""),
                created_at=_date(item, "created_at"),
                updated_at=_date(item, "updated_at"),
            )
            for item in raw.get("value_analysis", [])
        ),
        bid_tabulation={
            trade: tuple(_line_item(item) for item in items)
            for trade, items in (raw.get("bid_tabulation") or {}).items()
        },
        vendor_bids=bids,
        selected_bids=selected,
        leveling_notes=raw.get("leveling_notes", ""),
        cost_summary=_cost_summary(raw.get("cost_summary")),
    )


def load_estimate(path: Optional[Path] = None) -> EstimateState:
    """Load a seed estimate from JSON; defaults to the bundled sample."""

    estimate_path = path or SAMPLE_ESTIMATE_PATH
    if not estimate_path.exists():
        raise FileNotFoundError(f"Estimate file not found: {estimate_path}")
    with estimate_path.open("r", encoding="utf-8") as f:
        raw = json.load(f)
    LOGGER.debug("Loaded estimate seed from %s", estimate_path)
    return estimate_from_dict(raw)


__all__ = [
    "DATA_SAMPLE_DIR",
    "EstimateValidationError",
    "SAMPLE_ESTIMATE_PATH",
    "SCHEMA_PATH",
    "estimate_from_dict",
    "load_estimate",
    "validate_estimate",
]
