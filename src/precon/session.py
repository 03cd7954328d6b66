"""Explicit estimate state and the reducer that applies workflow actions."""
from __future__ import annotations

import logging
import uuid
from dataclasses import asdict, dataclass, field, fields, replace
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Set, Tuple

from .approval import (
    DEFAULT_APPROVAL_STEPS,
    apply_approval_action,
    compute_approval_progress,
    derive_approval_status,
)
from .costs import allowances_total, compute_cost_breakdown, gc_gr_total
from .leveling import group_bids_by_trade, remove_bid, select_bid_for_trade, selected_total
from .models import (
    DEFAULT_RATES,
    RFI,
    RFP,
    Allowance,
    ApprovalStatus,
    AreaCalculation,
    CategoryStatus,
    Clarification,
    CostCategory,
    CostSummary,
    Document,
    GCAndGRItem,
    LineItem,
    MarkupRates,
    ValueAnalysisItem,
    VendorBid,
)

LOGGER = logging.getLogger(__name__)

PROJECT_METRICS = ("total_gross_sf", "total_ac_sf", "site_acres", "parking_spaces")
DOCUMENT_REQUIRED_FIELDS = ("sheet_number", "description", "date_issued", "date_received", "category")


class UnknownActionError(ValueError):
    """Raised when the reducer receives an action type it does not handle."""


@dataclass(frozen=True)
class Action:
    type: str
    payload: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class EstimateState:
    """Whole estimate owned by a single session; replaced, never mutated."""

    id: str
    name: str
    client: str = ""
    estimator: str = ""
    project_number: str = ""
    status: str = "draft"
    rfp: Optional[RFP] = None
    area_calculations: Tuple[AreaCalculation, ...] = ()
    total_gross_sf: float = 0.0
    total_ac_sf: float = 0.0
    site_acres: float = 0.0
    parking_spaces: int = 0
    clarifications: Tuple[Clarification, ...] = ()
    rfis: Tuple[RFI, ...] = ()
    documents: Tuple[Document, ...] = ()
    gc_gr_items: Tuple[GCAndGRItem, ...] = ()
    allowances: Tuple[Allowance, ...] = ()
    value_analysis: Tuple[ValueAnalysisItem, ...] = ()
    bid_tabulation: Dict[str, Tuple[LineItem, ...]] = field(default_factory=dict)
    vendor_bids: Tuple[VendorBid, ...] = ()
    selected_bids: Dict[str, VendorBid] = field(default_factory=dict)
    leveling_notes: str = ""
    cost_summary: Optional[CostSummary] = None


# action suffix -> (state field, record type, id prefix)
_COLLECTIONS: Dict[str, Tuple[str, type, str]] = {
    "clarification": ("clarifications", Clarification, "clar"),
    "rfi": ("rfis", RFI, "rfi"),
    "document": ("documents", Document, "doc"),
    "gc_gr_item": ("gc_gr_items", GCAndGRItem, "gcgr"),
    "allowance": ("allowances", Allowance, "allow"),
    "value_analysis": ("value_analysis", ValueAnalysisItem, "va"),
    "vendor_bid": ("vendor_bids", VendorBid, "vbid"),
}


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


def _field_names(record_type: type) -> Set[str]:
    return {f.name for f in fields(record_type)}


def _stamp(record_type: type, values: Dict[str, Any], now: datetime, *, created: bool) -> Dict[str, Any]:
    names = _field_names(record_type)
    if created and "created_at" in names:
        values.setdefault("created_at", now)
    if "updated_at" in names:
        values["updated_at"] = now
    if created and "submitted_at" in names:
        values.setdefault("submitted_at", now)
    return values


def build_cost_categories(state: EstimateState, now: Optional[datetime] = None) -> Tuple[CostCategory, ...]:
    """Derive the four standard cost categories from leveling, GC & GR and allowances."""

    stamp = now or datetime.now().astimezone()
    trades = group_bids_by_trade(state.vendor_bids)
    trades_done = bool(trades) and all(trade in state.selected_bids for trade in trades)

    def _status(amount: float, done: bool) -> CategoryStatus:
        if done:
            return CategoryStatus.COMPLETE
        return CategoryStatus.PENDING if amount > 0 else CategoryStatus.DRAFT

    def _gc_gr(category: str) -> CostCategory:
        amount = gc_gr_total(state.gc_gr_items, category)
        count = sum(1 for item in state.gc_gr_items if item.category == category and item.is_included)
        return CostCategory(
            id="gc" if category == "General Conditions" else "gr",
            name=category,
            amount=amount,
            status=_status(amount, count > 0),
            items=count,
            last_updated=stamp,
        )

    trade_amount = selected_total(state.selected_bids)
    allowance_amount = allowances_total(state.allowances)
    return (
        CostCategory(
            id="trades",
            name="Trade Work",
            amount=trade_amount,
            status=_status(trade_amount, trades_done),
            items=len(state.selected_bids),
            last_updated=stamp,
        ),
        _gc_gr("General Conditions"),
        _gc_gr("General Requirements"),
        CostCategory(
            id="allowances",
            name="Allowances & Contingencies",
            amount=allowance_amount,
            status=_status(allowance_amount, False),
            items=len(state.allowances),
            last_updated=stamp,
        ),
    )


def document_rejection(
    documents: Tuple[Document, ...],
    values: Mapping[str, Any],
    exclude_id: Optional[str] = None,
) -> Optional[str]:
    """Reason a document record may not be saved to the log, or None."""

    missing = [name for name in DOCUMENT_REQUIRED_FIELDS if not str(values.get(name) or "").strip()]
    if missing:
        return f"missing {', '.join(missing)}"
    sheet_number = str(values["sheet_number"]).strip()
    if any(doc.sheet_number == sheet_number and doc.id != exclude_id for doc in documents):
        return f"duplicate sheet number {sheet_number}"
    return None


def _add(state: EstimateState, suffix: str, payload: Mapping[str, Any], now: datetime) -> EstimateState:
    attr, record_type, prefix = _COLLECTIONS[suffix]
    values = dict(payload)
    if suffix == "document":
        reason = document_rejection(state.documents, values)
        if reason:
            LOGGER.debug("Document not added: %s", reason)
            return state
    values["id"] = values.get("id") or new_id(prefix)
    record = record_type(**_stamp(record_type, values, now, created=True))
    return replace(state, **{attr: getattr(state, attr) + (record,)})


def _refresh_selections(selections: Mapping[str, VendorBid], bids: Tuple[VendorBid, ...]) -> Dict[str, VendorBid]:
    by_id = {bid.id: bid for bid in bids}
    refreshed: Dict[str, VendorBid] = {}
    for trade, bid in selections.items():
        current = by_id.get(bid.id, bid)
        if current.trade != trade:
            LOGGER.debug("Bid %s moved to trade %s; dropping selection for %s", bid.id, current.trade, trade)
            continue
        refreshed[trade] = current
    return refreshed


def _update(state: EstimateState, suffix: str, payload: Mapping[str, Any], now: datetime) -> EstimateState:
    attr, record_type, _ = _COLLECTIONS[suffix]
    target = payload["id"]
    changes = {k: v for k, v in dict(payload.get("changes", {})).items() if k not in {"id", "created_at"}}
    records = getattr(state, attr)
    existing = next((record for record in records if record.id == target), None)
    if existing is None:
        LOGGER.debug("No %s with id %s; update ignored", suffix, target)
        return state
    if suffix == "document":
        reason = document_rejection(state.documents, asdict(replace(existing, **changes)), exclude_id=target)
        if reason:
            LOGGER.debug("Document %s not updated: %s", target, reason)
            return state
    changes = _stamp(record_type, changes, now, created=False)
    updated = tuple(replace(record, **changes) if record.id == target else record for record in records)
    new_state = replace(state, **{attr: updated})
    if suffix == "vendor_bid" and target in {bid.id for bid in state.selected_bids.values()}:
        new_state = replace(new_state, selected_bids=_refresh_selections(state.selected_bids, updated))
    return new_state


def _delete(state: EstimateState, suffix: str, payload: Mapping[str, Any]) -> EstimateState:
    attr, _, _ = _COLLECTIONS[suffix]
    target = payload["id"]
    if suffix == "vendor_bid":
        remaining, kept = remove_bid(state.vendor_bids, state.selected_bids, target)
        return replace(state, vendor_bids=tuple(remaining), selected_bids=kept)
    records = getattr(state, attr)
    return replace(state, **{attr: tuple(record for record in records if record.id != target)})


def _generate_cost_summary(state: EstimateState, payload: Mapping[str, Any], now: datetime) -> EstimateState:
    rates: MarkupRates = payload.get("rates") or DEFAULT_RATES
    summary = state.cost_summary
    if payload.get("rebuild_categories") or summary is None or not summary.cost_categories:
        categories = build_cost_categories(state, now)
    else:
        categories = summary.cost_categories

    gross_sf = state.rfp.gross_sf if state.rfp and state.rfp.gross_sf else state.total_gross_sf
    net_sf = state.rfp.net_sf if state.rfp else None
    breakdown = compute_cost_breakdown(categories, rates, gross_sf=gross_sf, net_sf=net_sf)

    if summary is None:
        summary = CostSummary(id=new_id("cs"), rfp_id=state.rfp.id if state.rfp else "N/A")
    steps = summary.approval_steps or DEFAULT_APPROVAL_STEPS
    return replace(
        state,
        cost_summary=replace(
            summary,
            cost_categories=tuple(categories),
            approval_steps=steps,
            breakdown=breakdown,
        ),
    )


def _approval_action(state: EstimateState, payload: Mapping[str, Any], now: datetime) -> EstimateState:
    summary = state.cost_summary
    if summary is None:
        return state
    if summary.approval_status == ApprovalStatus.SUBMITTED:
        LOGGER.debug("Bid already submitted; approval action ignored")
        return state
    steps = apply_approval_action(
        summary.approval_steps,
        payload["step_id"],
        payload["action"],
        payload.get("actor", ""),
        now=now,
    )
    status = derive_approval_status(steps)
    approved_by = summary.approved_by
    approved_at = summary.approved_at
    if status == ApprovalStatus.APPROVED and summary.approval_status != ApprovalStatus.APPROVED:
        approved_by = payload.get("actor") or approved_by
        approved_at = now
    return replace(
        state,
        cost_summary=replace(
            summary,
            approval_steps=tuple(steps),
            approval_status=status,
            approved_by=approved_by,
            approved_at=approved_at,
        ),
    )


def _submit_bid(state: EstimateState) -> EstimateState:
    summary = state.cost_summary
    if summary is None or not compute_approval_progress(summary.approval_steps).is_fully_approved:
        LOGGER.debug("Bid submission ignored; approvals incomplete")
        return state
    return replace(
        state,
        status="submitted",
        cost_summary=replace(summary, approval_status=ApprovalStatus.SUBMITTED),
    )


def reduce(state: EstimateState, action: Action, now: Optional[datetime] = None) -> EstimateState:
    """
    Apply ``action`` to ``state`` and return the next state.

    The input state is never modified.  Collections are replaced wholesale.
    Actions that reference unknown records are no-ops; an unrecognised
    action type raises :class:`UnknownActionError`.
    """

    stamp = now or datetime.now().astimezone()
    kind = action.type
    payload = action.payload
    LOGGER.debug("Reducing action %s", kind)

    verb, _, suffix = kind.partition("_")
    if verb in {"add", "update", "delete"} and suffix in _COLLECTIONS:
        if verb == "add":
            return _add(state, suffix, payload, stamp)
        if verb == "update":
            return _update(state, suffix, payload, stamp)
        return _delete(state, suffix, payload)

    if kind == "set_area_calculations":
        return replace(state, area_calculations=tuple(payload["calculations"]))
    if kind == "update_project_metrics":
        metrics = {k: v for k, v in payload.items() if k in PROJECT_METRICS}
        ignored = set(payload) - set(metrics)
        if ignored:
            LOGGER.debug("Ignoring unknown project metrics: %s", ", ".join(sorted(ignored)))
        return replace(state, **metrics)
    if kind == "update_bid_tabulation":
        tabulation = dict(state.bid_tabulation)
        tabulation[payload["trade"]] = tuple(payload["line_items"])
        return replace(state, bid_tabulation=tabulation)
    if kind == "select_bid":
        selections = select_bid_for_trade(
            group_bids_by_trade(state.vendor_bids),
            state.selected_bids,
            payload["trade"],
            payload["bid_id"],
        )
        return replace(state, selected_bids=selections)
    if kind == "set_leveling_notes":
        return replace(state, leveling_notes=str(payload.get("notes", "")))
    if kind == "generate_cost_summary":
        return _generate_cost_summary(state, payload, stamp)
    if kind == "approval_action":
        return _approval_action(state, payload, stamp)
    if kind == "submit_bid":
        return _submit_bid(state)
    if kind == "update_cost_summary_notes":
        if state.cost_summary is None:
            return state
        return replace(state, cost_summary=replace(state.cost_summary, notes=str(payload.get("notes", ""))))

    raise UnknownActionError(f"Unknown estimate action: {kind}")


__all__ = [
    "Action",
    "DOCUMENT_REQUIRED_FIELDS",
    "EstimateState",
    "PROJECT_METRICS",
    "UnknownActionError",
    "build_cost_categories",
    "document_rejection",
    "new_id",
    "reduce",
]
