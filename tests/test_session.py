from __future__ import annotations

import pytest

from precon.models import (
    ApprovalStatus,
    AreaCalculation,
    AreaType,
    CategoryStatus,
    LineItem,
    MarkupRates,
    StepStatus,
    Unit,
)
from precon.sample_data import estimate_from_dict
from precon.session import Action, UnknownActionError, build_cost_categories, reduce


def _approve_remaining(state, now, actor="Pat Lee"):
    for step_id in ("project_executive", "c_suite"):
        state = reduce(state, Action("approval_action", {"step_id": step_id, "action": "approve", "actor": actor}), now=now)
    return state


def test_generate_cost_summary_uses_seeded_categories(sample_state, now):
    state = reduce(sample_state, Action("generate_cost_summary"), now=now)
    breakdown = state.cost_summary.breakdown

    assert breakdown.subtotal == pytest.approx(1_829_500)
    assert breakdown.total == pytest.approx(2_250_285)
    assert breakdown.cost_per_gross_sf == pytest.approx(2_250_285 / 200000)
    assert breakdown.cost_per_net_sf == pytest.approx(2_250_285 / 180000)
    assert sample_state.cost_summary.breakdown is None


def test_generate_cost_summary_with_custom_rates(sample_state, now):
    rates = MarkupRates(overhead_rate=0.12, profit_rate=0.06, contingency_rate=0.0)
    state = reduce(sample_state, Action("generate_cost_summary", {"rates": rates}), now=now)
    assert state.cost_summary.breakdown.overhead == pytest.approx(1_829_500 * 0.12)
    assert state.cost_summary.breakdown.contingency == 0


def test_rebuilt_categories_follow_selections(sample_state, now):
    state = reduce(sample_state, Action("select_bid", {"trade": "Concrete", "bid_id": "vbid-5"}), now=now)
    state = reduce(state, Action("select_bid", {"trade": "Plumbing", "bid_id": "vbid-4"}), now=now)
    state = reduce(state, Action("generate_cost_summary", {"rebuild_categories": True}), now=now)

    categories = {cat.id: cat for cat in state.cost_summary.cost_categories}
    assert categories["trades"].amount == 465000 + 285000
    assert categories["trades"].status == CategoryStatus.COMPLETE
    assert categories["gc"].amount == 150000
    assert categories["gr"].amount == 0
    assert categories["gr"].status == CategoryStatus.DRAFT
    assert categories["allowances"].amount == 50000
    assert state.cost_summary.breakdown.subtotal == pytest.approx(465000 + 285000 + 150000 + 50000)


def test_build_cost_categories_without_selections(sample_state, now):
    categories = build_cost_categories(sample_state, now)
    assert [cat.id for cat in categories] == ["trades", "gc", "gr", "allowances"]
    assert categories[0].amount == 0
    assert categories[0].status == CategoryStatus.DRAFT
    assert all(cat.last_updated == now for cat in categories)


def test_select_bid_replaces_previous_choice(sample_state, now):
    state = reduce(sample_state, Action("select_bid", {"trade": "Plumbing", "bid_id": "vbid-3"}), now=now)
    state = reduce(state, Action("select_bid", {"trade": "Plumbing", "bid_id": "vbid-4"}), now=now)
    assert {trade: bid.id for trade, bid in state.selected_bids.items()} == {"Plumbing": "vbid-4"}

    unchanged = reduce(state, Action("select_bid", {"trade": "Plumbing", "bid_id": "vbid-1"}), now=now)
    assert unchanged.selected_bids == state.selected_bids


def test_deleting_selected_bid_clears_selection(sample_state, now):
    state = reduce(sample_state, Action("select_bid", {"trade": "Plumbing", "bid_id": "vbid-4"}), now=now)
    state = reduce(state, Action("delete_vendor_bid", {"id": "vbid-4"}), now=now)
    assert "Plumbing" not in state.selected_bids
    assert all(bid.id != "vbid-4" for bid in state.vendor_bids)


def test_updating_selected_bid_refreshes_selection(sample_state, now):
    state = reduce(sample_state, Action("select_bid", {"trade": "Plumbing", "bid_id": "vbid-4"}), now=now)
    state = reduce(
        state,
        Action("update_vendor_bid", {"id": "vbid-4", "changes": {"total_amount": 290000}}),
        now=now,
    )
    assert state.selected_bids["Plumbing"].total_amount == 290000


def test_add_update_delete_allowance(sample_state, now):
    state = reduce(
        sample_state,
        Action("add_allowance", {"csi_division": "10 00 00", "description": "Signage", "value": 12500}),
        now=now,
    )
    added = state.allowances[-1]
    assert added.id.startswith("allow-")
    assert added.created_at == now
    assert added.updated_at == now
    assert len(sample_state.allowances) == 1

    state = reduce(state, Action("update_allowance", {"id": added.id, "changes": {"value": 15000}}), now=now)
    assert state.allowances[-1].value == 15000
    assert state.allowances[-1].created_at == now

    state = reduce(state, Action("delete_allowance", {"id": added.id}), now=now)
    assert [item.id for item in state.allowances] == ["allow-1"]


def test_update_unknown_record_is_noop(sample_state, now):
    state = reduce(sample_state, Action("update_rfi", {"id": "rfi-999", "changes": {"status": "Answered"}}), now=now)
    assert state is sample_state


def test_project_metrics_ignore_unknown_keys(sample_state, now):
    state = reduce(
        sample_state,
        Action("update_project_metrics", {"total_gross_sf": 40000, "parking_spaces": 175, "floors": 3}),
        now=now,
    )
    assert state.total_gross_sf == 40000
    assert state.parking_spaces == 175
    assert not hasattr(state, "floors")


def test_area_calculations_and_bid_tabulation(sample_state, now):
    calcs = [AreaCalculation(id="b1", building="Tower B", level="Ground", area_type=AreaType.GROSS_SF, square_footage=12000)]
    state = reduce(sample_state, Action("set_area_calculations", {"calculations": calcs}), now=now)
    assert state.area_calculations == tuple(calcs)

    items = [LineItem(id="e1", description="Panel", quantity=4, unit=Unit.EA, unit_price=2500)]
    state = reduce(state, Action("update_bid_tabulation", {"trade": "Electrical", "line_items": items}), now=now)
    assert set(state.bid_tabulation) == {"Concrete", "Plumbing", "Electrical"}
    assert "Electrical" not in sample_state.bid_tabulation


def test_notes_actions(sample_state, now):
    state = reduce(sample_state, Action("set_leveling_notes", {"notes": "Plumbing scope gap on permits."}), now=now)
    state = reduce(state, Action("update_cost_summary_notes", {"notes": "Escalation excluded."}), now=now)
    assert state.leveling_notes == "Plumbing scope gap on permits."
    assert state.cost_summary.notes == "Escalation excluded."


def test_approval_actions_update_status(sample_state, now):
    state = reduce(
        sample_state,
        Action("approval_action", {"step_id": "project_executive", "action": "approve", "actor": "Pat Lee"}),
        now=now,
    )
    assert state.cost_summary.approval_status == ApprovalStatus.PENDING
    assert state.cost_summary.approved_by is None

    state = reduce(
        state,
        Action("approval_action", {"step_id": "c_suite", "action": "approve", "actor": "Dana Cruz"}),
        now=now,
    )
    assert state.cost_summary.approval_status == ApprovalStatus.APPROVED
    assert state.cost_summary.approved_by == "Dana Cruz"
    assert state.cost_summary.approved_at == now


def test_rejection_marks_summary_rejected(sample_state, now):
    state = reduce(
        sample_state,
        Action("approval_action", {"step_id": "project_executive", "action": "reject", "actor": "Pat Lee"}),
        now=now,
    )
    assert state.cost_summary.approval_steps[2].status == StepStatus.SKIPPED
    assert state.cost_summary.approval_status == ApprovalStatus.REJECTED

    state = reduce(state, Action("submit_bid"), now=now)
    assert state.status == sample_state.status


def test_submit_requires_full_approval(sample_state, now):
    assert reduce(sample_state, Action("submit_bid"), now=now) is sample_state

    state = reduce(_approve_remaining(sample_state, now), Action("submit_bid"), now=now)
    assert state.status == "submitted"
    assert state.cost_summary.approval_status == ApprovalStatus.SUBMITTED

    after = reduce(
        state,
        Action("approval_action", {"step_id": "c_suite", "action": "reject", "actor": "Pat Lee"}),
        now=now,
    )
    assert after is state


def test_unknown_action_raises(sample_state):
    with pytest.raises(UnknownActionError):
        reduce(sample_state, Action("archive_estimate"))


def test_new_summary_starts_default_workflow(now):
    state = estimate_from_dict({"id": "est-new", "name": "Warehouse Shell"})
    state = reduce(state, Action("generate_cost_summary"), now=now)

    steps = state.cost_summary.approval_steps
    assert [step.id for step in steps] == ["estimator_review", "chief_estimator", "project_executive", "c_suite"]
    assert all(step.status == StepStatus.PENDING for step in steps)
    assert state.cost_summary.rfp_id == "N/A"

    for step in steps:
        state = reduce(
            state,
            Action("approval_action", {"step_id": step.id, "action": "approve", "actor": "Pat Lee"}),
            now=now,
        )
    assert state.cost_summary.approval_status == ApprovalStatus.APPROVED

    state = reduce(state, Action("submit_bid"), now=now)
    assert state.status == "submitted"
    assert state.cost_summary.approval_status == ApprovalStatus.SUBMITTED


def test_regenerating_summary_keeps_existing_steps(sample_state, now):
    state = reduce(sample_state, Action("generate_cost_summary"), now=now)
    assert state.cost_summary.approval_steps == sample_state.cost_summary.approval_steps


def test_moving_selected_bid_to_another_trade_drops_selection(sample_state, now):
    state = reduce(sample_state, Action("select_bid", {"trade": "Plumbing", "bid_id": "vbid-4"}), now=now)
    state = reduce(state, Action("select_bid", {"trade": "Concrete", "bid_id": "vbid-1"}), now=now)
    state = reduce(state, Action("update_vendor_bid", {"id": "vbid-4", "changes": {"trade": "Concrete"}}), now=now)

    assert {trade: bid.id for trade, bid in state.selected_bids.items()} == {"Concrete": "vbid-1"}
    assert all(bid.trade == trade for trade, bid in state.selected_bids.items())


def _document(sheet_number="A-102", **overrides):
    values = {
        "sheet_number": sheet_number,
        "description": "Second Floor Plan",
        "date_issued": "2025-05-20",
        "date_received": "2025-05-22",
        "category": "Architectural",
    }
    values.update(overrides)
    return values


def test_add_document_requires_fields_and_unique_sheet(sample_state, now):
    state = reduce(sample_state, Action("add_document", _document()), now=now)
    assert [doc.sheet_number for doc in state.documents] == ["A-101", "A-102"]

    assert reduce(state, Action("add_document", _document("A-101")), now=now) is state
    assert reduce(state, Action("add_document", _document("A-103", description="")), now=now) is state
    assert reduce(state, Action("add_document", _document("A-103", category="")), now=now) is state


def test_update_document_rejects_duplicate_sheet(sample_state, now):
    state = reduce(sample_state, Action("add_document", _document()), now=now)
    added = state.documents[-1]

    clash = reduce(state, Action("update_document", {"id": added.id, "changes": {"sheet_number": "A-101"}}), now=now)
    assert clash is state
    cleared = reduce(state, Action("update_document", {"id": added.id, "changes": {"date_received": ""}}), now=now)
    assert cleared is state

    renamed = reduce(state, Action("update_document", {"id": added.id, "changes": {"notes": "Rev 2 issued"}}), now=now)
    assert renamed.documents[-1].notes == "Rev 2 issued"
    assert renamed.documents[-1].sheet_number == "A-102"
