from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, List

import pytest

from precon.models import ApprovalStep, CostCategory, StepStatus, VendorBid
from precon.sample_data import load_estimate
from precon.session import EstimateState

FIXED_NOW = datetime(2025, 6, 17, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def sample_state() -> EstimateState:
    return load_estimate()


@pytest.fixture
def sample_categories() -> List[CostCategory]:
    return [
        CostCategory(id="trades", name="Trade Work", amount=1425000),
        CostCategory(id="gc", name="General Conditions", amount=63500),
        CostCategory(id="gr", name="General Requirements", amount=56000),
        CostCategory(id="allowances", name="Allowances & Contingencies", amount=285000),
    ]


@pytest.fixture
def bid_factory() -> Callable[..., VendorBid]:
    def _create(bid_id: str, trade: str, amount: float, vendor: str = "") -> VendorBid:
        return VendorBid(id=bid_id, vendor_name=vendor or f"Vendor {bid_id}", trade=trade, total_amount=amount)

    return _create


@pytest.fixture
def steps_factory() -> Callable[..., List[ApprovalStep]]:
    def _create(*statuses: str) -> List[ApprovalStep]:
        return [
            ApprovalStep(id=f"step-{index}", title=f"Step {index}", status=StepStatus(status))
            for index, status in enumerate(statuses, start=1)
        ]

    return _create
