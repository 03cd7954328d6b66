"""Bid leveling: per-trade variance, risk classification and bid selection."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from .models import BidVariance, RiskLevel, VendorBid

LOGGER = logging.getLogger(__name__)

# Variance thresholds (percent) separating low/medium/high risk trades.
MEDIUM_RISK_THRESHOLD = 15.0
HIGH_RISK_THRESHOLD = 30.0

Selections = Dict[str, VendorBid]


@dataclass(frozen=True)
class TradeSummary:
    """Leveling view of one trade's bids."""

    trade: str
    bid_count: int
    low_amount: float
    high_amount: float
    average_amount: float
    variance_percent: float
    risk_level: RiskLevel
    low_bid_id: Optional[str] = None
    selected_bid_id: Optional[str] = None


def classify_risk(variance_percent: float) -> RiskLevel:
    if variance_percent < MEDIUM_RISK_THRESHOLD:
        return RiskLevel.LOW
    if variance_percent < HIGH_RISK_THRESHOLD:
        return RiskLevel.MEDIUM
    return RiskLevel.HIGH


def compute_bid_variance(bids_for_trade: Sequence[VendorBid]) -> BidVariance:
    """
    Spread between the highest and lowest bid, relative to the lowest.

    A trade with fewer than two bids has no spread and is low risk.  When the
    lowest bid is zero the ratio is undefined; the trade is reported with a
    zero variance and flagged high risk so it gets a second look.
    """

    if len(bids_for_trade) <= 1:
        return BidVariance(variance_percent=0.0, risk_level=RiskLevel.LOW)

    amounts = [bid.total_amount for bid in bids_for_trade]
    low = min(amounts)
    high = max(amounts)
    if low == 0:
        LOGGER.debug("Lowest bid is zero for trade %s; flagging high risk", bids_for_trade[0].trade)
        return BidVariance(variance_percent=0.0, risk_level=RiskLevel.HIGH)

    variance = (high - low) / low * 100.0
    return BidVariance(variance_percent=variance, risk_level=classify_risk(variance))


def group_bids_by_trade(bids: Iterable[VendorBid]) -> Dict[str, List[VendorBid]]:
    """Group bids by trade, keeping trades in order of first appearance."""

    grouped: Dict[str, List[VendorBid]] = {}
    for bid in bids:
        grouped.setdefault(bid.trade, []).append(bid)
    return grouped


def select_bid_for_trade(
    bids_by_trade: Mapping[str, Sequence[VendorBid]],
    selections: Mapping[str, VendorBid],
    trade_id: str,
    bid_id: str,
) -> Selections:
    """
    Return a new selection map with ``bid_id`` chosen for ``trade_id``.

    One bid per trade: a new selection replaces the previous one.  A bid id
    that is not among the trade's bids leaves the selections unchanged.
    """

    candidates = bids_by_trade.get(trade_id, ())
    chosen = next((bid for bid in candidates if bid.id == bid_id), None)
    if chosen is None:
        LOGGER.debug("Ignoring selection of unknown bid %s for trade %s", bid_id, trade_id)
        return dict(selections)
    updated = dict(selections)
    updated[trade_id] = chosen
    return updated


def remove_bid(
    bids: Sequence[VendorBid],
    selections: Mapping[str, VendorBid],
    bid_id: str,
) -> Tuple[List[VendorBid], Selections]:
    """Drop a bid and any selection that points at it."""

    remaining = [bid for bid in bids if bid.id != bid_id]
    kept = {trade: bid for trade, bid in selections.items() if bid.id != bid_id}
    return remaining, kept


def summarize_trade(
    trade: str,
    bids: Sequence[VendorBid],
    selections: Optional[Mapping[str, VendorBid]] = None,
) -> TradeSummary:
    selected = (selections or {}).get(trade)
    if not bids:
        return TradeSummary(
            trade=trade,
            bid_count=0,
            low_amount=0.0,
            high_amount=0.0,
            average_amount=0.0,
            variance_percent=0.0,
            risk_level=RiskLevel.LOW,
            selected_bid_id=selected.id if selected else None,
        )

    amounts = np.array([bid.total_amount for bid in bids], dtype=float)
    variance = compute_bid_variance(bids)
    low_index = int(amounts.argmin())
    return TradeSummary(
        trade=trade,
        bid_count=len(bids),
        low_amount=float(amounts.min()),
        high_amount=float(amounts.max()),
        average_amount=float(amounts.mean()),
        variance_percent=variance.variance_percent,
        risk_level=variance.risk_level,
        low_bid_id=bids[low_index].id,
        selected_bid_id=selected.id if selected else None,
    )


def summarize_trades(
    bids: Iterable[VendorBid],
    selections: Optional[Mapping[str, VendorBid]] = None,
) -> List[TradeSummary]:
    return [
        summarize_trade(trade, trade_bids, selections)
        for trade, trade_bids in group_bids_by_trade(bids).items()
    ]


def leveling_completion(bids: Iterable[VendorBid], selections: Mapping[str, VendorBid]) -> float:
    """Percentage of bid trades that have a selected bid."""

    trades = group_bids_by_trade(bids)
    if not trades:
        return 0.0
    chosen = sum(1 for trade in trades if trade in selections)
    return chosen / len(trades) * 100.0


def selected_total(selections: Mapping[str, VendorBid]) -> float:
    return sum(bid.total_amount for bid in selections.values())


__all__ = [
    "HIGH_RISK_THRESHOLD",
    "MEDIUM_RISK_THRESHOLD",
    "Selections",
    "TradeSummary",
    "classify_risk",
    "compute_bid_variance",
    "group_bids_by_trade",
    "leveling_completion",
    "remove_bid",
    "select_bid_for_trade",
    "selected_total",
    "summarize_trade",
    "summarize_trades",
]
