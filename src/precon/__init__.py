"""Estimate roll-up, bid leveling and approval tracking for pre-construction estimates."""

from .approval import apply_approval_action, compute_approval_progress, next_actionable_index
from .config import Config, load_config
from .costs import compute_cost_breakdown
from .leveling import compute_bid_variance, select_bid_for_trade, summarize_trades
from .models import DEFAULT_RATES, MarkupRates
from .sample_data import load_estimate
from .session import Action, EstimateState, reduce

__all__ = [
    "Action",
    "Config",
    "DEFAULT_RATES",
    "EstimateState",
    "MarkupRates",
    "apply_approval_action",
    "compute_approval_progress",
    "compute_bid_variance",
    "compute_cost_breakdown",
    "load_config",
    "load_estimate",
    "next_actionable_index",
    "reduce",
    "select_bid_for_trade",
    "summarize_trades",
]
