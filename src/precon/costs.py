"""Cost roll-up: subtotal, markups, grand total and unit-cost metrics.

Every function here is pure.  Inputs are assumed to be validated upstream
(non-negative amounts, rates in ``[0, 1]``); the only guards applied are for
division by zero, which resolve to ``0.0`` instead of NaN/inf.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Optional

from .models import (
    DEFAULT_RATES,
    Allowance,
    AreaCalculation,
    AreaType,
    Breakdown,
    CostCategory,
    GCAndGRItem,
    LineItem,
    MarkupRates,
)

LOGGER = logging.getLogger(__name__)


def _per_unit(total: float, denominator: Optional[float]) -> float:
    if not denominator or denominator <= 0:
        return 0.0
    return total / denominator


def compute_cost_breakdown(
    categories: Iterable[CostCategory],
    rates: MarkupRates = DEFAULT_RATES,
    gross_sf: Optional[float] = None,
    net_sf: Optional[float] = None,
) -> Breakdown:
    """
    Roll category amounts up into the approval-ready cost breakdown.

    Overhead, profit and contingency are each taken off the subtotal; they
    do not compound.  ``total`` is always the literal sum of the four parts.

    Parameters
    ----------
    categories:
        Cost categories whose ``amount`` values make up the subtotal.
    rates:
        Markup fractions; defaults to 10% / 8% / 5%.
    gross_sf, net_sf:
        Denominators for the per-square-foot metrics.  Missing or
        non-positive values yield ``0.0``.
    """

    subtotal = sum(category.amount for category in categories)
    overhead = subtotal * rates.overhead_rate
    profit = subtotal * rates.profit_rate
    contingency = subtotal * rates.contingency_rate
    markup = overhead + profit + contingency
    total = subtotal + overhead + profit + contingency

    if subtotal == 0:
        LOGGER.debug("Subtotal is zero; markup percentage reported as 0")
        markup_percentage = 0.0
    else:
        markup_percentage = markup / subtotal * 100.0

    return Breakdown(
        subtotal=subtotal,
        overhead=overhead,
        profit=profit,
        contingency=contingency,
        total=total,
        markup_percentage=markup_percentage,
        cost_per_gross_sf=_per_unit(total, gross_sf),
        cost_per_net_sf=_per_unit(total, net_sf),
    )


def line_items_total(items: Iterable[LineItem]) -> float:
    return sum(item.total for item in items)


def allowances_total(allowances: Iterable[Allowance]) -> float:
    return sum(allowance.value for allowance in allowances)


def gc_gr_total(items: Iterable[GCAndGRItem], category: Optional[str] = None) -> float:
    """Sum estimated cost of included GC & GR items, optionally for one category."""

    total = 0.0
    for item in items:
        if not item.is_included or not item.estimated_cost:
            continue
        if category is not None and item.category != category:
            continue
        total += item.estimated_cost
    return total


def area_totals(calculations: Iterable[AreaCalculation]) -> Dict[AreaType, float]:
    totals: Dict[AreaType, float] = {}
    for calc in calculations:
        totals[calc.area_type] = totals.get(calc.area_type, 0.0) + calc.square_footage
    return totals


def gross_square_footage(calculations: Iterable[AreaCalculation]) -> float:
    return area_totals(calculations).get(AreaType.GROSS_SF, 0.0)


__all__ = [
    "allowances_total",
    "area_totals",
    "compute_cost_breakdown",
    "gc_gr_total",
    "gross_square_footage",
    "line_items_total",
]
