"""Tabular summaries and the bid-package PDF."""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import List, Optional, Sequence

import pandas as pd
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from .leveling import TradeSummary
from .models import ApprovalProgress, ApprovalStep, Breakdown, CostCategory, MarkupRates, DEFAULT_RATES


def breakdown_frame(
    categories: Sequence[CostCategory],
    breakdown: Breakdown,
    rates: MarkupRates = DEFAULT_RATES,
) -> pd.DataFrame:
    rows = [
        {"LINE": cat.name, "STATUS": cat.status.value, "ITEMS": cat.items, "AMOUNT": cat.amount}
        for cat in categories
    ]
    rows.extend(
        [
            {"LINE": "Subtotal", "STATUS": "", "ITEMS": None, "AMOUNT": breakdown.subtotal},
            {"LINE": f"Overhead ({rates.overhead_rate:.0%})", "STATUS": "", "ITEMS": None, "AMOUNT": breakdown.overhead},
            {"LINE": f"Profit ({rates.profit_rate:.0%})", "STATUS": "", "ITEMS": None, "AMOUNT": breakdown.profit},
            {
                "LINE": f"Contingency ({rates.contingency_rate:.0%})",
                "STATUS": "",
                "ITEMS": None,
                "AMOUNT": breakdown.contingency,
            },
            {"LINE": "Total Bid", "STATUS": "", "ITEMS": None, "AMOUNT": breakdown.total},
        ]
    )
    frame = pd.DataFrame(rows, columns=["LINE", "STATUS", "ITEMS", "AMOUNT"])
    frame["ITEMS"] = frame["ITEMS"].astype("Int64")
    return frame


def leveling_frame(summaries: Sequence[TradeSummary]) -> pd.DataFrame:
    columns = ["TRADE", "BIDS", "LOW", "HIGH", "AVERAGE", "VARIANCE_PCT", "RISK", "SELECTED_BID"]
    rows = [
        {
            "TRADE": s.trade,
            "BIDS": s.bid_count,
            "LOW": s.low_amount,
            "HIGH": s.high_amount,
            "AVERAGE": s.average_amount,
            "VARIANCE_PCT": round(s.variance_percent, 2),
            "RISK": s.risk_level.value,
            "SELECTED_BID": s.selected_bid_id or "",
        }
        for s in summaries
    ]
    return pd.DataFrame(rows, columns=columns)


def make_summary_text(
    breakdown: Breakdown,
    progress: ApprovalProgress,
    summaries: Sequence[TradeSummary] = (),
) -> str:
    lines = [
        f"Subtotal: ${breakdown.subtotal:,.0f}.",
        f"Markup: ${breakdown.overhead + breakdown.profit + breakdown.contingency:,.0f} "
        f"({breakdown.markup_percentage:.1f}%).",
        f"Total bid: ${breakdown.total:,.0f}.",
        f"Cost per gross SF: ${breakdown.cost_per_gross_sf:,.2f}; per net SF: ${breakdown.cost_per_net_sf:,.2f}.",
        f"Approval progress: {progress.progress_percent:.0f}%"
        + (" (fully approved)" if progress.is_fully_approved else ""),
    ]
    if summaries:
        flagged = [s.trade for s in summaries if s.risk_level.value != "low"]
        lines.append(f"Trades leveled: {len(summaries)}; elevated risk: {', '.join(flagged) or 'none'}.")
        lines.append(leveling_frame(summaries).to_string(index=False))
    return "\n".join(lines) + "\n"


def write_bid_package_pdf(
    path: Path,
    title: str,
    categories: Sequence[CostCategory],
    breakdown: Breakdown,
    steps: Sequence[ApprovalStep],
    progress: ApprovalProgress,
    rates: MarkupRates = DEFAULT_RATES,
    notes: Optional[str] = None,
) -> Path:
    """Render a one-page bid package summary."""

    path.parent.mkdir(parents=True, exist_ok=True)
    c = canvas.Canvas(str(path), pagesize=letter)
    page_width, page_height = letter
    margin = 54
    y = page_height - margin

    def line(text: str, *, bold: bool = False, size: int = 10, indent: int = 0) -> None:
        nonlocal y
        if y < margin:
            c.showPage()
            y = page_height - margin
        c.setFont("Helvetica-Bold" if bold else "Helvetica", size)
        c.drawString(margin + indent, y, text)
        y -= size + 4

    def amount_row(label: str, value: float, *, bold: bool = False) -> None:
        nonlocal y
        line(label, bold=bold)
        c.drawRightString(page_width - margin, y + 14, f"${value:,.2f}")

    line(title, bold=True, size=16)
    y -= 8
    line("Cost Breakdown", bold=True, size=12)
    frame = breakdown_frame(categories, breakdown, rates)
    for row in frame.itertuples(index=False):
        amount_row(str(row.LINE), float(row.AMOUNT), bold=row.LINE in {"Subtotal", "Total Bid"})
    y -= 8
    line(f"Markup: {breakdown.markup_percentage:.1f}%")
    line(f"Cost per gross SF: ${breakdown.cost_per_gross_sf:,.2f}")
    line(f"Cost per net SF: ${breakdown.cost_per_net_sf:,.2f}")
    y -= 8
    line(f"Approval Workflow ({progress.progress_percent:.0f}% complete)", bold=True, size=12)
    for step in steps:
        detail = step.status.value
        if step.completed_by:
            detail += f" by {step.completed_by}"
        if step.completed_at:
            detail += f" on {step.completed_at:%Y-%m-%d}"
        line(f"{step.title}: {detail}", indent=12)
    if notes:
        y -= 8
        line("Notes", bold=True, size=12)
        wrapped: List[str] = textwrap.wrap(notes, width=95) or [notes]
        for text in wrapped:
            line(text, indent=12)
    c.showPage()
    c.save()
    return path


__all__ = ["breakdown_frame", "leveling_frame", "make_summary_text", "write_bid_package_pdf"]
