import argparse
import logging
import os
from pathlib import Path
from typing import List, Optional, Sequence

from dotenv import load_dotenv

from .approval import compute_approval_progress
from .config import Config, load_config
from .csv_io import write_exports
from .leveling import leveling_completion, selected_total, summarize_trades
from .reporting import make_summary_text, write_bid_package_pdf
from .sample_data import load_estimate
from .session import Action, EstimateState, reduce

logger = logging.getLogger(__name__)


def _parse_selection(value: str) -> Action:
    trade, sep, bid_id = value.partition("=")
    if not sep or not trade.strip() or not bid_id.strip():
        raise argparse.ArgumentTypeError(f"expected TRADE=BID_ID, got {value!r}")
    return Action("select_bid", {"trade": trade.strip(), "bid_id": bid_id.strip()})


def build_actions(args: argparse.Namespace, current_user: str) -> List[Action]:
    actions: List[Action] = list(getattr(args, "select", None) or [])
    for step_id in getattr(args, "approve", None) or []:
        actions.append(Action("approval_action", {"step_id": step_id, "action": "approve", "actor": current_user}))
    for step_id in getattr(args, "reject", None) or []:
        actions.append(Action("approval_action", {"step_id": step_id, "action": "reject", "actor": current_user}))
    return actions


def run(config: Config, actions: Sequence[Action] = ()) -> int:
    stage_counter = 0

    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format="%(message)s")

    def log_stage(message: str) -> None:
        nonlocal stage_counter
        stage_counter += 1
        logger.info("[summary:%02d] %s", stage_counter, message)

    log_stage("Loading estimate")
    state: EstimateState = load_estimate(config.estimate_path)
    logger.info("           estimate=%s (%s)", state.name, state.id)

    if actions:
        log_stage(f"Applying {len(actions)} action(s)")
        for action in actions:
            state = reduce(state, action)

    log_stage("Rolling up costs")
    state = reduce(state, Action("generate_cost_summary", {"rates": config.rates}))
    summary = state.cost_summary
    assert summary is not None and summary.breakdown is not None
    progress = compute_approval_progress(summary.approval_steps)
    trades = summarize_trades(state.vendor_bids, state.selected_bids)

    logger.info("\n%s", make_summary_text(summary.breakdown, progress, trades))
    logger.info(
        "Leveling completion: %.0f%% (selected total $%s)",
        leveling_completion(state.vendor_bids, state.selected_bids),
        f"{selected_total(state.selected_bids):,.0f}",
    )
    logger.info("Approval status: %s", summary.approval_status.value)

    outputs: List[Path] = []
    if config.export_csv:
        log_stage("Writing CSV exports")
        outputs.extend(write_exports(state, config.output_dir).values())
    if config.export_pdf:
        log_stage("Writing bid package PDF")
        pdf_path = write_bid_package_pdf(
            config.output_dir / f"{state.id}_bid_package.pdf",
            state.name,
            summary.cost_categories,
            summary.breakdown,
            summary.approval_steps,
            progress,
            rates=config.rates,
            notes=summary.notes or None,
        )
        outputs.append(pdf_path)

    if outputs:
        logger.info("\nOutputs written:")
        for path in outputs:
            logger.info(" - %s", path)
    return 0


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Roll up a pre-construction estimate and level its bids")
    parser.add_argument("--estimate", help="Estimate seed JSON (defaults to the bundled sample)")
    parser.add_argument("--output-dir", help="Directory for generated exports")
    parser.add_argument("--overhead-rate", type=float, help="Overhead fraction of subtotal (default 0.10)")
    parser.add_argument("--profit-rate", type=float, help="Profit fraction of subtotal (default 0.08)")
    parser.add_argument("--contingency-rate", type=float, help="Contingency fraction of subtotal (default 0.05)")
    parser.add_argument(
        "--select",
        action="append",
        type=_parse_selection,
        metavar="TRADE=BID_ID",
        help="Select a bid for a trade before rolling up (repeatable)",
    )
    parser.add_argument("--approve", action="append", metavar="STEP_ID", help="Approve the actionable step")
    parser.add_argument("--reject", action="append", metavar="STEP_ID", help="Reject the actionable step")
    parser.add_argument("--user", help="Name recorded on approvals")
    parser.add_argument("--export-csv", action="store_true", help="Write CSV exports to the output directory")
    parser.add_argument("--export-pdf", action="store_true", help="Write the bid package PDF")
    parser.add_argument("-v", "--verbose", action="store_true", help="Increase logging verbosity")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    load_dotenv()
    args = parse_args(argv)
    runtime_cfg = load_config(os.environ, args)
    log_level = logging.DEBUG if runtime_cfg.verbose else logging.INFO
    logging.basicConfig(level=log_level, format="%(message)s")
    try:
        return run(runtime_cfg, build_actions(args, runtime_cfg.current_user))
    except Exception:  # pragma: no cover
        logger.exception("Fatal error during estimate summary")
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
