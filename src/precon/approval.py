"""Approval workflow over an ordered sequence of approval steps."""
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import List, Literal, Optional, Sequence, Tuple

from .models import ApprovalProgress, ApprovalStatus, ApprovalStep, StepStatus

LOGGER = logging.getLogger(__name__)

ApprovalAction = Literal["approve", "reject"]

# Sign-off sequence used when an estimate has no workflow of its own.
DEFAULT_APPROVAL_STEPS: Tuple[ApprovalStep, ...] = (
    ApprovalStep(
        id="estimator_review",
        title="Estimator Review",
        description="Initial estimate review and validation",
    ),
    ApprovalStep(
        id="chief_estimator",
        title="Chief Estimator Approval",
        description="Senior estimator review and approval",
    ),
    ApprovalStep(
        id="project_executive",
        title="Project Executive Review",
        description="Executive review of project viability",
    ),
    ApprovalStep(
        id="c_suite",
        title="C-Suite Final Approval",
        description="Final approval for bid submission",
    ),
)


def compute_approval_progress(steps: Sequence[ApprovalStep]) -> ApprovalProgress:
    """Share of steps that are complete; skipped steps never count."""

    if not steps:
        return ApprovalProgress(progress_percent=0.0, is_fully_approved=False)
    completed = sum(1 for step in steps if step.status == StepStatus.COMPLETE)
    progress = completed / len(steps) * 100.0
    return ApprovalProgress(progress_percent=progress, is_fully_approved=completed == len(steps))


def next_actionable_index(steps: Sequence[ApprovalStep]) -> Optional[int]:
    """Index of the step that may be approved or rejected next, if any."""

    for index, step in enumerate(steps):
        if step.status == StepStatus.COMPLETE:
            continue
        if step.status == StepStatus.PENDING:
            return index
        # A skipped step halts the sequence.
        return None
    return None


def apply_approval_action(
    steps: Sequence[ApprovalStep],
    step_id: str,
    action: ApprovalAction,
    actor: str,
    now: Optional[datetime] = None,
) -> List[ApprovalStep]:
    """
    Approve or reject the currently actionable step.

    Approving marks the step complete and records who and when.  Rejecting
    marks it skipped with no completion details.  Acting on any other step,
    or passing an unknown action, returns the steps unchanged.
    """

    updated = list(steps)
    index = next_actionable_index(steps)
    if index is None or steps[index].id != step_id:
        LOGGER.debug("Approval step %s is not actionable; ignoring %s", step_id, action)
        return updated

    step = steps[index]
    if action == "approve":
        updated[index] = replace(
            step,
            status=StepStatus.COMPLETE,
            completed_by=actor,
            completed_at=now or datetime.now().astimezone(),
        )
    elif action == "reject":
        updated[index] = replace(step, status=StepStatus.SKIPPED, completed_by=None, completed_at=None)
    else:
        LOGGER.debug("Unknown approval action %r for step %s", action, step_id)
        return updated

    LOGGER.debug("Approval step %s -> %s", step_id, updated[index].status.value)
    return updated


def derive_approval_status(steps: Sequence[ApprovalStep]) -> ApprovalStatus:
    if compute_approval_progress(steps).is_fully_approved:
        return ApprovalStatus.APPROVED
    if any(step.status == StepStatus.SKIPPED for step in steps):
        return ApprovalStatus.REJECTED
    return ApprovalStatus.PENDING


__all__ = [
    "ApprovalAction",
    "DEFAULT_APPROVAL_STEPS",
    "apply_approval_action",
    "compute_approval_progress",
    "derive_approval_status",
    "next_actionable_index",
]
