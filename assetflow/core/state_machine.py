"""Workflow instance state machine."""

from enum import Enum
from typing import Optional
from datetime import datetime


class InstanceStatus(str, Enum):
    """Workflow instance statuses."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class StepStatus(str, Enum):
    """Outcome recorded for a single step."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# Valid state transitions
VALID_TRANSITIONS = {
    InstanceStatus.PENDING: [InstanceStatus.PENDING, InstanceStatus.APPROVED, InstanceStatus.REJECTED],
    InstanceStatus.APPROVED: [],  # Terminal state
    InstanceStatus.REJECTED: [],  # Terminal state
}


def can_transition(from_status: str, to_status: str) -> bool:
    """Check if a transition between two statuses is valid."""
    try:
        source = InstanceStatus(from_status)
        target = InstanceStatus(to_status)
    except ValueError:
        return False
    return target in VALID_TRANSITIONS[source]


def is_terminal(status: str) -> bool:
    return can_transition(status, InstanceStatus.PENDING) is False


class ApprovalPlan:
    """Result of approving the current step of an instance."""

    def __init__(
        self,
        approved_step: int,
        next_status: InstanceStatus,
        next_step: int,
        completed_at: Optional[datetime] = None,
    ):
        """Initialize approval plan."""
        self.approved_step = approved_step
        self.next_status = next_status
        self.next_step = next_step
        self.completed_at = completed_at

    @property
    def is_completed(self) -> bool:
        return self.next_status == InstanceStatus.APPROVED

    def instance_update(self) -> dict:
        """Columns to write on the instance row."""
        update = {"status": self.next_status.value, "current_step": self.next_step}
        if self.completed_at is not None:
            update["completed_at"] = self.completed_at
        return update

    def __repr__(self) -> str:
        return f"<ApprovalPlan(step {self.approved_step} -> {self.next_status.value}/{self.next_step})>"


def plan_approval(current_step: int, total_steps: int, now: Optional[datetime] = None) -> ApprovalPlan:
    """Compute the instance state after approving ``current_step``.

    The last step completes the instance; any earlier step advances the
    counter by exactly one.

    Raises:
        ValueError: If the step counter is outside ``[1, total_steps]``
    """
    if total_steps < 1 or not 1 <= current_step <= total_steps:
        raise ValueError(f"Step {current_step} is outside 1..{total_steps}")

    if current_step >= total_steps:
        return ApprovalPlan(
            approved_step=current_step,
            next_status=InstanceStatus.APPROVED,
            next_step=current_step,
            completed_at=now or datetime.utcnow(),
        )
    return ApprovalPlan(
        approved_step=current_step,
        next_status=InstanceStatus.PENDING,
        next_step=current_step + 1,
    )
