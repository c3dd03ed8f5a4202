"""Unit tests for the instance state machine and approval rules."""

import pytest
from datetime import datetime

from assetflow.core.approval_rules import can_role_approve, eligible_roles
from assetflow.core.state_machine import InstanceStatus, can_transition, is_terminal, plan_approval


def test_pending_transitions():
    """Test pending can advance, complete or be rejected."""
    assert can_transition("pending", "pending") is True
    assert can_transition("pending", "approved") is True
    assert can_transition("pending", "rejected") is True


def test_terminal_states():
    """Test approved and rejected are terminal."""
    for status in ("approved", "rejected"):
        assert is_terminal(status) is True
        for target in ("pending", "approved", "rejected"):
            assert can_transition(status, target) is False
    assert is_terminal("pending") is False


def test_unknown_status():
    assert can_transition("pending", "archived") is False


def test_plan_intermediate_step():
    """Test approving an intermediate step advances by one."""
    plan = plan_approval(1, 2)
    assert plan.next_status == InstanceStatus.PENDING
    assert plan.next_step == 2
    assert plan.is_completed is False
    assert plan.instance_update() == {"status": "pending", "current_step": 2}


def test_plan_last_step():
    """Test approving the last step completes the instance."""
    now = datetime(2024, 5, 1, 12, 0)
    plan = plan_approval(2, 2, now=now)
    assert plan.is_completed is True
    assert plan.next_step == 2
    assert plan.instance_update() == {"status": "approved", "current_step": 2, "completed_at": now}


def test_plan_single_step_workflow():
    assert plan_approval(1, 1).is_completed is True


@pytest.mark.parametrize("current_step,total_steps", [(0, 2), (3, 2), (1, 0)])
def test_plan_out_of_range(current_step, total_steps):
    with pytest.raises(ValueError):
        plan_approval(current_step, total_steps)


def test_role_table():
    """Test the per-request-type role table."""
    assert eligible_roles("inventory_request", 1) == frozenset({"Manager", "Project Manager"})
    assert can_role_approve("Manager", "procurement_request", 1) is True
    assert can_role_approve("Project Manager", "procurement_request", 1) is False
    assert can_role_approve("Project Manager", "procurement_request", 2) is True
    assert can_role_approve("Manager", "document_verification", 2) is False
    assert can_role_approve("Manager", "inventory_request", 2) is False
    assert can_role_approve("Employee", "inventory_request", 1) is False
    assert can_role_approve(None, "inventory_request", 1) is False


@pytest.mark.parametrize(
    "request_type,step",
    [
        ("inventory_request", 1),
        ("procurement_request", 1),
        ("procurement_request", 2),
        ("document_verification", 2),
        ("unknown_type", 7),
    ],
)
def test_admin_always_eligible(request_type, step):
    assert can_role_approve("Admin", request_type, step) is True
