"""Which roles may approve which step of which request type."""

from typing import Dict, FrozenSet, Optional, Tuple

ADMIN_ROLE = "Admin"

# (request_type, step_order) -> roles allowed to act on that step
APPROVAL_ROLES: Dict[Tuple[str, int], FrozenSet[str]] = {
    ("inventory_request", 1): frozenset({"Manager", "Project Manager"}),
    ("procurement_request", 1): frozenset({"Manager"}),
    ("procurement_request", 2): frozenset({"Project Manager"}),
    ("document_verification", 1): frozenset({"Manager"}),
    ("document_verification", 2): frozenset({"Project Manager"}),
}


def eligible_roles(request_type: str, step_order: int) -> FrozenSet[str]:
    """Roles listed for a step, excluding the implicit Admin."""
    return APPROVAL_ROLES.get((request_type, step_order), frozenset())


def can_role_approve(role: Optional[str], request_type: str, step_order: int) -> bool:
    if role == ADMIN_ROLE:
        return True
    return role in eligible_roles(request_type, step_order)
