"""
Role definitions for RBAC.

Roles in hierarchy (lowest to highest):
- outlet_user: Fills in audit forms for their outlet
- manager: Reviews audits and forms of the outlets they manage
- admin: Full access including the version history reports
"""
from enum import Enum
from typing import Dict, Set


class Role(str, Enum):
    """User roles with hierarchy."""
    OUTLET_USER = "outlet_user"
    MANAGER = "manager"
    ADMIN = "admin"


ROLE_HIERARCHY: Dict[str, int] = {
    Role.OUTLET_USER.value: 1,
    Role.MANAGER.value: 2,
    Role.ADMIN.value: 3,
}

VALID_ROLES: Set[str] = {r.value for r in Role}


def normalize_role(role: str) -> str:
    """
    Normalize role string. Unknown roles collapse to the lowest role.

    Args:
        role: Role string

    Returns:
        Normalized role string from Role enum
    """
    role_lower = role.lower().strip().replace(" ", "_")
    if role_lower in VALID_ROLES:
        return role_lower
    return Role.OUTLET_USER.value


def has_permission(user_role: str, required_role: str) -> bool:
    """Check if user role meets the required minimum role."""
    user_level = ROLE_HIERARCHY.get(normalize_role(user_role), 0)
    required_level = ROLE_HIERARCHY.get(normalize_role(required_role), 0)
    return user_level >= required_level
