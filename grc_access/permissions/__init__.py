"""
GRC Access Permissions - Public API
===================================
"""

from grc_access.permissions.constants import (
    ACTION_ALL,
    DECISION_ERROR,
    DECISION_EXACT,
    DECISION_NOT_GRANTED,
    DECISION_RESOURCE_ALL,
    DECISION_SUPER_ADMIN,
    RESOURCE_ADMIN,
)
from grc_access.permissions.models import PermissionSet, Role, RoleGrant
from grc_access.permissions.provider import (
    InMemoryPermissionProvider,
    PermissionProvider,
)


def __getattr__(name: str):
    if name in {"PermissionResolver", "PermissionDecision"}:
        from grc_access.permissions.evaluator import (
            PermissionDecision,
            PermissionResolver,
        )

        if name == "PermissionResolver":
            return PermissionResolver
        return PermissionDecision
    if name == "DbPermissionProvider":
        from grc_access.permissions.db_provider import DbPermissionProvider

        return DbPermissionProvider
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


__all__ = [
    "ACTION_ALL",
    "RESOURCE_ADMIN",
    "DECISION_EXACT",
    "DECISION_RESOURCE_ALL",
    "DECISION_SUPER_ADMIN",
    "DECISION_NOT_GRANTED",
    "DECISION_ERROR",
    "PermissionSet",
    "Role",
    "RoleGrant",
    "PermissionProvider",
    "InMemoryPermissionProvider",
    "DbPermissionProvider",
    "PermissionResolver",
    "PermissionDecision",
]
