"""
GRC Access Permissions - Permission Resolution Engine
=====================================================
Effective permissions = every non-expired role's PermissionSet merged in
assignment order (later wins per action), then the user's own override
merged on top (user always wins).

A check allows when any of these hold:
    resource.action is True
    resource.all is True
    admin.all is True (super-admin)

Everything else is denied. There is no explicit deny entry: a False
value only withholds a grant at its layer. Any error while resolving
denies; authorization never fails open.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from grc_access.permissions.constants import (
    DECISION_ERROR,
    DECISION_EXACT,
    DECISION_NOT_GRANTED,
    DECISION_RESOURCE_ALL,
    DECISION_SUPER_ADMIN,
)
from grc_access.permissions.models import PermissionSet, Role
from grc_access.permissions.provider import PermissionProvider
from grc_access.time.clock import Clock, now_utc

logger = logging.getLogger("grc.permissions")


@dataclass(frozen=True)
class PermissionDecision:
    allowed: bool
    reason: str
    message: str = ""


def _validate_user_id(user_id) -> int:
    if not isinstance(user_id, int) or isinstance(user_id, bool) or user_id <= 0:
        raise ValueError("user_id must be a positive integer.")
    return user_id


def _validate_name(value, *, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{field_name} must be a non-empty string.")
    return value.strip()


class PermissionResolver:
    def __init__(
        self,
        provider: PermissionProvider | None = None,
        clock: Clock | None = None,
    ):
        if provider is None:
            from grc_access.permissions.db_provider import DbPermissionProvider

            provider = DbPermissionProvider()
        self._provider = provider
        self._clock = clock

    def _now(self):
        return now_utc(self._clock)

    def get_user_roles(self, user_id: int) -> tuple[Role, ...]:
        """Roles from every non-expired assignment, in assignment order."""
        return self._provider.get_active_roles(
            _validate_user_id(user_id),
            self._now(),
        )

    def get_user_permissions(self, user_id: int) -> PermissionSet:
        """
        Compute the effective PermissionSet for a user.

        Raises StorageError if the store fails; use has_permission() for
        a fail-closed boolean answer.
        """
        merged = PermissionSet.empty()
        for role in self.get_user_roles(user_id):
            merged = merged.merge(role.permissions)

        overrides = self._provider.get_user_overrides(user_id)
        return merged.merge(overrides)

    def evaluate(self, user_id: int, resource: str, action: str) -> PermissionDecision:
        try:
            resource = _validate_name(resource, field_name="resource")
            action = _validate_name(action, field_name="action")
            permissions = self.get_user_permissions(user_id)
        except Exception as exc:
            logger.error(
                f"Permission check {resource}.{action} for user {user_id} "
                f"denied after resolution error: {exc}",
                exc_info=True,
            )
            return PermissionDecision(
                allowed=False,
                reason=DECISION_ERROR,
                message="Permission could not be resolved; access denied.",
            )

        if permissions.grants_action(resource, action):
            return PermissionDecision(allowed=True, reason=DECISION_EXACT)
        if permissions.grants_all_on(resource):
            return PermissionDecision(allowed=True, reason=DECISION_RESOURCE_ALL)
        if permissions.is_super_admin:
            return PermissionDecision(allowed=True, reason=DECISION_SUPER_ADMIN)

        return PermissionDecision(
            allowed=False,
            reason=DECISION_NOT_GRANTED,
            message=f"User {user_id} is missing permission '{resource}.{action}'.",
        )

    def has_permission(self, user_id: int, resource: str, action: str) -> bool:
        return self.evaluate(user_id, resource, action).allowed

    def has_role(self, user_id: int, role_name: str) -> bool:
        try:
            wanted = _validate_name(role_name, field_name="role_name")
            return any(role.name == wanted for role in self.get_user_roles(user_id))
        except Exception:
            logger.error(
                f"Role check '{role_name}' for user {user_id} denied after resolution error",
                exc_info=True,
            )
            return False
