"""
GRC Access Permissions - Provider Protocol and In-Memory Provider
=================================================================
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Mapping, Protocol

from grc_access.permissions.models import PermissionSet, Role, RoleGrant


class PermissionProvider(Protocol):
    def get_active_roles(
        self,
        user_id: int,
        now: datetime,
    ) -> tuple[Role, ...]:
        """Roles of every non-expired assignment, in assignment order."""
        ...

    def get_user_overrides(self, user_id: int) -> PermissionSet:
        ...


class InMemoryPermissionProvider:
    """
    Deterministic in-memory provider used for bootstrap/tests.
    """

    def __init__(
        self,
        roles: Iterable[Role] | None = None,
        grants: Iterable[RoleGrant] | None = None,
        overrides: Mapping[int, PermissionSet] | None = None,
    ):
        self._roles: dict[int, Role] = {}
        self._grants_by_user: dict[int, tuple[RoleGrant, ...]] = {}
        self._overrides: dict[int, PermissionSet] = dict(overrides or {})

        for role in roles or ():
            if role.role_id in self._roles:
                raise ValueError(f"Duplicate role_id '{role.role_id}'.")
            self._roles[role.role_id] = role

        temp_index: dict[int, dict[int, RoleGrant]] = {}
        for grant in grants or ():
            # Same (user, role) pair collapses onto one assignment, last wins.
            temp_index.setdefault(grant.user_id, {})[grant.role_id] = grant

        for user_id, by_role in temp_index.items():
            self._grants_by_user[user_id] = tuple(
                sorted(by_role.values(), key=lambda g: g.sort_key())
            )

    def get_active_roles(
        self,
        user_id: int,
        now: datetime,
    ) -> tuple[Role, ...]:
        roles: list[Role] = []
        for grant in self._grants_by_user.get(user_id, tuple()):
            if not grant.is_active(now):
                continue
            role = self._roles.get(grant.role_id)
            if role is not None:
                roles.append(role)
        return tuple(roles)

    def get_user_overrides(self, user_id: int) -> PermissionSet:
        return self._overrides.get(user_id, PermissionSet.empty())
