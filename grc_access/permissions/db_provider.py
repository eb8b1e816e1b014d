"""
GRC Access Permissions - DB-backed Provider
===========================================
Resolves role assignments, role permission sets, and user overrides
from the identity store tables. Stored permission blobs are validated
here; a corrupt role blob drops that role (deny) and a corrupt user
override fails the lookup, so untyped JSON never reaches the resolver.
"""

from __future__ import annotations

import logging
from datetime import datetime

from django.db.models import Q

from grc_access.permissions.models import PermissionSet, Role
from grc_access.storage import StorageError, storage_errors

logger = logging.getLogger("grc.permissions")


def _to_role(row) -> Role | None:
    try:
        return Role(
            role_id=row.id,
            name=row.name,
            permissions=PermissionSet.from_raw(row.permissions),
            description=row.description,
            is_system_role=row.is_system_role,
        )
    except ValueError as exc:
        logger.warning(f"Ignoring role {row.id} with invalid permissions: {exc}")
        return None


class DbPermissionProvider:
    def get_active_roles(
        self,
        user_id: int,
        now: datetime,
    ) -> tuple[Role, ...]:
        from grc_access.identity_store.models import RoleAssignment

        with storage_errors("get_active_roles"):
            rows = tuple(
                RoleAssignment.objects.select_related("role")
                .filter(user_id=user_id)
                .filter(Q(expires_at__isnull=True) | Q(expires_at__gt=now))
                .order_by("assigned_at", "id")
            )

        roles: list[Role] = []
        for row in rows:
            role = _to_role(row.role)
            if role is not None:
                roles.append(role)
        return tuple(roles)

    def get_user_overrides(self, user_id: int) -> PermissionSet:
        from grc_access.identity_store.models import User

        with storage_errors("get_user_overrides"):
            raw = (
                User.objects.filter(id=user_id)
                .values_list("permissions", flat=True)
                .first()
            )
        # Unlike a corrupt role, a corrupt override fails the whole lookup.
        try:
            return PermissionSet.from_raw(raw)
        except ValueError as exc:
            raise StorageError(
                "get_user_overrides",
                f"user {user_id} has an invalid permission override: {exc}",
            ) from exc
