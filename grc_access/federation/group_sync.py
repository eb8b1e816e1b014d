"""
GRC Access Federation - Group -> Role Sync
==========================================
Maps IdP group names to local roles through GRC_ACCESS["SAML_GROUP_ROLE_MAP"].
Every grant is its own assign_role() call (own transaction, own audit
entry), so a failure part-way leaves the earlier grants in place.

Additive by default. With SAML_REVOKE_UNLISTED_GROUP_ROLES the sync also
removes roles the table could have granted but no asserted group maps to.
Roles outside the table are never touched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from grc_access.conf import AccessSettings, get_access_settings
from grc_access.identity_store.models import Role, RoleAssignment
from grc_access.identity_store.service import assign_role, remove_role
from grc_access.primitives.actor import Actor
from grc_access.storage import StorageError, storage_errors

logger = logging.getLogger("grc.federation")

SAML_SYNC_ACTOR = Actor.system("saml_sync")


@dataclass
class GroupSyncResult:
    assigned: list[str] = field(default_factory=list)
    revoked: list[str] = field(default_factory=list)
    ignored_groups: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


def sync_group_roles(
    user_id: int,
    groups: Iterable[str],
    *,
    keep_roles: Iterable[str] = (),
    access_settings: Optional[AccessSettings] = None,
) -> GroupSyncResult:
    access_settings = access_settings or get_access_settings()
    group_map = access_settings.saml_group_role_map
    result = GroupSyncResult()

    wanted: list[str] = []
    for group in groups:
        role_name = group_map.get(group)
        if role_name is None:
            result.ignored_groups.append(group)
            continue
        if role_name not in wanted:
            wanted.append(role_name)

    with storage_errors("sync_group_roles"):
        roles_by_name = {
            role.name: role
            for role in Role.objects.filter(name__in=set(group_map.values()))
        }

    for role_name in wanted:
        role = roles_by_name.get(role_name)
        if role is None:
            logger.debug(f"Group role '{role_name}' does not exist; skipping for user {user_id}")
            continue
        try:
            assign_role(user_id=user_id, role_id=role.id, assigned_by=SAML_SYNC_ACTOR)
        except (StorageError, ValueError) as exc:
            logger.error(f"Group sync could not assign '{role_name}' to user {user_id}: {exc}")
            result.failed.append(role_name)
            continue
        result.assigned.append(role_name)

    if not access_settings.saml_revoke_unlisted_group_roles:
        return result

    protected = set(wanted) | set(keep_roles)
    revocable = [
        role for name, role in sorted(roles_by_name.items()) if name not in protected
    ]
    with storage_errors("sync_group_roles"):
        held = set(
            RoleAssignment.objects.filter(
                user_id=user_id,
                role__in=revocable,
            ).values_list("role_id", flat=True)
        )
    for role in revocable:
        if role.id not in held:
            continue
        try:
            remove_role(user_id=user_id, role_id=role.id, removed_by=SAML_SYNC_ACTOR)
        except (StorageError, ValueError) as exc:
            logger.error(f"Group sync could not revoke '{role.name}' from user {user_id}: {exc}")
            result.failed.append(role.name)
            continue
        result.revoked.append(role.name)
    return result
