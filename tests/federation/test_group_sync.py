from __future__ import annotations

import pytest

from grc_access.audit.actions import AuditAction
from grc_access.audit.models import AuditLogEntry
from grc_access.federation.group_sync import sync_group_roles
from grc_access.identity_store.models import Role, RoleAssignment, User
from grc_access.identity_store.service import assign_role, create_role, seed_system_roles
from grc_access.primitives.actor import Actor

pytestmark = pytest.mark.django_db(transaction=True)


def _user() -> User:
    return User.objects.create(username="gina", email="gina@example.com")


def _held(user: User) -> set[str]:
    return set(RoleAssignment.objects.filter(user=user).values_list("role__name", flat=True))


def test_each_mapped_group_is_one_audited_assignment() -> None:
    seed_system_roles()
    user = _user()

    result = sync_group_roles(
        user.id,
        ["ARIA5-Analysts", "ARIA5-Managers", "Everyone", "ARIA5-Analysts"],
    )

    assert result.assigned == ["analyst", "manager"]
    assert result.ignored_groups == ["Everyone"]
    assert _held(user) == {"analyst", "manager"}
    entries = AuditLogEntry.objects.filter(action=AuditAction.ROLE_ASSIGNED, user_id=user.id)
    assert entries.count() == 2
    assert {entry.performed_by for entry in entries} == {"system:saml_sync"}


def test_sync_is_additive_by_default() -> None:
    seed_system_roles()
    user = _user()
    sync_group_roles(user.id, ["ARIA5-Analysts"])

    result = sync_group_roles(user.id, ["ARIA5-Viewers"])

    assert result.revoked == []
    assert _held(user) == {"analyst", "viewer"}


def test_revocation_only_touches_table_roles(settings) -> None:
    seed_system_roles()
    settings.GRC_ACCESS = {"SAML_REVOKE_UNLISTED_GROUP_ROLES": True}
    user = _user()
    manual = create_role(
        name="board_observer",
        permissions={"reports": {"read": True}},
        created_by=Actor.human(1),
    )
    assign_role(user_id=user.id, role_id=manual["role_id"], assigned_by=Actor.human(1))
    sync_group_roles(user.id, ["ARIA5-Analysts", "ARIA5-Managers"])

    result = sync_group_roles(user.id, ["ARIA5-Managers"], keep_roles=["viewer"])

    assert result.revoked == ["analyst"]
    assert _held(user) == {"board_observer", "manager"}
    assert AuditLogEntry.objects.filter(action=AuditAction.ROLE_REMOVED).count() == 1


def test_custom_group_map(settings) -> None:
    settings.GRC_ACCESS = {"SAML_GROUP_ROLE_MAP": {"Auditors": "auditor"}}
    Role.objects.create(name="auditor", permissions={"audit": {"read": True}})
    user = _user()

    result = sync_group_roles(user.id, ["Auditors", "ARIA5-Administrators"])

    assert result.assigned == ["auditor"]
    assert result.ignored_groups == ["ARIA5-Administrators"]
