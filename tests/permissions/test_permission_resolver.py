from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from grc_access.permissions import (
    DECISION_ERROR,
    DECISION_EXACT,
    DECISION_NOT_GRANTED,
    DECISION_RESOURCE_ALL,
    DECISION_SUPER_ADMIN,
    InMemoryPermissionProvider,
    PermissionResolver,
    PermissionSet,
    Role,
    RoleGrant,
)
from grc_access.storage import StorageError
from grc_access.time.clock import FixedClock


NOW = datetime(2026, 2, 1, 8, 0, 0, tzinfo=timezone.utc)
USER_ID = 7

RISK_READER = Role(
    role_id=1,
    name="risk_reader",
    permissions=PermissionSet({"risks": {"read": True}}),
)
INCIDENT_WRITER = Role(
    role_id=2,
    name="incident_writer",
    permissions=PermissionSet({"incidents": {"write": True}}),
)
RISK_OWNER = Role(
    role_id=3,
    name="risk_owner",
    permissions=PermissionSet({"risks": {"all": True}}),
)
ADMIN = Role(
    role_id=4,
    name="admin",
    permissions=PermissionSet({"admin": {"all": True}}),
)
ALL_ROLES = (RISK_READER, INCIDENT_WRITER, RISK_OWNER, ADMIN)


def _grant(role: Role, *, minutes_ago: int = 60, expires_at=None) -> RoleGrant:
    return RoleGrant(
        user_id=USER_ID,
        role_id=role.role_id,
        assigned_at=NOW - timedelta(minutes=minutes_ago),
        expires_at=expires_at,
    )


def _resolver(*grants: RoleGrant, overrides=None) -> PermissionResolver:
    provider = InMemoryPermissionProvider(
        roles=ALL_ROLES,
        grants=grants,
        overrides=overrides,
    )
    return PermissionResolver(provider=provider, clock=FixedClock(NOW))


class FailingProvider:
    def get_active_roles(self, user_id, now):
        raise StorageError("get_active_roles", "connection reset")

    def get_user_overrides(self, user_id):
        return PermissionSet.empty()


def test_disjoint_role_grants_union() -> None:
    resolver = _resolver(_grant(RISK_READER), _grant(INCIDENT_WRITER))

    assert resolver.has_permission(USER_ID, "risks", "read")
    assert resolver.has_permission(USER_ID, "incidents", "write")
    assert not resolver.has_permission(USER_ID, "risks", "write")


def test_user_override_beats_role_grant() -> None:
    resolver = _resolver(
        _grant(RISK_READER),
        overrides={USER_ID: PermissionSet({"risks": {"read": False}})},
    )

    assert not resolver.has_permission(USER_ID, "risks", "read")


def test_user_override_can_add_a_grant() -> None:
    resolver = _resolver(
        overrides={USER_ID: PermissionSet({"reports": {"export": True}})},
    )

    assert resolver.has_permission(USER_ID, "reports", "export")


def test_expired_assignment_is_excluded_and_stays_excluded() -> None:
    expired = _grant(RISK_OWNER, expires_at=NOW - timedelta(seconds=1))
    at_boundary = _grant(INCIDENT_WRITER, expires_at=NOW)
    resolver = _resolver(expired, at_boundary)

    for _ in range(2):
        assert resolver.get_user_roles(USER_ID) == ()
        assert not resolver.has_permission(USER_ID, "risks", "delete")
        assert not resolver.has_permission(USER_ID, "incidents", "write")


def test_unexpired_assignment_is_active() -> None:
    resolver = _resolver(_grant(RISK_OWNER, expires_at=NOW + timedelta(days=1)))

    assert resolver.evaluate(USER_ID, "risks", "delete").reason == DECISION_RESOURCE_ALL


def test_decision_reasons() -> None:
    resolver = _resolver(_grant(RISK_READER))
    assert resolver.evaluate(USER_ID, "risks", "read").reason == DECISION_EXACT
    assert resolver.evaluate(USER_ID, "assets", "read").reason == DECISION_NOT_GRANTED

    admin = _resolver(_grant(ADMIN))
    assert admin.evaluate(USER_ID, "settings", "manage").reason == DECISION_SUPER_ADMIN


def test_role_order_later_assignment_wins_per_action() -> None:
    early_grant = Role(
        role_id=10,
        name="early",
        permissions=PermissionSet({"risks": {"approve": True, "read": True}}),
    )
    late_withhold = Role(
        role_id=11,
        name="late",
        permissions=PermissionSet({"risks": {"approve": False}}),
    )
    provider = InMemoryPermissionProvider(
        roles=(early_grant, late_withhold),
        grants=(
            RoleGrant(user_id=USER_ID, role_id=11, assigned_at=NOW - timedelta(minutes=5)),
            RoleGrant(user_id=USER_ID, role_id=10, assigned_at=NOW - timedelta(minutes=50)),
        ),
    )
    resolver = PermissionResolver(provider=provider, clock=FixedClock(NOW))

    permissions = resolver.get_user_permissions(USER_ID)
    assert permissions.grants_action("risks", "read")
    assert not permissions.grants_action("risks", "approve")


def test_failing_store_denies_without_raising() -> None:
    resolver = PermissionResolver(provider=FailingProvider(), clock=FixedClock(NOW))

    decision = resolver.evaluate(USER_ID, "risks", "read")
    assert decision.allowed is False
    assert decision.reason == DECISION_ERROR
    assert resolver.has_permission(USER_ID, "risks", "read") is False
    assert resolver.has_role(USER_ID, "admin") is False


def test_get_user_permissions_surfaces_storage_errors() -> None:
    resolver = PermissionResolver(provider=FailingProvider(), clock=FixedClock(NOW))

    with pytest.raises(StorageError):
        resolver.get_user_permissions(USER_ID)


def test_invalid_arguments_deny() -> None:
    resolver = _resolver(_grant(ADMIN))

    assert resolver.has_permission(0, "risks", "read") is False
    assert resolver.has_permission(USER_ID, "", "read") is False


def test_has_role() -> None:
    resolver = _resolver(_grant(RISK_READER))

    assert resolver.has_role(USER_ID, "risk_reader")
    assert not resolver.has_role(USER_ID, "admin")
