"""
GRC Access Identity Store - Role & Assignment Service
=====================================================
Role CRUD and user <-> role assignment used by admin handlers, the SAML
pipeline, and bootstrap seeding. Every mutation appends exactly one audit
entry inside the same transaction (see grc_access.audit.functions).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional

from django.db.models import Q

from grc_access.audit.actions import AuditAction
from grc_access.audit.functions import audited_change
from grc_access.identity_store.errors import (
    IdentityNotFoundError,
    RoleInUseError,
    SystemRoleError,
)
from grc_access.identity_store.models import Role, RoleAssignment, User
from grc_access.permissions.constants import (
    ACTION_ALL,
    ACTION_APPROVE,
    ACTION_EXPORT,
    ACTION_READ,
    ACTION_WRITE,
    RESOURCE_ADMIN,
    RESOURCE_ASSETS,
    RESOURCE_AUDIT,
    RESOURCE_COMPLIANCE,
    RESOURCE_INCIDENTS,
    RESOURCE_REPORTS,
    RESOURCE_RISKS,
    RESOURCE_USERS,
)
from grc_access.permissions.models import PermissionSet
from grc_access.primitives.actor import Actor
from grc_access.storage import storage_errors
from grc_access.time.clock import now_utc

BOOTSTRAP_ACTOR = Actor.system("bootstrap")


def _grants(*actions: str) -> dict[str, bool]:
    return {action: True for action in actions}


DEFAULT_ROLE_CATALOGUE: dict[str, tuple[str, dict[str, dict[str, bool]]]] = {
    "admin": (
        "Full administrative access",
        {RESOURCE_ADMIN: _grants(ACTION_ALL)},
    ),
    "risk_manager": (
        "Owns the risk register and risk treatment",
        {
            RESOURCE_RISKS: _grants(ACTION_ALL),
            RESOURCE_COMPLIANCE: _grants(ACTION_READ),
            RESOURCE_INCIDENTS: _grants(ACTION_READ, ACTION_WRITE),
            RESOURCE_ASSETS: _grants(ACTION_READ),
            RESOURCE_REPORTS: _grants(ACTION_READ, ACTION_EXPORT),
        },
    ),
    "security_analyst": (
        "Investigates incidents and maintains the asset inventory",
        {
            RESOURCE_INCIDENTS: _grants(ACTION_ALL),
            RESOURCE_RISKS: _grants(ACTION_READ, ACTION_WRITE),
            RESOURCE_ASSETS: _grants(ACTION_READ, ACTION_WRITE),
            RESOURCE_REPORTS: _grants(ACTION_READ),
        },
    ),
    "compliance_officer": (
        "Owns compliance frameworks and control evidence",
        {
            RESOURCE_COMPLIANCE: _grants(ACTION_ALL),
            RESOURCE_RISKS: _grants(ACTION_READ),
            RESOURCE_AUDIT: _grants(ACTION_READ),
            RESOURCE_REPORTS: _grants(ACTION_READ, ACTION_EXPORT),
        },
    ),
    "manager": (
        "Approves risk and compliance decisions",
        {
            RESOURCE_RISKS: _grants(ACTION_READ, ACTION_APPROVE),
            RESOURCE_COMPLIANCE: _grants(ACTION_READ, ACTION_APPROVE),
            RESOURCE_INCIDENTS: _grants(ACTION_READ),
            RESOURCE_REPORTS: _grants(ACTION_READ, ACTION_EXPORT),
            RESOURCE_USERS: _grants(ACTION_READ),
        },
    ),
    "analyst": (
        "Works risks and incidents day to day",
        {
            RESOURCE_RISKS: _grants(ACTION_READ, ACTION_WRITE),
            RESOURCE_COMPLIANCE: _grants(ACTION_READ),
            RESOURCE_INCIDENTS: _grants(ACTION_READ, ACTION_WRITE),
            RESOURCE_ASSETS: _grants(ACTION_READ),
            RESOURCE_REPORTS: _grants(ACTION_READ),
        },
    ),
    "viewer": (
        "Read-only access",
        {
            RESOURCE_RISKS: _grants(ACTION_READ),
            RESOURCE_COMPLIANCE: _grants(ACTION_READ),
            RESOURCE_INCIDENTS: _grants(ACTION_READ),
            RESOURCE_ASSETS: _grants(ACTION_READ),
            RESOURCE_REPORTS: _grants(ACTION_READ),
        },
    ),
}


def _clean_string(value: Any, *, field_name: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{field_name} must be a non-empty string.")
    cleaned = value.strip()
    if not cleaned:
        raise ValueError(f"{field_name} must be a non-empty string.")
    return cleaned


def _clean_optional_string(value: Any, *, default: str) -> str:
    if value is None:
        return default
    cleaned = str(value).strip()
    return cleaned or default


def _canonical_id(value: Any, *, field_name: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{field_name} must be a positive integer.")
    try:
        canonical = int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{field_name} must be a positive integer.") from exc
    if canonical <= 0:
        raise ValueError(f"{field_name} must be a positive integer.")
    return canonical


def _require_actor(value: Any, *, field_name: str) -> Actor:
    if not isinstance(value, Actor):
        raise ValueError(f"{field_name} must be an Actor.")
    return value


def _validated_permissions(raw: Any) -> PermissionSet:
    if isinstance(raw, PermissionSet):
        return raw
    return PermissionSet.from_raw(raw)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return None if value is None else value.isoformat()


def _resolve_user(user_id: Any) -> User:
    canonical_user_id = _canonical_id(user_id, field_name="user_id")
    user = User.objects.filter(id=canonical_user_id).first()
    if user is None:
        raise IdentityNotFoundError(f"user_id '{canonical_user_id}' was not found.")
    return user


def _resolve_role(role_id: Any) -> Role:
    canonical_role_id = _canonical_id(role_id, field_name="role_id")
    role = Role.objects.filter(id=canonical_role_id).first()
    if role is None:
        raise IdentityNotFoundError(f"role_id '{canonical_role_id}' was not found.")
    return role


def active_assignment_filter(now: datetime) -> Q:
    """Assignments with no expiry or an expiry strictly after `now`."""
    return Q(expires_at__isnull=True) | Q(expires_at__gt=now)


def serialize_role(role: Role) -> dict[str, Any]:
    return {
        "role_id": role.id,
        "name": role.name,
        "description": role.description,
        "permissions": _validated_permissions(role.permissions).to_dict(),
        "is_system_role": role.is_system_role,
    }


def serialize_role_assignment(assignment: RoleAssignment) -> dict[str, Any]:
    return {
        "user_id": assignment.user_id,
        "role_id": assignment.role_id,
        "role_name": assignment.role.name,
        "assigned_by": assignment.assigned_by,
        "assigned_by_type": assignment.assigned_by_type,
        "assigned_at": _iso(assignment.assigned_at),
        "expires_at": _iso(assignment.expires_at),
    }


def serialize_user(user: User) -> dict[str, Any]:
    return {
        "user_id": user.id,
        "username": user.username,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "auth_type": user.auth_type,
        "saml_subject_id": user.saml_subject_id,
        "department": user.department,
        "role": user.role,
        "is_active": user.is_active,
        "failed_login_attempts": user.failed_login_attempts,
        "locked_until": _iso(user.locked_until),
        "last_login": _iso(user.last_login),
    }


# ── Roles ─────────────────────────────────────────────────────

def create_role(
    *,
    name: str,
    permissions: Mapping[str, Any] | PermissionSet,
    created_by: Actor,
    description: str | None = None,
    is_system_role: bool = False,
) -> dict[str, Any]:
    actor = _require_actor(created_by, field_name="created_by")
    canonical_name = _clean_string(name, field_name="name")
    canonical_description = _clean_optional_string(description, default="")
    permission_set = _validated_permissions(permissions)

    with storage_errors("create_role"):
        with audited_change(
            action=AuditAction.ROLE_CREATED,
            performed_by=actor,
            details={
                "name": canonical_name,
                "description": canonical_description,
                "permissions": permission_set.to_dict(),
            },
        ) as draft:
            if Role.objects.filter(name=canonical_name).exists():
                raise ValueError(f"role name '{canonical_name}' already exists.")
            role = Role.objects.create(
                name=canonical_name,
                description=canonical_description,
                permissions=permission_set.to_dict(),
                is_system_role=bool(is_system_role),
            )
            draft.details["role_id"] = role.id
    return serialize_role(role)


def update_role(
    *,
    role_id: int,
    updated_by: Actor,
    name: str | None = None,
    description: str | None = None,
    permissions: Mapping[str, Any] | PermissionSet | None = None,
) -> dict[str, Any]:
    actor = _require_actor(updated_by, field_name="updated_by")
    canonical_role_id = _canonical_id(role_id, field_name="role_id")
    permission_set = None if permissions is None else _validated_permissions(permissions)

    details: dict[str, Any] = {"role_id": canonical_role_id}
    if name is not None:
        details["name"] = _clean_string(name, field_name="name")
    if description is not None:
        details["description"] = str(description).strip()
    if permission_set is not None:
        details["permissions"] = permission_set.to_dict()

    with storage_errors("update_role"):
        with audited_change(
            action=AuditAction.ROLE_UPDATED,
            performed_by=actor,
            details=details,
        ):
            role = _resolve_role(canonical_role_id)
            if role.is_system_role:
                raise SystemRoleError(role.name, "updated")

            update_fields: list[str] = []
            if "name" in details and details["name"] != role.name:
                if Role.objects.filter(name=details["name"]).exclude(id=role.id).exists():
                    raise ValueError(f"role name '{details['name']}' already exists.")
                role.name = details["name"]
                update_fields.append("name")
            if "description" in details and details["description"] != role.description:
                role.description = details["description"]
                update_fields.append("description")
            if permission_set is not None:
                role.permissions = permission_set.to_dict()
                update_fields.append("permissions")
            if update_fields:
                update_fields.append("updated_at")
                role.save(update_fields=update_fields)
    return serialize_role(role)


def delete_role(*, role_id: int, deleted_by: Actor) -> None:
    actor = _require_actor(deleted_by, field_name="deleted_by")
    canonical_role_id = _canonical_id(role_id, field_name="role_id")

    with storage_errors("delete_role"):
        with audited_change(
            action=AuditAction.ROLE_DELETED,
            performed_by=actor,
            details={"role_id": canonical_role_id},
        ) as draft:
            role = _resolve_role(canonical_role_id)
            draft.details["name"] = role.name
            if role.is_system_role:
                raise SystemRoleError(role.name, "deleted")
            if RoleAssignment.objects.filter(role_id=role.id).exists():
                raise RoleInUseError(
                    f"role '{role.name}' is still assigned and cannot be deleted."
                )
            role.delete()


def list_roles() -> tuple[dict[str, Any], ...]:
    with storage_errors("list_roles"):
        roles = tuple(Role.objects.order_by("-is_system_role", "name", "id"))
    return tuple(serialize_role(role) for role in roles)


def get_role_by_name(name: str) -> dict[str, Any] | None:
    canonical_name = _clean_string(name, field_name="name")
    with storage_errors("get_role_by_name"):
        role = Role.objects.filter(name=canonical_name).first()
    return None if role is None else serialize_role(role)


# ── Assignments ───────────────────────────────────────────────

def assign_role(
    *,
    user_id: int,
    role_id: int,
    assigned_by: Actor,
    expires_at: datetime | None = None,
) -> dict[str, Any]:
    """
    Assign a role to a user. Idempotent: re-assigning the same role
    refreshes assigned_by/assigned_at/expires_at on the existing row.
    """
    actor = _require_actor(assigned_by, field_name="assigned_by")
    canonical_user_id = _canonical_id(user_id, field_name="user_id")
    canonical_role_id = _canonical_id(role_id, field_name="role_id")
    now = now_utc()
    if expires_at is not None:
        if expires_at.tzinfo is None:
            raise ValueError("expires_at must be timezone-aware.")
        if expires_at <= now:
            raise ValueError("expires_at must be in the future.")

    with storage_errors("assign_role"):
        with audited_change(
            action=AuditAction.ROLE_ASSIGNED,
            performed_by=actor,
            user_id=canonical_user_id,
            details={
                "role_id": canonical_role_id,
                "assigned_by": actor.actor_id,
                "expires_at": _iso(expires_at),
            },
        ) as draft:
            user = _resolve_user(canonical_user_id)
            role = _resolve_role(canonical_role_id)
            draft.details["role_name"] = role.name
            defaults = {
                "assigned_by": actor.actor_id,
                "assigned_by_type": actor.actor_type.value,
                "assigned_at": now,
                "expires_at": expires_at,
            }
            assignment, created = RoleAssignment.objects.update_or_create(
                user=user,
                role=role,
                defaults=defaults,
            )
            draft.details["created"] = created
    return serialize_role_assignment(assignment)


def remove_role(*, user_id: int, role_id: int, removed_by: Actor) -> bool:
    """Remove an assignment. Returns False when there was nothing to remove."""
    actor = _require_actor(removed_by, field_name="removed_by")
    canonical_user_id = _canonical_id(user_id, field_name="user_id")
    canonical_role_id = _canonical_id(role_id, field_name="role_id")

    with storage_errors("remove_role"):
        with audited_change(
            action=AuditAction.ROLE_REMOVED,
            performed_by=actor,
            user_id=canonical_user_id,
            details={
                "role_id": canonical_role_id,
                "removed_by": actor.actor_id,
            },
        ) as draft:
            deleted, _ = RoleAssignment.objects.filter(
                user_id=canonical_user_id,
                role_id=canonical_role_id,
            ).delete()
            draft.details["removed"] = deleted > 0
    return deleted > 0


def list_user_assignments(
    user_id: int,
    *,
    include_expired: bool = False,
) -> tuple[dict[str, Any], ...]:
    canonical_user_id = _canonical_id(user_id, field_name="user_id")
    with storage_errors("list_user_assignments"):
        qs = RoleAssignment.objects.select_related("role").filter(
            user_id=canonical_user_id
        )
        if not include_expired:
            qs = qs.filter(active_assignment_filter(now_utc()))
        assignments = tuple(qs.order_by("assigned_at", "id"))
    return tuple(serialize_role_assignment(assignment) for assignment in assignments)


def set_user_permissions(
    *,
    user_id: int,
    permissions: Mapping[str, Any] | PermissionSet,
    updated_by: Actor,
) -> dict[str, Any]:
    """Replace a user's permission override (highest precedence layer)."""
    actor = _require_actor(updated_by, field_name="updated_by")
    canonical_user_id = _canonical_id(user_id, field_name="user_id")
    permission_set = _validated_permissions(permissions)

    with storage_errors("set_user_permissions"):
        with audited_change(
            action=AuditAction.USER_PERMISSIONS_UPDATED,
            performed_by=actor,
            user_id=canonical_user_id,
            details={"permissions": permission_set.to_dict()},
        ):
            user = _resolve_user(canonical_user_id)
            user.permissions = permission_set.to_dict()
            user.save(update_fields=["permissions", "updated_at"])
    return serialize_user(user)


# ── Bootstrap ─────────────────────────────────────────────────

def seed_system_roles(
    catalogue: Mapping[str, tuple[str, Mapping[str, Mapping[str, bool]]]] | None = None,
) -> tuple[dict[str, Any], ...]:
    """
    Create the default role catalogue as system roles. Idempotent: a role
    that already matches its catalogue entry is left alone and not audited.
    A same-named role that is not flagged as a system role, or whose
    permissions drifted, is re-flagged and re-synced under one
    role_updated entry.
    """
    entries = DEFAULT_ROLE_CATALOGUE if catalogue is None else catalogue
    seeded: list[Role] = []
    for role_name in sorted(entries):
        description, raw_permissions = entries[role_name]
        permission_set = _validated_permissions(dict(raw_permissions))
        with storage_errors("seed_system_roles"):
            existing = Role.objects.filter(name=role_name).first()
            if existing is None:
                create_role(
                    name=role_name,
                    description=description,
                    permissions=permission_set,
                    created_by=BOOTSTRAP_ACTOR,
                    is_system_role=True,
                )
                existing = Role.objects.get(name=role_name)
            elif (
                not existing.is_system_role
                or _validated_permissions(existing.permissions) != permission_set
            ):
                with audited_change(
                    action=AuditAction.ROLE_UPDATED,
                    performed_by=BOOTSTRAP_ACTOR,
                    details={
                        "role_id": existing.id,
                        "name": role_name,
                        "was_system_role": existing.is_system_role,
                        "previous_permissions": existing.permissions,
                        "permissions": permission_set.to_dict(),
                    },
                ):
                    existing.is_system_role = True
                    existing.permissions = permission_set.to_dict()
                    existing.save(update_fields=["is_system_role", "permissions", "updated_at"])
        seeded.append(existing)
    return tuple(serialize_role(role) for role in seeded)
