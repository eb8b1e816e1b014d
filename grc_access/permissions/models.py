"""
GRC Access Permissions - Immutable Permission/Role Models
=========================================================
A PermissionSet maps resource name -> action name -> bool, with the
reserved action "all" meaning every action on that resource. Raw JSON
from the store is validated once, at the boundary, by
PermissionSet.from_raw(); everything past that point handles the typed
structure only.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Mapping, Optional

from grc_access.permissions.constants import ACTION_ALL, RESOURCE_ADMIN


def _freeze(grants: Mapping[str, Mapping[str, bool]]) -> Mapping[str, Mapping[str, bool]]:
    return MappingProxyType(
        {
            resource: MappingProxyType(dict(actions))
            for resource, actions in sorted(grants.items())
        }
    )


@dataclass(frozen=True)
class PermissionSet:
    grants: Mapping[str, Mapping[str, bool]] = field(default_factory=dict)

    def __post_init__(self):
        if not isinstance(self.grants, Mapping):
            raise ValueError("permissions must be an object of resource -> actions.")

        for resource, actions in self.grants.items():
            if not isinstance(resource, str) or not resource.strip():
                raise ValueError("permission resource names must be non-empty strings.")
            if not isinstance(actions, Mapping):
                raise ValueError(
                    f"permissions for resource '{resource}' must be an object of action -> bool."
                )
            for action, allowed in actions.items():
                if not isinstance(action, str) or not action.strip():
                    raise ValueError(
                        f"action names for resource '{resource}' must be non-empty strings."
                    )
                if not isinstance(allowed, bool):
                    raise ValueError(
                        f"permission '{resource}.{action}' must be a boolean."
                    )

        object.__setattr__(self, "grants", _freeze(self.grants))

    @classmethod
    def empty(cls) -> PermissionSet:
        return cls({})

    @classmethod
    def from_raw(cls, raw: Any) -> PermissionSet:
        """Validate a stored blob (dict, JSON text, or None) into a PermissionSet."""
        if raw is None or raw == "":
            return cls.empty()
        if isinstance(raw, PermissionSet):
            return raw
        if isinstance(raw, (str, bytes)):
            try:
                raw = json.loads(raw)
            except ValueError as exc:
                raise ValueError("permissions must be valid JSON.") from exc
        if not isinstance(raw, Mapping):
            raise ValueError("permissions must be an object of resource -> actions.")
        return cls(dict(raw))

    def merge(self, override: PermissionSet) -> PermissionSet:
        """
        Merge `override` on top of this set, per action.

        Resources present in both are merged action-by-action with the
        override winning; they are never replaced wholesale.
        """
        merged: dict[str, dict[str, bool]] = {
            resource: dict(actions) for resource, actions in self.grants.items()
        }
        for resource, actions in override.grants.items():
            merged.setdefault(resource, {}).update(actions)
        return PermissionSet(merged)

    def grants_action(self, resource: str, action: str) -> bool:
        return self.grants.get(resource, {}).get(action) is True

    def grants_all_on(self, resource: str) -> bool:
        return self.grants.get(resource, {}).get(ACTION_ALL) is True

    @property
    def is_super_admin(self) -> bool:
        return self.grants_all_on(RESOURCE_ADMIN)

    def is_empty(self) -> bool:
        return not self.grants

    def to_dict(self) -> dict[str, dict[str, bool]]:
        return {resource: dict(actions) for resource, actions in self.grants.items()}


@dataclass(frozen=True)
class Role:
    role_id: int
    name: str
    permissions: PermissionSet = field(default_factory=PermissionSet.empty)
    description: str = ""
    is_system_role: bool = False

    def __post_init__(self):
        if not isinstance(self.role_id, int) or isinstance(self.role_id, bool):
            raise ValueError("role_id must be an integer.")
        if not self.name or not isinstance(self.name, str):
            raise ValueError("name must be a non-empty string.")
        if not isinstance(self.permissions, PermissionSet):
            raise ValueError("permissions must be a PermissionSet.")


@dataclass(frozen=True)
class RoleGrant:
    """A user -> role assignment as seen by the resolver."""

    user_id: int
    role_id: int
    assigned_at: datetime
    expires_at: Optional[datetime] = None

    def is_active(self, now: datetime) -> bool:
        return self.expires_at is None or self.expires_at > now

    def sort_key(self) -> tuple[datetime, int]:
        return (self.assigned_at, self.role_id)
