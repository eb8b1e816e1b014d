"""
GRC Access Config - Runtime Settings
====================================
Tunables come from the GRC_ACCESS dict in Django settings, never from
constants inside service logic. Missing keys fall back to DEFAULTS.

    GRC_ACCESS = {
        "MAX_FAILED_LOGINS": 5,
        "LOCKOUT_MINUTES": 30,
        "SAML_GROUP_ROLE_MAP": {"ARIA5-Administrators": "admin"},
        "SAML_REVOKE_UNLISTED_GROUP_ROLES": False,
        "SAML_DEFAULT_ROLE": "viewer",
        "DEFAULT_LANDING_URL": "/dashboard",
    }
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from django.conf import settings

DEFAULT_GROUP_ROLE_MAP: dict[str, str] = {
    "ARIA5-Administrators": "admin",
    "ARIA5-Risk-Managers": "risk_manager",
    "ARIA5-Security-Analysts": "security_analyst",
    "ARIA5-Compliance-Officers": "compliance_officer",
    "ARIA5-Managers": "manager",
    "ARIA5-Analysts": "analyst",
    "ARIA5-Viewers": "viewer",
}

DEFAULTS: dict[str, Any] = {
    "MAX_FAILED_LOGINS": 5,
    "LOCKOUT_MINUTES": 30,
    "SAML_GROUP_ROLE_MAP": DEFAULT_GROUP_ROLE_MAP,
    "SAML_REVOKE_UNLISTED_GROUP_ROLES": False,
    "SAML_DEFAULT_ROLE": "viewer",
    "DEFAULT_LANDING_URL": "/dashboard",
}


@dataclass(frozen=True)
class AccessSettings:
    max_failed_logins: int = 5
    lockout_minutes: int = 30
    saml_group_role_map: Mapping[str, str] = field(default_factory=dict)
    saml_revoke_unlisted_group_roles: bool = False
    saml_default_role: str = "viewer"
    default_landing_url: str = "/dashboard"

    def __post_init__(self) -> None:
        if not isinstance(self.max_failed_logins, int) or self.max_failed_logins < 1:
            raise ValueError("MAX_FAILED_LOGINS must be a positive integer.")
        if not isinstance(self.lockout_minutes, int) or self.lockout_minutes < 1:
            raise ValueError("LOCKOUT_MINUTES must be a positive integer.")
        if not isinstance(self.saml_group_role_map, Mapping):
            raise ValueError("SAML_GROUP_ROLE_MAP must be a mapping of group to role name.")
        for group, role_name in self.saml_group_role_map.items():
            if not isinstance(group, str) or not isinstance(role_name, str):
                raise ValueError("SAML_GROUP_ROLE_MAP keys and values must be strings.")
        object.__setattr__(
            self,
            "saml_group_role_map",
            MappingProxyType(dict(self.saml_group_role_map)),
        )


def get_access_settings() -> AccessSettings:
    """Read GRC_ACCESS from Django settings, filling in DEFAULTS."""
    configured = dict(DEFAULTS)
    configured.update(getattr(settings, "GRC_ACCESS", {}) or {})
    return AccessSettings(
        max_failed_logins=configured["MAX_FAILED_LOGINS"],
        lockout_minutes=configured["LOCKOUT_MINUTES"],
        saml_group_role_map=configured["SAML_GROUP_ROLE_MAP"],
        saml_revoke_unlisted_group_roles=bool(
            configured["SAML_REVOKE_UNLISTED_GROUP_ROLES"]
        ),
        saml_default_role=configured["SAML_DEFAULT_ROLE"],
        default_landing_url=configured["DEFAULT_LANDING_URL"],
    )
