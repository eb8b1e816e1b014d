"""
GRC Access Federation - SAML Config Service
===========================================
Read and edit the singleton SAMLConfig row, plus static checks that need
no network access.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import urlparse

from grc_access.audit.actions import AuditAction
from grc_access.audit.functions import audited_change
from grc_access.federation.mapping import clean_attribute_mapping
from grc_access.federation.models import SAML_CONFIG_ID, SAMLConfig
from grc_access.primitives.actor import Actor
from grc_access.storage import storage_errors

_BOOLEAN_FIELDS = (
    "enabled",
    "auto_provision",
    "require_signed_assertions",
    "enforce_sso",
)
_TEXT_FIELDS = (
    "idp_sso_url",
    "idp_entity_id",
    "idp_metadata_url",
    "idp_x509_cert",
    "sp_entity_id",
    "sp_acs_url",
    "sp_x509_cert",
    "sp_private_key",
    "default_role",
)
_URL_FIELDS = ("idp_sso_url", "idp_metadata_url", "sp_acs_url")
_SECRET_FIELDS = frozenset({"sp_private_key"})
EDITABLE_FIELDS = frozenset(_BOOLEAN_FIELDS + _TEXT_FIELDS + ("attribute_mapping",))


@dataclass(frozen=True)
class ConfigCheck:
    ok: bool
    problems: tuple[str, ...] = field(default_factory=tuple)


def _is_http_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def _clean_field(name: str, value: Any) -> Any:
    if name in _BOOLEAN_FIELDS:
        if not isinstance(value, bool):
            raise ValueError(f"{name} must be a boolean.")
        return value
    if name == "attribute_mapping":
        return clean_attribute_mapping(value)
    if value is None:
        value = ""
    if not isinstance(value, str):
        raise ValueError(f"{name} must be a string.")
    cleaned = value.strip()
    if name in _URL_FIELDS and cleaned and not _is_http_url(cleaned):
        raise ValueError(f"{name} must be an http(s) URL.")
    if name == "default_role" and not cleaned:
        raise ValueError("default_role must be a non-empty role name.")
    return cleaned


def serialize_saml_config(config: SAMLConfig) -> dict[str, Any]:
    data = {"enabled": config.enabled}
    for name in _BOOLEAN_FIELDS[1:] + _TEXT_FIELDS:
        data[name] = getattr(config, name)
    data["attribute_mapping"] = dict(config.attribute_mapping or {})
    for name in _SECRET_FIELDS:
        data[name] = bool(data[name])
    data["updated_at"] = config.updated_at.isoformat() if config.updated_at else None
    return data


def get_saml_config() -> Optional[SAMLConfig]:
    with storage_errors("get_saml_config"):
        return SAMLConfig.objects.filter(id=SAML_CONFIG_ID).first()


def update_saml_config(*, updated_by: Actor, **changes: Any) -> dict[str, Any]:
    """
    Apply `changes` to the singleton config, creating it on first use.
    Secret values never appear in the audit entry.
    """
    if not isinstance(updated_by, Actor):
        raise ValueError("updated_by must be an Actor.")
    unknown = sorted(set(changes) - EDITABLE_FIELDS)
    if unknown:
        raise ValueError(f"Unknown SAML config fields: {unknown}")
    cleaned = {name: _clean_field(name, value) for name, value in changes.items()}

    with storage_errors("update_saml_config"):
        with audited_change(
            action=AuditAction.SAML_CONFIG_UPDATED,
            performed_by=updated_by,
            details={
                "changed_fields": sorted(cleaned),
                "enabled": cleaned.get("enabled"),
            },
        ):
            config, _ = SAMLConfig.objects.select_for_update().get_or_create(
                id=SAML_CONFIG_ID,
            )
            for name, value in cleaned.items():
                setattr(config, name, value)
            config.save()
    return serialize_saml_config(config)


def is_sso_mandatory(email: str | None = None) -> bool:
    """
    True when local password login must be refused. `email` is accepted
    for per-domain policies; today enforcement is global.
    """
    config = get_saml_config()
    return bool(config is not None and config.enabled and config.enforce_sso)


def check_saml_configuration(config: SAMLConfig | None) -> ConfigCheck:
    """Static validation of the settings a login needs. No network probing."""
    if config is None:
        return ConfigCheck(ok=False, problems=("SAML is not configured.",))

    problems: list[str] = []
    if not config.idp_entity_id:
        problems.append("idp_entity_id is required.")
    if not config.idp_sso_url or not _is_http_url(config.idp_sso_url):
        problems.append("idp_sso_url must be an http(s) URL.")
    if not config.sp_entity_id:
        problems.append("sp_entity_id is required.")
    if not config.sp_acs_url or not _is_http_url(config.sp_acs_url):
        problems.append("sp_acs_url must be an http(s) URL.")
    if config.require_signed_assertions and not config.idp_x509_cert.strip():
        problems.append("idp_x509_cert is required when signed assertions are required.")
    if bool(config.sp_private_key) != bool(config.sp_x509_cert):
        problems.append("sp_private_key and sp_x509_cert must be set together.")
    try:
        clean_attribute_mapping(config.attribute_mapping)
    except ValueError as exc:
        problems.append(str(exc))
    return ConfigCheck(ok=not problems, problems=tuple(problems))
