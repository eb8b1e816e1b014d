"""
GRC Access Federation - Attribute Mapping
=========================================
SAMLConfig.attribute_mapping maps a local field name to an IdP attribute
key. A mapped value always beats the standard claim picked by
FederatedIdentity; standard claims only fill fields with no mapped value.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from grc_access.federation.identity import FederatedIdentity, first_value

MAPPABLE_FIELDS = frozenset(
    {"username", "first_name", "last_name", "department", "role"}
)


@dataclass(frozen=True)
class MappedProfile:
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    department: Optional[str] = None
    role: Optional[str] = None


def clean_attribute_mapping(raw: Any) -> dict[str, str]:
    """Validate a stored or submitted attribute mapping."""
    if raw is None or raw == "":
        return {}
    if not isinstance(raw, Mapping):
        raise ValueError("attribute_mapping must be an object of local field -> IdP attribute.")
    cleaned: dict[str, str] = {}
    for local_field, idp_key in raw.items():
        if local_field not in MAPPABLE_FIELDS:
            raise ValueError(
                f"attribute_mapping field '{local_field}' is not mappable; "
                f"expected one of {sorted(MAPPABLE_FIELDS)}."
            )
        if not isinstance(idp_key, str) or not idp_key.strip():
            raise ValueError(
                f"attribute_mapping['{local_field}'] must be a non-empty attribute key."
            )
        cleaned[local_field] = idp_key.strip()
    return cleaned


def map_identity(
    identity: FederatedIdentity,
    attribute_mapping: Mapping[str, str],
) -> MappedProfile:
    mapped: dict[str, Optional[str]] = {}
    for local_field, idp_key in attribute_mapping.items():
        if local_field not in MAPPABLE_FIELDS:
            continue
        value = first_value(identity.attributes, (idp_key,))
        if value is not None:
            mapped[local_field] = value

    return MappedProfile(
        username=mapped.get("username"),
        first_name=mapped.get("first_name") or identity.first_name,
        last_name=mapped.get("last_name") or identity.last_name,
        department=mapped.get("department") or identity.department,
        role=mapped.get("role") or identity.role,
    )
