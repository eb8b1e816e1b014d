"""
GRC Access Federation - Federated Identity
==========================================
The library-independent view of a validated assertion. Produced by an
AssertionValidator, consumed by the pipeline; nothing past this point
touches SAML XML.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional

# Standard claim URIs used when no attribute mapping entry applies.
CLAIM_EMAIL = "http://schemas.xmlsoap.org/ws/2005/05/identity/claims/emailaddress"
CLAIM_GIVEN_NAME = "http://schemas.xmlsoap.org/ws/2005/05/identity/claims/givenname"
CLAIM_SURNAME = "http://schemas.xmlsoap.org/ws/2005/05/identity/claims/surname"
CLAIM_ROLE = "http://schemas.microsoft.com/ws/2008/06/identity/claims/role"
CLAIM_GROUPS = "http://schemas.microsoft.com/ws/2008/06/identity/claims/groups"
CLAIM_DEPARTMENT = "department"

EMAIL_KEYS = (CLAIM_EMAIL, "email", "mail")
GIVEN_NAME_KEYS = (CLAIM_GIVEN_NAME, "firstName", "givenName")
SURNAME_KEYS = (CLAIM_SURNAME, "lastName", "sn")
ROLE_KEYS = (CLAIM_ROLE, "role")
GROUP_KEYS = (CLAIM_GROUPS, "groups", "memberOf")
DEPARTMENT_KEYS = (CLAIM_DEPARTMENT,)


def _normalize_attributes(
    attributes: Mapping[str, Any],
) -> Mapping[str, tuple[str, ...]]:
    normalized: dict[str, tuple[str, ...]] = {}
    for key, value in attributes.items():
        if value is None:
            continue
        values = value if isinstance(value, (list, tuple)) else [value]
        normalized[str(key)] = tuple(str(item) for item in values if item is not None)
    return MappingProxyType(normalized)


def first_value(
    attributes: Mapping[str, tuple[str, ...]],
    keys: tuple[str, ...] | list[str],
) -> Optional[str]:
    for key in keys:
        values = attributes.get(key)
        if values:
            candidate = values[0].strip()
            if candidate:
                return candidate
    return None


def all_values(
    attributes: Mapping[str, tuple[str, ...]],
    keys: tuple[str, ...],
) -> tuple[str, ...]:
    for key in keys:
        values = attributes.get(key)
        if values:
            return tuple(value for value in values if value.strip())
    return ()


@dataclass(frozen=True)
class FederatedIdentity:
    """
    A verified identity asserted by the IdP.

    Fields:
        subject_id:   NameID of the assertion (stable per IdP user)
        email:        Matching key against local users
        first_name / last_name / department:  standard claims, optional
        role:         Role hint claim, optional
        groups:       Group names for group -> role sync
        attributes:   Full attribute bag, every value a tuple of strings
    """

    subject_id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Optional[str] = None
    department: Optional[str] = None
    groups: tuple[str, ...] = ()
    attributes: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

    def __post_init__(self):
        if not isinstance(self.subject_id, str) or not self.subject_id.strip():
            raise ValueError("subject_id must be a non-empty string.")
        if not isinstance(self.email, str) or "@" not in self.email:
            raise ValueError("email must be an email address.")
        object.__setattr__(self, "subject_id", self.subject_id.strip())
        object.__setattr__(self, "email", self.email.strip())
        object.__setattr__(self, "groups", tuple(self.groups))
        object.__setattr__(self, "attributes", _normalize_attributes(self.attributes))

    @classmethod
    def from_attributes(
        cls,
        subject_id: str,
        attributes: Mapping[str, Any],
    ) -> FederatedIdentity:
        """
        Build an identity from a NameID and a raw attribute bag, picking the
        standard claims. Falls back to the NameID for email when it is one.
        """
        bag = _normalize_attributes(attributes)
        email = first_value(bag, EMAIL_KEYS)
        if email is None and subject_id and "@" in subject_id:
            email = subject_id
        if email is None:
            raise ValueError("assertion carries no email attribute.")
        return cls(
            subject_id=subject_id,
            email=email,
            first_name=first_value(bag, GIVEN_NAME_KEYS),
            last_name=first_value(bag, SURNAME_KEYS),
            role=first_value(bag, ROLE_KEYS),
            department=first_value(bag, DEPARTMENT_KEYS),
            groups=all_values(bag, GROUP_KEYS),
            attributes=bag,
        )
