"""
GRC Access Federation - Error Taxonomy
======================================
Every pipeline rejection is a FederationError carrying a stable `code`
that process_assertion() reports back in its FederationResult. None of
them are retried.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional


class FederationError(Exception):
    code = "federation_error"

    def __init__(self, message: str, *, code: Optional[str] = None):
        self.message = message
        if code is not None:
            self.code = code
        super().__init__(message)


class ConfigurationError(FederationError):
    """SAML is disabled, unconfigured, or configured inconsistently."""

    code = "configuration_error"


class SignatureError(FederationError):
    """Assertion signature missing or invalid while one is required."""

    code = "invalid_signature"


class AssertionValidationError(FederationError):
    """Assertion rejected by the SAML library for a non-signature reason."""

    code = "invalid_assertion"


class AccountLockedError(FederationError):
    code = "account_locked"

    def __init__(self, user_id: int, locked_until: datetime):
        self.user_id = user_id
        self.locked_until = locked_until
        super().__init__(
            f"Account {user_id} is temporarily locked until {locked_until.isoformat()}."
        )


class AccountDisabledError(FederationError):
    code = "account_disabled"

    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(f"Account {user_id} is disabled.")


class UserNotFoundError(FederationError):
    code = "user_not_found"

    def __init__(self, email: str):
        self.email = email
        super().__init__(
            f"No local account for '{email}' and auto-provisioning is disabled."
        )


class ProvisioningError(FederationError):
    code = "provisioning_failed"


class IdentityConflictError(FederationError):
    """The asserted email already belongs to a different local account."""

    code = "identity_conflict"

    def __init__(self, user_id: int, email: str):
        self.user_id = user_id
        self.email = email
        super().__init__(
            f"Email '{email}' is already used by another account; "
            f"refusing to re-bind account {user_id}."
        )
