"""
GRC Access Federation - Public API
==================================
SAML 2.0 single sign-on into local identities.

Pure types are re-exported eagerly; the pipeline and config service
touch Django models and load lazily.
"""

from grc_access.federation.errors import (
    AccountDisabledError,
    AccountLockedError,
    AssertionValidationError,
    ConfigurationError,
    FederationError,
    IdentityConflictError,
    ProvisioningError,
    SignatureError,
    UserNotFoundError,
)
from grc_access.federation.identity import FederatedIdentity


def __getattr__(name: str):
    if name in {"FederationPipeline", "FederationResult"}:
        from grc_access.federation import pipeline

        return getattr(pipeline, name)
    if name in {
        "get_saml_config",
        "update_saml_config",
        "is_sso_mandatory",
        "check_saml_configuration",
    }:
        from grc_access.federation import config_service

        return getattr(config_service, name)
    if name == "generate_sp_metadata":
        from grc_access.federation.saml import generate_sp_metadata

        return generate_sp_metadata
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


__all__ = [
    "FederationError",
    "ConfigurationError",
    "SignatureError",
    "AssertionValidationError",
    "AccountLockedError",
    "AccountDisabledError",
    "UserNotFoundError",
    "ProvisioningError",
    "IdentityConflictError",
    "FederatedIdentity",
    "FederationPipeline",
    "FederationResult",
    "get_saml_config",
    "update_saml_config",
    "is_sso_mandatory",
    "check_saml_configuration",
    "generate_sp_metadata",
]
