"""
GRC Access Federation - SAML Library Adapter
============================================
python3-saml (OneLogin toolkit) does the XML, signature, condition, and
audience checks. The pipeline only sees the AssertionValidator protocol,
so tests substitute a fake validator instead of signed XML.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Protocol
from urllib.parse import urlparse

from onelogin.saml2.auth import OneLogin_Saml2_Auth
from onelogin.saml2.errors import OneLogin_Saml2_Error
from onelogin.saml2.settings import OneLogin_Saml2_Settings

from grc_access.federation.errors import (
    AssertionValidationError,
    ConfigurationError,
    SignatureError,
)
from grc_access.federation.identity import FederatedIdentity

logger = logging.getLogger("grc.federation")

BINDING_HTTP_POST = "urn:oasis:names:tc:SAML:2.0:bindings:HTTP-POST"
BINDING_HTTP_REDIRECT = "urn:oasis:names:tc:SAML:2.0:bindings:HTTP-Redirect"
NAMEID_FORMAT_EMAIL = "urn:oasis:names:tc:SAML:1.1:nameid-format:emailAddress"
_DEFAULT_PORTS = {"https": 443, "http": 80}

# python3-saml reports signature problems only as text (get_last_error_reason),
# e.g. "No Signature found. SAML Response rejected" or "The Assertion of the
# Response is not signed and the SP require it".
_SIGNATURE_REASON = re.compile(r"\b(signatures?|signed)\b", re.IGNORECASE)


class AssertionValidator(Protocol):
    def validate_and_parse(self, raw_assertion: str, config) -> FederatedIdentity:
        """
        Verify `raw_assertion` against `config` and return the identity.

        Raises SignatureError, AssertionValidationError or
        ConfigurationError.
        """
        ...


def build_onelogin_settings(config) -> dict[str, Any]:
    """Settings dict for OneLogin_Saml2_Settings built from a SAMLConfig row."""
    settings: dict[str, Any] = {
        "strict": True,
        "debug": False,
        "sp": {
            "entityId": config.sp_entity_id,
            "assertionConsumerService": {
                "url": config.sp_acs_url,
                "binding": BINDING_HTTP_POST,
            },
            "NameIDFormat": NAMEID_FORMAT_EMAIL,
        },
        "idp": {
            "entityId": config.idp_entity_id,
            "singleSignOnService": {
                "url": config.idp_sso_url,
                "binding": BINDING_HTTP_REDIRECT,
            },
            "x509cert": config.idp_x509_cert,
        },
        "security": {
            "wantAssertionsSigned": bool(config.require_signed_assertions),
            "wantMessagesSigned": False,
            "authnRequestsSigned": bool(config.sp_private_key),
        },
    }
    if config.sp_x509_cert:
        settings["sp"]["x509cert"] = config.sp_x509_cert
    if config.sp_private_key:
        settings["sp"]["privateKey"] = config.sp_private_key
    return settings


def load_onelogin_settings(config, *, sp_validation_only: bool = False) -> OneLogin_Saml2_Settings:
    try:
        return OneLogin_Saml2_Settings(
            build_onelogin_settings(config),
            sp_validation_only=sp_validation_only,
        )
    except OneLogin_Saml2_Error as exc:
        raise ConfigurationError(f"Invalid SAML settings: {exc}") from exc


def prepare_acs_request(acs_url: str, post_data: dict[str, str]) -> dict[str, Any]:
    """Request dict python3-saml expects, reconstructed from the ACS URL."""
    parsed = urlparse(acs_url)
    host = parsed.hostname or ""
    # Non-default ports travel in http_host; the server_port key is deprecated.
    if parsed.port is not None and parsed.port != _DEFAULT_PORTS.get(parsed.scheme):
        host = f"{host}:{parsed.port}"
    return {
        "https": "on" if parsed.scheme == "https" else "off",
        "http_host": host,
        "script_name": parsed.path,
        "get_data": {},
        "post_data": post_data,
    }


def is_signature_failure(reason: str) -> bool:
    return bool(_SIGNATURE_REASON.search(reason or ""))


class OneLoginAssertionValidator:
    def validate_and_parse(self, raw_assertion: str, config) -> FederatedIdentity:
        if not raw_assertion or not isinstance(raw_assertion, str):
            raise AssertionValidationError("SAMLResponse is empty.")

        settings = load_onelogin_settings(config)
        request = prepare_acs_request(
            config.sp_acs_url,
            {"SAMLResponse": raw_assertion},
        )
        auth = OneLogin_Saml2_Auth(request, settings)
        try:
            auth.process_response()
        except Exception as exc:
            # Undecodable payloads surface as library-specific parse errors.
            raise AssertionValidationError(f"SAML response rejected: {exc}") from exc

        errors = auth.get_errors()
        if errors:
            reason = auth.get_last_error_reason() or ", ".join(errors)
            if is_signature_failure(reason):
                raise SignatureError(f"SAML signature rejected: {reason}")
            raise AssertionValidationError(f"SAML response rejected: {reason}")
        if not auth.is_authenticated():
            raise AssertionValidationError("SAML response did not authenticate a subject.")

        name_id = auth.get_nameid()
        try:
            return FederatedIdentity.from_attributes(
                str(name_id) if name_id else "",
                auth.get_attributes(),
            )
        except ValueError as exc:
            raise AssertionValidationError(f"SAML assertion incomplete: {exc}") from exc


def generate_sp_metadata(config) -> str:
    """SP metadata XML for registering this service with the IdP."""
    settings = load_onelogin_settings(config, sp_validation_only=True)
    metadata = settings.get_sp_metadata()
    errors = settings.validate_metadata(metadata)
    if errors:
        raise ConfigurationError(
            f"Generated SP metadata is invalid: {', '.join(errors)}"
        )
    if isinstance(metadata, bytes):
        return metadata.decode("utf-8")
    return str(metadata)
