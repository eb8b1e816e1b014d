"""
GRC Access Federation - Assertion Pipeline
==========================================
Turns an IdP assertion into a local identity:

    config gate -> validate assertion -> match or provision
        -> lockout check -> profile refresh -> group -> role sync
        -> audit -> redirect

Every rejection is a FederationError. process_assertion() converts them
into a failed FederationResult and writes a saml_sso_login_failed entry.
A StorageError is also recorded as a failed login, then re-raised so the
caller can retry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from django.db import DatabaseError, transaction

from grc_access.account_security.service import AccountSecurityService
from grc_access.audit.actions import AuditAction
from grc_access.audit.functions import audited_change, write_audit_entry
from grc_access.conf import AccessSettings, get_access_settings
from grc_access.federation.config_service import get_saml_config
from grc_access.federation.errors import (
    AccountDisabledError,
    AccountLockedError,
    ConfigurationError,
    FederationError,
    IdentityConflictError,
    ProvisioningError,
    SignatureError,
    UserNotFoundError,
)
from grc_access.federation.group_sync import SAML_SYNC_ACTOR, sync_group_roles
from grc_access.federation.identity import FederatedIdentity
from grc_access.federation.mapping import MappedProfile, map_identity
from grc_access.federation.saml import AssertionValidator, OneLoginAssertionValidator
from grc_access.identity_store.models import AuthType, Role, User
from grc_access.identity_store.service import assign_role, serialize_user
from grc_access.storage import StorageError, storage_errors
from grc_access.time.clock import Clock, now_utc

logger = logging.getLogger("grc.federation")


@dataclass(frozen=True)
class FederationResult:
    success: bool
    user: Optional[dict[str, Any]] = None
    error: Optional[str] = None
    message: str = ""
    redirect_url: Optional[str] = None
    provisioned: bool = False


def _username_base(email: str, mapped_username: Optional[str]) -> str:
    base = (mapped_username or email.split("@", 1)[0]).strip()
    return base[:140] or "saml-user"


def _failure_details(
    code: str,
    message: str,
    identity: Optional[FederatedIdentity],
) -> dict[str, Any]:
    return {
        "error": code,
        "message": message,
        "email": identity.email if identity else None,
        "subject_id": identity.subject_id if identity else None,
    }


def _unique_username(base: str) -> str:
    candidate = base
    suffix = 1
    while User.objects.filter(username=candidate).exists():
        suffix += 1
        candidate = f"{base}{suffix}"
    return candidate


class FederationPipeline:
    def __init__(
        self,
        validator: AssertionValidator | None = None,
        clock: Clock | None = None,
        account_security: AccountSecurityService | None = None,
    ):
        self._validator = validator or OneLoginAssertionValidator()
        self._clock = clock
        self._account_security = account_security or AccountSecurityService(clock=clock)

    def _now(self):
        return now_utc(self._clock)

    def process_assertion(
        self,
        raw_assertion: str,
        relay_state: str | None = None,
    ) -> FederationResult:
        access_settings = get_access_settings()
        identity: Optional[FederatedIdentity] = None
        user_id: Optional[int] = None
        try:
            config = self._load_config()
            identity = self._validator.validate_and_parse(raw_assertion, config)
            profile = map_identity(identity, config.attribute_mapping or {})
            user, provisioned = self._match_or_provision(
                identity, profile, config, access_settings
            )
            user_id = user.id
            granted = self._sync_roles(user, identity, profile, provisioned, access_settings)
        except FederationError as exc:
            self._log_rejection(exc, identity)
            self._audit(
                AuditAction.SAML_SSO_LOGIN_FAILED,
                user_id=getattr(exc, "user_id", user_id),
                details=_failure_details(exc.code, exc.message, identity),
            )
            return FederationResult(success=False, error=exc.code, message=exc.message)
        except StorageError as exc:
            logger.error(f"SAML login aborted by storage failure: {exc}", exc_info=True)
            try:
                self._audit(
                    AuditAction.SAML_SSO_LOGIN_FAILED,
                    user_id=user_id,
                    details=_failure_details("storage_error", str(exc), identity),
                )
            except StorageError:
                logger.error("Could not audit the failed SAML login", exc_info=True)
            raise

        self._audit(
            AuditAction.SAML_SSO_LOGIN_SUCCESS,
            user_id=user.id,
            details={
                "email": user.email,
                "subject_id": identity.subject_id,
                "provisioned": provisioned,
                "roles_granted": granted,
            },
        )
        logger.info(f"SAML login for user {user.id} ({user.email})")
        return FederationResult(
            success=True,
            user=serialize_user(user),
            redirect_url=relay_state or access_settings.default_landing_url,
            provisioned=provisioned,
        )

    # ── Steps ─────────────────────────────────────────────────

    def _load_config(self):
        config = get_saml_config()
        if config is None:
            raise ConfigurationError("SAML is not configured.")
        if not config.enabled:
            raise ConfigurationError("SAML authentication is disabled.")
        return config

    def _match_or_provision(
        self,
        identity: FederatedIdentity,
        profile: MappedProfile,
        config,
        access_settings: AccessSettings,
    ) -> tuple[User, bool]:
        user = self._find_user(identity)
        if user is None:
            if not config.auto_provision:
                raise UserNotFoundError(identity.email)
            return self._provision(identity, profile, config, access_settings), True

        if not user.is_active:
            raise AccountDisabledError(user.id)
        # Refused before the refresh: a rejected login leaves the stored
        # profile and the lockout counter untouched.
        locked_until = self._account_security.get_locked_until(user.id)
        if locked_until is not None:
            raise AccountLockedError(user.id, locked_until)

        self._refresh(user, identity, profile)
        self._account_security.reset_failed_logins(user.id)
        user.refresh_from_db()
        return user, False

    def _find_user(self, identity: FederatedIdentity) -> Optional[User]:
        with storage_errors("find_saml_user"):
            by_subject = User.objects.filter(saml_subject_id=identity.subject_id).first()
            if by_subject is not None:
                return by_subject
            return User.objects.filter(email__iexact=identity.email).first()

    def _refresh(
        self,
        user: User,
        identity: FederatedIdentity,
        profile: MappedProfile,
    ) -> None:
        with storage_errors("refresh_saml_user"):
            email_taken = (
                User.objects.filter(email__iexact=identity.email)
                .exclude(pk=user.pk)
                .exists()
            )
        if email_taken:
            raise IdentityConflictError(user.id, identity.email)

        changes: dict[str, str] = {}
        for field_name, value in (
            ("email", identity.email),
            ("saml_subject_id", identity.subject_id),
            ("first_name", profile.first_name),
            ("last_name", profile.last_name),
            ("department", profile.department),
            ("role", profile.role),
        ):
            if value and value != getattr(user, field_name):
                changes[field_name] = value
        if not changes:
            return

        with storage_errors("refresh_saml_user"):
            with audited_change(
                action=AuditAction.SAML_USER_UPDATED,
                performed_by=SAML_SYNC_ACTOR,
                user_id=user.id,
                details={
                    "changed": sorted(changes),
                    "subject_id": identity.subject_id,
                },
            ):
                for field_name, value in changes.items():
                    setattr(user, field_name, value)
                user.save(update_fields=[*changes, "updated_at"])

    def _provision(
        self,
        identity: FederatedIdentity,
        profile: MappedProfile,
        config,
        access_settings: AccessSettings,
    ) -> User:
        role_name = profile.role or config.default_role or access_settings.saml_default_role
        now = self._now()
        try:
            with transaction.atomic():
                user = User.objects.create(
                    username=_unique_username(
                        _username_base(identity.email, profile.username)
                    ),
                    email=identity.email,
                    first_name=profile.first_name or "",
                    last_name=profile.last_name or "",
                    password_hash="",
                    auth_type=AuthType.SAML,
                    saml_subject_id=identity.subject_id,
                    department=profile.department,
                    role=role_name,
                    is_active=True,
                    last_login=now,
                )
                write_audit_entry(
                    action=AuditAction.SAML_USER_PROVISIONED,
                    performed_by=SAML_SYNC_ACTOR,
                    user_id=user.id,
                    details={
                        "username": user.username,
                        "email": user.email,
                        "subject_id": identity.subject_id,
                        "role": role_name,
                    },
                )
        except DatabaseError as exc:
            logger.error(
                f"Provisioning SAML user {identity.email} failed: {exc}",
                exc_info=True,
            )
            raise ProvisioningError(
                f"Could not provision an account for '{identity.email}'."
            ) from exc

        logger.info(f"Provisioned SAML user {user.id} ({user.username}) with role '{role_name}'")
        return user

    def _sync_roles(
        self,
        user: User,
        identity: FederatedIdentity,
        profile: MappedProfile,
        provisioned: bool,
        access_settings: AccessSettings,
    ) -> list[str]:
        granted: list[str] = []
        primary_role = user.role if provisioned else profile.role
        if primary_role:
            with storage_errors("sync_saml_primary_role"):
                role = Role.objects.filter(name=primary_role).first()
            if role is None:
                logger.debug(f"SAML role '{primary_role}' does not exist; user {user.id} keeps existing roles")
            else:
                assign_role(user_id=user.id, role_id=role.id, assigned_by=SAML_SYNC_ACTOR)
                granted.append(role.name)

        sync = sync_group_roles(
            user.id,
            identity.groups,
            keep_roles=granted,
            access_settings=access_settings,
        )
        for role_name in sync.assigned:
            if role_name not in granted:
                granted.append(role_name)
        return granted

    # ── Audit / logging ───────────────────────────────────────

    def _audit(self, action: str, *, user_id: Optional[int], details: dict) -> None:
        with storage_errors("audit_saml_login"):
            write_audit_entry(
                action=action,
                performed_by=SAML_SYNC_ACTOR,
                user_id=user_id,
                details=details,
            )

    def _log_rejection(
        self,
        exc: FederationError,
        identity: Optional[FederatedIdentity],
    ) -> None:
        who = identity.email if identity else "unknown subject"
        if isinstance(exc, SignatureError):
            logger.warning(f"SECURITY: rejected SAML assertion for {who}: {exc.message}")
        elif isinstance(exc, AccountLockedError):
            logger.warning(f"SAML login for locked account {exc.user_id} refused")
        else:
            logger.info(f"SAML login for {who} failed ({exc.code}): {exc.message}")
