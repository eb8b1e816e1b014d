from __future__ import annotations

from datetime import timedelta

import pytest
from django.db import DatabaseError

from grc_access.account_security import AccountSecurityService
from grc_access.audit.actions import AuditAction
from grc_access.audit.models import AuditLogEntry
from grc_access.federation.config_service import update_saml_config
from grc_access.federation.errors import SignatureError
from grc_access.federation.identity import CLAIM_GIVEN_NAME, FederatedIdentity
from grc_access.federation.pipeline import FederationPipeline
from grc_access.identity_store.models import AuthType, Role, RoleAssignment, User
from grc_access.identity_store.service import assign_role, create_role, seed_system_roles
from grc_access.primitives.actor import Actor
from grc_access.storage import StorageError

pytestmark = pytest.mark.django_db(transaction=True)


ADMIN = Actor.human(1)


class StaticValidator:
    def __init__(self, identity: FederatedIdentity):
        self.identity = identity
        self.calls = 0

    def validate_and_parse(self, raw_assertion, config):
        self.calls += 1
        return self.identity


class RejectingValidator:
    def validate_and_parse(self, raw_assertion, config):
        raise SignatureError("Signature validation failed. SAML Response rejected")


def _identity(**overrides) -> FederatedIdentity:
    values = {
        "subject_id": "idp|frank",
        "email": "frank@example.com",
        "first_name": "Frank",
        "last_name": "Ocean",
        "groups": ("ARIA5-Administrators",),
        "attributes": {},
    }
    values.update(overrides)
    return FederatedIdentity(**values)


def _enable_saml(**changes) -> None:
    values = {
        "enabled": True,
        "idp_entity_id": "https://idp.example.com/metadata",
        "idp_sso_url": "https://idp.example.com/sso",
        "sp_entity_id": "https://grc.example.com/saml/metadata",
        "sp_acs_url": "https://grc.example.com/saml/acs",
        "auto_provision": True,
    }
    values.update(changes)
    update_saml_config(updated_by=ADMIN, **values)


@pytest.fixture
def seeded_roles():
    seed_system_roles()


def test_jit_provisioning_round_trip(seeded_roles, fixed_clock) -> None:
    _enable_saml()
    pipeline = FederationPipeline(validator=StaticValidator(_identity()), clock=fixed_clock)

    result = pipeline.process_assertion("<Response/>")

    assert result.success is True
    assert result.provisioned is True
    assert result.redirect_url == "/dashboard"
    user = User.objects.get(email="frank@example.com")
    assert user.auth_type == AuthType.SAML
    assert user.password_hash == ""
    assert user.username == "frank"
    assert user.saml_subject_id == "idp|frank"
    assert user.role == "viewer"
    assert set(
        RoleAssignment.objects.filter(user=user).values_list("role__name", flat=True)
    ) == {"viewer", "admin"}
    assert AuditLogEntry.objects.filter(
        action=AuditAction.SAML_USER_PROVISIONED,
        user_id=user.id,
    ).count() == 1
    assert AuditLogEntry.objects.filter(action=AuditAction.SAML_SSO_LOGIN_SUCCESS).count() == 1

    again = pipeline.process_assertion("<Response/>", relay_state="/risks")

    assert again.success is True
    assert again.provisioned is False
    assert again.redirect_url == "/risks"
    assert User.objects.filter(email="frank@example.com").count() == 1
    assert RoleAssignment.objects.filter(user=user).count() == 2
    assert AuditLogEntry.objects.filter(action=AuditAction.SAML_USER_PROVISIONED).count() == 1


def test_existing_local_user_is_matched_by_email(seeded_roles, fixed_clock) -> None:
    _enable_saml()
    local = User.objects.create(
        username="frank.local",
        email="Frank@Example.com",
        failed_login_attempts=3,
    )
    pipeline = FederationPipeline(validator=StaticValidator(_identity()), clock=fixed_clock)

    result = pipeline.process_assertion("<Response/>")

    assert result.success is True
    local.refresh_from_db()
    assert local.saml_subject_id == "idp|frank"
    assert local.email == "frank@example.com"
    assert local.failed_login_attempts == 0
    assert local.last_login == fixed_clock.now_utc()
    assert User.objects.count() == 1
    refresh = AuditLogEntry.objects.get(action=AuditAction.SAML_USER_UPDATED)
    assert refresh.user_id == local.id
    assert refresh.performed_by == "system:saml_sync"
    assert {"email", "saml_subject_id"} <= set(refresh.details["changed"])


def test_locked_user_is_rejected_without_touching_lockout(seeded_roles, fixed_clock) -> None:
    _enable_saml()
    user = User.objects.create(
        username="frank",
        email="frank@example.com",
        saml_subject_id="idp|frank",
        auth_type=AuthType.SAML,
    )
    security = AccountSecurityService(clock=fixed_clock)
    for _ in range(5):
        security.record_failed_login(user.id, max_attempts=5)
    user.refresh_from_db()
    before = (user.failed_login_attempts, user.locked_until)

    pipeline = FederationPipeline(validator=StaticValidator(_identity()), clock=fixed_clock)
    result = pipeline.process_assertion("<Response/>")

    assert result.success is False
    assert result.error == "account_locked"
    user.refresh_from_db()
    assert (user.failed_login_attempts, user.locked_until) == before
    assert not RoleAssignment.objects.filter(user=user).exists()
    failure = AuditLogEntry.objects.get(action=AuditAction.SAML_SSO_LOGIN_FAILED)
    assert failure.user_id == user.id
    assert failure.details["error"] == "account_locked"

    fixed_clock.advance(timedelta(minutes=30))
    assert pipeline.process_assertion("<Response/>").success is True


def test_mapped_attributes_beat_standard_claims(seeded_roles, fixed_clock) -> None:
    _enable_saml(
        attribute_mapping={
            "first_name": "preferredGivenName",
            "username": "uid",
            "role": "grcRole",
        }
    )
    identity = _identity(
        groups=(),
        attributes={
            CLAIM_GIVEN_NAME: ["Francis"],
            "preferredGivenName": ["Frankie"],
            "uid": ["fo123"],
            "grcRole": ["risk_manager"],
        },
    )
    pipeline = FederationPipeline(validator=StaticValidator(identity), clock=fixed_clock)

    result = pipeline.process_assertion("<Response/>")

    assert result.success is True
    user = User.objects.get(email="frank@example.com")
    assert user.first_name == "Frankie"
    assert user.last_name == "Ocean"
    assert user.username == "fo123"
    assert user.role == "risk_manager"
    assert list(
        RoleAssignment.objects.filter(user=user).values_list("role__name", flat=True)
    ) == ["risk_manager"]


def test_username_is_made_unique(seeded_roles, fixed_clock) -> None:
    _enable_saml()
    User.objects.create(username="frank", email="someone-else@example.com")
    pipeline = FederationPipeline(validator=StaticValidator(_identity()), clock=fixed_clock)

    pipeline.process_assertion("<Response/>")

    assert User.objects.get(email="frank@example.com").username == "frank2"


def test_role_hint_on_login_updates_legacy_role(seeded_roles, fixed_clock) -> None:
    _enable_saml()
    user = User.objects.create(
        username="frank",
        email="frank@example.com",
        saml_subject_id="idp|frank",
        role="viewer",
    )
    pipeline = FederationPipeline(
        validator=StaticValidator(_identity(role="compliance_officer", groups=())),
        clock=fixed_clock,
    )

    pipeline.process_assertion("<Response/>")

    user.refresh_from_db()
    assert user.role == "compliance_officer"
    assert RoleAssignment.objects.filter(user=user, role__name="compliance_officer").exists()


def test_disabled_config_is_a_configuration_error(fixed_clock) -> None:
    _enable_saml(enabled=False)
    validator = StaticValidator(_identity())
    pipeline = FederationPipeline(validator=validator, clock=fixed_clock)

    result = pipeline.process_assertion("<Response/>")

    assert result.success is False
    assert result.error == "configuration_error"
    assert validator.calls == 0


def test_missing_config_is_a_configuration_error(fixed_clock) -> None:
    pipeline = FederationPipeline(validator=StaticValidator(_identity()), clock=fixed_clock)

    assert pipeline.process_assertion("<Response/>").error == "configuration_error"


def test_bad_signature_is_rejected(fixed_clock, caplog) -> None:
    _enable_saml()
    pipeline = FederationPipeline(validator=RejectingValidator(), clock=fixed_clock)

    with caplog.at_level("WARNING", logger="grc.federation"):
        result = pipeline.process_assertion("<Response/>")

    assert result.success is False
    assert result.error == "invalid_signature"
    assert not User.objects.exists()
    assert any("SECURITY" in record.getMessage() for record in caplog.records)
    failure = AuditLogEntry.objects.get(action=AuditAction.SAML_SSO_LOGIN_FAILED)
    assert failure.user_id is None


def test_unknown_user_without_auto_provision(fixed_clock) -> None:
    _enable_saml(auto_provision=False)
    pipeline = FederationPipeline(validator=StaticValidator(_identity()), clock=fixed_clock)

    result = pipeline.process_assertion("<Response/>")

    assert result.success is False
    assert result.error == "user_not_found"
    assert not User.objects.exists()


def test_inactive_user_is_rejected(fixed_clock) -> None:
    _enable_saml()
    User.objects.create(username="frank", email="frank@example.com", is_active=False)
    pipeline = FederationPipeline(validator=StaticValidator(_identity()), clock=fixed_clock)

    assert pipeline.process_assertion("<Response/>").error == "account_disabled"


def test_unmapped_groups_and_missing_roles_are_ignored(fixed_clock) -> None:
    _enable_saml(default_role="auditor")
    pipeline = FederationPipeline(
        validator=StaticValidator(_identity(groups=("Contractors", "ARIA5-Viewers"))),
        clock=fixed_clock,
    )

    result = pipeline.process_assertion("<Response/>")

    assert result.success is True
    user = User.objects.get(email="frank@example.com")
    assert user.role == "auditor"
    assert not RoleAssignment.objects.filter(user=user).exists()



def test_email_owned_by_another_account_is_a_failed_login(seeded_roles, fixed_clock) -> None:
    _enable_saml()
    bound = User.objects.create(
        username="frank",
        email="old@example.com",
        saml_subject_id="idp|frank",
        auth_type=AuthType.SAML,
    )
    other = User.objects.create(username="frank.local", email="frank@example.com")
    pipeline = FederationPipeline(validator=StaticValidator(_identity()), clock=fixed_clock)

    result = pipeline.process_assertion("<Response/>")

    assert result.success is False
    assert result.error == "identity_conflict"
    bound.refresh_from_db()
    other.refresh_from_db()
    assert bound.email == "old@example.com"
    assert other.saml_subject_id is None
    assert not RoleAssignment.objects.filter(user=bound).exists()
    failure = AuditLogEntry.objects.get(action=AuditAction.SAML_SSO_LOGIN_FAILED)
    assert failure.user_id == bound.id
    assert failure.details["error"] == "identity_conflict"
    assert not AuditLogEntry.objects.filter(action=AuditAction.SAML_USER_UPDATED).exists()


def test_database_failure_while_provisioning(seeded_roles, fixed_clock, monkeypatch) -> None:
    _enable_saml()

    def refuse_create(**kwargs):
        raise DatabaseError("disk I/O error")

    monkeypatch.setattr(User.objects, "create", refuse_create)
    pipeline = FederationPipeline(validator=StaticValidator(_identity()), clock=fixed_clock)

    result = pipeline.process_assertion("<Response/>")

    assert result.success is False
    assert result.error == "provisioning_failed"
    assert not User.objects.exists()
    assert not AuditLogEntry.objects.filter(action=AuditAction.SAML_USER_PROVISIONED).exists()
    failure = AuditLogEntry.objects.get(action=AuditAction.SAML_SSO_LOGIN_FAILED)
    assert failure.user_id is None
    assert failure.details["error"] == "provisioning_failed"
    assert failure.details["email"] == "frank@example.com"


def test_storage_failure_is_audited_and_reraised(seeded_roles, fixed_clock, monkeypatch) -> None:
    _enable_saml()
    pipeline = FederationPipeline(validator=StaticValidator(_identity()), clock=fixed_clock)

    def unavailable(*args, **kwargs):
        raise DatabaseError("database is locked")

    monkeypatch.setattr(User.objects, "filter", unavailable)

    with pytest.raises(StorageError):
        pipeline.process_assertion("<Response/>")

    failure = AuditLogEntry.objects.get(action=AuditAction.SAML_SSO_LOGIN_FAILED)
    assert failure.details["error"] == "storage_error"
    assert failure.details["subject_id"] == "idp|frank"


def test_login_revokes_roles_for_groups_no_longer_asserted(seeded_roles, fixed_clock, settings) -> None:
    settings.GRC_ACCESS = {"SAML_REVOKE_UNLISTED_GROUP_ROLES": True}
    _enable_saml()
    FederationPipeline(
        validator=StaticValidator(_identity()),
        clock=fixed_clock,
    ).process_assertion("<Response/>")
    user = User.objects.get(email="frank@example.com")
    manual = create_role(
        name="board_observer",
        permissions={"reports": {"read": True}},
        created_by=ADMIN,
    )
    assign_role(user_id=user.id, role_id=manual["role_id"], assigned_by=ADMIN)

    pipeline = FederationPipeline(
        validator=StaticValidator(
            _identity(groups=("ARIA5-Risk-Managers",), role="viewer")
        ),
        clock=fixed_clock,
    )
    result = pipeline.process_assertion("<Response/>")

    assert result.success is True
    assert set(
        RoleAssignment.objects.filter(user=user).values_list("role__name", flat=True)
    ) == {"viewer", "risk_manager", "board_observer"}
    removal = AuditLogEntry.objects.get(action=AuditAction.ROLE_REMOVED)
    assert removal.performed_by == "system:saml_sync"
    assert removal.details["role_id"] == Role.objects.get(name="admin").id
