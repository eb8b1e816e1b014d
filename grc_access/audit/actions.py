"""
GRC Access Audit - Action Tags
==============================
Canonical action strings written to AuditLogEntry.action.
"""


class AuditAction:
    ROLE_CREATED = "role_created"
    ROLE_UPDATED = "role_updated"
    ROLE_DELETED = "role_deleted"
    ROLE_ASSIGNED = "role_assigned"
    ROLE_REMOVED = "role_removed"
    USER_PERMISSIONS_UPDATED = "user_permissions_updated"

    USER_LOCKED = "user_locked"
    USER_UNLOCKED = "user_unlocked"

    SAML_CONFIG_UPDATED = "saml_config_updated"
    SAML_USER_PROVISIONED = "saml_user_provisioned"
    SAML_USER_UPDATED = "saml_user_updated"
    SAML_SSO_LOGIN_SUCCESS = "saml_sso_login_success"
    SAML_SSO_LOGIN_FAILED = "saml_sso_login_failed"
