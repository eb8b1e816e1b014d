"""
GRC Access Audit - App Configuration
====================================
Append-only audit trail for access-control mutations.
"""

from django.apps import AppConfig


class GrcAuditConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "grc_access.audit"
    label = "grc_audit"
    verbose_name = "GRC Access Audit"
