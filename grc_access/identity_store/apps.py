"""
GRC Access Identity Store - App Configuration
=============================================
Persistent identity primitives: user, role, role assignment.
"""

from django.apps import AppConfig


class GrcIdentityStoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "grc_access.identity_store"
    label = "grc_identity_store"
    verbose_name = "GRC Identity Store"
