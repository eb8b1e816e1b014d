"""
GRC Access Federation - App Configuration
=========================================
SAML 2.0 identity federation: singleton IdP/SP configuration and the
assertion -> local identity pipeline.
"""

from django.apps import AppConfig


class GrcFederationConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "grc_access.federation"
    label = "grc_federation"
    verbose_name = "GRC Identity Federation"
