"""
GRC Access Federation - SAML Configuration
==========================================
A single row (id = 1) holds the IdP/SP settings. It is edited at runtime
by administrators, so it lives in the database rather than in settings.
"""

from __future__ import annotations

from django.db import models

SAML_CONFIG_ID = 1


class SAMLConfig(models.Model):
    id = models.PositiveSmallIntegerField(primary_key=True, default=SAML_CONFIG_ID)
    enabled = models.BooleanField(default=False)
    idp_sso_url = models.URLField(max_length=500, default="", blank=True)
    idp_entity_id = models.CharField(max_length=500, default="", blank=True)
    idp_metadata_url = models.URLField(max_length=500, default="", blank=True)
    idp_x509_cert = models.TextField(default="", blank=True)
    sp_entity_id = models.CharField(max_length=500, default="", blank=True)
    sp_acs_url = models.URLField(max_length=500, default="", blank=True)
    sp_x509_cert = models.TextField(default="", blank=True)
    sp_private_key = models.TextField(default="", blank=True)
    auto_provision = models.BooleanField(default=True)
    require_signed_assertions = models.BooleanField(default=True)
    enforce_sso = models.BooleanField(default=False)
    default_role = models.CharField(max_length=100, default="viewer")
    attribute_mapping = models.JSONField(default=dict, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "grc_saml_config"

    def __str__(self) -> str:
        state = "enabled" if self.enabled else "disabled"
        return f"SAML config ({state})"
