"""
GRC Access Audit - Append-Only Audit Log
========================================
Rows are written once and never updated or deleted. The model and its
queryset refuse both, so no service can rewrite history by accident.
"""

from __future__ import annotations

from django.db import models


class ActorKind(models.TextChoices):
    HUMAN = "HUMAN", "Human"
    SYSTEM = "SYSTEM", "System"


class AuditLogImmutableError(Exception):
    """Raised on any attempt to rewrite or remove an audit entry."""


class AuditLogQuerySet(models.QuerySet):
    def update(self, **kwargs):
        raise AuditLogImmutableError("Audit log entries cannot be updated.")

    def delete(self):
        raise AuditLogImmutableError("Audit log entries cannot be deleted.")


class AuditLogEntry(models.Model):
    # Plain integer, not a ForeignKey: audit rows outlive the users they describe.
    user_id = models.BigIntegerField(null=True, blank=True)
    action = models.CharField(max_length=64)
    details = models.JSONField(default=dict)
    performed_by = models.CharField(max_length=255)
    performed_by_type = models.CharField(max_length=20, choices=ActorKind.choices)
    timestamp = models.DateTimeField()

    objects = AuditLogQuerySet.as_manager()

    class Meta:
        db_table = "grc_user_audit_log"
        ordering = ["timestamp", "id"]
        indexes = [
            models.Index(fields=["user_id", "timestamp"], name="idx_audit_user_ts"),
            models.Index(fields=["action", "timestamp"], name="idx_audit_action_ts"),
        ]

    def save(self, *args, **kwargs):
        if self.pk is not None and not kwargs.get("force_insert", False):
            raise AuditLogImmutableError("Audit log entries cannot be updated.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise AuditLogImmutableError("Audit log entries cannot be deleted.")

    def __str__(self) -> str:
        return f"{self.action}:{self.user_id}:{self.performed_by}"
