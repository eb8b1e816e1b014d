"""
GRC Access Identity Store - Relational Identity State
=====================================================
Users, roles, and role assignments. The user row is owned by the wider
platform; this core only reads and writes the fields listed here.
"""

from __future__ import annotations

from django.db import models


class AuthType(models.TextChoices):
    LOCAL = "local", "Local"
    SAML = "saml", "SAML"


class AssignedByType(models.TextChoices):
    HUMAN = "HUMAN", "Human"
    SYSTEM = "SYSTEM", "System"


class User(models.Model):
    username = models.CharField(max_length=150, unique=True)
    email = models.EmailField(max_length=254, unique=True)
    first_name = models.CharField(max_length=150, default="", blank=True)
    last_name = models.CharField(max_length=150, default="", blank=True)
    password_hash = models.CharField(max_length=255, default="", blank=True)
    auth_type = models.CharField(
        max_length=10,
        choices=AuthType.choices,
        default=AuthType.LOCAL,
    )
    saml_subject_id = models.CharField(
        max_length=255,
        unique=True,
        null=True,
        blank=True,
    )
    department = models.CharField(max_length=150, null=True, blank=True)
    role = models.CharField(max_length=100, default="", blank=True)
    permissions = models.JSONField(default=dict, blank=True)
    is_active = models.BooleanField(default=True)
    failed_login_attempts = models.PositiveIntegerField(default=0)
    locked_until = models.DateTimeField(null=True, blank=True)
    last_login = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "grc_users"
        ordering = ["id"]
        indexes = [
            models.Index(fields=["auth_type"], name="idx_user_auth_type"),
            models.Index(fields=["locked_until"], name="idx_user_locked_until"),
        ]

    def __str__(self) -> str:
        return f"{self.username} ({self.auth_type})"


class Role(models.Model):
    name = models.CharField(max_length=100, unique=True)
    description = models.TextField(default="", blank=True)
    permissions = models.JSONField(default=dict, blank=True)
    is_system_role = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "grc_roles"
        ordering = ["-is_system_role", "name", "id"]

    def __str__(self) -> str:
        return self.name


class RoleAssignment(models.Model):
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name="role_assignments",
        db_column="user_id",
    )
    role = models.ForeignKey(
        Role,
        on_delete=models.PROTECT,
        related_name="assignments",
        db_column="role_id",
    )
    assigned_by = models.CharField(max_length=255)
    assigned_by_type = models.CharField(
        max_length=20,
        choices=AssignedByType.choices,
    )
    assigned_at = models.DateTimeField()
    expires_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "grc_user_roles"
        ordering = ["user_id", "assigned_at", "id"]
        indexes = [
            models.Index(
                fields=["user", "expires_at"],
                name="idx_user_role_user_expiry",
            ),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "role"],
                name="uq_user_role",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.user_id}:{self.role_id}"
