import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Role",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100, unique=True)),
                ("description", models.TextField(blank=True, default="")),
                ("permissions", models.JSONField(blank=True, default=dict)),
                ("is_system_role", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "grc_roles",
                "ordering": ["-is_system_role", "name", "id"],
            },
        ),
        migrations.CreateModel(
            name="User",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("username", models.CharField(max_length=150, unique=True)),
                ("email", models.EmailField(max_length=254, unique=True)),
                ("first_name", models.CharField(blank=True, default="", max_length=150)),
                ("last_name", models.CharField(blank=True, default="", max_length=150)),
                ("password_hash", models.CharField(blank=True, default="", max_length=255)),
                (
                    "auth_type",
                    models.CharField(
                        choices=[("local", "Local"), ("saml", "SAML")],
                        default="local",
                        max_length=10,
                    ),
                ),
                ("saml_subject_id", models.CharField(blank=True, max_length=255, null=True, unique=True)),
                ("department", models.CharField(blank=True, max_length=150, null=True)),
                ("role", models.CharField(blank=True, default="", max_length=100)),
                ("permissions", models.JSONField(blank=True, default=dict)),
                ("is_active", models.BooleanField(default=True)),
                ("failed_login_attempts", models.PositiveIntegerField(default=0)),
                ("locked_until", models.DateTimeField(blank=True, null=True)),
                ("last_login", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "grc_users",
                "ordering": ["id"],
                "indexes": [
                    models.Index(fields=["auth_type"], name="idx_user_auth_type"),
                    models.Index(fields=["locked_until"], name="idx_user_locked_until"),
                ],
            },
        ),
        migrations.CreateModel(
            name="RoleAssignment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("assigned_by", models.CharField(max_length=255)),
                (
                    "assigned_by_type",
                    models.CharField(
                        choices=[("HUMAN", "Human"), ("SYSTEM", "System")],
                        max_length=20,
                    ),
                ),
                ("assigned_at", models.DateTimeField()),
                ("expires_at", models.DateTimeField(blank=True, null=True)),
                (
                    "role",
                    models.ForeignKey(
                        db_column="role_id",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="assignments",
                        to="grc_identity_store.role",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        db_column="user_id",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="role_assignments",
                        to="grc_identity_store.user",
                    ),
                ),
            ],
            options={
                "db_table": "grc_user_roles",
                "ordering": ["user_id", "assigned_at", "id"],
                "indexes": [
                    models.Index(fields=["user", "expires_at"], name="idx_user_role_user_expiry"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("user", "role"), name="uq_user_role"),
                ],
            },
        ),
    ]
