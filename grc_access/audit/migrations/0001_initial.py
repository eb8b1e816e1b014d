from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="AuditLogEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("user_id", models.BigIntegerField(blank=True, null=True)),
                ("action", models.CharField(max_length=64)),
                ("details", models.JSONField(default=dict)),
                ("performed_by", models.CharField(max_length=255)),
                (
                    "performed_by_type",
                    models.CharField(
                        choices=[("HUMAN", "Human"), ("SYSTEM", "System")],
                        max_length=20,
                    ),
                ),
                ("timestamp", models.DateTimeField()),
            ],
            options={
                "db_table": "grc_user_audit_log",
                "ordering": ["timestamp", "id"],
                "indexes": [
                    models.Index(fields=["user_id", "timestamp"], name="idx_audit_user_ts"),
                    models.Index(fields=["action", "timestamp"], name="idx_audit_action_ts"),
                ],
            },
        ),
    ]
