from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="SAMLConfig",
            fields=[
                ("id", models.PositiveSmallIntegerField(default=1, primary_key=True, serialize=False)),
                ("enabled", models.BooleanField(default=False)),
                ("idp_sso_url", models.URLField(blank=True, default="", max_length=500)),
                ("idp_entity_id", models.CharField(blank=True, default="", max_length=500)),
                ("idp_metadata_url", models.URLField(blank=True, default="", max_length=500)),
                ("idp_x509_cert", models.TextField(blank=True, default="")),
                ("sp_entity_id", models.CharField(blank=True, default="", max_length=500)),
                ("sp_acs_url", models.URLField(blank=True, default="", max_length=500)),
                ("sp_x509_cert", models.TextField(blank=True, default="")),
                ("sp_private_key", models.TextField(blank=True, default="")),
                ("auto_provision", models.BooleanField(default=True)),
                ("require_signed_assertions", models.BooleanField(default=True)),
                ("enforce_sso", models.BooleanField(default=False)),
                ("default_role", models.CharField(default="viewer", max_length=100)),
                ("attribute_mapping", models.JSONField(blank=True, default=dict)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "grc_saml_config",
            },
        ),
    ]
