import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="ArchiveConfiguration",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "archive_web_ui",
                    models.URLField(
                        blank=True,
                        default="",
                        help_text="Base URL of the archive web interface",
                        max_length=2048,
                    ),
                ),
                (
                    "api_token",
                    models.TextField(
                        blank=True, default="", help_text="Archive API token"
                    ),
                ),
                (
                    "customer_guid",
                    models.CharField(blank=True, default="", max_length=255),
                ),
                (
                    "s3_access_key_id",
                    models.CharField(blank=True, default="", max_length=255),
                ),
                (
                    "s3_secret_access_key",
                    models.CharField(blank=True, default="", max_length=255),
                ),
                ("s3_region", models.CharField(default="us-east-1", max_length=64)),
                ("created", models.DateTimeField(auto_now_add=True)),
                ("modified", models.DateTimeField(auto_now=True)),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="archive_configuration",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
        ),
    ]
