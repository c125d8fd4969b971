# Generated manually for this repo

from decimal import Decimal

import django.core.validators
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Property",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title_pt", models.CharField(blank=True, max_length=200)),
                ("title_de", models.CharField(blank=True, max_length=200)),
                ("title_en", models.CharField(blank=True, max_length=200)),
                ("description_pt", models.TextField(blank=True)),
                ("description_de", models.TextField(blank=True)),
                ("description_en", models.TextField(blank=True)),
                (
                    "size_m2",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=10,
                        validators=[django.core.validators.MinValueValidator(Decimal("0"))],
                    ),
                ),
                ("location", models.CharField(max_length=200)),
                (
                    "type",
                    models.CharField(
                        choices=[("Residential", "Residential"), ("Commercial", "Commercial"), ("Mixed", "Mixed")],
                        default="Residential",
                        max_length=20,
                    ),
                ),
                (
                    "documentation",
                    models.CharField(
                        blank=True,
                        choices=[("Registered", "Registered"), ("Pending", "Pending")],
                        max_length=20,
                    ),
                ),
                (
                    "position",
                    models.CharField(
                        blank=True,
                        choices=[("Corner", "Corner"), ("Front", "Front"), ("Middle", "Middle")],
                        max_length=20,
                    ),
                ),
                (
                    "infrastructure",
                    models.CharField(
                        blank=True,
                        choices=[("Complete", "Complete"), ("Partial", "Partial"), ("None", "None")],
                        max_length=20,
                    ),
                ),
                (
                    "price",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=14,
                        validators=[django.core.validators.MinValueValidator(Decimal("0"))],
                    ),
                ),
                (
                    "video_type",
                    models.CharField(
                        blank=True,
                        choices=[("youtube", "YouTube"), ("upload", "Upload")],
                        max_length=10,
                    ),
                ),
                ("youtube_url", models.URLField(blank=True)),
                ("video", models.FileField(blank=True, null=True, upload_to="property-videos/")),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Active"), ("inactive", "Inactive")],
                        default="active",
                        max_length=10,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "verbose_name_plural": "Properties",
                "ordering": ["-created_at", "-id"],
            },
        ),
    ]
