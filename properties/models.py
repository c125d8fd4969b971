from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models


class PropertyQuerySet(models.QuerySet):
    def active(self):
        """Properties shown on the landing page, newest first."""
        return self.filter(status=Property.Status.ACTIVE).order_by("-created_at", "-id")


class Property(models.Model):
    class Type(models.TextChoices):
        RESIDENTIAL = "Residential", "Residential"
        COMMERCIAL = "Commercial", "Commercial"
        MIXED = "Mixed", "Mixed"

    class Documentation(models.TextChoices):
        REGISTERED = "Registered", "Registered"
        PENDING = "Pending", "Pending"

    class Position(models.TextChoices):
        CORNER = "Corner", "Corner"
        FRONT = "Front", "Front"
        MIDDLE = "Middle", "Middle"

    class Infrastructure(models.TextChoices):
        COMPLETE = "Complete", "Complete"
        PARTIAL = "Partial", "Partial"
        NONE = "None", "None"

    class VideoType(models.TextChoices):
        YOUTUBE = "youtube", "YouTube"
        UPLOAD = "upload", "Upload"

    class Status(models.TextChoices):
        ACTIVE = "active", "Active"
        INACTIVE = "inactive", "Inactive"

    title_pt = models.CharField(max_length=200, blank=True)
    title_de = models.CharField(max_length=200, blank=True)
    title_en = models.CharField(max_length=200, blank=True)
    description_pt = models.TextField(blank=True)
    description_de = models.TextField(blank=True)
    description_en = models.TextField(blank=True)

    size_m2 = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal("0"))])
    location = models.CharField(max_length=200)
    type = models.CharField(max_length=20, choices=Type.choices, default=Type.RESIDENTIAL)
    documentation = models.CharField(max_length=20, choices=Documentation.choices, blank=True)
    position = models.CharField(max_length=20, choices=Position.choices, blank=True)
    infrastructure = models.CharField(max_length=20, choices=Infrastructure.choices, blank=True)
    price = models.DecimalField(max_digits=14, decimal_places=2, validators=[MinValueValidator(Decimal("0"))])

    video_type = models.CharField(max_length=10, choices=VideoType.choices, blank=True)
    youtube_url = models.URLField(blank=True)
    video = models.FileField(upload_to="property-videos/", blank=True, null=True)

    status = models.CharField(max_length=10, choices=Status.choices, default=Status.ACTIVE)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = PropertyQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at", "-id"]
        verbose_name_plural = "Properties"

    def __str__(self):
        return self.title_pt or self.title_en or self.title_de or f"Property {self.pk}"
