from decimal import Decimal

from django.conf import settings
from django.contrib.auth.models import User
from django.core.validators import MinLengthValidator, MinValueValidator, RegexValidator
from django.db import models

from .utils.uploads import ImageUploadPath


SLUG_PATTERN = r"^[a-z0-9-]+$"

slug_validator = RegexValidator(
    SLUG_PATTERN,
    "Slug may only contain lowercase letters, numbers and hyphens.",
)


class Profile(models.Model):
    # Signup creates it; accounts made elsewhere get one on first edit
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name="profile")

    full_name = models.CharField(max_length=100, validators=[MinLengthValidator(2)])
    phone = models.CharField(max_length=20, blank=True, default="")
    bio = models.TextField(max_length=500, blank=True, default="")
    avatar = models.ImageField(
        upload_to=ImageUploadPath("avatars"), blank=True, null=True
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.full_name or self.user.username} Profile"


class Category(models.Model):
    name = models.CharField(max_length=100, unique=True)
    slug = models.SlugField(max_length=50, unique=True, validators=[slug_validator])
    description = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "Categories"

    def __str__(self):
        return self.name

    @property
    def can_be_deleted(self):
        return not self.listings.exists()


class ListingQuerySet(models.QuerySet):
    def public(self):
        """Listings anyone may see: active and approved by a moderator."""
        return self.filter(
            status=Listing.Status.ACTIVE,
            moderation_status=Listing.ModerationStatus.APPROVED,
        )

    def owned_by(self, user):
        return self.filter(owner=user)


class Listing(models.Model):
    class Status(models.TextChoices):
        ACTIVE = "active", "Active"
        SOLD = "sold", "Sold"
        INACTIVE = "inactive", "Inactive"

    class ModerationStatus(models.TextChoices):
        PENDING = "pending", "Pending"
        APPROVED = "approved", "Approved"
        REJECTED = "rejected", "Rejected"

    class Currency(models.TextChoices):
        CHF = "CHF", "CHF"
        EUR = "EUR", "EUR"
        USD = "USD", "USD"

    title = models.CharField(max_length=120, validators=[MinLengthValidator(3)])
    description = models.TextField(validators=[MinLengthValidator(10)])
    price = models.DecimalField(
        default=Decimal("0.00"),
        decimal_places=2,
        max_digits=10,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    currency = models.CharField(max_length=3, choices=Currency.choices, default=Currency.CHF)
    location = models.CharField(max_length=100, validators=[MinLengthValidator(2)])
    category = models.ForeignKey(
        Category,
        on_delete=models.PROTECT,
        related_name="listings",
        null=True,
        blank=True,
    )
    owner = models.ForeignKey(User, on_delete=models.CASCADE, related_name="listings")

    status = models.CharField(max_length=10, choices=Status.choices, default=Status.ACTIVE)
    moderation_status = models.CharField(
        max_length=10,
        choices=ModerationStatus.choices,
        default=ModerationStatus.PENDING,
    )
    moderated_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="moderated_listings",
    )
    moderated_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ListingQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return self.title

    @property
    def is_public(self):
        return (
            self.status == self.Status.ACTIVE
            and self.moderation_status == self.ModerationStatus.APPROVED
        )

    @property
    def primary_image(self):
        """First image by display order, or None"""
        first_image = self.images.first()
        return first_image.image if first_image else None

    def can_edit(self, user):
        """Owners edit their own listings; admins edit any."""
        from .utils.roles import is_admin

        if not user or not user.is_authenticated:
            return False
        return self.owner_id == user.id or is_admin(user)

    def can_view(self, user):
        if self.is_public:
            return True
        if not user or not user.is_authenticated:
            return False
        from .utils.roles import is_privileged

        return self.owner_id == user.id or is_privileged(user)


class ListingImage(models.Model):
    """Up to MAX_LISTING_IMAGES images per listing, shown in `order`."""
    listing = models.ForeignKey(Listing, on_delete=models.CASCADE, related_name="images")
    image = models.ImageField(upload_to=ImageUploadPath("listing-images"))
    order = models.IntegerField(default=0, help_text="Order of image display (0 = primary)")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["order", "created_at"]
        verbose_name = "Listing Image"
        verbose_name_plural = "Listing Images"

    def __str__(self):
        return f"Image {self.order} for {self.listing.title}"


class SavedListing(models.Model):
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name="saved_listings")
    listing = models.ForeignKey(Listing, on_delete=models.CASCADE, related_name="saved_by")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ("user", "listing")
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"{self.user.username} saved {self.listing.title}"


class UserRole(models.Model):
    class Role(models.TextChoices):
        USER = "user", "User"
        MODERATOR = "moderator", "Moderator"
        ADMIN = "admin", "Admin"

    PRIVILEGED_ROLES = (Role.ADMIN, Role.MODERATOR)

    # One row per user; replaced wholesale on assignment
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name="role")
    role = models.CharField(max_length=10, choices=Role.choices, default=Role.USER)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.user.username}: {self.role}"

    @property
    def is_privileged(self):
        return self.role in self.PRIVILEGED_ROLES


class AdminActivity(models.Model):
    """Append-only audit record of an admin action."""

    admin = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="admin_activities",
    )
    action = models.CharField(max_length=50)
    target_type = models.CharField(max_length=20)
    target_id = models.CharField(max_length=64, blank=True, null=True)
    details = models.JSONField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        verbose_name_plural = "Admin Activities"
        indexes = [
            models.Index(fields=["action", "created_at"], name="activity_action_created_idx"),
            models.Index(fields=["target_type", "target_id"], name="activity_target_idx"),
        ]

    def __str__(self):
        return f"{self.action} on {self.target_type} {self.target_id or ''}".strip()

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Admin activities are immutable once recorded.")
        super().save(*args, **kwargs)
