# utils/listings.py
import logging

from django.conf import settings
from django.core.exceptions import PermissionDenied, ValidationError
from django.core.files.storage import default_storage
from django.db import IntegrityError, transaction
from django.db.models import Q

from ..models import Category, Listing, ListingImage, Profile, SavedListing
from .activity import log_admin_activity
from .uploads import validate_image_upload

logger = logging.getLogger(__name__)


def max_listing_images():
    return getattr(settings, "MAX_LISTING_IMAGES", 5)


def _require_login(user, action):
    if not user or not user.is_authenticated:
        raise PermissionDenied(f"You must be logged in to {action}.")


def _validate_images(images, existing=0):
    """Check count and every file before anything is written."""
    if existing + len(images) > max_listing_images():
        raise ValidationError(f"You can upload a maximum of {max_listing_images()} images.")
    for image in images:
        validate_image_upload(image)


# Categories

def get_categories():
    return Category.objects.order_by("name")


# Listings

def get_listings(category_id=None):
    """Public listings (active and approved), newest first."""
    qs = Listing.objects.public().select_related("category").prefetch_related("images")
    if category_id:
        qs = qs.filter(category_id=category_id)
    return qs.order_by("-created_at", "-id")


def get_listing(listing_id):
    return (
        Listing.objects.select_related("category", "owner")
        .prefetch_related("images")
        .filter(id=listing_id)
        .first()
    )


def get_user_listings(user):
    """All of `user`'s listings regardless of status or moderation."""
    return Listing.objects.owned_by(user).prefetch_related("images").order_by("-created_at", "-id")


def search_listings(query):
    query = (query or "").strip()
    if not query:
        return Listing.objects.none()
    return get_listings().filter(
        Q(title__icontains=query) | Q(description__icontains=query) | Q(location__icontains=query)
    )


def create_listing(user, form, images=()):
    """
    Create a listing from a valid ListingForm plus up to five images.

    New listings start as pending moderation, so they are hidden from the
    public query until approved.
    """
    _require_login(user, "create a listing")
    images = list(images)
    _validate_images(images)

    with transaction.atomic():
        listing = form.save(commit=False)
        listing.owner = user
        listing.moderation_status = Listing.ModerationStatus.PENDING
        listing.save()
        for index, image in enumerate(images):
            ListingImage.objects.create(listing=listing, image=image, order=index)

    logger.info(f"User {user.id} created listing {listing.id} with {len(images)} image(s)")
    return listing


def update_listing(listing, user, form, new_images=(), removed_image_ids=()):
    if not listing.can_edit(user):
        raise PermissionDenied("You do not have permission to edit this listing.")

    new_images = list(new_images)
    remaining = listing.images.exclude(id__in=list(removed_image_ids))
    _validate_images(new_images, existing=remaining.count())

    with transaction.atomic():
        listing = form.save()
        if removed_image_ids:
            listing.images.filter(id__in=list(removed_image_ids)).delete()
        last = remaining.order_by("-order").values_list("order", flat=True).first()
        start = 0 if last is None else last + 1
        for offset, image in enumerate(new_images):
            ListingImage.objects.create(listing=listing, image=image, order=start + offset)

    logger.info(f"User {user.id} updated listing {listing.id}")
    return listing


def delete_listing(listing, user):
    if not listing.can_edit(user):
        raise PermissionDenied("You do not have permission to delete this listing.")

    listing_id = listing.id
    owner_id = listing.owner_id
    listing.delete()
    logger.info(f"User {user.id} deleted listing {listing_id}")
    if owner_id != user.id:
        log_admin_activity(user, "listing_deleted", "listing", listing_id)


# Saved listings

def get_saved_listings(user):
    """Listings `user` bookmarked, most recently saved first."""
    return [
        saved.listing
        for saved in SavedListing.objects.filter(user=user)
        .select_related("listing", "listing__category")
        .prefetch_related("listing__images")
        .order_by("-created_at", "-id")
    ]


def save_listing(user, listing):
    """Bookmark `listing`; saving twice leaves a single row."""
    _require_login(user, "save a listing")
    try:
        with transaction.atomic():
            saved, created = SavedListing.objects.get_or_create(user=user, listing=listing)
    except IntegrityError:
        # Lost a race against a concurrent save of the same pair
        saved, created = SavedListing.objects.get(user=user, listing=listing), False
    return saved, created


def unsave_listing(user, listing):
    _require_login(user, "unsave a listing")
    deleted, _ = SavedListing.objects.filter(user=user, listing=listing).delete()
    return deleted > 0


def is_listing_saved(user, listing):
    if not user or not user.is_authenticated:
        return False
    return SavedListing.objects.filter(user=user, listing=listing).exists()


# Profiles

def get_profile(user):
    return Profile.objects.filter(user=user).first()


def update_profile(user, form, avatar=None):
    """Upsert `user`'s profile from a valid ProfileForm."""
    _require_login(user, "edit your profile")
    if avatar is not None:
        validate_image_upload(avatar)

    defaults = dict(form.cleaned_data)
    if avatar is not None:
        defaults["avatar"] = avatar

    previous_avatar = Profile.objects.filter(user=user).values_list("avatar", flat=True).first()
    profile, created = Profile.objects.update_or_create(user=user, defaults=defaults)
    if avatar is not None and previous_avatar and previous_avatar != profile.avatar.name:
        default_storage.delete(previous_avatar)
    logger.info(f"Profile for user {user.id} {'created' if created else 'updated'}")
    return profile


def serialize_listing(listing, user=None):
    data = {
        "id": listing.id,
        "title": listing.title,
        "description": listing.description,
        "price": str(listing.price),
        "currency": listing.currency,
        "location": listing.location,
        "status": listing.status,
        "moderation_status": listing.moderation_status,
        "user_id": listing.owner_id,
        "category_id": listing.category_id,
        "category": (
            {"id": listing.category.id, "name": listing.category.name, "slug": listing.category.slug}
            if listing.category
            else None
        ),
        "images": [image.image.url for image in listing.images.all()],
        "created_at": listing.created_at.isoformat(),
        "updated_at": listing.updated_at.isoformat(),
    }
    if user is not None:
        data["can_edit"] = listing.can_edit(user)
        data["is_saved"] = is_listing_saved(user, listing)
    return data


def serialize_profile(profile):
    return {
        "user_id": profile.user_id,
        "full_name": profile.full_name,
        "phone": profile.phone,
        "bio": profile.bio,
        "avatar_url": profile.avatar.url if profile.avatar else None,
        "created_at": profile.created_at.isoformat(),
        "updated_at": profile.updated_at.isoformat(),
    }
