# utils/moderation.py
import logging

from django.contrib.auth.models import User
from django.core.exceptions import PermissionDenied, ValidationError
from django.utils import timezone

from ..models import Category, Listing, Profile
from .activity import log_admin_activity
from .roles import is_privileged

logger = logging.getLogger(__name__)


def set_moderation_status(listing, status, moderator):
    """
    Move `listing` to any moderation label.

    pending, approved and rejected are all reachable from each other; there
    is no terminal state. Stamps the moderator and time, then records a
    `listing_moderation` activity. Concurrent moderators: last write wins.
    """
    if status not in Listing.ModerationStatus.values:
        raise ValidationError(f"Invalid moderation status: {status}")
    if not is_privileged(moderator):
        raise PermissionDenied("Moderator or admin access required")

    previous = listing.moderation_status
    listing.moderation_status = status
    listing.moderated_by = moderator
    listing.moderated_at = timezone.now()
    listing.save(update_fields=["moderation_status", "moderated_by", "moderated_at", "updated_at"])

    logger.info(
        f"Listing {listing.id} moderation {previous} -> {status} by user {moderator.id}"
    )
    log_admin_activity(moderator, "listing_moderation", "listing", listing.id, {"status": status})
    return listing


def admin_delete_listing(listing, actor):
    if not is_privileged(actor):
        raise PermissionDenied("Moderator or admin access required")
    listing_id = listing.id
    listing.delete()
    logger.info(f"Listing {listing_id} deleted by user {actor.id}")
    log_admin_activity(actor, "listing_deleted", "listing", listing_id)


def admin_stats():
    return {
        "totalUsers": Profile.objects.count(),
        "totalListings": Listing.objects.count(),
        "activeListings": Listing.objects.filter(status=Listing.Status.ACTIVE).count(),
        "pendingListings": Listing.objects.filter(
            moderation_status=Listing.ModerationStatus.PENDING
        ).count(),
        "totalCategories": Category.objects.count(),
    }


def admin_users():
    """Every account, newest first, with its profile data and role."""
    users = User.objects.select_related("profile", "role").order_by("-date_joined", "-id")
    rows = []
    for user in users:
        profile = getattr(user, "profile", None)
        user_role = getattr(user, "role", None)
        rows.append(
            {
                "id": user.id,
                "email": user.email,
                "full_name": profile.full_name if profile else None,
                "phone": profile.phone if profile else None,
                "created_at": user.date_joined.isoformat(),
                "role": user_role.role if user_role else "user",
            }
        )
    return rows


def admin_listings():
    return Listing.objects.select_related("owner", "owner__profile", "category").order_by(
        "-created_at", "-id"
    )


def serialize_admin_listing(listing):
    profile = getattr(listing.owner, "profile", None)
    return {
        "id": listing.id,
        "title": listing.title,
        "description": listing.description,
        "price": str(listing.price),
        "status": listing.status,
        "moderation_status": listing.moderation_status,
        "moderated_by": listing.moderated_by_id,
        "moderated_at": listing.moderated_at.isoformat() if listing.moderated_at else None,
        "created_at": listing.created_at.isoformat(),
        "user_id": listing.owner_id,
        "category_id": listing.category_id,
        "user": {
            "full_name": profile.full_name if profile else None,
            "email": listing.owner.email,
        },
        "category": {"name": listing.category.name} if listing.category else None,
    }

