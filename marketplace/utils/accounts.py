# utils/accounts.py
import logging

from django.contrib.auth.models import User
from django.db import DatabaseError
from django.utils import timezone

from ..models import Listing, Profile, SavedListing, UserRole
from .activity import log_admin_activity

logger = logging.getLogger(__name__)


class UserDeletionError(Exception):
    pass


def _cleanup_step(label, queryset, user_id):
    try:
        deleted, _ = queryset.delete()
        logger.info(f"Deleted {deleted} {label} row(s) for user {user_id}")
    except DatabaseError as e:
        # Keep going; the identity delete below is the only hard failure
        logger.error(f"Error deleting {label} for user {user_id}: {str(e)}", exc_info=True)


def delete_user_account(user_id, actor=None):
    """
    Remove a user and everything they own, in order:
    saved listings, listings, role, profile, then the account itself.

    The steps are not wrapped in a transaction. A failed cleanup step is
    logged and skipped; a failed account delete raises UserDeletionError
    and leaves the earlier deletions in place.
    """
    try:
        user = User.objects.filter(pk=user_id).first()
    except (TypeError, ValueError):
        user = None
    if user is None:
        raise UserDeletionError("User not found")

    actor_id = actor.id if actor is not None else None
    logger.info(f"Admin {actor_id} is deleting user {user_id}")

    _cleanup_step("saved listings", SavedListing.objects.filter(user_id=user.id), user.id)
    _cleanup_step("listings", Listing.objects.filter(owner_id=user.id), user.id)
    _cleanup_step("roles", UserRole.objects.filter(user_id=user.id), user.id)
    _cleanup_step("profile", Profile.objects.filter(user_id=user.id), user.id)

    try:
        user.delete()
    except DatabaseError as e:
        logger.error(f"Error deleting account {user_id}: {str(e)}", exc_info=True)
        raise UserDeletionError("Failed to delete user from authentication system") from e

    log_admin_activity(
        actor,
        "user_deleted",
        "user",
        user_id,
        {"deleted_at": timezone.now().isoformat()},
    )
    logger.info(f"Successfully deleted user {user_id}")
