# utils/activity.py
import logging

from django.db import DatabaseError

from ..models import AdminActivity, UserRole

logger = logging.getLogger(__name__)

ACTION_LABELS = {
    "role_updated": "Role updated",
    "listing_moderation": "Listing moderated",
    "listing_deleted": "Listing deleted",
    "category_created": "Category created",
    "category_updated": "Category updated",
    "category_deleted": "Category deleted",
    "user_deleted": "User deleted",
}


def _actor_is_privileged(actor):
    if not actor or not actor.is_authenticated:
        return False
    return UserRole.objects.filter(
        user_id=actor.id, role__in=UserRole.PRIVILEGED_ROLES
    ).exists()


def log_admin_activity(actor, action, target_type, target_id=None, details=None):
    """
    Append an audit record for `actor`'s action.

    Non-privileged actors are ignored. A failed insert is logged and
    swallowed so the action that triggered it still reports success.
    """
    if not _actor_is_privileged(actor):
        return None

    try:
        return AdminActivity.objects.create(
            admin=actor,
            action=action,
            target_type=target_type,
            target_id=str(target_id) if target_id is not None else None,
            details=details,
        )
    except DatabaseError as e:
        logger.error(f"Error logging admin activity {action}: {str(e)}", exc_info=True)
        return None


def recent_activities(limit=100):
    return AdminActivity.objects.select_related("admin").order_by("-created_at", "-id")[:limit]


def serialize_activity(activity):
    admin_name = None
    if activity.admin:
        profile = getattr(activity.admin, "profile", None)
        admin_name = (profile.full_name if profile else None) or activity.admin.username
    return {
        "id": activity.id,
        "action": activity.action,
        "action_label": ACTION_LABELS.get(activity.action, activity.action),
        "target_type": activity.target_type,
        "target_id": activity.target_id,
        "details": activity.details,
        "admin_id": activity.admin_id,
        "admin_name": admin_name,
        "created_at": activity.created_at.isoformat(),
    }
