# utils/roles.py
import logging

from django.core.exceptions import PermissionDenied, ValidationError

from ..models import UserRole
from .activity import log_admin_activity

logger = logging.getLogger(__name__)


def get_user_role(user):
    """Role name for `user`; anonymous users and users without a row are "user"."""
    if not user or not user.is_authenticated:
        return UserRole.Role.USER
    role = UserRole.objects.filter(user_id=user.id).values_list("role", flat=True).first()
    return role or UserRole.Role.USER


def is_privileged(user):
    return get_user_role(user) in UserRole.PRIVILEGED_ROLES


def is_admin(user):
    return get_user_role(user) == UserRole.Role.ADMIN


def set_user_role(user, role, actor):
    """
    Replace `user`'s role wholesale.

    No hierarchy checks beyond the actor being privileged: an admin may
    demote themselves or the last remaining admin.
    """
    if role not in UserRole.Role.values:
        raise ValidationError(f"Unknown role: {role}")
    if not is_privileged(actor):
        raise PermissionDenied("Admin access required")

    user_role, created = UserRole.objects.update_or_create(
        user=user, defaults={"role": role}
    )
    logger.info(
        f"User {actor.id} set role of user {user.id} to {role} ({'created' if created else 'replaced'})"
    )
    log_admin_activity(actor, "role_updated", "user", user.id, {"newRole": role})
    return user_role
