# utils/categories.py
import logging
import re

from django.core.exceptions import PermissionDenied, ValidationError
from django.db.models import ProtectedError

from ..models import SLUG_PATTERN, Category, Listing
from .activity import log_admin_activity
from .roles import is_privileged

logger = logging.getLogger(__name__)

SLUG_MAX_LENGTH = 50


def validate_category_slug(slug):
    return bool(slug) and len(slug) <= SLUG_MAX_LENGTH and re.match(SLUG_PATTERN, slug) is not None


def can_delete_category(category):
    return not Listing.objects.filter(category=category).exists()


def save_category(form, actor):
    """Persist a bound, valid CategoryForm and audit it as created/updated."""
    if not is_privileged(actor):
        raise PermissionDenied("Moderator or admin access required")

    creating = form.instance.pk is None
    category = form.save()
    action = "category_created" if creating else "category_updated"
    log_admin_activity(
        actor,
        action,
        "category",
        None if creating else category.id,
        {
            "name": category.name,
            "slug": category.slug,
            "description": category.description or "",
        },
    )
    logger.info(f"Category {category.slug} {action.split('_')[1]} by user {actor.id}")
    return category


def delete_category(category, actor):
    """Delete `category` unless a listing still references it."""
    if not is_privileged(actor):
        raise PermissionDenied("Moderator or admin access required")
    if not can_delete_category(category):
        raise ValidationError(
            "Category cannot be deleted while listings still reference it.",
            code="category_in_use",
        )

    category_id = category.id
    try:
        category.delete()
    except ProtectedError as e:
        # a listing was attached after the check above
        raise ValidationError(
            "Category cannot be deleted while listings still reference it.",
            code="category_in_use",
        ) from e
    log_admin_activity(actor, "category_deleted", "category", category_id)
    logger.info(f"Category {category_id} deleted by user {actor.id}")
