# utils/uploads.py
import logging
import os
import secrets
import time

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.files.storage import default_storage
from django.utils.deconstruct import deconstructible

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/webp")
ALLOWED_EXTENSIONS = ("jpg", "jpeg", "png", "webp")
BUCKETS = ("listing-images", "avatars")


def max_upload_bytes():
    return getattr(settings, "MAX_UPLOAD_BYTES", 5 * 1024 * 1024)


def file_extension(name):
    _, ext = os.path.splitext(name or "")
    return ext.lstrip(".").lower()


def validate_image_upload(file):
    """
    Reject an upload before it touches storage.

    Checks, in order: size limit (inclusive), declared MIME type, file
    extension. Raises ValidationError with a user-facing message.
    """
    limit = max_upload_bytes()
    if file.size > limit:
        raise ValidationError(
            f"File size must be at most {limit // (1024 * 1024)}MB.", code="file_too_large"
        )

    content_type = (getattr(file, "content_type", None) or "").lower()
    if content_type not in ALLOWED_CONTENT_TYPES:
        raise ValidationError(
            "Only JPEG, PNG, and WebP images are allowed.", code="invalid_type"
        )

    if file_extension(file.name) not in ALLOWED_EXTENSIONS:
        raise ValidationError("Invalid file extension.", code="invalid_extension")

    return file


def storage_name(bucket, user_id, filename):
    ext = file_extension(filename)
    stamp = int(time.time() * 1000)
    return f"{bucket}/{user_id}/{stamp}-{secrets.token_hex(4)}.{ext}"


@deconstructible
class ImageUploadPath:
    """
    upload_to callable: <bucket>/<user_id>/<epoch_ms>-<random>.<ext>

    The original filename is discarded apart from its extension.
    """

    def __init__(self, bucket):
        self.bucket = bucket

    def __call__(self, instance, filename):
        user_id = getattr(instance, "user_id", None)
        if user_id is None and getattr(instance, "listing_id", None):
            user_id = instance.listing.owner_id
        return storage_name(self.bucket, user_id or "anonymous", filename)

    def __eq__(self, other):
        return isinstance(other, ImageUploadPath) and self.bucket == other.bucket


def upload_image(user, file, bucket="listing-images"):
    """Validate and store a standalone image; returns its public URL."""
    if not user or not user.is_authenticated:
        raise ValidationError("You must be logged in to upload images.")
    if bucket not in BUCKETS:
        raise ValidationError(f"Unknown storage bucket: {bucket}")

    validate_image_upload(file)

    name = default_storage.save(storage_name(bucket, user.id, file.name), file)
    logger.info(f"User {user.id} uploaded {name}")
    return default_storage.url(name)
