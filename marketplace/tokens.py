from django.conf import settings
from django.contrib.auth.models import User
from django.core import signing

TOKEN_SALT = "marketplace.api-token"


def issue_api_token(user):
    return signing.dumps({"uid": user.pk}, salt=TOKEN_SALT)


def user_from_bearer(header, max_age=None):
    """
    Resolve an `Authorization: Bearer <token>` header to an active User.

    Returns None for a missing, malformed, tampered or expired token.
    """
    if not header or not header.startswith("Bearer "):
        return None
    token = header[len("Bearer "):].strip()
    if max_age is None:
        max_age = getattr(settings, "API_TOKEN_MAX_AGE", 3600)
    try:
        payload = signing.loads(token, salt=TOKEN_SALT, max_age=max_age)
    except signing.BadSignature:
        return None
    return User.objects.filter(pk=payload.get("uid"), is_active=True).first()
