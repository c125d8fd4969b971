# marketplace/views.py
import json
import logging
from functools import wraps

from django.conf import settings
from django.contrib.auth import login, logout
from django.contrib.auth.models import User
from django.core.exceptions import PermissionDenied, ValidationError
from django.db import DatabaseError, transaction
from django.http import HttpResponse, JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from .forms import (
    CategoryForm,
    ListingForm,
    LoginForm,
    ModerationForm,
    ProfileForm,
    RoleForm,
    SignupForm,
)
from .models import Category, Listing, Profile
from .tokens import issue_api_token, user_from_bearer
from .utils.accounts import UserDeletionError, delete_user_account
from .utils.activity import recent_activities, serialize_activity
from .utils.categories import delete_category, save_category
from .utils.listings import (
    create_listing,
    delete_listing,
    get_categories,
    get_listing,
    get_listings,
    get_profile,
    get_saved_listings,
    get_user_listings,
    is_listing_saved,
    save_listing,
    search_listings,
    serialize_listing,
    serialize_profile,
    unsave_listing,
    update_listing,
    update_profile,
)
from .utils.moderation import (
    admin_delete_listing,
    admin_listings,
    admin_stats,
    admin_users,
    serialize_admin_listing,
    set_moderation_status,
)
from .utils.roles import get_user_role, is_admin, is_privileged, set_user_role
from .utils.uploads import upload_image

logger = logging.getLogger(__name__)

OPERATION_FAILED = "Operation failed. Please try again."


def _error(message, status=400):
    return JsonResponse({"success": False, "error": message}, status=status)


def _form_errors(form, status=400):
    errors = {
        field: [e["message"] for e in field_errors]
        for field, field_errors in form.errors.get_json_data().items()
    }
    return JsonResponse({"success": False, "errors": errors}, status=status)


def _request_data(request):
    """POST form data, or the decoded body for JSON requests."""
    if request.content_type == "application/json":
        try:
            return json.loads(request.body or b"{}")
        except ValueError:
            return {}
    return request.POST


def api_login_required(view_func):
    """login_required for the JSON API: 401 payload instead of a redirect."""

    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return _error("Authentication required", status=401)
        return view_func(request, *args, **kwargs)

    return wrapper


def privileged_required(view_func):
    """Moderator/admin gate for the admin API; JSON 401/403 instead of redirects."""

    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return _error("Authentication required", status=401)
        if not is_privileged(request.user):
            return _error("Moderator or admin access required", status=403)
        return view_func(request, *args, **kwargs)

    return wrapper


def _serialize_user(user):
    profile = get_profile(user)
    return {
        "id": user.id,
        "email": user.email,
        "full_name": profile.full_name if profile else None,
        "role": get_user_role(user),
    }


# Accounts

@require_POST
def signup_view(request):
    form = SignupForm(_request_data(request))
    if not form.is_valid():
        return _form_errors(form)

    cd = form.cleaned_data
    try:
        with transaction.atomic():
            user = User.objects.create_user(
                username=cd["email"], email=cd["email"], password=cd["password"]
            )
            Profile.objects.create(user=user, full_name=cd["full_name"])
    except DatabaseError as e:
        logger.error(f"Error during signup for {cd['email']}: {str(e)}", exc_info=True)
        return _error(OPERATION_FAILED)

    login(request, user)
    logger.info(f"New account {user.id} registered")
    return JsonResponse({"success": True, "user": _serialize_user(user)}, status=201)


@require_POST
def login_view(request):
    form = LoginForm(_request_data(request))
    if not form.is_valid():
        return _form_errors(form)

    login(request, form.user)
    return JsonResponse(
        {
            "success": True,
            "user": _serialize_user(form.user),
            "token": issue_api_token(form.user),
        }
    )


@require_POST
def logout_view(request):
    logout(request)
    return JsonResponse({"success": True})


# Public catalogue

@require_GET
def categories_view(request):
    categories = [
        {"id": c.id, "name": c.name, "slug": c.slug, "description": c.description}
        for c in get_categories()
    ]
    return JsonResponse({"success": True, "categories": categories})


@require_GET
def listings_view(request):
    category_id = request.GET.get("category")
    if category_id and not category_id.isdigit():
        return _error("Invalid category")
    listings = [serialize_listing(listing) for listing in get_listings(category_id)]
    return JsonResponse({"success": True, "listings": listings})


@require_GET
def search_view(request):
    query = request.GET.get("q", "")
    listings = [serialize_listing(listing) for listing in search_listings(query)]
    return JsonResponse({"success": True, "query": query.strip(), "listings": listings})


@require_GET
def listing_detail(request, listing_id):
    listing = get_listing(listing_id)
    # Hidden listings are indistinguishable from missing ones
    if listing is None or not listing.can_view(request.user):
        return _error("Listing not found", status=404)

    data = serialize_listing(listing, request.user)
    profile = get_profile(listing.owner)
    data["seller"] = {
        "full_name": profile.full_name if profile else None,
        "phone": profile.phone if profile else None,
    }
    return JsonResponse({"success": True, "listing": data})


# Listings owned by the current user

@api_login_required
@require_POST
def create_listing_view(request):
    form = ListingForm(request.POST)
    if not form.is_valid():
        return _form_errors(form)

    try:
        listing = create_listing(request.user, form, request.FILES.getlist("images"))
    except ValidationError as e:
        return _error(" ".join(e.messages))
    except DatabaseError as e:
        logger.error(f"Error creating listing for user {request.user.id}: {str(e)}", exc_info=True)
        return _error(OPERATION_FAILED)

    return JsonResponse(
        {"success": True, "listing": serialize_listing(listing, request.user)}, status=201
    )


@api_login_required
@require_POST
def update_listing_view(request, listing_id):
    listing = get_object_or_404(Listing, id=listing_id)
    if not listing.can_edit(request.user):
        return _error("You do not have permission to edit this listing.", status=403)

    form = ListingForm(request.POST, instance=listing)
    if not form.is_valid():
        return _form_errors(form)

    removed = [i for i in request.POST.getlist("remove_images") if i.isdigit()]
    try:
        listing = update_listing(
            listing, request.user, form, request.FILES.getlist("images"), removed
        )
    except ValidationError as e:
        return _error(" ".join(e.messages))
    except DatabaseError as e:
        logger.error(f"Error updating listing {listing_id}: {str(e)}", exc_info=True)
        return _error(OPERATION_FAILED)

    return JsonResponse({"success": True, "listing": serialize_listing(listing, request.user)})


@api_login_required
@require_POST
def delete_listing_view(request, listing_id):
    listing = get_object_or_404(Listing, id=listing_id)
    try:
        delete_listing(listing, request.user)
    except PermissionDenied as e:
        return _error(str(e), status=403)
    return JsonResponse({"success": True})


@api_login_required
@require_GET
def my_listings(request):
    listings = [serialize_listing(listing) for listing in get_user_listings(request.user)]
    return JsonResponse({"success": True, "listings": listings})


# Saved listings

@api_login_required
@require_GET
def saved_listings(request):
    listings = [serialize_listing(listing) for listing in get_saved_listings(request.user)]
    return JsonResponse({"success": True, "listings": listings})


@api_login_required
@require_POST
def save_listing_view(request, listing_id):
    listing = get_object_or_404(Listing, id=listing_id)
    _, created = save_listing(request.user, listing)
    return JsonResponse({"success": True, "saved": True, "created": created})


@api_login_required
@require_POST
def unsave_listing_view(request, listing_id):
    listing = get_object_or_404(Listing, id=listing_id)
    unsave_listing(request.user, listing)
    return JsonResponse({"success": True, "saved": False})


@require_GET
def listing_saved_status(request, listing_id):
    listing = get_object_or_404(Listing, id=listing_id)
    return JsonResponse({"success": True, "saved": is_listing_saved(request.user, listing)})


# Profile and uploads

@api_login_required
@require_GET
def profile_view(request):
    profile = get_profile(request.user)
    return JsonResponse(
        {
            "success": True,
            "user": _serialize_user(request.user),
            "profile": serialize_profile(profile) if profile else None,
        }
    )


@api_login_required
@require_POST
def update_profile_view(request):
    form = ProfileForm(request.POST, instance=get_profile(request.user))
    if not form.is_valid():
        return _form_errors(form)

    try:
        profile = update_profile(request.user, form, request.FILES.get("avatar"))
    except ValidationError as e:
        return _error(" ".join(e.messages))
    except DatabaseError as e:
        logger.error(f"Error updating profile of user {request.user.id}: {str(e)}", exc_info=True)
        return _error(OPERATION_FAILED)

    return JsonResponse({"success": True, "profile": serialize_profile(profile)})


@api_login_required
@require_POST
def upload_image_view(request):
    file = request.FILES.get("file")
    if file is None:
        return _error("No file provided")
    try:
        url = upload_image(request.user, file, request.POST.get("bucket", "listing-images"))
    except ValidationError as e:
        return _error(" ".join(e.messages))
    return JsonResponse({"success": True, "url": url}, status=201)


# Admin dashboard

@privileged_required
@require_GET
def admin_stats_view(request):
    return JsonResponse({"success": True, "stats": admin_stats()})


@privileged_required
@require_GET
def admin_users_view(request):
    return JsonResponse({"success": True, "users": admin_users()})


@privileged_required
@require_POST
def admin_set_role(request, user_id):
    user = get_object_or_404(User, id=user_id)
    form = RoleForm(_request_data(request))
    if not form.is_valid():
        return _form_errors(form)

    user_role = set_user_role(user, form.cleaned_data["role"], request.user)
    return JsonResponse({"success": True, "user_id": user.id, "role": user_role.role})


@privileged_required
@require_GET
def admin_listings_view(request):
    listings = [serialize_admin_listing(listing) for listing in admin_listings()]
    return JsonResponse({"success": True, "listings": listings})


@privileged_required
@require_POST
def admin_moderate_listing(request, listing_id):
    listing = get_object_or_404(Listing, id=listing_id)
    form = ModerationForm(_request_data(request))
    if not form.is_valid():
        return _form_errors(form)

    listing = set_moderation_status(listing, form.cleaned_data["status"], request.user)
    return JsonResponse({"success": True, "listing": serialize_admin_listing(listing)})


@privileged_required
@require_POST
def admin_delete_listing_view(request, listing_id):
    listing = get_object_or_404(Listing, id=listing_id)
    admin_delete_listing(listing, request.user)
    return JsonResponse({"success": True})


@privileged_required
@require_http_methods(["GET", "POST"])
def admin_categories(request):
    if request.method == "POST":
        form = CategoryForm(_request_data(request))
        if not form.is_valid():
            return _form_errors(form)
        category = save_category(form, request.user)
        return JsonResponse({"success": True, "category_id": category.id}, status=201)

    categories = [
        {
            "id": c.id,
            "name": c.name,
            "slug": c.slug,
            "description": c.description,
            "can_be_deleted": c.can_be_deleted,
            "created_at": c.created_at.isoformat(),
        }
        for c in Category.objects.order_by("name")
    ]
    return JsonResponse({"success": True, "categories": categories})


@privileged_required
@require_POST
def admin_update_category(request, category_id):
    category = get_object_or_404(Category, id=category_id)
    form = CategoryForm(_request_data(request), instance=category)
    if not form.is_valid():
        return _form_errors(form)
    save_category(form, request.user)
    return JsonResponse({"success": True, "category_id": category.id})


@privileged_required
@require_POST
def admin_delete_category(request, category_id):
    category = get_object_or_404(Category, id=category_id)
    try:
        delete_category(category, request.user)
    except ValidationError as e:
        return _error(" ".join(e.messages))
    return JsonResponse({"success": True})


@privileged_required
@require_GET
def admin_activities(request):
    activities = [serialize_activity(a) for a in recent_activities()]
    return JsonResponse({"success": True, "activities": activities})


# Account deletion function (bearer-token API)

def _with_cors(response):
    response["Access-Control-Allow-Origin"] = getattr(settings, "CORS_ALLOW_ORIGIN", "*")
    response["Access-Control-Allow-Headers"] = "authorization, x-client-info, apikey, content-type"
    return response


@csrf_exempt
def delete_user_function(request):
    """
    POST {"userId": ...} with `Authorization: Bearer <token>` of an admin.

    Answers {"success": true, "message": ...} or 400 {"error": ...}.
    """
    if request.method == "OPTIONS":
        return _with_cors(HttpResponse())
    if request.method != "POST":
        return _with_cors(JsonResponse({"error": "Method not allowed"}, status=405))

    def fail(message):
        logger.error(f"Error in delete-user function: {message}")
        return _with_cors(JsonResponse({"error": message}, status=400))

    header = request.headers.get("Authorization")
    if not header:
        return fail("Missing authorization header")

    actor = user_from_bearer(header)
    if actor is None:
        return fail("Invalid authentication")
    if not is_admin(actor):
        return fail("Insufficient privileges")

    try:
        body = json.loads(request.body or b"{}")
    except ValueError:
        return fail("Invalid JSON body")
    user_id = body.get("userId") if isinstance(body, dict) else None
    if not user_id:
        return fail("User ID is required")

    try:
        delete_user_account(user_id, actor)
    except UserDeletionError as e:
        return fail(str(e))

    return _with_cors(JsonResponse({"success": True, "message": "User deleted successfully"}))
