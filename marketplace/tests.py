import json
import shutil
import tempfile
from datetime import timedelta
from decimal import Decimal
from io import BytesIO, StringIO
from unittest import mock

from django.contrib.auth.models import User
from django.core.exceptions import PermissionDenied, ValidationError
from django.core.files.storage import default_storage
from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.management import CommandError, call_command
from django.db import DatabaseError
from django.db.models import QuerySet
from django.test import Client, TestCase, override_settings
from django.urls import reverse
from django.utils import timezone
from PIL import Image

from .forms import CategoryForm, ListingForm, SignupForm
from .models import (
    AdminActivity,
    Category,
    Listing,
    ListingImage,
    Profile,
    SavedListing,
    UserRole,
)
from .tokens import issue_api_token, user_from_bearer
from .utils.accounts import UserDeletionError, delete_user_account
from .utils.activity import log_admin_activity
from .utils.categories import delete_category, save_category, validate_category_slug
from .utils.listings import (
    get_listings,
    get_saved_listings,
    get_user_listings,
    is_listing_saved,
    save_listing,
    search_listings,
    serialize_listing,
    unsave_listing,
)
from .utils.moderation import admin_stats, set_moderation_status
from .utils.roles import get_user_role, is_admin, is_privileged, set_user_role
from .utils.uploads import ImageUploadPath, upload_image, validate_image_upload

TEST_MEDIA_ROOT = tempfile.mkdtemp()

FIVE_MB = 5 * 1024 * 1024


def tearDownModule():
    shutil.rmtree(TEST_MEDIA_ROOT, ignore_errors=True)


def create_test_image(name="test.png", size=(100, 100), color="red"):
    """Helper function to create a test image file"""
    file = BytesIO()
    image = Image.new("RGB", size, color)
    image.save(file, "PNG")
    file.seek(0)
    return SimpleUploadedFile(name, file.read(), content_type="image/png")


def make_user(email, password="testpass123", role=None, full_name=None):
    user = User.objects.create_user(username=email, email=email, password=password)
    if full_name:
        Profile.objects.create(user=user, full_name=full_name)
    if role:
        UserRole.objects.create(user=user, role=role)
    return user


def make_listing(owner, category=None, **kwargs):
    defaults = {
        "title": "Mountain bike",
        "description": "Barely used mountain bike, 21 gears.",
        "price": Decimal("350.00"),
        "location": "Zurich",
        "category": category,
        "owner": owner,
    }
    defaults.update(kwargs)
    return Listing.objects.create(**defaults)


@override_settings(MEDIA_ROOT=TEST_MEDIA_ROOT)
class ModerationTests(TestCase):
    def setUp(self):
        self.owner = make_user("owner@example.com", full_name="Olivia Owner")
        self.moderator = make_user("mod@example.com", role=UserRole.Role.MODERATOR)
        self.category = Category.objects.create(name="Sports", slug="sports")
        self.listing = make_listing(self.owner, self.category)

    def test_new_listing_is_pending_and_hidden(self):
        self.assertEqual(self.listing.moderation_status, Listing.ModerationStatus.PENDING)
        self.assertNotIn(self.listing, get_listings())

    def test_set_status_stamps_moderator_and_time(self):
        before = timezone.now()
        set_moderation_status(self.listing, "approved", self.moderator)

        self.listing.refresh_from_db()
        self.assertEqual(self.listing.moderation_status, "approved")
        self.assertEqual(self.listing.moderated_by, self.moderator)
        self.assertGreaterEqual(self.listing.moderated_at, before)

    def test_set_status_records_activity(self):
        set_moderation_status(self.listing, "rejected", self.moderator)

        activity = AdminActivity.objects.get(action="listing_moderation")
        self.assertEqual(activity.admin, self.moderator)
        self.assertEqual(activity.target_type, "listing")
        self.assertEqual(activity.target_id, str(self.listing.id))
        self.assertEqual(activity.details, {"status": "rejected"})

    def test_approved_back_to_pending_hides_listing_but_owner_still_sees_it(self):
        set_moderation_status(self.listing, "approved", self.moderator)
        self.assertIn(self.listing, get_listings())

        set_moderation_status(self.listing, "pending", self.moderator)
        self.assertNotIn(self.listing, get_listings())
        self.assertIn(self.listing, get_user_listings(self.owner))

        self.client.login(username="owner@example.com", password="testpass123")
        response = self.client.get(
            reverse("marketplace:listing_detail", args=[self.listing.id])
        )
        self.assertEqual(response.status_code, 200)

    def test_pending_listing_detail_is_404_for_strangers(self):
        make_user("stranger@example.com")
        self.client.login(username="stranger@example.com", password="testpass123")
        response = self.client.get(
            reverse("marketplace:listing_detail", args=[self.listing.id])
        )
        self.assertEqual(response.status_code, 404)

    def test_every_status_reachable_from_every_other(self):
        statuses = ["approved", "rejected", "pending", "rejected", "approved", "pending"]
        for status in statuses:
            set_moderation_status(self.listing, status, self.moderator)
            self.listing.refresh_from_db()
            self.assertEqual(self.listing.moderation_status, status)

    def test_inactive_listing_is_not_public_even_when_approved(self):
        set_moderation_status(self.listing, "approved", self.moderator)
        self.listing.status = Listing.Status.SOLD
        self.listing.save()
        self.assertNotIn(self.listing, get_listings())

    def test_regular_user_cannot_moderate(self):
        with self.assertRaises(PermissionDenied):
            set_moderation_status(self.listing, "approved", self.owner)
        self.listing.refresh_from_db()
        self.assertEqual(self.listing.moderation_status, "pending")

    def test_unknown_status_rejected(self):
        with self.assertRaises(ValidationError):
            set_moderation_status(self.listing, "archived", self.moderator)

    def test_moderation_endpoint(self):
        self.client.login(username="mod@example.com", password="testpass123")
        response = self.client.post(
            reverse("marketplace:admin_moderate_listing", args=[self.listing.id]),
            {"status": "approved"},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["listing"]["moderation_status"], "approved")

    def test_moderation_endpoint_forbidden_for_regular_user(self):
        self.client.login(username="owner@example.com", password="testpass123")
        response = self.client.post(
            reverse("marketplace:admin_moderate_listing", args=[self.listing.id]),
            {"status": "approved"},
        )
        self.assertEqual(response.status_code, 403)


class CategoryTests(TestCase):
    def setUp(self):
        self.admin = make_user("admin@example.com", role=UserRole.Role.ADMIN)
        self.owner = make_user("owner@example.com")
        self.category = Category.objects.create(name="Electronics", slug="electronics")

    def test_delete_category_in_use_is_rejected(self):
        make_listing(self.owner, self.category)
        with self.assertRaises(ValidationError):
            delete_category(self.category, self.admin)
        self.assertTrue(Category.objects.filter(id=self.category.id).exists())

    def test_delete_unused_category_succeeds(self):
        delete_category(self.category, self.admin)
        self.assertFalse(Category.objects.filter(id=self.category.id).exists())
        self.assertTrue(AdminActivity.objects.filter(action="category_deleted").exists())

    def test_delete_endpoint_reports_category_in_use(self):
        make_listing(self.owner, self.category)
        self.client.login(username="admin@example.com", password="testpass123")
        response = self.client.post(
            reverse("marketplace:admin_delete_category", args=[self.category.id])
        )
        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()["success"])

    def test_listing_attached_after_check_still_reports_category_in_use(self):
        make_listing(self.owner, self.category)
        with mock.patch(
            "marketplace.utils.categories.can_delete_category", return_value=True
        ):
            with self.assertRaises(ValidationError) as ctx:
                delete_category(self.category, self.admin)

            self.client.login(username="admin@example.com", password="testpass123")
            response = self.client.post(
                reverse("marketplace:admin_delete_category", args=[self.category.id])
            )

        self.assertEqual(ctx.exception.code, "category_in_use")
        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()["success"])
        self.assertTrue(Category.objects.filter(id=self.category.id).exists())
        self.assertFalse(AdminActivity.objects.filter(action="category_deleted").exists())

    def test_create_category_logs_activity(self):
        form = CategoryForm({"name": " Garden ", "slug": "home-garden", "description": ""})
        self.assertTrue(form.is_valid())
        category = save_category(form, self.admin)

        self.assertEqual(category.name, "Garden")
        self.assertIsNone(category.description)
        activity = AdminActivity.objects.get(action="category_created")
        self.assertEqual(activity.details["slug"], "home-garden")

    def test_update_category_logs_activity(self):
        form = CategoryForm(
            {"name": "Electronics & Tech", "slug": "electronics"}, instance=self.category
        )
        self.assertTrue(form.is_valid())
        save_category(form, self.admin)
        activity = AdminActivity.objects.get(action="category_updated")
        self.assertEqual(activity.target_id, str(self.category.id))

    def test_duplicate_slug_rejected(self):
        form = CategoryForm({"name": "Other", "slug": "electronics"})
        self.assertFalse(form.is_valid())
        self.assertIn("slug", form.errors)

    def test_invalid_slug_charset_rejected(self):
        form = CategoryForm({"name": "Bad", "slug": "bad_slug!"})
        self.assertFalse(form.is_valid())
        self.assertIn("slug", form.errors)

    def test_validate_category_slug(self):
        self.assertTrue(validate_category_slug("motors-automotive"))
        self.assertFalse(validate_category_slug("Motors"))
        self.assertFalse(validate_category_slug(""))
        self.assertFalse(validate_category_slug("a" * 51))

    def test_regular_user_cannot_save_category(self):
        form = CategoryForm({"name": "Pets", "slug": "pets"})
        self.assertTrue(form.is_valid())
        with self.assertRaises(PermissionDenied):
            save_category(form, self.owner)


class SavedListingTests(TestCase):
    def setUp(self):
        self.user = make_user("buyer@example.com")
        self.owner = make_user("seller@example.com")
        self.listing = make_listing(self.owner)

    def test_save_twice_keeps_one_row(self):
        save_listing(self.user, self.listing)
        _, created = save_listing(self.user, self.listing)
        self.assertFalse(created)
        self.assertEqual(
            SavedListing.objects.filter(user=self.user, listing=self.listing).count(), 1
        )

    def test_save_then_unsave_removes_pair(self):
        save_listing(self.user, self.listing)
        self.assertTrue(is_listing_saved(self.user, self.listing))
        self.assertTrue(unsave_listing(self.user, self.listing))
        self.assertFalse(is_listing_saved(self.user, self.listing))
        self.assertFalse(unsave_listing(self.user, self.listing))

    def test_saved_listings_newest_save_first(self):
        other = make_listing(self.owner, title="Road bike")
        first = save_listing(self.user, self.listing)[0]
        second = save_listing(self.user, other)[0]
        # Force distinct save times
        SavedListing.objects.filter(id=first.id).update(
            created_at=timezone.now() - timedelta(hours=1)
        )
        self.assertEqual(get_saved_listings(self.user), [other, self.listing])
        self.assertEqual(second.listing, other)

    def test_saved_listings_load_images_in_constant_queries(self):
        for i in range(3):
            listing = make_listing(self.owner, title=f"Bike {i}")
            ListingImage.objects.create(listing=listing, image=f"listing-images/{i}/bike.png")
            save_listing(self.user, listing)

        # One query for saved rows with listings, one for all their images
        with self.assertNumQueries(2):
            images = [
                serialize_listing(listing)["images"] for listing in get_saved_listings(self.user)
            ]
        self.assertEqual(len(images), 3)
        self.assertTrue(all(len(urls) == 1 for urls in images))

    def test_save_endpoints(self):
        self.client.login(username="buyer@example.com", password="testpass123")
        save_url = reverse("marketplace:save_listing", args=[self.listing.id])
        self.client.post(save_url)
        self.client.post(save_url)
        self.assertEqual(SavedListing.objects.count(), 1)

        response = self.client.get(reverse("marketplace:listing_saved", args=[self.listing.id]))
        self.assertTrue(response.json()["saved"])

        self.client.post(reverse("marketplace:unsave_listing", args=[self.listing.id]))
        self.assertEqual(SavedListing.objects.count(), 0)

    def test_save_requires_login(self):
        response = self.client.post(reverse("marketplace:save_listing", args=[self.listing.id]))
        self.assertEqual(response.status_code, 401)
        self.assertFalse(response.json()["success"])
        self.assertFalse(SavedListing.objects.exists())

    def test_saved_list_requires_login(self):
        response = self.client.get(reverse("marketplace:saved_listings"))
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"], "Authentication required")


@override_settings(MEDIA_ROOT=TEST_MEDIA_ROOT)
class UploadValidationTests(TestCase):
    def setUp(self):
        self.user = make_user("seller@example.com")

    def test_rejects_disallowed_type_before_storage(self):
        gif = SimpleUploadedFile("anim.gif", b"GIF89a", content_type="image/gif")
        with mock.patch("marketplace.utils.uploads.default_storage") as storage:
            with self.assertRaises(ValidationError):
                upload_image(self.user, gif)
            storage.save.assert_not_called()

    def test_exactly_five_mb_accepted(self):
        file = SimpleUploadedFile("big.png", b"\0" * FIVE_MB, content_type="image/png")
        with mock.patch("marketplace.utils.uploads.default_storage") as storage:
            storage.save.return_value = "listing-images/1/big.png"
            storage.url.return_value = "/media/listing-images/1/big.png"
            url = upload_image(self.user, file)
        self.assertEqual(url, "/media/listing-images/1/big.png")
        storage.save.assert_called_once()

    def test_one_byte_over_limit_rejected(self):
        file = SimpleUploadedFile("big.png", b"\0" * (FIVE_MB + 1), content_type="image/png")
        with mock.patch("marketplace.utils.uploads.default_storage") as storage:
            with self.assertRaises(ValidationError) as ctx:
                upload_image(self.user, file)
            storage.save.assert_not_called()
        self.assertEqual(ctx.exception.code, "file_too_large")

    def test_rejects_bad_extension(self):
        file = SimpleUploadedFile("photo.bmp", b"data", content_type="image/png")
        with self.assertRaises(ValidationError):
            validate_image_upload(file)

    def test_accepts_webp_and_jpg(self):
        validate_image_upload(SimpleUploadedFile("a.webp", b"x", content_type="image/webp"))
        validate_image_upload(SimpleUploadedFile("a.JPG", b"x", content_type="image/jpeg"))
        validate_image_upload(SimpleUploadedFile("a.jpeg", b"x", content_type="image/jpg"))

    def test_upload_path_layout(self):
        listing = make_listing(self.user)
        image = ListingImage(listing=listing)
        path = ImageUploadPath("listing-images")(image, "Holiday Photo.PNG")
        bucket, owner_id, name = path.split("/")
        self.assertEqual(bucket, "listing-images")
        self.assertEqual(owner_id, str(self.user.id))
        self.assertTrue(name.endswith(".png"))
        self.assertNotIn("Holiday", name)

    def test_upload_endpoint_rejects_gif(self):
        self.client.login(username="seller@example.com", password="testpass123")
        gif = SimpleUploadedFile("anim.gif", b"GIF89a", content_type="image/gif")
        response = self.client.post(reverse("marketplace:upload_image"), {"file": gif})
        self.assertEqual(response.status_code, 400)
        self.assertIn("JPEG, PNG, and WebP", response.json()["error"])


@override_settings(MEDIA_ROOT=TEST_MEDIA_ROOT)
class CascadeDeleteTests(TestCase):
    def setUp(self):
        self.admin = make_user("admin@example.com", role=UserRole.Role.ADMIN)
        self.victim = make_user(
            "victim@example.com", role=UserRole.Role.USER, full_name="Victor Victim"
        )
        self.other = make_user("other@example.com")
        self.listing = make_listing(self.victim)
        self.other_listing = make_listing(self.other, title="Sofa")
        SavedListing.objects.create(user=self.victim, listing=self.other_listing)
        self.url = reverse("marketplace:delete_user_function")

    def _post(self, body, token=None):
        headers = {}
        if token:
            headers["HTTP_AUTHORIZATION"] = f"Bearer {token}"
        return self.client.post(
            self.url, data=json.dumps(body), content_type="application/json", **headers
        )

    def test_delete_user_removes_everything(self):
        delete_user_account(self.victim.id, self.admin)

        self.assertFalse(User.objects.filter(id=self.victim.id).exists())
        self.assertFalse(Listing.objects.filter(owner_id=self.victim.id).exists())
        self.assertFalse(SavedListing.objects.filter(user_id=self.victim.id).exists())
        self.assertFalse(Profile.objects.filter(user_id=self.victim.id).exists())
        self.assertFalse(UserRole.objects.filter(user_id=self.victim.id).exists())
        activity = AdminActivity.objects.get(action="user_deleted")
        self.assertEqual(activity.target_id, str(self.victim.id))
        # Other users' data is untouched
        self.assertTrue(Listing.objects.filter(id=self.other_listing.id).exists())

    def test_identity_failure_leaves_partial_state_and_raises(self):
        with mock.patch.object(User, "delete", side_effect=DatabaseError("boom")):
            with self.assertRaises(UserDeletionError):
                delete_user_account(self.victim.id, self.admin)

        self.assertTrue(User.objects.filter(id=self.victim.id).exists())
        self.assertFalse(Listing.objects.filter(owner_id=self.victim.id).exists())
        self.assertFalse(SavedListing.objects.filter(user_id=self.victim.id).exists())
        self.assertFalse(UserRole.objects.filter(user_id=self.victim.id).exists())
        self.assertFalse(Profile.objects.filter(user_id=self.victim.id).exists())
        self.assertFalse(AdminActivity.objects.filter(action="user_deleted").exists())

    def test_failed_listing_step_is_logged_and_later_steps_still_run(self):
        original_delete = QuerySet.delete

        def failing_delete(queryset):
            if queryset.model is Listing:
                raise DatabaseError("listings table locked")
            return original_delete(queryset)

        with mock.patch.object(QuerySet, "delete", failing_delete):
            with self.assertLogs("marketplace.utils.accounts", level="ERROR") as logs:
                delete_user_account(self.victim.id, self.admin)

        self.assertIn("Error deleting listings", logs.output[0])
        self.assertFalse(SavedListing.objects.filter(user_id=self.victim.id).exists())
        self.assertFalse(UserRole.objects.filter(user_id=self.victim.id).exists())
        self.assertFalse(Profile.objects.filter(user_id=self.victim.id).exists())
        self.assertFalse(User.objects.filter(id=self.victim.id).exists())
        self.assertTrue(AdminActivity.objects.filter(action="user_deleted").exists())

    def test_function_reports_error_when_identity_delete_fails(self):
        token = issue_api_token(self.admin)
        with mock.patch.object(User, "delete", side_effect=DatabaseError("boom")):
            response = self._post({"userId": self.victim.id}, token)

        self.assertEqual(response.status_code, 400)
        payload = response.json()
        self.assertNotIn("success", payload)
        self.assertEqual(payload["error"], "Failed to delete user from authentication system")
        self.assertFalse(Listing.objects.filter(owner_id=self.victim.id).exists())

    def test_function_success(self):
        response = self._post({"userId": self.victim.id}, issue_api_token(self.admin))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(), {"success": True, "message": "User deleted successfully"}
        )
        self.assertEqual(response["Access-Control-Allow-Origin"], "*")
        self.assertFalse(User.objects.filter(id=self.victim.id).exists())

    def test_function_requires_authorization_header(self):
        response = self._post({"userId": self.victim.id})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Missing authorization header")

    def test_function_rejects_bad_token(self):
        response = self._post({"userId": self.victim.id}, "not-a-token")
        self.assertEqual(response.json()["error"], "Invalid authentication")

    def test_function_requires_admin_role(self):
        moderator = make_user("mod@example.com", role=UserRole.Role.MODERATOR)
        response = self._post({"userId": self.victim.id}, issue_api_token(moderator))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Insufficient privileges")
        self.assertTrue(User.objects.filter(id=self.victim.id).exists())

    def test_function_requires_user_id(self):
        response = self._post({}, issue_api_token(self.admin))
        self.assertEqual(response.json()["error"], "User ID is required")

    def test_function_unknown_user(self):
        response = self._post({"userId": 999999}, issue_api_token(self.admin))
        self.assertEqual(response.json()["error"], "User not found")

    def test_function_preflight(self):
        response = self.client.options(self.url)
        self.assertEqual(response.status_code, 200)
        self.assertIn("authorization", response["Access-Control-Allow-Headers"])

    def test_delete_user_command(self):
        out = StringIO()
        call_command("delete_user", str(self.victim.id), stdout=out)
        self.assertFalse(User.objects.filter(id=self.victim.id).exists())
        self.assertIn("Deleted user", out.getvalue())

    def test_delete_user_command_unknown_user(self):
        with self.assertRaises(CommandError):
            call_command("delete_user", "999999", stdout=StringIO())


class RoleTests(TestCase):
    def setUp(self):
        self.admin = make_user("admin@example.com", role=UserRole.Role.ADMIN)
        self.user = make_user("user@example.com")

    def test_default_role_is_user(self):
        self.assertEqual(get_user_role(self.user), "user")
        self.assertFalse(is_privileged(self.user))

    def test_set_role_upserts_single_row(self):
        set_user_role(self.user, "moderator", self.admin)
        set_user_role(self.user, "admin", self.admin)

        self.assertEqual(UserRole.objects.filter(user=self.user).count(), 1)
        self.assertTrue(is_admin(self.user))
        activity = AdminActivity.objects.filter(action="role_updated").first()
        self.assertEqual(activity.details, {"newRole": "admin"})

    def test_admin_may_demote_self(self):
        set_user_role(self.admin, "user", self.admin)
        self.assertFalse(is_privileged(self.admin))

    def test_unknown_role_rejected(self):
        with self.assertRaises(ValidationError):
            set_user_role(self.user, "superuser", self.admin)

    def test_role_endpoint(self):
        self.client.login(username="admin@example.com", password="testpass123")
        response = self.client.post(
            reverse("marketplace:admin_set_role", args=[self.user.id]),
            data=json.dumps({"role": "moderator"}),
            content_type="application/json",
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(get_user_role(self.user), "moderator")

    def test_admin_endpoints_forbidden_for_regular_user(self):
        self.client.login(username="user@example.com", password="testpass123")
        for name in ["admin_stats", "admin_users", "admin_listings", "admin_activities"]:
            response = self.client.get(reverse(f"marketplace:{name}"))
            self.assertEqual(response.status_code, 403, name)

    def test_admin_endpoints_anonymous(self):
        response = self.client.get(reverse("marketplace:admin_stats"))
        self.assertEqual(response.status_code, 401)


class AdminActivityTests(TestCase):
    def setUp(self):
        self.admin = make_user("admin@example.com", role=UserRole.Role.ADMIN)
        self.user = make_user("user@example.com")

    def test_non_privileged_actor_is_not_recorded(self):
        self.assertIsNone(log_admin_activity(self.user, "listing_deleted", "listing", 1))
        self.assertEqual(AdminActivity.objects.count(), 0)

    def test_activity_is_immutable(self):
        activity = log_admin_activity(self.admin, "listing_deleted", "listing", 1)
        activity.action = "something_else"
        with self.assertRaises(ValueError):
            activity.save()

    def test_database_failure_is_swallowed(self):
        with mock.patch.object(
            AdminActivity.objects, "create", side_effect=DatabaseError("down")
        ):
            self.assertIsNone(log_admin_activity(self.admin, "listing_deleted", "listing", 1))

    def test_stats(self):
        make_user("third@example.com", full_name="Third Person")
        Category.objects.create(name="Pets", slug="pets")
        make_listing(self.user)
        stats = admin_stats()
        self.assertEqual(stats["totalUsers"], 1)
        self.assertEqual(stats["totalListings"], 1)
        self.assertEqual(stats["activeListings"], 1)
        self.assertEqual(stats["pendingListings"], 1)
        self.assertEqual(stats["totalCategories"], 1)

    def test_activities_endpoint(self):
        log_admin_activity(self.admin, "category_deleted", "category", 3)
        self.client.login(username="admin@example.com", password="testpass123")
        response = self.client.get(reverse("marketplace:admin_activities"))
        activities = response.json()["activities"]
        self.assertEqual(len(activities), 1)
        self.assertEqual(activities[0]["action_label"], "Category deleted")


@override_settings(MEDIA_ROOT=TEST_MEDIA_ROOT)
class ListingViewTests(TestCase):
    """Tests for the listing JSON endpoints"""

    def setUp(self):
        self.client = Client()
        self.user = make_user("seller@example.com", full_name="Sam Seller")
        self.category = Category.objects.create(name="Electronics", slug="electronics")
        self.create_url = reverse("marketplace:create_listing")
        self.data = {
            "title": "Laptop",
            "description": "Lightweight laptop with 16GB RAM",
            "price": "899.00",
            "currency": "EUR",
            "location": "Bern",
            "category": self.category.id,
        }

    def test_create_requires_login(self):
        response = self.client.post(self.create_url, self.data)
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {"success": False, "error": "Authentication required"})

    def test_my_listings_requires_login(self):
        response = self.client.get(reverse("marketplace:my_listings"))
        self.assertEqual(response.status_code, 401)
        self.assertFalse(response.json()["success"])

    def test_create_listing_with_images(self):
        self.client.login(username="seller@example.com", password="testpass123")
        images = [create_test_image(f"laptop{i}.png") for i in range(3)]
        response = self.client.post(self.create_url, {**self.data, "images": images})

        self.assertEqual(response.status_code, 201)
        listing = Listing.objects.get()
        self.assertEqual(listing.owner, self.user)
        self.assertEqual(listing.currency, "EUR")
        self.assertEqual(listing.moderation_status, "pending")
        self.assertEqual(list(listing.images.values_list("order", flat=True)), [0, 1, 2])
        self.assertEqual(len(response.json()["listing"]["images"]), 3)

    def test_create_listing_rejects_more_than_five_images(self):
        self.client.login(username="seller@example.com", password="testpass123")
        images = [create_test_image(f"laptop{i}.png") for i in range(6)]
        response = self.client.post(self.create_url, {**self.data, "images": images})

        self.assertEqual(response.status_code, 400)
        self.assertIn("maximum of 5 images", response.json()["error"])
        self.assertEqual(Listing.objects.count(), 0)

    def test_create_listing_rejects_bad_image_type(self):
        self.client.login(username="seller@example.com", password="testpass123")
        gif = SimpleUploadedFile("anim.gif", b"GIF89a", content_type="image/gif")
        response = self.client.post(self.create_url, {**self.data, "images": [gif]})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(Listing.objects.count(), 0)

    def test_create_listing_requires_category(self):
        self.client.login(username="seller@example.com", password="testpass123")
        data = {**self.data}
        del data["category"]
        response = self.client.post(self.create_url, data)
        self.assertEqual(response.status_code, 400)
        self.assertIn("category", response.json()["errors"])

    def test_update_listing_by_owner(self):
        listing = make_listing(self.user, self.category)
        self.client.login(username="seller@example.com", password="testpass123")
        response = self.client.post(
            reverse("marketplace:update_listing", args=[listing.id]),
            {**self.data, "status": "sold"},
        )
        self.assertEqual(response.status_code, 200)
        listing.refresh_from_db()
        self.assertEqual(listing.title, "Laptop")
        self.assertEqual(listing.status, "sold")

    def test_update_listing_by_stranger_forbidden(self):
        listing = make_listing(self.user, self.category)
        make_user("stranger@example.com")
        self.client.login(username="stranger@example.com", password="testpass123")
        response = self.client.post(
            reverse("marketplace:update_listing", args=[listing.id]), self.data
        )
        self.assertEqual(response.status_code, 403)

    def test_admin_can_delete_any_listing(self):
        listing = make_listing(self.user, self.category)
        make_user("admin@example.com", role=UserRole.Role.ADMIN)
        self.client.login(username="admin@example.com", password="testpass123")
        response = self.client.post(reverse("marketplace:delete_listing", args=[listing.id]))
        self.assertEqual(response.status_code, 200)
        self.assertFalse(Listing.objects.filter(id=listing.id).exists())
        self.assertTrue(AdminActivity.objects.filter(action="listing_deleted").exists())

    def test_public_list_and_search_only_show_approved_active(self):
        approved = make_listing(self.user, self.category, moderation_status="approved")
        make_listing(self.user, self.category, title="Hidden laptop")

        response = self.client.get(reverse("marketplace:listings"))
        ids = [item["id"] for item in response.json()["listings"]]
        self.assertEqual(ids, [approved.id])

        response = self.client.get(reverse("marketplace:search"), {"q": "ZURICH"})
        ids = [item["id"] for item in response.json()["listings"]]
        self.assertEqual(ids, [approved.id])

    def test_search_matches_title_description_location(self):
        listing = make_listing(
            self.user, self.category, moderation_status="approved", location="Basel"
        )
        self.assertIn(listing, search_listings("mountain"))
        self.assertIn(listing, search_listings("21 GEARS"))
        self.assertIn(listing, search_listings("basel"))
        self.assertEqual(list(search_listings("   ")), [])

    def test_filter_by_category(self):
        other = Category.objects.create(name="Books", slug="books")
        make_listing(self.user, self.category, moderation_status="approved")
        book = make_listing(self.user, other, moderation_status="approved", title="Novel")
        response = self.client.get(reverse("marketplace:listings"), {"category": other.id})
        self.assertEqual([item["id"] for item in response.json()["listings"]], [book.id])

    def test_my_listings_include_pending(self):
        make_listing(self.user, self.category)
        self.client.login(username="seller@example.com", password="testpass123")
        response = self.client.get(reverse("marketplace:my_listings"))
        self.assertEqual(len(response.json()["listings"]), 1)


class ListingFormTests(TestCase):
    def setUp(self):
        self.category = Category.objects.create(name="Electronics", slug="electronics")

    def _data(self, **overrides):
        data = {
            "title": "Phone",
            "description": "Refurbished phone, works fine",
            "price": "120",
            "location": "Geneva",
            "category": self.category.id,
        }
        data.update(overrides)
        return data

    def test_defaults_currency_and_status(self):
        form = ListingForm(self._data())
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.cleaned_data["currency"], "CHF")
        self.assertEqual(form.cleaned_data["status"], "active")

    def test_negative_price_rejected(self):
        form = ListingForm(self._data(price="-1"))
        self.assertFalse(form.is_valid())
        self.assertIn("price", form.errors)

    def test_short_title_rejected(self):
        form = ListingForm(self._data(title="TV"))
        self.assertFalse(form.is_valid())
        self.assertIn("title", form.errors)

    def test_short_description_rejected(self):
        form = ListingForm(self._data(description="Too short"))
        self.assertFalse(form.is_valid())
        self.assertIn("description", form.errors)


class AccountViewTests(TestCase):
    def test_signup_creates_user_and_profile(self):
        response = self.client.post(
            reverse("marketplace:signup"),
            {"email": "New@Example.com", "full_name": "Nina New", "password": "s3cure-pass"},
        )
        self.assertEqual(response.status_code, 201)
        user = User.objects.get(email="new@example.com")
        self.assertEqual(user.profile.full_name, "Nina New")
        self.assertEqual(response.json()["user"]["role"], "user")

    def test_signup_rejects_short_password(self):
        form = SignupForm({"email": "a@example.com", "full_name": "Al", "password": "short"})
        self.assertFalse(form.is_valid())
        self.assertIn("password", form.errors)

    def test_signup_rejects_duplicate_email(self):
        make_user("taken@example.com")
        form = SignupForm(
            {"email": "TAKEN@example.com", "full_name": "Tim", "password": "s3cure-pass"}
        )
        self.assertFalse(form.is_valid())
        self.assertIn("email", form.errors)

    def test_login_returns_usable_token(self):
        user = make_user("login@example.com")
        response = self.client.post(
            reverse("marketplace:login"),
            data=json.dumps({"email": "login@example.com", "password": "testpass123"}),
            content_type="application/json",
        )
        self.assertEqual(response.status_code, 200)
        token = response.json()["token"]
        self.assertEqual(user_from_bearer(f"Bearer {token}"), user)

    def test_login_wrong_password(self):
        make_user("login@example.com")
        response = self.client.post(
            reverse("marketplace:login"),
            {"email": "login@example.com", "password": "wrong-password"},
        )
        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()["success"])


@override_settings(MEDIA_ROOT=TEST_MEDIA_ROOT)
class ProfileViewTests(TestCase):
    def setUp(self):
        self.user = make_user("me@example.com")
        self.client.login(username="me@example.com", password="testpass123")

    def test_profile_created_on_first_edit(self):
        response = self.client.get(reverse("marketplace:profile"))
        self.assertIsNone(response.json()["profile"])

        response = self.client.post(
            reverse("marketplace:update_profile"),
            {"full_name": "Maya Me", "phone": " +41 79 000 00 00 ", "bio": "Hi"},
        )
        self.assertEqual(response.status_code, 200)
        profile = Profile.objects.get(user=self.user)
        self.assertEqual(profile.phone, "+41 79 000 00 00")

    def test_profile_update_with_avatar(self):
        response = self.client.post(
            reverse("marketplace:update_profile"),
            {"full_name": "Maya Me", "avatar": create_test_image("me.png")},
        )
        self.assertEqual(response.status_code, 200)
        profile = Profile.objects.get(user=self.user)
        self.assertTrue(profile.avatar.name.startswith(f"avatars/{self.user.id}/"))

    def test_replacing_avatar_removes_old_file(self):
        url = reverse("marketplace:update_profile")
        self.client.post(url, {"full_name": "Maya Me", "avatar": create_test_image("one.png")})
        first = Profile.objects.get(user=self.user).avatar.name
        self.assertTrue(default_storage.exists(first))

        self.client.post(
            url, {"full_name": "Maya Me", "avatar": create_test_image("two.png", color="blue")}
        )
        second = Profile.objects.get(user=self.user).avatar.name
        self.assertNotEqual(first, second)
        self.assertFalse(default_storage.exists(first))
        self.assertTrue(default_storage.exists(second))

    def test_profile_edit_without_avatar_keeps_file(self):
        url = reverse("marketplace:update_profile")
        self.client.post(url, {"full_name": "Maya Me", "avatar": create_test_image("one.png")})
        avatar = Profile.objects.get(user=self.user).avatar.name

        self.client.post(url, {"full_name": "Maya Renamed"})
        self.assertEqual(Profile.objects.get(user=self.user).avatar.name, avatar)
        self.assertTrue(default_storage.exists(avatar))

    def test_profile_rejects_short_name(self):
        response = self.client.post(reverse("marketplace:update_profile"), {"full_name": "M"})
        self.assertEqual(response.status_code, 400)
        self.assertFalse(Profile.objects.filter(user=self.user).exists())


class TokenTests(TestCase):
    def setUp(self):
        self.user = make_user("token@example.com")

    def test_round_trip(self):
        token = issue_api_token(self.user)
        self.assertEqual(user_from_bearer(f"Bearer {token}"), self.user)

    def test_expired_token(self):
        token = issue_api_token(self.user)
        self.assertIsNone(user_from_bearer(f"Bearer {token}", max_age=-1))

    def test_tampered_or_malformed(self):
        token = issue_api_token(self.user)
        self.assertIsNone(user_from_bearer(f"Bearer {token}x"))
        self.assertIsNone(user_from_bearer(token))
        self.assertIsNone(user_from_bearer(None))

    def test_inactive_user(self):
        token = issue_api_token(self.user)
        self.user.is_active = False
        self.user.save()
        self.assertIsNone(user_from_bearer(f"Bearer {token}"))


class SeedCategoriesCommandTests(TestCase):
    def test_seed_is_idempotent(self):
        call_command("seed_categories", stdout=StringIO())
        count = Category.objects.count()
        call_command("seed_categories", stdout=StringIO())

        self.assertEqual(count, 14)
        self.assertEqual(Category.objects.count(), 14)
        self.assertTrue(Category.objects.filter(slug="motors-automotive").exists())
