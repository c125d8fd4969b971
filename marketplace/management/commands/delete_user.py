from django.core.management.base import BaseCommand, CommandError

from marketplace.models import Listing, SavedListing
from marketplace.utils.accounts import UserDeletionError, delete_user_account


class Command(BaseCommand):
    help = (
        "Delete a user together with their saved listings, listings, role and profile. "
        "Same ordered cleanup as the delete-user API function."
    )

    def add_arguments(self, parser):
        parser.add_argument("user_id", type=int)
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would be deleted without deleting anything.",
        )

    def handle(self, *args, **options):
        user_id = options["user_id"]
        listings = Listing.objects.filter(owner_id=user_id).count()
        saved = SavedListing.objects.filter(user_id=user_id).count()
        self.stdout.write(f"User {user_id}: {listings} listing(s), {saved} saved listing(s).")

        if options["dry_run"]:
            self.stdout.write(self.style.WARNING("Dry run enabled; nothing deleted."))
            return

        try:
            delete_user_account(user_id)
        except UserDeletionError as e:
            raise CommandError(str(e))

        self.stdout.write(self.style.SUCCESS(f"Deleted user {user_id}."))
