from django.contrib import admin

from .models import (
    AdminActivity,
    Category,
    Listing,
    ListingImage,
    Profile,
    SavedListing,
    UserRole,
)


class ListingImageInline(admin.TabularInline):
    model = ListingImage
    extra = 0


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ["name", "slug", "created_at"]
    search_fields = ["name", "slug"]
    prepopulated_fields = {"slug": ("name",)}
    readonly_fields = ["created_at"]


@admin.register(Listing)
class ListingAdmin(admin.ModelAdmin):
    list_display = ["title", "owner", "price", "currency", "status", "moderation_status", "created_at"]
    list_filter = ["status", "moderation_status", "category", "created_at"]
    search_fields = ["title", "description", "location", "owner__email"]
    readonly_fields = ["moderated_by", "moderated_at", "created_at", "updated_at"]
    inlines = [ListingImageInline]


@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = ["full_name", "user", "phone", "created_at"]
    search_fields = ["full_name", "user__email", "phone"]


@admin.register(UserRole)
class UserRoleAdmin(admin.ModelAdmin):
    list_display = ["user", "role", "created_at"]
    list_filter = ["role"]
    search_fields = ["user__email", "user__username"]


@admin.register(AdminActivity)
class AdminActivityAdmin(admin.ModelAdmin):
    list_display = ["action", "admin", "target_type", "target_id", "created_at"]
    list_filter = ["action", "target_type", "created_at"]
    readonly_fields = ["admin", "action", "target_type", "target_id", "details", "created_at"]

    def has_change_permission(self, request, obj=None):
        return False


admin.site.register(SavedListing)
admin.site.register(ListingImage)
