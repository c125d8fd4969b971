from django.urls import path

from . import views

app_name = "marketplace"

urlpatterns = [
    # Accounts
    path("signup/", views.signup_view, name="signup"),
    path("login/", views.login_view, name="login"),
    path("logout/", views.logout_view, name="logout"),
    # Catalogue
    path("categories/", views.categories_view, name="categories"),
    path("listings/", views.listings_view, name="listings"),
    path("listings/search/", views.search_view, name="search"),
    path("listings/create/", views.create_listing_view, name="create_listing"),
    path("listings/<int:listing_id>/", views.listing_detail, name="listing_detail"),
    path("listings/<int:listing_id>/update/", views.update_listing_view, name="update_listing"),
    path("listings/<int:listing_id>/delete/", views.delete_listing_view, name="delete_listing"),
    path("listings/<int:listing_id>/save/", views.save_listing_view, name="save_listing"),
    path("listings/<int:listing_id>/unsave/", views.unsave_listing_view, name="unsave_listing"),
    path("listings/<int:listing_id>/saved/", views.listing_saved_status, name="listing_saved"),
    path("my-listings/", views.my_listings, name="my_listings"),
    path("saved/", views.saved_listings, name="saved_listings"),
    # Profile
    path("profile/", views.profile_view, name="profile"),
    path("profile/update/", views.update_profile_view, name="update_profile"),
    path("uploads/", views.upload_image_view, name="upload_image"),
    # Admin dashboard
    path("admin/stats/", views.admin_stats_view, name="admin_stats"),
    path("admin/users/", views.admin_users_view, name="admin_users"),
    path("admin/users/<int:user_id>/role/", views.admin_set_role, name="admin_set_role"),
    path("admin/listings/", views.admin_listings_view, name="admin_listings"),
    path(
        "admin/listings/<int:listing_id>/moderation/",
        views.admin_moderate_listing,
        name="admin_moderate_listing",
    ),
    path(
        "admin/listings/<int:listing_id>/delete/",
        views.admin_delete_listing_view,
        name="admin_delete_listing",
    ),
    path("admin/categories/", views.admin_categories, name="admin_categories"),
    path(
        "admin/categories/<int:category_id>/",
        views.admin_update_category,
        name="admin_update_category",
    ),
    path(
        "admin/categories/<int:category_id>/delete/",
        views.admin_delete_category,
        name="admin_delete_category",
    ),
    path("admin/activities/", views.admin_activities, name="admin_activities"),
    # Bearer-token functions
    path("functions/delete-user/", views.delete_user_function, name="delete_user_function"),
]
