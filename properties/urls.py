from django.urls import path

from . import views

app_name = "properties"

urlpatterns = [
    path("", views.landing, name="landing"),
    path("language/", views.set_language, name="set_language"),
    path("properties.json", views.property_cards, name="property_cards"),
]
