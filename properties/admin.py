from django.contrib import admin

from .models import Property


@admin.register(Property)
class PropertyAdmin(admin.ModelAdmin):
    list_display = ["__str__", "location", "type", "price", "status", "created_at"]
    list_filter = ["status", "type", "documentation", "created_at"]
    search_fields = ["title_pt", "title_de", "title_en", "location"]
    readonly_fields = ["created_at"]
