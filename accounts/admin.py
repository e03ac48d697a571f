from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import User


# ───────────────────────────────
#  User
# ───────────────────────────────
@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ("username", "email", "name", "role", "state", "is_staff", "date_joined")
    list_filter  = ("role", "state", "is_staff", "is_superuser", "is_active", "groups")
    search_fields = ("username", "email", "first_name", "last_name", "name", "phone")
    ordering = ("-date_joined",)
    fieldsets = (
        (None, {"fields": ("username", "email", "password")}),
        ("Personal info", {"fields": ("first_name", "last_name", "name", "phone", "avatar")}),
        ("Organisation",  {"fields": ("role", "primary_membership")}),
        ("Permissions",   {"fields": ("is_active", "is_staff", "is_superuser", "groups", "user_permissions")}),
        ("Lifecycle",     {"fields": ("state", "deleted_at")}),
        ("Dates",         {"fields": ("last_login", "date_joined")}),
    )
    raw_id_fields = ("primary_membership",)

    def get_queryset(self, request):
        # deleted accounts stay reachable for restore
        return User.all_objects.all()
