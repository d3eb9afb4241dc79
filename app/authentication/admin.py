"""
Django admin configuration for authentication models.

Tokens are shown read-only as "pending" flags rather than values.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from authentication.models import Profile, User


class ProfileInline(admin.StackedInline):
    model = Profile
    can_delete = False
    fields = ("username", "avatar_url")


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Admin configuration for accounts (email-based, no username field)."""

    inlines = (ProfileInline,)
    list_display = (
        "email",
        "email_verified",
        "has_google",
        "is_active",
        "is_staff",
        "date_joined",
    )
    list_filter = ("is_active", "is_staff", "email_verified", "date_joined")
    search_fields = ("email", "profile__username", "google_id")
    ordering = ("-date_joined",)

    fieldsets = (
        (None, {"fields": ("email", "password")}),
        ("Identity", {"fields": ("email_verified", "google_id")}),
        (
            "Pending tokens",
            {
                "fields": (
                    "verification_pending",
                    "verification_token_expires_at",
                    "reset_pending",
                    "reset_token_expires_at",
                )
            },
        ),
        (
            "Status",
            {"fields": ("is_active", "is_staff", "is_superuser", "groups", "user_permissions")},
        ),
        ("Important dates", {"fields": ("date_joined", "last_login")}),
    )
    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": ("email", "password1", "password2"),
            },
        ),
    )
    readonly_fields = (
        "date_joined",
        "last_login",
        "verification_pending",
        "verification_token_expires_at",
        "reset_pending",
        "reset_token_expires_at",
    )

    @admin.display(boolean=True, description="Google")
    def has_google(self, obj):
        return bool(obj.google_id)

    @admin.display(boolean=True, description="Verification pending")
    def verification_pending(self, obj):
        return bool(obj.verification_token)

    @admin.display(boolean=True, description="Reset pending")
    def reset_pending(self, obj):
        return bool(obj.reset_token)
