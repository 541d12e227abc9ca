from django.contrib import admin
from django.contrib.auth import get_user_model
from .models import OTPVerification

User = get_user_model()

admin.site.register(User)


@admin.register(OTPVerification)
class OTPVerificationAdmin(admin.ModelAdmin):
    list_display = ("user", "purpose", "status", "attempts", "created_at", "expires_at", "verified_at")
    list_filter = ("purpose", "status")
    search_fields = ("user__username", "user__phone_number")
    readonly_fields = ("otp_hash", "created_at", "verified_at")
