import uuid

from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.db import models
from django.utils import timezone


class User(AbstractUser):
    """
    Core user account for the admin, teacher and student portals.
    - Students are usually provisioned by staff and identified by phone.
    - The phone number is the channel used for OTP password resets.
    """

    class Role(models.TextChoices):
        ADMIN = "admin", "Admin"
        TEACHER = "teacher", "Teacher"
        STUDENT = "student", "Student"

    role = models.CharField(max_length=20, choices=Role.choices, default=Role.STUDENT)

    # phone verification
    phone_number = models.CharField(max_length=32, unique=True, blank=True, null=True)
    phone_verified = models.BooleanField(default=False)

    def save(self, *args, **kwargs):
        # Superusers always act as platform admins
        if self.is_superuser and self.role != self.Role.ADMIN:
            self.role = self.Role.ADMIN
        super().save(*args, **kwargs)

    @property
    def name(self) -> str:
        return self.get_full_name() or self.username

    def __str__(self) -> str:
        return self.phone_number or self.username


class OTPVerification(models.Model):
    """
    One row per OTP issued to a user's phone.
    Stores the SHA-256 hash only; the plain code is never persisted.

    Lifecycle is tracked explicitly in ``status``:
    PENDING -> VERIFIED | CONSUMED_EXHAUSTED | CONSUMED_SUPERSEDED.
    Expired rows stay PENDING until the cleanup sweep deletes them.
    """

    class Purpose(models.TextChoices):
        PASSWORD_RESET = "PASSWORD_RESET", "Password reset"
        LOGIN = "LOGIN", "Login"

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        VERIFIED = "verified", "Verified"
        CONSUMED_EXHAUSTED = "consumed_exhausted", "Consumed (attempts exhausted)"
        CONSUMED_SUPERSEDED = "consumed_superseded", "Consumed (superseded)"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="otp_verifications",
    )
    purpose = models.CharField(max_length=20, choices=Purpose.choices)
    otp_hash = models.CharField(max_length=128)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    attempts = models.PositiveSmallIntegerField(default=0)
    expires_at = models.DateTimeField()
    verified_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now, editable=False)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user", "purpose", "status"], name="otp_user_purpose_status_idx"),
            models.Index(fields=["user", "purpose", "created_at"], name="otp_user_purpose_created_idx"),
            models.Index(fields=["expires_at"], name="otp_expires_at_idx"),
        ]

    @property
    def verified(self) -> bool:
        """True once the code can no longer be verified (matched or consumed)."""
        return self.status != self.Status.PENDING

    def __str__(self) -> str:
        return f"{self.purpose} OTP for {self.user} ({self.status})"
