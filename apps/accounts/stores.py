"""
Persistence for OTP records and subject lookup.
"""

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import F

from .models import OTPVerification

User = get_user_model()


def normalize_phone(phone: str) -> str:
    return "".join((phone or "").split())


def find_subject_by_phone(phone: str):
    """Return the user registered with this phone number, active or not."""
    normalized = normalize_phone(phone)
    if not normalized:
        return None
    return User.objects.filter(phone_number=normalized).first()


class OTPRecordStore:
    """ORM adapter over OTPVerification rows."""

    model = OTPVerification

    def latest_created_since(self, user, purpose, since):
        return (
            self.model.objects.filter(user=user, purpose=purpose, created_at__gte=since)
            .order_by("-created_at")
            .first()
        )

    def issue(self, *, user, purpose, otp_hash, created_at, expires_at):
        """
        Supersede every pending code for (user, purpose) and create the new one.
        Both happen in one transaction so only the new row stays pending.
        """
        with transaction.atomic():
            locked_ids = list(
                self.model.objects.select_for_update()
                .filter(user=user, purpose=purpose, status=self.model.Status.PENDING)
                .values_list("id", flat=True)
            )
            if locked_ids:
                self.model.objects.filter(
                    id__in=locked_ids,
                    status=self.model.Status.PENDING,
                ).update(status=self.model.Status.CONSUMED_SUPERSEDED)

            return self.model.objects.create(
                user=user,
                purpose=purpose,
                otp_hash=otp_hash,
                status=self.model.Status.PENDING,
                attempts=0,
                created_at=created_at,
                expires_at=expires_at,
            )

    def delete(self, record_id) -> None:
        self.model.objects.filter(id=record_id).delete()

    def latest_pending(self, user, purpose, now):
        return (
            self.model.objects.filter(
                user=user,
                purpose=purpose,
                status=self.model.Status.PENDING,
                expires_at__gte=now,
            )
            .order_by("-created_at")
            .first()
        )

    def mark_exhausted(self, record) -> int:
        return self.model.objects.filter(
            id=record.id,
            status=self.model.Status.PENDING,
        ).update(status=self.model.Status.CONSUMED_EXHAUSTED)

    def record_attempt(self, record, *, matched: bool, now, max_attempts: int) -> bool:
        """
        Count one verification attempt against ``record``.

        Single conditional UPDATE guarded by the attempt count read earlier:
        returns False if another attempt landed first, in which case nothing
        was written and the caller must re-read.
        """
        attempts = record.attempts + 1
        values = {"attempts": F("attempts") + 1}
        if matched:
            values["status"] = self.model.Status.VERIFIED
            values["verified_at"] = now
        elif attempts >= max_attempts:
            values["status"] = self.model.Status.CONSUMED_EXHAUSTED

        updated = self.model.objects.filter(
            id=record.id,
            status=self.model.Status.PENDING,
            attempts=record.attempts,
        ).update(**values)
        if not updated:
            return False

        record.attempts = attempts
        record.status = values.get("status", record.status)
        record.verified_at = values.get("verified_at", record.verified_at)
        return True

    def latest_recently_verified(self, user, purpose, *, verified_since, now):
        return (
            self.model.objects.filter(
                user=user,
                purpose=purpose,
                status=self.model.Status.VERIFIED,
                verified_at__gte=verified_since,
                expires_at__gte=now,
            )
            .order_by("-verified_at")
            .first()
        )

    def delete_expired(self, now) -> int:
        deleted, _ = self.model.objects.filter(expires_at__lt=now).delete()
        return deleted
