"""
Phone OTP lifecycle: issuance, verification and the password reset /
phone verification flows built on top of it.
"""

import logging
import math
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from django.conf import settings
from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError
from django.utils import timezone

from apps.notifications.services import get_sms_dispatcher

from .models import OTPVerification
from .stores import OTPRecordStore, find_subject_by_phone
from .utils import generate_otp, hash_otp, otp_hashes_match, verify_otp

logger = logging.getLogger(__name__)

Purpose = OTPVerification.Purpose

MSG_SEND_FAILED = "Failed to send OTP. Please try again."
MSG_VERIFY_FAILED = "Failed to verify OTP. Please try again."
MSG_INVALID_CODE = "Invalid verification code"
MSG_EXPIRED = "OTP expired or not found. Please request a new one."
MSG_MAX_ATTEMPTS = "Maximum verification attempts exceeded. Please request a new OTP."


@dataclass(frozen=True)
class OTPRequestResult:
    success: bool
    message: str
    otp_id: Optional[str] = None


@dataclass(frozen=True)
class OTPVerifyResult:
    success: bool
    message: str
    user_id: Optional[int] = None


def build_otp_message(name: str, otp: str, purpose: str, ttl_minutes: int) -> str:
    first_name = (name or "").split(" ")[0] or "User"
    app_name = getattr(settings, "APP_NAME", "LMS")
    purpose_text = "password reset" if purpose == Purpose.PASSWORD_RESET else "login"
    return (
        f"Dear {first_name},\n\n"
        f"Your OTP for {purpose_text} is: {otp}\n\n"
        f"This OTP is valid for {ttl_minutes} minutes.\n"
        f"Do not share this OTP with anyone.\n\n"
        f"- {app_name}"
    )


class OTPService:
    """
    Issues and verifies phone OTPs.

    Collaborators are injected so tests can swap them:
      - store: OTP record persistence (OTPRecordStore)
      - dispatcher: anything with send(destination, message) -> result.success
      - clock: callable returning an aware datetime
      - code_generator: callable returning the plain code

    Domain failures come back as result objects; unexpected errors are
    logged and turned into a generic "try again" result.
    """

    def __init__(
        self,
        *,
        store=None,
        dispatcher=None,
        clock=None,
        code_generator=None,
        ttl_seconds=None,
        max_attempts=None,
        cooldown_seconds=None,
        grace_seconds=None,
    ):
        self.store = store or OTPRecordStore()
        self.dispatcher = dispatcher or get_sms_dispatcher()
        self.clock = clock or timezone.now
        self.code_generator = code_generator or generate_otp
        self.ttl = timedelta(seconds=ttl_seconds or getattr(settings, "OTP_TTL_SECONDS", 600))
        self.max_attempts = max_attempts or getattr(settings, "OTP_MAX_ATTEMPTS", 3)
        self.cooldown = timedelta(
            seconds=cooldown_seconds or getattr(settings, "OTP_RESEND_COOLDOWN_SECONDS", 60)
        )
        self.grace = timedelta(seconds=grace_seconds or getattr(settings, "OTP_VERIFIED_GRACE_SECONDS", 300))

    def request_otp(self, phone: str, purpose: str = Purpose.PASSWORD_RESET) -> OTPRequestResult:
        try:
            return self._request_otp(phone, purpose)
        except Exception:
            logger.exception("Error requesting OTP", extra={"purpose": purpose})
            return OTPRequestResult(success=False, message=MSG_SEND_FAILED)

    def _request_otp(self, phone, purpose):
        if purpose not in Purpose.values:
            return OTPRequestResult(success=False, message="Invalid OTP purpose")

        user = find_subject_by_phone(phone)
        generic_errors = getattr(settings, "OTP_GENERIC_SUBJECT_ERRORS", False)
        if user is None:
            message = (
                "Unable to send OTP to this phone number."
                if generic_errors
                else "No account found with this phone number"
            )
            return OTPRequestResult(success=False, message=message)
        if not user.is_active:
            message = (
                "Unable to send OTP to this phone number."
                if generic_errors
                else "Account is deactivated. Please contact support."
            )
            return OTPRequestResult(success=False, message=message)

        now = self.clock()
        recent = self.store.latest_created_since(user, purpose, now - self.cooldown)
        if recent is not None:
            remaining = self.cooldown - (now - recent.created_at)
            seconds_left = max(1, math.ceil(remaining.total_seconds()))
            return OTPRequestResult(
                success=False,
                message=f"Please wait {seconds_left} seconds before requesting a new OTP",
            )

        otp = self.code_generator()
        record = self.store.issue(
            user=user,
            purpose=purpose,
            otp_hash=hash_otp(otp),
            created_at=now,
            expires_at=now + self.ttl,
        )

        ttl_minutes = max(1, int(self.ttl.total_seconds()) // 60)
        message = build_otp_message(user.name, otp, purpose, ttl_minutes)
        if not self._dispatch(user, message, record):
            # The user was never told this code, so it must not stay pending.
            self.store.delete(record.id)
            return OTPRequestResult(success=False, message=MSG_SEND_FAILED)

        logger.info(
            "OTP sent",
            extra={"user_id": user.id, "purpose": purpose, "otp_id": str(record.id)},
        )
        if settings.DEBUG and getattr(settings, "OTP_DEBUG_LOG_CODES", False):
            logger.info("[dev] OTP for %s: %s", user.phone_number, otp)

        return OTPRequestResult(
            success=True,
            message="OTP sent successfully to your phone number",
            otp_id=str(record.id),
        )

    def _dispatch(self, user, message, record) -> bool:
        try:
            result = self.dispatcher.send(user.phone_number, message)
        except Exception:
            logger.exception(
                "OTP SMS dispatch raised",
                extra={"user_id": user.id, "otp_id": str(record.id)},
            )
            return False
        if not getattr(result, "success", False):
            logger.warning(
                "OTP SMS dispatch failed",
                extra={"user_id": user.id, "otp_id": str(record.id)},
            )
            return False
        return True

    def verify_otp(self, phone: str, otp: str, purpose: str = Purpose.PASSWORD_RESET) -> OTPVerifyResult:
        try:
            return self._verify_otp(phone, otp, purpose)
        except Exception:
            logger.exception("Error verifying OTP", extra={"purpose": purpose})
            return OTPVerifyResult(success=False, message=MSG_VERIFY_FAILED)

    def _verify_otp(self, phone, otp, purpose):
        user = find_subject_by_phone(phone)
        if user is None:
            return OTPVerifyResult(success=False, message=MSG_INVALID_CODE)

        supplied_hash = hash_otp((otp or "").strip())

        # A lost race on the guarded update means another attempt was
        # counted first; re-read and count this one against the new state.
        for _ in range(self.max_attempts + 1):
            now = self.clock()
            record = self.store.latest_pending(user, purpose, now)
            if record is None:
                return OTPVerifyResult(success=False, message=MSG_EXPIRED)

            if record.attempts >= self.max_attempts:
                self.store.mark_exhausted(record)
                return OTPVerifyResult(success=False, message=MSG_MAX_ATTEMPTS)

            matched = otp_hashes_match(supplied_hash, record.otp_hash)
            if self.store.record_attempt(record, matched=matched, now=now, max_attempts=self.max_attempts):
                break
        else:
            logger.warning(
                "OTP verification kept losing concurrent updates",
                extra={"user_id": user.id, "purpose": purpose},
            )
            return OTPVerifyResult(success=False, message=MSG_VERIFY_FAILED)

        if not matched:
            attempts_left = self.max_attempts - record.attempts
            if attempts_left <= 0:
                logger.info(
                    "OTP attempts exhausted",
                    extra={"user_id": user.id, "otp_id": str(record.id)},
                )
                return OTPVerifyResult(success=False, message=MSG_MAX_ATTEMPTS)
            return OTPVerifyResult(
                success=False,
                message=f"Invalid OTP. {attempts_left} attempt(s) remaining.",
            )

        logger.info("OTP verified", extra={"user_id": user.id, "otp_id": str(record.id)})
        return OTPVerifyResult(success=True, message="OTP verified successfully", user_id=user.id)

    def check_recently_verified(
        self, phone: str, otp: str, purpose: str = Purpose.PASSWORD_RESET
    ) -> OTPVerifyResult:
        """Confirm ``otp`` is the code that was verified within the grace window."""
        try:
            user = find_subject_by_phone(phone)
            if user is None:
                return OTPVerifyResult(success=False, message=MSG_INVALID_CODE)

            now = self.clock()
            record = self.store.latest_recently_verified(
                user, purpose, verified_since=now - self.grace, now=now
            )
            if record is None:
                return OTPVerifyResult(success=False, message=MSG_EXPIRED)

            if not verify_otp((otp or "").strip(), record.otp_hash):
                return OTPVerifyResult(success=False, message="Invalid OTP")

            return OTPVerifyResult(success=True, message="OTP is valid", user_id=user.id)
        except Exception:
            logger.exception("Error checking recently verified OTP", extra={"purpose": purpose})
            return OTPVerifyResult(success=False, message=MSG_VERIFY_FAILED)

    def cleanup_expired(self) -> int:
        """Delete every OTP past its expiry, whatever its status."""
        try:
            deleted = self.store.delete_expired(self.clock())
        except Exception:
            logger.exception("Error cleaning up expired OTPs")
            return 0
        logger.info("Cleaned up %s expired OTPs", deleted)
        return deleted


def get_otp_service(**kwargs) -> OTPService:
    return OTPService(**kwargs)


def reset_password_with_otp(phone: str, otp: str, new_password: str, service=None) -> OTPVerifyResult:
    """
    Final step of the phone password reset: the code must have been
    verified within the grace window.
    """
    service = service or get_otp_service()
    check = service.check_recently_verified(phone, otp, Purpose.PASSWORD_RESET)
    if not check.success:
        return check

    user = get_user_model().objects.filter(pk=check.user_id).first()
    if user is None or not user.is_active:
        return OTPVerifyResult(success=False, message=MSG_INVALID_CODE)

    try:
        validate_password(new_password, user=user)
    except ValidationError as exc:
        return OTPVerifyResult(success=False, message=" ".join(exc.messages))

    user.set_password(new_password)
    user.save(update_fields=["password"])
    logger.info("Password reset via OTP", extra={"user_id": user.id})
    return OTPVerifyResult(
        success=True,
        message="Password reset successful. You can now login with your new password.",
        user_id=user.id,
    )


def request_phone_verification(user, service=None) -> OTPRequestResult:
    if user.phone_verified:
        return OTPRequestResult(success=False, message="Account is already verified")
    if not user.phone_number:
        return OTPRequestResult(success=False, message="Phone number is required for verification")

    service = service or get_otp_service()
    result = service.request_otp(user.phone_number, Purpose.LOGIN)
    if not result.success:
        return result
    return OTPRequestResult(
        success=True,
        message="Verification OTP sent to your phone number",
        otp_id=result.otp_id,
    )


def verify_phone_with_otp(user, otp: str, service=None) -> OTPVerifyResult:
    if user.phone_verified:
        return OTPVerifyResult(success=False, message="Account is already verified")
    if not user.phone_number:
        return OTPVerifyResult(success=False, message="Phone number not found")

    service = service or get_otp_service()
    result = service.verify_otp(user.phone_number, otp, Purpose.LOGIN)
    if not result.success:
        return result

    user.phone_verified = True
    user.save(update_fields=["phone_verified"])
    return OTPVerifyResult(success=True, message="Phone number verified successfully", user_id=user.id)
