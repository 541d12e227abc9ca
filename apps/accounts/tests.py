from datetime import timedelta
from io import StringIO
from unittest.mock import MagicMock

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import TestCase, override_settings
from django.utils import timezone

from apps.accounts.models import OTPVerification
from apps.accounts.services import (
    MSG_EXPIRED,
    MSG_INVALID_CODE,
    MSG_MAX_ATTEMPTS,
    MSG_SEND_FAILED,
    OTPService,
    build_otp_message,
    request_phone_verification,
    reset_password_with_otp,
    verify_phone_with_otp,
)
from apps.accounts.stores import OTPRecordStore
from apps.accounts.utils import generate_otp, hash_otp, otp_hashes_match, verify_otp
from apps.notifications.services import SMSDispatcher, SMSResult

User = get_user_model()

PHONE = "9800000001"
CODE = "482913"
WRONG_CODE = "111111"

Purpose = OTPVerification.Purpose
Status = OTPVerification.Status


class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


def _make_service(clock, codes=None, dispatcher=None, **kwargs):
    if dispatcher is None:
        dispatcher = MagicMock()
        dispatcher.send.return_value = SMSResult(success=True, message="SMS sent successfully")
    code_generator = MagicMock(side_effect=list(codes)) if codes else (lambda: CODE)
    return OTPService(dispatcher=dispatcher, clock=clock, code_generator=code_generator, **kwargs)


class OTPServiceTestCase(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(
            username="s1",
            password="Initial123",
            first_name="Sita",
            last_name="Sharma",
            phone_number=PHONE,
        )
        self.clock = FakeClock(timezone.now())
        self.service = _make_service(self.clock)

    def _records(self, purpose=Purpose.PASSWORD_RESET):
        return OTPVerification.objects.filter(user=self.user, purpose=purpose)


class OTPUtilsTests(TestCase):
    def test_generate_otp_is_six_digits_without_leading_zero(self):
        for _ in range(200):
            otp = generate_otp()
            self.assertEqual(len(otp), 6)
            self.assertTrue(otp.isdigit())
            self.assertTrue(100000 <= int(otp) <= 999999)

    def test_hash_is_deterministic_hex_sha256(self):
        self.assertEqual(hash_otp(CODE), hash_otp(CODE))
        self.assertEqual(len(hash_otp(CODE)), 64)
        self.assertNotEqual(hash_otp(CODE), CODE)

    def test_hashes_match_only_for_same_code(self):
        self.assertTrue(otp_hashes_match(hash_otp(CODE), hash_otp(CODE)))
        self.assertFalse(otp_hashes_match(hash_otp(CODE), hash_otp(WRONG_CODE)))

    def test_hashes_of_different_length_do_not_match(self):
        self.assertFalse(otp_hashes_match(hash_otp(CODE), hash_otp(CODE)[:10]))
        self.assertFalse(otp_hashes_match("", hash_otp(CODE)))
        self.assertFalse(otp_hashes_match(None, hash_otp(CODE)))

    def test_verify_otp_against_stored_hash(self):
        stored = hash_otp(CODE)
        self.assertTrue(verify_otp(CODE, stored))
        self.assertFalse(verify_otp(WRONG_CODE, stored))
        self.assertFalse(verify_otp("", stored))


class RequestOTPTests(OTPServiceTestCase):
    def test_request_stores_hash_and_sends_code(self):
        result = self.service.request_otp(PHONE, Purpose.PASSWORD_RESET)

        self.assertTrue(result.success)
        self.assertEqual(result.message, "OTP sent successfully to your phone number")
        record = OTPVerification.objects.get(id=result.otp_id)
        self.assertEqual(record.status, Status.PENDING)
        self.assertEqual(record.attempts, 0)
        self.assertEqual(record.otp_hash, hash_otp(CODE))
        self.assertNotEqual(record.otp_hash, CODE)
        self.assertEqual(record.created_at, self.clock.now)
        self.assertEqual(record.expires_at, self.clock.now + timedelta(minutes=10))

        destination, message = self.service.dispatcher.send.call_args[0]
        self.assertEqual(destination, PHONE)
        self.assertIn(CODE, message)
        self.assertIn("Dear Sita", message)
        self.assertIn("password reset", message)

    def test_result_does_not_carry_the_code(self):
        result = self.service.request_otp(PHONE)
        self.assertNotIn(CODE, result.message)
        self.assertNotEqual(result.otp_id, CODE)

    def test_phone_is_trimmed_before_lookup(self):
        result = self.service.request_otp(f"  {PHONE} ")
        self.assertTrue(result.success)

    def test_unknown_purpose_is_rejected(self):
        result = self.service.request_otp(PHONE, "EMAIL_CHANGE")
        self.assertFalse(result.success)
        self.assertFalse(OTPVerification.objects.exists())

    def test_unknown_phone_is_rejected(self):
        result = self.service.request_otp("9811111111")
        self.assertFalse(result.success)
        self.assertEqual(result.message, "No account found with this phone number")
        self.service.dispatcher.send.assert_not_called()

    def test_inactive_account_is_rejected(self):
        self.user.is_active = False
        self.user.save(update_fields=["is_active"])

        result = self.service.request_otp(PHONE)
        self.assertFalse(result.success)
        self.assertEqual(result.message, "Account is deactivated. Please contact support.")
        self.assertFalse(self._records().exists())

    @override_settings(OTP_GENERIC_SUBJECT_ERRORS=True)
    def test_generic_subject_errors_hide_account_state(self):
        self.user.is_active = False
        self.user.save(update_fields=["is_active"])

        unknown = self.service.request_otp("9811111111")
        inactive = self.service.request_otp(PHONE)
        self.assertEqual(unknown.message, inactive.message)

    def test_second_request_within_cooldown_reports_wait_time(self):
        self.assertTrue(self.service.request_otp(PHONE).success)

        result = self.service.request_otp(PHONE)
        self.assertFalse(result.success)
        self.assertEqual(result.message, "Please wait 60 seconds before requesting a new OTP")

        self.clock.advance(seconds=45, milliseconds=500)
        result = self.service.request_otp(PHONE)
        self.assertFalse(result.success)
        self.assertEqual(result.message, "Please wait 15 seconds before requesting a new OTP")
        self.assertEqual(self.service.dispatcher.send.call_count, 1)

    def test_cooldown_is_per_purpose(self):
        self.assertTrue(self.service.request_otp(PHONE, Purpose.PASSWORD_RESET).success)
        self.assertTrue(self.service.request_otp(PHONE, Purpose.LOGIN).success)

    def test_new_request_supersedes_pending_code(self):
        first = self.service.request_otp(PHONE)
        self.clock.advance(seconds=61)
        second = self.service.request_otp(PHONE)

        self.assertTrue(second.success)
        pending = self._records().filter(status=Status.PENDING)
        self.assertEqual(pending.count(), 1)
        self.assertEqual(str(pending.get().id), second.otp_id)

        superseded = OTPVerification.objects.get(id=first.otp_id)
        self.assertEqual(superseded.status, Status.CONSUMED_SUPERSEDED)
        self.assertTrue(superseded.verified)
        self.assertIsNone(superseded.verified_at)

    def test_dispatch_failure_rolls_back_record(self):
        dispatcher = MagicMock()
        dispatcher.send.side_effect = [
            SMSResult(success=False, message="Failed to send SMS"),
            SMSResult(success=True, message="SMS sent successfully"),
        ]
        service = _make_service(self.clock, dispatcher=dispatcher)

        result = service.request_otp(PHONE)
        self.assertFalse(result.success)
        self.assertEqual(result.message, MSG_SEND_FAILED)
        self.assertFalse(self._records().filter(status=Status.PENDING).exists())

        # No cooldown: the failed code never counted as issued.
        retry = service.request_otp(PHONE)
        self.assertTrue(retry.success)

    def test_dispatch_exception_rolls_back_record(self):
        dispatcher = MagicMock()
        dispatcher.send.side_effect = RuntimeError("gateway down")
        service = _make_service(self.clock, dispatcher=dispatcher)

        with self.assertLogs("apps.accounts.services", level="ERROR"):
            result = service.request_otp(PHONE)
        self.assertFalse(result.success)
        self.assertEqual(result.message, MSG_SEND_FAILED)
        self.assertFalse(self._records().exists())

    def test_store_failure_returns_generic_message(self):
        store = MagicMock(spec=OTPRecordStore)
        store.latest_created_since.side_effect = RuntimeError("database unavailable")
        service = _make_service(self.clock, store=store)

        with self.assertLogs("apps.accounts.services", level="ERROR"):
            result = service.request_otp(PHONE)
        self.assertFalse(result.success)
        self.assertEqual(result.message, MSG_SEND_FAILED)
        self.assertNotIn("database", result.message)

    @override_settings(DEBUG=False, OTP_DEBUG_LOG_CODES=False, SMS_ENABLED=True)
    def test_plain_code_stays_out_of_logs(self):
        service = _make_service(self.clock, dispatcher=SMSDispatcher(provider="console"))

        with self.assertLogs("apps", level="DEBUG") as logs:
            result = service.request_otp(PHONE)

        self.assertTrue(result.success)
        for record in logs.records:
            self.assertNotIn(CODE, record.getMessage())

    @override_settings(DEBUG=False, OTP_DEBUG_LOG_CODES=True)
    def test_debug_code_logging_needs_debug_mode(self):
        with self.assertLogs("apps", level="DEBUG") as logs:
            self.service.request_otp(PHONE)

        for record in logs.records:
            self.assertNotIn(CODE, record.getMessage())

    @override_settings(DEBUG=True, OTP_DEBUG_LOG_CODES=True)
    def test_debug_code_logging_in_development(self):
        with self.assertLogs("apps.accounts.services", level="INFO") as logs:
            self.service.request_otp(PHONE)

        self.assertIn(f"[dev] OTP for {PHONE}: {CODE}", [r.getMessage() for r in logs.records])


class VerifyOTPTests(OTPServiceTestCase):
    def setUp(self):
        super().setUp()
        self.otp_id = self.service.request_otp(PHONE).otp_id

    def _record(self):
        return OTPVerification.objects.get(id=self.otp_id)

    def test_correct_code_verifies_once(self):
        self.clock.advance(minutes=1)
        result = self.service.verify_otp(PHONE, CODE)

        self.assertTrue(result.success)
        self.assertEqual(result.message, "OTP verified successfully")
        self.assertEqual(result.user_id, self.user.id)
        record = self._record()
        self.assertEqual(record.status, Status.VERIFIED)
        self.assertEqual(record.verified_at, self.clock.now)
        self.assertEqual(record.attempts, 1)

        again = self.service.verify_otp(PHONE, CODE)
        self.assertFalse(again.success)
        self.assertEqual(again.message, MSG_EXPIRED)

    def test_wrong_code_counts_one_attempt(self):
        result = self.service.verify_otp(PHONE, WRONG_CODE)

        self.assertFalse(result.success)
        self.assertEqual(result.message, "Invalid OTP. 2 attempt(s) remaining.")
        record = self._record()
        self.assertEqual(record.attempts, 1)
        self.assertEqual(record.status, Status.PENDING)
        self.assertIsNone(record.verified_at)

    def test_three_wrong_codes_exhaust_the_record(self):
        messages = [self.service.verify_otp(PHONE, WRONG_CODE).message for _ in range(3)]

        self.assertEqual(
            messages,
            [
                "Invalid OTP. 2 attempt(s) remaining.",
                "Invalid OTP. 1 attempt(s) remaining.",
                MSG_MAX_ATTEMPTS,
            ],
        )
        record = self._record()
        self.assertEqual(record.attempts, 3)
        self.assertEqual(record.status, Status.CONSUMED_EXHAUSTED)
        self.assertIsNone(record.verified_at)

        fourth = self.service.verify_otp(PHONE, CODE)
        self.assertFalse(fourth.success)
        self.assertEqual(fourth.message, MSG_EXPIRED)
        self.assertEqual(self._record().attempts, 3)

    def test_wrong_then_correct_code_succeeds(self):
        self.service.verify_otp(PHONE, WRONG_CODE)
        result = self.service.verify_otp(PHONE, CODE)
        self.assertTrue(result.success)
        self.assertEqual(self._record().attempts, 2)

    def test_record_already_at_cap_is_consumed(self):
        OTPVerification.objects.filter(id=self.otp_id).update(attempts=3)

        result = self.service.verify_otp(PHONE, CODE)
        self.assertFalse(result.success)
        self.assertEqual(result.message, MSG_MAX_ATTEMPTS)
        record = self._record()
        self.assertEqual(record.status, Status.CONSUMED_EXHAUSTED)
        self.assertIsNone(record.verified_at)

    def test_unknown_phone_gets_generic_message(self):
        result = self.service.verify_otp("9811111111", CODE)
        self.assertFalse(result.success)
        self.assertEqual(result.message, MSG_INVALID_CODE)

    def test_expired_code_is_rejected(self):
        self.clock.advance(minutes=10, seconds=1)
        result = self.service.verify_otp(PHONE, CODE)
        self.assertFalse(result.success)
        self.assertEqual(result.message, MSG_EXPIRED)
        self.assertEqual(self._record().attempts, 0)

    def test_code_is_valid_until_expiry(self):
        self.clock.advance(minutes=10)
        self.assertTrue(self.service.verify_otp(PHONE, CODE).success)

    def test_purposes_are_independent(self):
        result = self.service.verify_otp(PHONE, CODE, Purpose.LOGIN)
        self.assertFalse(result.success)
        self.assertEqual(result.message, MSG_EXPIRED)
        self.assertEqual(self._record().attempts, 0)

    def test_superseded_code_no_longer_verifies(self):
        service = _make_service(self.clock, codes=["222222"])
        self.clock.advance(seconds=61)
        self.assertTrue(service.request_otp(PHONE).success)

        old = service.verify_otp(PHONE, CODE)
        self.assertFalse(old.success)
        self.assertEqual(old.message, "Invalid OTP. 2 attempt(s) remaining.")
        self.assertTrue(service.verify_otp(PHONE, "222222").success)
        self.assertEqual(self._record().status, Status.CONSUMED_SUPERSEDED)


class ConcurrentAttemptTests(OTPServiceTestCase):
    def setUp(self):
        super().setUp()
        self.otp_id = self.service.request_otp(PHONE).otp_id

    def test_stale_attempt_update_is_rejected(self):
        store = OTPRecordStore()
        first = OTPVerification.objects.get(id=self.otp_id)
        stale = OTPVerification.objects.get(id=self.otp_id)

        self.assertTrue(store.record_attempt(first, matched=False, now=self.clock.now, max_attempts=3))
        self.assertFalse(store.record_attempt(stale, matched=True, now=self.clock.now, max_attempts=3))

        record = OTPVerification.objects.get(id=self.otp_id)
        self.assertEqual(record.attempts, 1)
        self.assertEqual(record.status, Status.PENDING)

    def test_lost_race_is_retried_and_counted_once(self):
        clock = self.clock

        class RacingStore(OTPRecordStore):
            raced = False

            def record_attempt(self, record, **kwargs):
                if not self.raced:
                    self.raced = True
                    competing = OTPVerification.objects.get(id=record.id)
                    super().record_attempt(competing, matched=False, now=clock.now, max_attempts=3)
                return super().record_attempt(record, **kwargs)

        service = _make_service(self.clock, store=RacingStore())
        result = service.verify_otp(PHONE, WRONG_CODE)

        self.assertEqual(result.message, "Invalid OTP. 1 attempt(s) remaining.")
        self.assertEqual(OTPVerification.objects.get(id=self.otp_id).attempts, 2)

    def test_lost_race_on_last_attempt_cannot_exceed_cap(self):
        OTPVerification.objects.filter(id=self.otp_id).update(attempts=2)
        clock = self.clock

        class RacingStore(OTPRecordStore):
            raced = False

            def record_attempt(self, record, **kwargs):
                if not self.raced:
                    self.raced = True
                    competing = OTPVerification.objects.get(id=record.id)
                    super().record_attempt(competing, matched=False, now=clock.now, max_attempts=3)
                return super().record_attempt(record, **kwargs)

        service = _make_service(self.clock, store=RacingStore())
        result = service.verify_otp(PHONE, CODE)

        self.assertFalse(result.success)
        self.assertEqual(result.message, MSG_EXPIRED)
        record = OTPVerification.objects.get(id=self.otp_id)
        self.assertEqual(record.attempts, 3)
        self.assertEqual(record.status, Status.CONSUMED_EXHAUSTED)


class CheckRecentlyVerifiedTests(OTPServiceTestCase):
    def setUp(self):
        super().setUp()
        self.service.request_otp(PHONE)

    def test_grace_window_after_verification(self):
        self.assertTrue(self.service.verify_otp(PHONE, CODE).success)

        self.clock.advance(minutes=4)
        result = self.service.check_recently_verified(PHONE, CODE)
        self.assertTrue(result.success)
        self.assertEqual(result.message, "OTP is valid")
        self.assertEqual(result.user_id, self.user.id)

        self.clock.advance(minutes=2)
        result = self.service.check_recently_verified(PHONE, CODE)
        self.assertFalse(result.success)
        self.assertEqual(result.message, MSG_EXPIRED)

    def test_check_does_not_consume(self):
        self.service.verify_otp(PHONE, CODE)
        self.assertTrue(self.service.check_recently_verified(PHONE, CODE).success)
        self.assertTrue(self.service.check_recently_verified(PHONE, CODE).success)

    def test_wrong_code_is_rejected(self):
        self.service.verify_otp(PHONE, CODE)
        result = self.service.check_recently_verified(PHONE, WRONG_CODE)
        self.assertFalse(result.success)
        self.assertEqual(result.message, "Invalid OTP")

    def test_pending_code_is_not_recently_verified(self):
        result = self.service.check_recently_verified(PHONE, CODE)
        self.assertFalse(result.success)
        self.assertEqual(result.message, MSG_EXPIRED)

    def test_exhausted_code_is_not_recently_verified(self):
        for _ in range(3):
            self.service.verify_otp(PHONE, WRONG_CODE)
        result = self.service.check_recently_verified(PHONE, WRONG_CODE)
        self.assertFalse(result.success)
        self.assertEqual(result.message, MSG_EXPIRED)

    def test_record_expiry_ends_grace_window_early(self):
        service = _make_service(self.clock, ttl_seconds=120)
        self.clock.advance(seconds=61)
        service.request_otp(PHONE)
        self.assertTrue(service.verify_otp(PHONE, CODE).success)

        self.clock.advance(minutes=3)
        result = service.check_recently_verified(PHONE, CODE)
        self.assertFalse(result.success)
        self.assertEqual(result.message, MSG_EXPIRED)

    def test_unknown_phone_gets_generic_message(self):
        result = self.service.check_recently_verified("9811111111", CODE)
        self.assertEqual(result.message, MSG_INVALID_CODE)


class CleanupExpiredTests(OTPServiceTestCase):
    def _create(self, status, expires_delta):
        return OTPVerification.objects.create(
            user=self.user,
            purpose=Purpose.PASSWORD_RESET,
            otp_hash=hash_otp(CODE),
            status=status,
            created_at=self.clock.now,
            expires_at=self.clock.now + expires_delta,
        )

    def test_deletes_expired_records_regardless_of_status(self):
        self._create(Status.PENDING, timedelta(minutes=-1))
        self._create(Status.VERIFIED, timedelta(minutes=-1))
        self._create(Status.CONSUMED_SUPERSEDED, timedelta(seconds=-1))
        live = self._create(Status.PENDING, timedelta(minutes=5))

        self.assertEqual(self.service.cleanup_expired(), 3)
        self.assertEqual(list(OTPVerification.objects.values_list("id", flat=True)), [live.id])

    def test_cleanup_failure_is_logged_not_raised(self):
        store = MagicMock(spec=OTPRecordStore)
        store.delete_expired.side_effect = RuntimeError("database unavailable")
        service = _make_service(self.clock, store=store)

        with self.assertLogs("apps.accounts.services", level="ERROR"):
            self.assertEqual(service.cleanup_expired(), 0)

    def test_management_command_removes_expired_records(self):
        OTPVerification.objects.create(
            user=self.user,
            purpose=Purpose.LOGIN,
            otp_hash=hash_otp(CODE),
            expires_at=timezone.now() - timedelta(minutes=1),
        )
        out = StringIO()
        call_command("cleanup_expired_otps", stdout=out)

        self.assertIn("Cleaned up 1 expired OTPs", out.getvalue())
        self.assertFalse(OTPVerification.objects.exists())


class PasswordResetFlowTests(OTPServiceTestCase):
    NEW_PASSWORD = "BrandNewPass42!"

    def test_reset_after_verification_changes_password(self):
        self.service.request_otp(PHONE)
        self.service.verify_otp(PHONE, CODE)
        self.clock.advance(minutes=2)

        result = reset_password_with_otp(PHONE, CODE, self.NEW_PASSWORD, service=self.service)

        self.assertTrue(result.success)
        self.assertEqual(
            result.message,
            "Password reset successful. You can now login with your new password.",
        )
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password(self.NEW_PASSWORD))

    def test_reset_without_verification_is_rejected(self):
        self.service.request_otp(PHONE)

        result = reset_password_with_otp(PHONE, CODE, self.NEW_PASSWORD, service=self.service)

        self.assertFalse(result.success)
        self.assertEqual(result.message, MSG_EXPIRED)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password("Initial123"))

    def test_weak_password_is_rejected(self):
        self.service.request_otp(PHONE)
        self.service.verify_otp(PHONE, CODE)

        result = reset_password_with_otp(PHONE, CODE, "alllowercase", service=self.service)

        self.assertFalse(result.success)
        self.assertIn("uppercase", result.message)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password("Initial123"))

    def test_password_without_special_character_is_rejected(self):
        self.service.request_otp(PHONE)
        self.service.verify_otp(PHONE, CODE)

        result = reset_password_with_otp(PHONE, CODE, "BrandNewPass42", service=self.service)

        self.assertFalse(result.success)
        self.assertIn("special character", result.message)

    def test_deactivated_account_cannot_reset(self):
        self.service.request_otp(PHONE)
        self.service.verify_otp(PHONE, CODE)
        self.user.is_active = False
        self.user.save(update_fields=["is_active"])

        result = reset_password_with_otp(PHONE, CODE, self.NEW_PASSWORD, service=self.service)

        self.assertFalse(result.success)
        self.assertEqual(result.message, MSG_INVALID_CODE)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password("Initial123"))


class PhoneVerificationFlowTests(OTPServiceTestCase):
    def test_request_and_verify_marks_phone_verified(self):
        requested = request_phone_verification(self.user, service=self.service)
        self.assertTrue(requested.success)
        self.assertEqual(requested.message, "Verification OTP sent to your phone number")
        self.assertTrue(self._records(Purpose.LOGIN).exists())
        self.assertIn("login", self.service.dispatcher.send.call_args[0][1])

        result = verify_phone_with_otp(self.user, CODE, service=self.service)
        self.assertTrue(result.success)
        self.user.refresh_from_db()
        self.assertTrue(self.user.phone_verified)

    def test_password_reset_code_cannot_verify_phone(self):
        self.service.request_otp(PHONE, Purpose.PASSWORD_RESET)
        result = verify_phone_with_otp(self.user, CODE, service=self.service)
        self.assertFalse(result.success)
        self.user.refresh_from_db()
        self.assertFalse(self.user.phone_verified)

    def test_already_verified_user_is_rejected(self):
        self.user.phone_verified = True
        self.user.save(update_fields=["phone_verified"])

        self.assertEqual(
            request_phone_verification(self.user, service=self.service).message,
            "Account is already verified",
        )
        self.assertEqual(
            verify_phone_with_otp(self.user, CODE, service=self.service).message,
            "Account is already verified",
        )
        self.service.dispatcher.send.assert_not_called()

    def test_user_without_phone_is_rejected(self):
        user = User.objects.create_user(username="t1", password="Initial123", role=User.Role.TEACHER)
        self.assertEqual(
            request_phone_verification(user, service=self.service).message,
            "Phone number is required for verification",
        )
        self.assertEqual(
            verify_phone_with_otp(user, CODE, service=self.service).message,
            "Phone number not found",
        )


class OTPMessageTests(TestCase):
    @override_settings(APP_NAME="School LMS")
    def test_message_names_purpose_validity_and_app(self):
        message = build_otp_message("Ram Bahadur Thapa", CODE, Purpose.LOGIN, 10)
        self.assertTrue(message.startswith("Dear Ram,"))
        self.assertIn(f"Your OTP for login is: {CODE}", message)
        self.assertIn("valid for 10 minutes", message)
        self.assertTrue(message.endswith("- School LMS"))
