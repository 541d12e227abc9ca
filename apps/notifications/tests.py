from unittest.mock import MagicMock, patch

import requests
from django.test import TestCase, override_settings

from apps.notifications.services import SMSDispatcher


@override_settings(SMS_ENABLED=True, SMS_COUNTRY_CODE="977")
class SMSDispatcherTests(TestCase):
    def _http_dispatcher(self):
        return SMSDispatcher(
            provider="http",
            api_url="https://sms.example.com/api/v2/",
            bearer_token="token-123",
        )

    def test_format_phone_number_strips_country_code_and_zeros(self):
        dispatcher = SMSDispatcher(provider="console")
        self.assertEqual(dispatcher.format_phone_number("+977 9800000001"), "9800000001")
        self.assertEqual(dispatcher.format_phone_number("9779800000001"), "9800000001")
        self.assertEqual(dispatcher.format_phone_number("09800000001"), "9800000001")
        self.assertEqual(dispatcher.format_phone_number(" 98000 00001 "), "9800000001")

    def test_console_provider_logs_and_succeeds(self):
        dispatcher = SMSDispatcher(provider="console")
        with self.assertLogs("apps.notifications.services", level="INFO") as logs:
            result = dispatcher.send("9800000001", "Your OTP is 123456")
        self.assertTrue(result.success)
        self.assertEqual(logs.output, ["INFO:apps.notifications.services:SMS (console) to=9800000001 length=18"])

    @override_settings(SMS_API_URL="", SMS_BEARER_TOKEN="")
    def test_auto_provider_without_gateway_reports_failure(self):
        result = SMSDispatcher(provider="auto").send("9800000001", "hello")
        self.assertFalse(result.success)
        self.assertEqual(result.message, "SMS service not configured")

    @override_settings(SMS_ENABLED=False)
    def test_disabled_sms_never_calls_gateway(self):
        with patch("apps.notifications.services.requests.post") as mock_post:
            result = self._http_dispatcher().send("9800000001", "hello")
        self.assertFalse(result.success)
        mock_post.assert_not_called()

    def test_missing_destination_fails(self):
        result = self._http_dispatcher().send("   ", "hello")
        self.assertFalse(result.success)
        self.assertEqual(result.message, "No phone number provided")

    @patch("apps.notifications.services.requests.post")
    def test_http_provider_posts_to_gateway(self, mock_post):
        mock_post.return_value = MagicMock(
            status_code=200,
            json=MagicMock(return_value={"message": "Success! SMS has been sent", "ntc": 1}),
        )

        result = self._http_dispatcher().send("+9779800000001", "Your OTP is 123456")

        self.assertTrue(result.success)
        mock_post.assert_called_once()
        args, kwargs = mock_post.call_args
        self.assertEqual(args[0], "https://sms.example.com/api/v2/sms")
        self.assertEqual(kwargs["json"], {"message": "Your OTP is 123456", "mobile": "9800000001"})
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer token-123")
        self.assertEqual(kwargs["timeout"], 10)

    @patch("apps.notifications.services.requests.post")
    def test_invalid_number_response_is_a_failure(self, mock_post):
        mock_post.return_value = MagicMock(
            status_code=200,
            json=MagicMock(return_value={"message": "Partial", "invalid_number": ["9800000001"]}),
        )

        result = self._http_dispatcher().send("9800000001", "hello")

        self.assertFalse(result.success)
        self.assertEqual(result.message, "Some phone numbers are invalid")

    @patch("apps.notifications.services.requests.post")
    def test_transport_error_is_logged_and_returned(self, mock_post):
        mock_post.side_effect = requests.ConnectionError("connection refused")

        with self.assertLogs("apps.notifications.services", level="ERROR"):
            result = self._http_dispatcher().send("9800000001", "hello")

        self.assertFalse(result.success)
        self.assertEqual(result.message, "Failed to send SMS")

    @patch("apps.notifications.services.requests.post")
    def test_http_error_status_is_a_failure(self, mock_post):
        response = MagicMock(status_code=401)
        response.raise_for_status.side_effect = requests.HTTPError("401 Unauthorized")
        mock_post.return_value = response

        with self.assertLogs("apps.notifications.services", level="ERROR"):
            result = self._http_dispatcher().send("9800000001", "hello")

        self.assertFalse(result.success)

    def test_unknown_provider_falls_back_to_auto(self):
        with self.assertLogs("apps.notifications.services", level="WARNING"):
            dispatcher = SMSDispatcher(provider="carrier-pigeon")
        self.assertEqual(dispatcher.provider, "auto")
