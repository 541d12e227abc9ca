from __future__ import annotations

import logging
import re
from dataclasses import dataclass

import requests
from django.conf import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SMSResult:
    success: bool
    message: str


class SMSDispatcher:
    """
    Sends SMS through the bulk SMS gateway's HTTPS API.

    Controlled by:
      - settings.SMS_ENABLED (true/false)
      - settings.SMS_PROVIDER (console|http|auto)
      - settings.SMS_API_URL / settings.SMS_BEARER_TOKEN
      - settings.SMS_COUNTRY_CODE (prefix stripped before sending)
      - settings.SMS_TIMEOUT_SECONDS
    """

    def __init__(
        self,
        *,
        api_url: str | None = None,
        bearer_token: str | None = None,
        provider: str | None = None,
        country_code: str | None = None,
        timeout: int | None = None,
    ):
        self.api_url = (api_url if api_url is not None else getattr(settings, "SMS_API_URL", "")).rstrip("/")
        self.bearer_token = bearer_token if bearer_token is not None else getattr(settings, "SMS_BEARER_TOKEN", "")
        self.country_code = re.sub(
            r"\D", "", country_code if country_code is not None else getattr(settings, "SMS_COUNTRY_CODE", "")
        )
        self.timeout = timeout or getattr(settings, "SMS_TIMEOUT_SECONDS", 10)

        provider = str(provider or getattr(settings, "SMS_PROVIDER", "auto")).lower()
        if provider not in {"console", "http", "auto"}:
            logger.warning(
                "Unknown SMS_PROVIDER value; falling back to auto",
                extra={"sms_provider": provider},
            )
            provider = "auto"
        self.provider = provider

    def is_configured(self) -> bool:
        if self.provider == "console":
            return True
        return bool(self.api_url and self.bearer_token)

    def format_phone_number(self, phone: str) -> str:
        formatted = re.sub(r"\s+", "", phone or "")
        formatted = formatted.lstrip("+")
        if self.country_code and formatted.startswith(self.country_code):
            formatted = formatted[len(self.country_code):]
        return formatted.lstrip("0")

    def send(self, destination: str, message: str) -> SMSResult:
        if not getattr(settings, "SMS_ENABLED", True):
            return SMSResult(success=False, message="SMS sending is disabled")

        mobile = self.format_phone_number(destination)
        if not mobile:
            return SMSResult(success=False, message="No phone number provided")

        if self.provider == "console":
            # Message bodies carry OTPs; only their size reaches the log.
            logger.info("SMS (console) to=%s length=%s", mobile, len(message))
            return SMSResult(success=True, message="SMS written to console")

        if not self.is_configured():
            logger.warning("SMS gateway is not configured; message not sent", extra={"mobile": mobile})
            return SMSResult(success=False, message="SMS service not configured")

        try:
            response = requests.post(
                f"{self.api_url}/sms",
                json={"message": message, "mobile": mobile},
                headers={
                    "Authorization": f"Bearer {self.bearer_token}",
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError):
            logger.exception("SMS send failed", extra={"mobile": mobile})
            return SMSResult(success=False, message="Failed to send SMS")

        invalid = (data.get("invalid_number") or []) if isinstance(data, dict) else []
        if invalid:
            logger.warning("SMS gateway rejected numbers", extra={"invalid_numbers": invalid})
            return SMSResult(success=False, message="Some phone numbers are invalid")

        logger.info("SMS sent", extra={"mobile": mobile})
        return SMSResult(success=True, message="SMS sent successfully")


def get_sms_dispatcher() -> SMSDispatcher:
    return SMSDispatcher()
