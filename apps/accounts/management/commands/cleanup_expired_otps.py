from django.core.management.base import BaseCommand

from apps.accounts.services import get_otp_service


class Command(BaseCommand):
    help = "Delete OTP records whose expiry has passed. Run periodically (cron/scheduler)."

    def handle(self, *args, **options):
        deleted = get_otp_service().cleanup_expired()
        self.stdout.write(self.style.SUCCESS(f"Cleaned up {deleted} expired OTPs"))
