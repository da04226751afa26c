"""
Sends the appointment reminders that are due.

Usage:
    python manage.py send_reminders

Run it from cron every 15 minutes.
"""
from asgiref.sync import async_to_sync
from django.core.management.base import BaseCommand

from appointments.reminders import process_pending_reminders


class Command(BaseCommand):
    help = "Send due appointment reminders"

    def handle(self, *args, **options):
        results = async_to_sync(process_pending_reminders)()
        self.stdout.write(self.style.SUCCESS(
            f"Reminders: {results['sent']} sent, {results['skipped']} skipped, {results['failed']} failed"
        ))
