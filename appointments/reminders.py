# appointments/reminders.py
"""
Email reminders before an appointment.

Reminders are scheduled when the doctor accepts and are sent by the
``send_reminders`` management command, which is meant to run from cron every
15 minutes. A reminder is picked up from 15 minutes before its time until an
hour after it; one that is still pending after that was missed and stays so.
"""
import logging
from datetime import timedelta

from asgiref.sync import sync_to_async
from django.utils import timezone

from notifications.client import appointment_fields, send_appointment_reminder_notification
from .models import AppointmentReminder

logger = logging.getLogger(__name__)

REMINDER_OFFSETS = [
    ('24h_before', timedelta(hours=24)),
    ('2h_before', timedelta(hours=2)),
    ('1h_before', timedelta(hours=1)),
]
SEND_AHEAD = timedelta(minutes=15)
MISSED_AFTER = timedelta(hours=1)


def schedule_reminders(appointment, now=None):
    """Creates the reminders still ahead of ``now``; returns the ones created."""
    if appointment.status != 'accepted':
        return []

    now = now or timezone.now()
    created = []
    for reminder_type, offset in REMINDER_OFFSETS:
        scheduled_for = appointment.starts_at - offset
        if scheduled_for <= now:
            continue
        reminder, is_new = AppointmentReminder.objects.get_or_create(
            appointment=appointment,
            reminder_type=reminder_type,
            defaults={'scheduled_for': scheduled_for},
        )
        if is_new:
            created.append(reminder)

    logger.info(f"[Reminders] Scheduled {len(created)} reminder(s) for appointment {appointment.pk}")
    return created


def cancel_reminders(appointment, reason="Appointment cancelled"):
    return AppointmentReminder.objects.filter(appointment=appointment, status='pending').update(
        status='skipped', error_message=reason,
    )


def reminder_payload(reminder):
    payload = appointment_fields(reminder.appointment)
    payload['reminderType'] = reminder.reminder_type
    return payload


@sync_to_async
def _due_reminders(now):
    due = AppointmentReminder.objects.filter(
        status='pending',
        scheduled_for__gte=now - MISSED_AFTER,
        scheduled_for__lte=now + SEND_AHEAD,
    ).select_related('appointment__patient__profile', 'appointment__doctor__profile')
    return [(reminder, reminder_payload(reminder)) for reminder in due]


@sync_to_async
def _finish(reminder, status, error_message=''):
    reminder.status = status
    reminder.error_message = error_message
    if status == 'sent':
        reminder.sent_at = timezone.now()
    reminder.save(update_fields=['status', 'error_message', 'sent_at'])


async def _send(reminder, payload):
    appointment = reminder.appointment
    if appointment.status != 'accepted':
        await _finish(reminder, 'skipped', f"Appointment is {appointment.status}")
        return 'skipped'
    if not payload['patientEmail']:
        await _finish(reminder, 'failed', "Patient email not found")
        return 'failed'

    if await send_appointment_reminder_notification(payload):
        await _finish(reminder, 'sent')
        return 'sent'
    await _finish(reminder, 'failed', "Notification service did not accept the reminder")
    return 'failed'


async def process_pending_reminders(now=None):
    """Sends every due reminder once; returns how many were sent, skipped and failed."""
    now = now or timezone.now()
    results = {'sent': 0, 'skipped': 0, 'failed': 0}
    for reminder, payload in await _due_reminders(now):
        try:
            outcome = await _send(reminder, payload)
        except Exception as e:
            logger.error(f"[Reminders] Reminder {reminder.pk} failed: {e}", exc_info=True)
            await _finish(reminder, 'failed', str(e))
            outcome = 'failed'
        results[outcome] += 1

    logger.info(
        f"[Reminders] Processed reminders: {results['sent']} sent, "
        f"{results['skipped']} skipped, {results['failed']} failed"
    )
    return results
