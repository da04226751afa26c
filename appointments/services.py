# appointments/services.py
import logging
from datetime import timedelta

from django.db import transaction
from django.utils import timezone

from notifications.client import appointment_fields
from .exceptions import AppointmentError, CallNotAvailable
from .models import Appointment
from .reminders import cancel_reminders, schedule_reminders

logger = logging.getLogger(__name__)

JOIN_WINDOW_BEFORE = timedelta(minutes=15)
# 30 minute slot plus a 15 minute buffer
JOIN_WINDOW_AFTER = timedelta(minutes=45)

# Transitions a doctor may make with update_status().
DOCTOR_STATUS_TRANSITIONS = {
    'pending': {'accepted', 'rejected'},
    'accepted': {'completed', 'cancelled'},
}

# Status changes the patient is emailed about, under the notification service's names.
NOTIFIED_STATUSES = {
    'accepted': 'accepted',
    'rejected': 'declined',
    'cancelled': 'cancelled',
}


def is_appointment_time(appointment, now=None):
    """True while ``now`` lies within the joinable window around the appointment start."""
    now = now or timezone.now()
    start = appointment.starts_at
    return start - JOIN_WINDOW_BEFORE <= now <= start + JOIN_WINDOW_AFTER


def can_join_call(appointment_id, user, now=None):
    """
    Raises CallNotAvailable with a user-facing reason unless ``user`` may join
    the appointment's video call now. Returns the appointment otherwise.
    """
    try:
        appointment = Appointment.objects.get(pk=appointment_id)
    except Appointment.DoesNotExist:
        raise CallNotAvailable("Appointment not found")

    if appointment.appt_type != 'video':
        raise CallNotAvailable("This is not a video appointment")
    if appointment.status != 'accepted':
        raise CallNotAvailable("Appointment not accepted yet")
    if appointment.payment_status != 'paid':
        raise CallNotAvailable("Payment required before joining video call")
    if not appointment.is_participant(user):
        raise CallNotAvailable("Unauthorized")
    if not is_appointment_time(appointment, now):
        raise CallNotAvailable("Call is not available at this time")

    return appointment


def update_status(appointment, user, new_status):
    if not appointment.is_doctor(user):
        raise AppointmentError("Unauthorized")
    allowed = DOCTOR_STATUS_TRANSITIONS.get(appointment.status, set())
    if new_status not in allowed:
        raise AppointmentError(f"Cannot change appointment from '{appointment.status}' to '{new_status}'")
    with transaction.atomic():
        appointment.status = new_status
        appointment.save(update_fields=['status', 'updated_at'])
        if new_status == 'accepted':
            schedule_reminders(appointment)
        else:
            cancel_reminders(appointment, reason=f"Appointment {new_status}")
    logger.info(f"[Appointments] Appointment {appointment.pk} status changed to {new_status} by doctor {user.pk}")
    return appointment


def appointment_created_payload(appointment):
    return appointment_fields(appointment)


def status_changed_payload(appointment):
    """Payload for the patient's status email, or None for statuses nobody is told about."""
    status = NOTIFIED_STATUSES.get(appointment.status)
    if status is None:
        return None
    payload = appointment_fields(appointment)
    payload['status'] = status
    return payload
