# notifications/client.py
"""
Client for the email notification service.

Notifications are best-effort: a failed request is logged and never raised,
so callers can await these helpers without guarding them.
"""
import logging

import httpx
from django.conf import settings

logger = logging.getLogger(__name__)

APPOINTMENT_CREATED = 'appointment-created'
PRESCRIPTION_CREATED = 'prescription-created'
VIDEO_CALL_READY = 'video-call-ready'
PAYMENT_CONFIRMED = 'payment-confirmed'
APPOINTMENT_STATUS_CHANGED = 'appointment-status-changed'
APPOINTMENT_REMINDER = 'appointment-reminder'


def _display_name(user, default):
    profile = getattr(user, 'profile', None)
    if profile is not None and profile.full_name:
        return profile.full_name
    return user.get_full_name() or default


def participant_fields(patient, doctor):
    """Common sender/recipient fields; the service looks up missing emails itself."""
    return {
        'patientId': str(patient.pk),
        'patientEmail': patient.email or '',
        'patientName': _display_name(patient, 'Patient'),
        'doctorId': str(doctor.pk),
        'doctorEmail': doctor.email or '',
        'doctorName': _display_name(doctor, 'Doctor'),
    }


def appointment_fields(appointment):
    """Appointment details plus participant_fields(); the base of every appointment email."""
    payload = {
        'appointmentId': appointment.pk,
        'appointmentDate': appointment.appt_date.isoformat(),
        'appointmentTime': appointment.appt_time.strftime('%H:%M'),
        'appointmentType': appointment.appt_type,
    }
    payload.update(participant_fields(appointment.patient, appointment.doctor))
    return payload


async def send_notification(kind, payload, transport=None):
    url = f"{settings.NOTIFICATIONS_API_URL.rstrip('/')}/notifications/{kind}"
    try:
        async with httpx.AsyncClient(timeout=settings.EXTERNAL_API_TIMEOUT, transport=transport) as client:
            response = await client.post(url, json=payload)
        if response.is_success:
            logger.info(f"[Notifications] Sent '{kind}' notification.")
            return True
        logger.error(f"[Notifications] Failed to send '{kind}' notification: {response.status_code} {response.text}")
    except httpx.HTTPError as e:
        logger.error(f"[Notifications] Error sending '{kind}' notification: {e}")
    return False


async def send_appointment_created_notification(payload, transport=None):
    return await send_notification(APPOINTMENT_CREATED, payload, transport=transport)


async def send_prescription_created_notification(payload, transport=None):
    return await send_notification(PRESCRIPTION_CREATED, payload, transport=transport)


async def send_video_call_ready_notification(payload, transport=None):
    return await send_notification(VIDEO_CALL_READY, payload, transport=transport)


async def send_payment_confirmed_notification(payload, transport=None):
    return await send_notification(PAYMENT_CONFIRMED, payload, transport=transport)


async def send_appointment_status_changed_notification(payload, transport=None):
    return await send_notification(APPOINTMENT_STATUS_CHANGED, payload, transport=transport)


async def send_appointment_reminder_notification(payload, transport=None):
    return await send_notification(APPOINTMENT_REMINDER, payload, transport=transport)
