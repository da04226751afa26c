# appointments/views.py
import logging
from datetime import date, time

from asgiref.sync import sync_to_async
from django.contrib.auth import get_user_model
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt

from notifications.client import send_appointment_created_notification, send_appointment_status_changed_notification
from telehealthproj.http import BadRequest, error_response, optional_str, read_json_object
from .exceptions import AppointmentError
from .models import Appointment
from .services import appointment_created_payload, status_changed_payload, update_status

logger = logging.getLogger(__name__)


def serialize_appointment(appointment):
    return {
        'id': appointment.pk,
        'patient_id': appointment.patient_id,
        'doctor_id': appointment.doctor_id,
        'appt_type': appointment.appt_type,
        'appt_date': appointment.appt_date.isoformat(),
        'appt_time': appointment.appt_time.strftime('%H:%M'),
        'status': appointment.status,
        'payment_status': appointment.payment_status,
    }


@sync_to_async
def _create_appointment(patient, payload):
    """Validates the booking request and returns (appointment, notification payload)."""
    try:
        doctor = get_user_model().objects.select_related('profile').get(pk=payload.get('doctor_id'))
    except (get_user_model().DoesNotExist, ValueError, TypeError):
        raise AppointmentError("Doctor not found")
    if not hasattr(doctor, 'profile') or not doctor.profile.is_doctor:
        raise AppointmentError("Doctor not found")

    appt_type = optional_str(payload, 'appt_type', 'video')
    if appt_type not in dict(Appointment.TYPE_CHOICES):
        raise AppointmentError(f"Unknown appointment type '{appt_type}'")

    try:
        appt_date = date.fromisoformat(optional_str(payload, 'appt_date', ''))
        appt_time = time.fromisoformat(optional_str(payload, 'appt_time', ''))
    except ValueError:
        raise AppointmentError("Invalid appointment date or time")

    appointment = Appointment.objects.create(
        patient=patient,
        doctor=doctor,
        appt_type=appt_type,
        appt_date=appt_date,
        appt_time=appt_time,
        reason=optional_str(payload, 'reason', ''),
    )
    logger.info(f"[Appointments] Patient {patient.pk} booked appointment {appointment.pk} with doctor {doctor.pk}")
    return appointment, appointment_created_payload(appointment)


@csrf_exempt
async def book_appointment_view(request):
    if request.method != 'POST':
        return error_response("Only POST requests are allowed.", 405)

    user = await request.auser()
    if not user.is_authenticated:
        return error_response("Authentication required.", 401)

    try:
        payload = read_json_object(request)
        appointment, notification = await _create_appointment(user, payload)
    except (BadRequest, AppointmentError) as e:
        return error_response(str(e), 400)

    await send_appointment_created_notification(notification)
    return JsonResponse({"status": "success", "appointment": serialize_appointment(appointment)}, status=201)


@sync_to_async
def _update_status(appointment_id, user, new_status):
    """Returns (appointment, status notification payload or None)."""
    try:
        appointment = Appointment.objects.select_related('patient__profile', 'doctor__profile').get(pk=appointment_id)
    except Appointment.DoesNotExist:
        raise AppointmentError("Appointment not found")
    appointment = update_status(appointment, user, new_status)
    return appointment, status_changed_payload(appointment)


@csrf_exempt
async def appointment_status_view(request, appointment_id):
    if request.method != 'POST':
        return error_response("Only POST requests are allowed.", 405)

    user = await request.auser()
    if not user.is_authenticated:
        return error_response("Authentication required.", 401)

    try:
        new_status = optional_str(read_json_object(request), 'status')
        appointment, notification = await _update_status(appointment_id, user, new_status)
    except (BadRequest, AppointmentError) as e:
        return error_response(str(e), 400)

    if notification is not None:
        await send_appointment_status_changed_notification(notification)
    return JsonResponse({"status": "success", "appointment": serialize_appointment(appointment)})
