# payments/views.py
import logging

from asgiref.sync import sync_to_async
from django.conf import settings
from django.contrib.auth import get_user_model
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt

from appointments.models import Appointment
from telehealthproj.http import BadRequest, error_response, optional_id, optional_int, optional_str, read_json_object
from .razorpay import (
    PaymentConfigurationError,
    PaymentError,
    RazorpayAPIError,
    get_razorpay_client,
    webhook_signature_matches,
)
from .services import create_order, get_pricing, handle_webhook_event, process_refund, verify_payment

logger = logging.getLogger(__name__)

VERIFICATION_FAILED = "Payment verification failed. Please contact support."


def _payment_error(e):
    if isinstance(e, PaymentConfigurationError):
        return error_response(str(e), 503)
    if isinstance(e, RazorpayAPIError):
        return error_response(str(e), 502)
    return error_response(str(e), 400)


@sync_to_async
def _get_appointment(appointment_id, user, patient_only=True):
    """Returns (appointment, may_set_refund_amount), or (None, False) when the user may not act on it."""
    try:
        appointment = Appointment.objects.get(pk=appointment_id)
    except (Appointment.DoesNotExist, ValueError, TypeError):
        return None, False
    allowed = appointment.is_patient(user) if patient_only else appointment.is_participant(user)
    if not allowed:
        return None, False
    profile = getattr(user, 'profile', None)
    is_admin = user.is_staff or (profile is not None and profile.role == 'admin')
    return appointment, appointment.is_doctor(user) or is_admin


async def _read_request(request, patient_only=True):
    """Returns (payload, appointment, may_set_refund_amount) or an error response."""
    if request.method != 'POST':
        return None, error_response("Only POST requests are allowed.", 405)

    user = await request.auser()
    if not user.is_authenticated:
        return None, error_response("Authentication required.", 401)

    try:
        payload = read_json_object(request)
        appointment_id = optional_id(payload, 'appointmentId')
    except BadRequest as e:
        return None, error_response(str(e), 400)

    appointment, privileged = await _get_appointment(appointment_id, user, patient_only)
    if appointment is None:
        return None, error_response("Appointment not found", 404)
    return (payload, appointment, privileged), None


@csrf_exempt
async def create_order_view(request):
    parsed, error = await _read_request(request)
    if error:
        return error
    payload, appointment, _ = parsed

    try:
        order = await create_order(
            appointment,
            amount=optional_int(payload, 'amount'),
            currency=optional_str(payload, 'currency'),
            client=get_razorpay_client(),
        )
    except BadRequest as e:
        return error_response(str(e), 400)
    except PaymentError as e:
        logger.warning(f"[Payments] Could not create order for appointment {appointment.pk}: {e}")
        return _payment_error(e)

    return JsonResponse({"status": "success", **order})


@csrf_exempt
async def verify_payment_view(request):
    parsed, error = await _read_request(request)
    if error:
        return error
    payload, appointment, _ = parsed

    try:
        result = await verify_payment(
            appointment,
            payment_id=optional_str(payload, 'razorpay_payment_id'),
            order_id=optional_str(payload, 'razorpay_order_id'),
            signature=optional_str(payload, 'razorpay_signature'),
            client=get_razorpay_client(),
        )
    except BadRequest as e:
        return error_response(str(e), 400)
    except PaymentConfigurationError as e:
        return _payment_error(e)
    except PaymentError as e:
        # The appointment stays unpaid; the user is sent to support with the gateway reference.
        logger.error(f"[Payments] Verification failed for appointment {appointment.pk}: {e}")
        return error_response(VERIFICATION_FAILED, 502 if isinstance(e, RazorpayAPIError) else 400)

    return JsonResponse({"status": "success", **result})


@csrf_exempt
async def refund_view(request):
    parsed, error = await _read_request(request, patient_only=False)
    if error:
        return error
    payload, appointment, privileged = parsed

    try:
        result = await process_refund(
            appointment,
            amount=optional_int(payload, 'amount'),
            reason=optional_str(payload, 'reason'),
            allow_custom_amount=privileged,
            client=get_razorpay_client(),
        )
    except BadRequest as e:
        return error_response(str(e), 400)
    except PaymentError as e:
        logger.warning(f"[Payments] Refund refused for appointment {appointment.pk}: {e}")
        return _payment_error(e)

    return JsonResponse({"status": "success", **result})


@csrf_exempt
async def webhook_view(request):
    if request.method != 'POST':
        return error_response("Only POST requests are allowed.", 405)

    if not settings.RAZORPAY_WEBHOOK_SECRET:
        logger.warning("[Payments] Webhook secret not configured; rejecting webhook.")
    signature = request.headers.get('X-Razorpay-Signature')
    if not webhook_signature_matches(settings.RAZORPAY_WEBHOOK_SECRET, request.body, signature):
        return error_response("Invalid webhook signature", 400)

    try:
        event = read_json_object(request)
    except BadRequest as e:
        return error_response(str(e), 400)

    try:
        await handle_webhook_event(event)
    except (PaymentConfigurationError, RazorpayAPIError) as e:
        # Razorpay retries webhooks that are not acknowledged.
        logger.error(f"[Payments] Webhook '{event.get('event')}' failed at the gateway: {e}")
        return _payment_error(e)
    except PaymentError as e:
        logger.error(f"[Payments] Webhook '{event.get('event')}' refused: {e}")

    return JsonResponse({"received": True})


@sync_to_async
def _get_pricing(appt_type, doctor_id):
    doctor = None
    if doctor_id:
        doctor = get_user_model().objects.filter(pk=doctor_id).first()
    return get_pricing(appt_type, doctor)


async def pricing_view(request):
    if request.method != 'GET':
        return error_response("Only GET requests are allowed.", 405)

    appt_type = request.GET.get('appt_type', 'video')
    if appt_type not in dict(Appointment.TYPE_CHOICES):
        return error_response(f"Unknown appointment type '{appt_type}'", 400)

    doctor_id = request.GET.get('doctor_id')
    if doctor_id and not doctor_id.isdigit():
        return error_response("Invalid doctor_id", 400)

    price = await _get_pricing(appt_type, doctor_id)
    return JsonResponse({"status": "success", **price})
