# prescriptions/views.py
import logging

from asgiref.sync import sync_to_async
from django.core.exceptions import PermissionDenied
from django.http import JsonResponse
from django.urls import reverse
from django.views.decorators.csrf import csrf_exempt

from notifications.client import send_prescription_created_notification
from telehealthproj.http import BadRequest, error_response, optional_id, read_json_object
from . import services
from .services import PrescriptionError, PrescriptionNotFound, serialize_prescription

logger = logging.getLogger(__name__)


def _prescription_error(e):
    if isinstance(e, PermissionDenied):
        return error_response(str(e) or "Forbidden", 403)
    if isinstance(e, PrescriptionNotFound):
        return error_response(str(e), 404)
    return error_response(str(e), 400)


def _query_id(request, key):
    value = request.GET.get(key)
    if value is None or value == '':
        return None
    if not value.isdigit():
        raise BadRequest(f"Invalid {key}")
    return int(value)


@sync_to_async
def _create(doctor, payload):
    """Returns (prescription, notification payload)."""
    prescription = services.create_prescription(
        doctor,
        payload,
        patient_id=optional_id(payload, 'patient_id'),
        appointment_id=optional_id(payload, 'appointment_id'),
    )
    return prescription, services.prescription_created_payload(prescription)


@csrf_exempt
async def prescriptions_view(request):
    """GET lists the user's prescriptions; POST writes a new one (doctors only)."""
    user = await request.auser()
    if not user.is_authenticated:
        return error_response("Authentication required.", 401)

    if request.method == 'GET':
        try:
            prescriptions = await sync_to_async(services.list_prescriptions)(
                user,
                appointment_id=_query_id(request, 'appointment_id'),
                patient_id=_query_id(request, 'patient_id'),
            )
        except BadRequest as e:
            return error_response(str(e), 400)
        return JsonResponse({"status": "success", "prescriptions": [serialize_prescription(p) for p in prescriptions]})

    if request.method != 'POST':
        return error_response("Only GET and POST requests are allowed.", 405)

    try:
        prescription, notification = await _create(user, read_json_object(request))
    except BadRequest as e:
        return error_response(str(e), 400)
    except (PrescriptionError, PermissionDenied) as e:
        logger.info(f"[Prescriptions] User {user.pk} could not write a prescription: {e}")
        return _prescription_error(e)

    await send_prescription_created_notification(notification)
    return JsonResponse({"status": "success", "prescription": serialize_prescription(prescription)}, status=201)


@csrf_exempt
async def prescription_detail_view(request, prescription_id):
    """GET reads a prescription; PATCH lets its doctor edit it."""
    user = await request.auser()
    if not user.is_authenticated:
        return error_response("Authentication required.", 401)

    try:
        if request.method == 'GET':
            prescription = await sync_to_async(services.get_prescription_for)(prescription_id, user)
        elif request.method == 'PATCH':
            prescription = await sync_to_async(services.update_prescription)(
                prescription_id, user, read_json_object(request),
            )
        else:
            return error_response("Only GET and PATCH requests are allowed.", 405)
    except BadRequest as e:
        return error_response(str(e), 400)
    except (PrescriptionError, PermissionDenied) as e:
        return _prescription_error(e)

    return JsonResponse({"status": "success", "prescription": serialize_prescription(prescription)})


@csrf_exempt
async def share_prescription_view(request, prescription_id):
    if request.method != 'POST':
        return error_response("Only POST requests are allowed.", 405)

    user = await request.auser()
    if not user.is_authenticated:
        return error_response("Authentication required.", 401)

    try:
        token = await sync_to_async(services.share_prescription)(prescription_id, user)
    except (PrescriptionError, PermissionDenied) as e:
        return _prescription_error(e)

    url = request.build_absolute_uri(reverse('shared_prescription', args=[token]))
    return JsonResponse({"status": "success", "token": token, "url": url})


async def shared_prescription_view(request, token):
    """Anyone holding the share link may read the prescription."""
    if request.method != 'GET':
        return error_response("Only GET requests are allowed.", 405)

    try:
        prescription = await sync_to_async(services.get_shared_prescription)(token)
    except PrescriptionNotFound as e:
        return error_response(str(e), 404)

    return JsonResponse({"status": "success", "prescription": serialize_prescription(prescription)})
