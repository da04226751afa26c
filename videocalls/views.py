# videocalls/views.py
import logging

from asgiref.sync import sync_to_async
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt

from appointments.exceptions import CallNotAvailable
from appointments.services import can_join_call
from .admission import VideoCallSnapshot
from .daily import DailyAPIError, DailyConfigurationError, get_daily_client
from .services import VideoCallError, create_video_call, get_call_token

logger = logging.getLogger(__name__)


def _error(message, status):
    return JsonResponse({"status": "error", "message": message}, status=status)


async def _authorize(request, appointment_id):
    """Returns (user, appointment) or an error response."""
    user = await request.auser()
    if not user.is_authenticated:
        return None, _error("Authentication required.", 401)
    try:
        appointment = await sync_to_async(can_join_call)(appointment_id, user)
    except CallNotAvailable as e:
        logger.info(f"[VideoCalls] User {user.pk} may not join appointment {appointment_id}: {e}")
        return None, _error(str(e), 403)
    return (user, appointment), None


def _provider_error(e):
    if isinstance(e, DailyConfigurationError):
        return _error(str(e), 503)
    return _error(str(e), 502)


@csrf_exempt
async def video_call_view(request, appointment_id):
    """Creates the appointment's call on first use and returns it."""
    if request.method != 'POST':
        return _error("Only POST requests are allowed.", 405)

    authorized, error = await _authorize(request, appointment_id)
    if error:
        return error
    _, appointment = authorized

    try:
        call = await create_video_call(appointment, client=get_daily_client())
    except (DailyConfigurationError, DailyAPIError) as e:
        return _provider_error(e)
    except VideoCallError as e:
        return _error(str(e), 500)

    return JsonResponse({"status": "success", "call": VideoCallSnapshot.from_call(call).to_dict()})


async def video_call_token_view(request, appointment_id):
    if request.method != 'GET':
        return _error("Only GET requests are allowed.", 405)

    authorized, error = await _authorize(request, appointment_id)
    if error:
        return error
    user, appointment = authorized

    try:
        call, token = await get_call_token(appointment, user, client=get_daily_client())
    except (DailyConfigurationError, DailyAPIError) as e:
        return _provider_error(e)
    except VideoCallError as e:
        return _error(str(e), 404)

    return JsonResponse({
        "status": "success",
        "token": token,
        "room_url": call.room_url,
        "call_id": str(call.pk),
    })
