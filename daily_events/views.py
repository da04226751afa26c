# daily_events/views.py
import base64
import hashlib
import hmac
import json
import logging

from channels.db import database_sync_to_async
from django.conf import settings
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt

from videocalls.admission import end_call
from videocalls.models import VideoCall

logger = logging.getLogger(__name__)


def signature_is_valid(secret, timestamp, body, signature):
    """Daily signs '<timestamp>.<body>' with HMAC-SHA256 keyed by the base64-decoded secret."""
    if not timestamp or not signature:
        return False
    try:
        key = base64.b64decode(secret)
    except ValueError:
        key = secret.encode('utf-8')
    message = f"{timestamp}.".encode('utf-8') + body
    expected = base64.b64encode(hmac.new(key, message, hashlib.sha256).digest()).decode('utf-8')
    return hmac.compare_digest(expected, signature)


@database_sync_to_async
def _end_call_for_room(room_name):
    call = VideoCall.objects.filter(room_name=room_name).only('pk').first()
    if call is None:
        logger.warning(f"[daily_event_sink_view] No video call found for room '{room_name}'. Cannot end it.")
        return False
    return end_call(call.pk)


@csrf_exempt
async def daily_event_sink_view(request):
    """
    Receives Daily.co webhook events. Daily retries deliveries that do not get
    a 200, so every outcome below, including errors, is acknowledged with 200.
    """
    if request.method != 'POST':
        logger.warning(f"[daily_event_sink_view] Received non-POST request: {request.method}. Expected POST.")
        return JsonResponse({"status": "error", "message": "Only POST requests are allowed for Daily webhooks."}, status=200)

    secret = settings.DAILY_WEBHOOK_SECRET
    if secret and not signature_is_valid(
        secret,
        request.headers.get('X-Webhook-Timestamp'),
        request.body,
        request.headers.get('X-Webhook-Signature'),
    ):
        logger.warning("[daily_event_sink_view] Rejected webhook with invalid signature.")
        return JsonResponse({"status": "error", "message": "Invalid signature."}, status=401)

    try:
        event_data = json.loads(request.body)
        if not isinstance(event_data, dict):
            logger.error("[daily_event_sink_view] Webhook body is not a JSON object. Returning 200 OK with error message.")
            return JsonResponse({"status": "error", "message": "Request body must be a JSON object."}, status=200)
        event_type = event_data.get('type')
        room_name = (event_data.get('payload') or {}).get('room')

        logger.info(f"[daily_event_sink_view] Parsed Event: Type={event_type}, Room={room_name}")

        if event_type == 'meeting.ended':
            if not room_name:
                logger.warning("[daily_event_sink_view] meeting.ended event received without a room name.")
                return JsonResponse({"status": "error", "message": "Missing room"}, status=200)
            await _end_call_for_room(room_name)
        else:
            logger.info(f"[daily_event_sink_view] Unhandled Daily event type: {event_type}. No status update performed.")

        return JsonResponse({"status": "success", "message": "Event received and processed (if applicable)."})

    except json.JSONDecodeError:
        logger.error("[daily_event_sink_view] Invalid JSON in request body. Returning 200 OK with error message.")
        return JsonResponse({"status": "error", "message": "Invalid JSON in request body."}, status=200)
    except Exception as e:
        logger.error(f"[daily_event_sink_view] Unhandled error processing request: {e}", exc_info=True)
        return JsonResponse({"status": "error", "message": "Server error."}, status=200)
