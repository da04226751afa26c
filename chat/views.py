# chat/views.py
"""
HTTP side of chat: the conversation list, opening a conversation and paging
through history. Live messages travel over the websocket consumers.
"""
import logging

from asgiref.sync import sync_to_async
from django.core.exceptions import PermissionDenied
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt

from telehealthproj.http import BadRequest, error_response, optional_id, read_json_object
from . import services
from .services import ChatError, ChatNotFound

logger = logging.getLogger(__name__)


def _chat_error(e):
    if isinstance(e, PermissionDenied):
        return error_response(str(e) or "Forbidden", 403)
    if isinstance(e, ChatNotFound):
        return error_response(str(e), 404)
    return error_response(str(e), 400)


@csrf_exempt
async def conversations_view(request):
    """GET lists the user's conversations; POST finds or opens one."""
    user = await request.auser()
    if not user.is_authenticated:
        return error_response("Authentication required.", 401)

    if request.method == 'GET':
        conversations = await sync_to_async(services.list_conversations)(user)
        return JsonResponse({"status": "success", "conversations": conversations})

    if request.method != 'POST':
        return error_response("Only GET and POST requests are allowed.", 405)

    try:
        payload = read_json_object(request)
        participant_id = optional_id(payload, 'participant_id')
        appointment_id = optional_id(payload, 'appointment_id')
    except BadRequest as e:
        return error_response(str(e), 400)
    if participant_id is None and appointment_id is None:
        return error_response("participant_id or appointment_id is required.", 400)

    try:
        conversation = await sync_to_async(services.start_conversation)(user, participant_id, appointment_id)
    except (ChatError, PermissionDenied) as e:
        logger.info(f"[Chat] User {user.pk} could not open a conversation: {e}")
        return _chat_error(e)

    return JsonResponse({
        "status": "success",
        "conversation": {
            'id': conversation.pk,
            'patient_id': conversation.patient_id,
            'doctor_id': conversation.doctor_id,
            'appointment_id': conversation.appointment_id,
        },
    })


async def messages_view(request, conversation_id):
    if request.method != 'GET':
        return error_response("Only GET requests are allowed.", 405)

    user = await request.auser()
    if not user.is_authenticated:
        return error_response("Authentication required.", 401)

    before = request.GET.get('before')
    if before is not None and not before.isdigit():
        return error_response("Invalid before", 400)

    try:
        messages = await sync_to_async(services.message_history)(
            conversation_id, user, before=int(before) if before else None,
        )
    except (ChatError, PermissionDenied) as e:
        return _chat_error(e)

    return JsonResponse({"status": "success", "messages": messages})
