# videocalls/services.py
import logging
import time
from datetime import timedelta

from asgiref.sync import sync_to_async
from django.db import DatabaseError, IntegrityError, transaction

from notifications.client import participant_fields, send_video_call_ready_notification
from .daily import DailyError, get_daily_client
from .models import VideoCall

logger = logging.getLogger(__name__)

ROOM_LIFETIME_AFTER_START = timedelta(hours=2)


class VideoCallError(Exception):
    pass


@sync_to_async
def _get_existing_call(appointment_id):
    return VideoCall.objects.filter(appointment_id=appointment_id).first()


@sync_to_async
def _insert_call(appointment, room):
    with transaction.atomic():
        return VideoCall.objects.create(
            appointment=appointment,
            room_name=room.name,
            room_url=room.url,
            status='scheduled',
        )


@sync_to_async
def _video_call_ready_payload(appointment, call):
    payload = {
        'appointmentId': appointment.pk,
        'appointmentDate': appointment.appt_date.isoformat(),
        'appointmentTime': appointment.appt_time.strftime('%H:%M'),
        'roomUrl': call.room_url,
    }
    payload.update(participant_fields(appointment.patient, appointment.doctor))
    return payload


async def _discard_room(client, room_name):
    try:
        await client.delete_room(room_name)
    except DailyError as e:
        logger.error(f"[VideoCalls] Could not clean up room {room_name}: {e}")


async def create_video_call(appointment, client=None):
    """
    Returns the appointment's call, provisioning a Daily room and the call
    record on first use. The room is deleted again if the record cannot be stored.
    """
    existing = await _get_existing_call(appointment.pk)
    if existing:
        return existing

    client = client or get_daily_client()
    expiration = int((appointment.starts_at + ROOM_LIFETIME_AFTER_START).timestamp())
    room_name = f"appointment-{appointment.pk}-{int(time.time() * 1000)}"
    room = await client.create_room(room_name, expiration)

    try:
        call = await _insert_call(appointment, room)
    except IntegrityError:
        # Another request created the call first; keep theirs.
        await _discard_room(client, room.name)
        existing = await _get_existing_call(appointment.pk)
        if existing:
            return existing
        raise VideoCallError("Failed to create call record")
    except DatabaseError as e:
        logger.error(f"[VideoCalls] Failed to store call for appointment {appointment.pk}: {e}", exc_info=True)
        await _discard_room(client, room.name)
        raise VideoCallError("Failed to create call record")

    logger.info(f"[VideoCalls] Created call {call.pk} (room {call.room_name}) for appointment {appointment.pk}.")

    if call.room_url:
        payload = await _video_call_ready_payload(appointment, call)
        await send_video_call_ready_notification(payload)
    return call


async def get_call_token(appointment, user, client=None):
    call = await _get_existing_call(appointment.pk)
    if call is None:
        raise VideoCallError("Call not found")
    client = client or get_daily_client()
    token = await client.get_token(call.room_name, user.pk, is_owner=appointment.is_doctor(user))
    return call, token
