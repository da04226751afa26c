# videocalls/consumers.py
import json
import logging

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer
from django.core.exceptions import PermissionDenied

from . import admission
from .admission import AdmissionError, VideoCallSnapshot
from .models import VideoCall, call_group_name

logger = logging.getLogger(__name__)


class VideoCallConsumer(AsyncWebsocketConsumer):
    """
    One socket per open call screen. Every committed change of the call row is
    delivered as a full snapshot; the derived waiting/active flags are
    recomputed from each snapshot, so duplicate or replayed deliveries are harmless.
    """

    async def connect(self):
        self.call_id = str(self.scope['url_route']['kwargs']['call_id'])
        self.call_group_name = call_group_name(self.call_id)
        self.joined_group = False
        user = self.scope.get('user')

        if user is None or not user.is_authenticated:
            logger.warning(f"[Consumer] Rejecting anonymous connection to call {self.call_id}.")
            await self.close()
            return

        role = await self.get_participant_role(user)
        if role is None:
            logger.warning(f"[Consumer] User {user.pk} is not a participant of call {self.call_id}.")
            await self.close()
            return
        self.user = user
        self.is_doctor = role == 'doctor'

        await self.channel_layer.group_add(
            self.call_group_name,
            self.channel_name
        )
        self.joined_group = True

        await self.accept()
        logger.info(f"[Consumer] WebSocket connected for call {self.call_id} ({role} {user.pk})")

        # Initial state; also covers updates missed while the client was disconnected.
        snapshot = await database_sync_to_async(admission.get_snapshot)(self.call_id)
        await self.send_snapshot(snapshot)

    async def disconnect(self, close_code):
        if self.joined_group:
            await self.channel_layer.group_discard(
                self.call_group_name,
                self.channel_name
            )
        logger.info(f"[Consumer] WebSocket disconnected for call {self.call_id} with code {close_code}")

    async def receive(self, text_data):
        try:
            text_data_json = json.loads(text_data)
        except json.JSONDecodeError:
            await self.send_error('Invalid JSON.')
            return
        if not isinstance(text_data_json, dict):
            await self.send_error('Messages must be JSON objects.')
            return
        message_type = text_data_json.get('type')
        logger.info(f"[Consumer] Received message from client on call {self.call_id}: Type={message_type}")

        actions = {
            'join': admission.join_as_patient,
            'admit': admission.admit,
            'end': admission.end_call,
        }
        action = actions.get(message_type)
        if action is None:
            await self.send_error(f"Unknown message type '{message_type}'.")
            return

        # State is not advanced here; the resulting snapshot arrives via call_update.
        try:
            await database_sync_to_async(action)(self.call_id, self.user)
        except (AdmissionError, PermissionDenied) as e:
            await self.send_error(str(e))
        except Exception as e:
            logger.error(f"[Consumer] Error handling '{message_type}' on call {self.call_id}: {e}", exc_info=True)
            await self.send_error('Something went wrong. Please try again.')

    async def call_update(self, event):
        snapshot = VideoCallSnapshot.from_dict(event['call'])
        await self.send_snapshot(snapshot)

    async def send_snapshot(self, snapshot):
        await self.send(text_data=json.dumps({
            'type': 'call_update',
            'call': snapshot.to_dict(),
            'patient_waiting': admission.is_patient_waiting(snapshot),
            'is_active': admission.is_call_active(snapshot),
        }))

    async def send_error(self, message):
        await self.send(text_data=json.dumps({
            'type': 'error',
            'message': message,
        }))

    @database_sync_to_async
    def get_participant_role(self, user):
        try:
            call = VideoCall.objects.select_related('appointment').get(pk=self.call_id)
        except (VideoCall.DoesNotExist, ValueError):
            return None
        if call.appointment.is_doctor(user):
            return 'doctor'
        if call.appointment.is_patient(user):
            return 'patient'
        return None
