# chat/consumers.py
import json
import logging

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer
from django.core.exceptions import PermissionDenied

from . import services
from .services import ChatError, conversation_group_name, serialize_message
from .signals import unread_group_name
from .unread import UnreadReconciler

logger = logging.getLogger(__name__)


class ChatConsumer(AsyncWebsocketConsumer):
    async def connect(self):
        self.conversation_id = self.scope['url_route']['kwargs']['conversation_id']
        self.group_name = conversation_group_name(self.conversation_id)
        self.joined_group = False
        self.user = self.scope.get('user')

        if self.user is None or not self.user.is_authenticated:
            logger.warning(f"[ChatConsumer] Rejecting anonymous connection to conversation {self.conversation_id}.")
            await self.close()
            return

        try:
            await database_sync_to_async(services.get_conversation_for)(self.conversation_id, self.user)
        except (ChatError, PermissionDenied) as e:
            logger.warning(f"[ChatConsumer] User {self.user.pk} refused on conversation {self.conversation_id}: {e}")
            await self.close()
            return

        await self.channel_layer.group_add(self.group_name, self.channel_name)
        self.joined_group = True
        await self.accept()
        logger.info(f"[ChatConsumer] WebSocket connected for conversation {self.conversation_id} (user {self.user.pk})")

    async def disconnect(self, close_code):
        if self.joined_group:
            await self.channel_layer.group_discard(self.group_name, self.channel_name)
        logger.info(f"[ChatConsumer] WebSocket disconnected for conversation {self.conversation_id} with code {close_code}")

    async def receive(self, text_data):
        try:
            data = json.loads(text_data)
        except json.JSONDecodeError:
            await self.send_error('Invalid JSON.')
            return
        if not isinstance(data, dict):
            await self.send_error('Messages must be JSON objects.')
            return
        message_type = data.get('type')

        try:
            if message_type == 'chat_message':
                message = await database_sync_to_async(services.post_message)(
                    self.conversation_id, self.user, data.get('body'),
                )
                await self.channel_layer.group_send(self.group_name, {
                    'type': 'chat_message',
                    'message': serialize_message(message),
                })
            elif message_type == 'mark_read':
                count = await database_sync_to_async(services.mark_read)(self.conversation_id, self.user)
                if count:
                    await self.channel_layer.group_send(self.group_name, {
                        'type': 'messages_read',
                        'reader_id': self.user.pk,
                        'count': count,
                    })
            else:
                await self.send_error(f"Unknown message type '{message_type}'.")
        except (ChatError, PermissionDenied) as e:
            await self.send_error(str(e))
        except Exception as e:
            logger.error(f"[ChatConsumer] Error handling '{message_type}' on conversation {self.conversation_id}: {e}", exc_info=True)
            await self.send_error('Something went wrong. Please try again.')

    async def chat_message(self, event):
        await self.send(text_data=json.dumps({
            'type': 'chat_message',
            'message': event['message'],
        }))

    async def messages_read(self, event):
        await self.send(text_data=json.dumps({
            'type': 'messages_read',
            'reader_id': event['reader_id'],
            'count': event['count'],
        }))

    async def send_error(self, message):
        await self.send(text_data=json.dumps({
            'type': 'error',
            'message': message,
        }))


class UnreadCountConsumer(AsyncWebsocketConsumer):
    """Pushes the user's total unread message count whenever it changes."""

    async def connect(self):
        self.user = self.scope.get('user')
        self.reconciler = None
        if self.user is None or not self.user.is_authenticated:
            await self.close()
            return

        self.group_name = unread_group_name(self.user.pk)
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()

        self.reconciler = UnreadReconciler(self.recount, self.send_count)
        self.reconciler.start()
        logger.info(f"[UnreadCountConsumer] WebSocket connected for user {self.user.pk}")

    async def disconnect(self, close_code):
        if self.reconciler is None:
            return
        await self.reconciler.stop()
        await self.channel_layer.group_discard(self.group_name, self.channel_name)
        logger.info(f"[UnreadCountConsumer] WebSocket disconnected for user {self.user.pk} with code {close_code}")

    async def unread_invalidated(self, event):
        self.reconciler.invalidate()

    async def recount(self):
        return await database_sync_to_async(services.unread_count)(self.user)

    async def send_count(self, count):
        await self.send(text_data=json.dumps({
            'type': 'unread_count',
            'count': count,
        }))
