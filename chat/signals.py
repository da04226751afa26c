# chat/signals.py
"""
Unread-count invalidation. Badges are not pushed counts: participants are only
told that their count may have changed, and recount it themselves.
"""
import logging
from functools import partial

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction
from django.db.models.signals import post_save
from django.dispatch import receiver

from .models import Message

logger = logging.getLogger(__name__)


def unread_group_name(user_id):
    return f"unread_{user_id}"


def _send_invalidations(user_ids):
    channel_layer = get_channel_layer()
    for user_id in user_ids:
        async_to_sync(channel_layer.group_send)(
            unread_group_name(user_id),
            {'type': 'unread_invalidated'}
        )
    logger.debug(f"[Chat] Sent unread invalidation to users {list(user_ids)}.")


def invalidate_unread(conversation):
    transaction.on_commit(partial(_send_invalidations, conversation.participant_ids))


@receiver(post_save, sender=Message)
def message_saved(sender, instance, created, **kwargs):
    # Covers new messages and read receipts saved through the model; bulk
    # read updates call invalidate_unread themselves.
    invalidate_unread(instance.conversation)
