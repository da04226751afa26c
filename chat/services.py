# chat/services.py
import logging

from django.contrib.auth import get_user_model
from django.core.exceptions import PermissionDenied
from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone

from appointments.models import Appointment
from .models import Conversation, Message
from .signals import invalidate_unread

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 5000
HISTORY_PAGE_SIZE = 50


class ChatError(Exception):
    pass


class ChatNotFound(ChatError):
    pass


def conversation_group_name(conversation_id):
    return f"chat_{conversation_id}"


def get_conversation_for(conversation_id, user):
    try:
        conversation = Conversation.objects.get(pk=conversation_id)
    except (Conversation.DoesNotExist, ValueError):
        raise ChatNotFound("Conversation not found")
    if not conversation.is_participant(user):
        raise PermissionDenied("Not a participant of this conversation")
    return conversation


def find_or_create_conversation(patient, doctor, appointment=None):
    conversation, created = Conversation.objects.get_or_create(
        patient=patient,
        doctor=doctor,
        appointment=appointment,
    )
    if created:
        logger.info(f"[Chat] Created conversation {conversation.pk} for patient {patient.pk} and doctor {doctor.pk}.")
    return conversation


def serialize_message(message):
    return {
        'id': message.pk,
        'conversation_id': message.conversation_id,
        'sender_id': message.sender_id,
        'body': message.body,
        'created_at': message.created_at.isoformat(),
        'read_at': message.read_at.isoformat() if message.read_at else None,
    }


def post_message(conversation_id, user, body):
    conversation = get_conversation_for(conversation_id, user)
    if body is not None and not isinstance(body, str):
        raise ChatError("Message must be text")
    body = (body or '').strip()
    if not body:
        raise ChatError("Message cannot be empty")
    if len(body) > MAX_MESSAGE_LENGTH:
        raise ChatError(f"Message is longer than {MAX_MESSAGE_LENGTH} characters")

    with transaction.atomic():
        message = Message.objects.create(conversation=conversation, sender=user, body=body)
        # Keeps the conversation list sorted by latest activity.
        Conversation.objects.filter(pk=conversation.pk).update(updated_at=message.created_at)
    return message


def mark_read(conversation_id, user):
    """Marks the other participant's unread messages as read; returns how many changed."""
    conversation = get_conversation_for(conversation_id, user)
    with transaction.atomic():
        updated = conversation.messages.filter(read_at__isnull=True).exclude(sender=user).update(
            read_at=timezone.now(),
        )
        if updated:
            invalidate_unread(conversation)
    return updated


def unread_count(user):
    return Message.objects.filter(
        Q(conversation__patient=user) | Q(conversation__doctor=user),
        read_at__isnull=True,
    ).exclude(sender=user).count()


def _display_name(user):
    profile = getattr(user, 'profile', None)
    if profile is not None and profile.full_name:
        return profile.full_name
    return user.get_full_name() or user.get_username()


def start_conversation(user, participant_id=None, appointment_id=None):
    """
    Finds or opens the conversation between ``user`` and another party. With
    an appointment the pair comes from it; otherwise patients may write to any
    doctor, and doctors only to patients they have an appointment with.
    """
    if appointment_id is not None:
        try:
            appointment = Appointment.objects.select_related('patient', 'doctor').get(pk=appointment_id)
        except Appointment.DoesNotExist:
            raise ChatNotFound("Appointment not found")
        if not appointment.is_participant(user):
            raise PermissionDenied("Not a participant of this appointment")
        return find_or_create_conversation(appointment.patient, appointment.doctor, appointment)

    try:
        other = get_user_model().objects.select_related('profile').get(pk=participant_id)
    except (get_user_model().DoesNotExist, ValueError, TypeError):
        raise ChatNotFound("User not found")
    if other.pk == user.pk:
        raise ChatError("Cannot start a conversation with yourself")

    if user.profile.is_doctor:
        if not Appointment.objects.filter(patient=other, doctor=user).exists():
            raise PermissionDenied("You can only message your own patients")
        return find_or_create_conversation(other, user)
    if not other.profile.is_doctor:
        raise ChatError("Patients can only message doctors")
    return find_or_create_conversation(user, other)


def list_conversations(user):
    """The user's conversations, latest activity first, with the other party and unread count."""
    conversations = (
        Conversation.objects.filter(Q(patient=user) | Q(doctor=user))
        .select_related('patient__profile', 'doctor__profile')
        .annotate(unread=Count('messages', filter=Q(messages__read_at__isnull=True) & ~Q(messages__sender=user)))
    )
    results = []
    for conversation in conversations:
        partner = conversation.doctor if conversation.patient_id == user.pk else conversation.patient
        last_message = conversation.messages.order_by('-created_at', '-pk').first()
        results.append({
            'id': conversation.pk,
            'appointment_id': conversation.appointment_id,
            'partner_id': partner.pk,
            'partner_name': _display_name(partner),
            'last_message': serialize_message(last_message) if last_message else None,
            'unread_count': conversation.unread,
            'updated_at': conversation.updated_at.isoformat(),
        })
    return results


def message_history(conversation_id, user, before=None, limit=HISTORY_PAGE_SIZE):
    """Up to ``limit`` messages older than message ``before``, oldest first."""
    conversation = get_conversation_for(conversation_id, user)
    messages = conversation.messages.order_by('-created_at', '-pk')
    if before is not None:
        messages = messages.filter(pk__lt=before)
    page = list(messages[:limit])
    page.reverse()
    return [serialize_message(message) for message in page]
