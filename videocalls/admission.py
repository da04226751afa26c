# videocalls/admission.py
"""
Waiting-room admission for video consultations.

States: scheduled -> waiting -> active -> ended. The patient moves the call to
``waiting`` by joining, the doctor moves it to ``active`` by admitting, and
either participant (or the provider's meeting-ended event) ends it.

Every write is followed, once committed, by a fresh read of the row that is
published to the call's channel group. Clients derive their state from those
snapshots only, never from the result of their own write.
"""
import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from functools import partial

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.core.exceptions import PermissionDenied
from django.db import transaction
from django.utils import timezone

from .models import VideoCall, call_group_name

logger = logging.getLogger(__name__)


class AdmissionError(Exception):
    """A transition was refused because the call is not in the required state."""


def is_patient_waiting(record):
    """A patient is waiting only once they have actually joined, not merely because status is 'waiting'."""
    return record.status == 'waiting' and record.patient_joined_at is not None


def is_call_active(record):
    return record.status == 'active'


@dataclass(frozen=True)
class VideoCallSnapshot:
    id: str
    appointment_id: int
    room_name: str
    room_url: str
    status: str
    patient_joined_at: datetime = None
    doctor_joined_at: datetime = None
    ended_at: datetime = None

    @classmethod
    def from_call(cls, call):
        return cls(
            id=str(call.pk),
            appointment_id=call.appointment_id,
            room_name=call.room_name,
            room_url=call.room_url,
            status=call.status,
            patient_joined_at=call.patient_joined_at,
            doctor_joined_at=call.doctor_joined_at,
            ended_at=call.ended_at,
        )

    @classmethod
    def from_dict(cls, data):
        values = dict(data)
        for key in ('patient_joined_at', 'doctor_joined_at', 'ended_at'):
            if values.get(key):
                values[key] = datetime.fromisoformat(values[key])
        return cls(**values)

    def to_dict(self):
        data = asdict(self)
        for key in ('patient_joined_at', 'doctor_joined_at', 'ended_at'):
            if data[key] is not None:
                data[key] = data[key].isoformat()
        return data


def get_snapshot(call_id):
    return VideoCallSnapshot.from_call(VideoCall.objects.get(pk=call_id))


def publish_call_update(call_id):
    """Reads the committed row and sends it to everyone watching the call."""
    snapshot = get_snapshot(call_id)
    channel_layer = get_channel_layer()
    async_to_sync(channel_layer.group_send)(
        call_group_name(call_id),
        {
            'type': 'call_update',
            'call': snapshot.to_dict(),
        }
    )
    logger.info(f"[Admission] Published call {call_id} update (status={snapshot.status}).")


def _publish_on_commit(call_id):
    transaction.on_commit(partial(publish_call_update, call_id))


def _load_call(call_id):
    try:
        return VideoCall.objects.select_related('appointment').get(pk=call_id)
    except VideoCall.DoesNotExist:
        raise AdmissionError("Call not found")


def join_as_patient(call_id, user):
    call = _load_call(call_id)
    if not call.appointment.is_patient(user):
        raise PermissionDenied("Only the patient can join the waiting room")
    if call.status == 'ended':
        raise AdmissionError("Call has ended")

    now = timezone.now()
    with transaction.atomic():
        VideoCall.objects.filter(pk=call.pk).exclude(status='ended').update(patient_joined_at=now, updated_at=now)
        # A patient rejoining an active call keeps it active.
        VideoCall.objects.filter(pk=call.pk, status='scheduled').update(status='waiting')
        _publish_on_commit(call.pk)
    logger.info(f"[Admission] Patient {user.pk} joined call {call.pk}.")


def admit(call_id, user):
    """
    Moves a waiting call to 'active'. The guard is evaluated by the UPDATE
    itself, so of two concurrent admits only one succeeds.
    """
    call = _load_call(call_id)
    if not call.appointment.is_doctor(user):
        raise PermissionDenied("Only the doctor can admit the patient")

    now = timezone.now()
    with transaction.atomic():
        updated = VideoCall.objects.filter(
            pk=call.pk,
            status='waiting',
            patient_joined_at__isnull=False,
        ).update(status='active', updated_at=now)
        if not updated:
            logger.info(f"[Admission] Doctor {user.pk} tried to admit on call {call.pk} but no one is waiting.")
            raise AdmissionError("No one is waiting")
        VideoCall.objects.filter(pk=call.pk, doctor_joined_at__isnull=True).update(doctor_joined_at=now)
        _publish_on_commit(call.pk)
    logger.info(f"[Admission] Doctor {user.pk} admitted the patient on call {call.pk}.")


def end_call(call_id, user=None):
    """Ends the call. ``user`` is None when the provider reports the meeting ended."""
    call = _load_call(call_id)
    if user is not None and not call.appointment.is_participant(user):
        raise PermissionDenied("Only participants can end the call")

    now = timezone.now()
    with transaction.atomic():
        updated = VideoCall.objects.filter(pk=call.pk).exclude(status='ended').update(
            status='ended', ended_at=now, updated_at=now,
        )
        if updated:
            _publish_on_commit(call.pk)
    if updated:
        logger.info(f"[Admission] Call {call.pk} ended.")
    else:
        logger.info(f"[Admission] Call {call.pk} was already ended. No update needed.")
    return bool(updated)
