from datetime import datetime

from django.contrib.auth import get_user_model
from django.utils import timezone

from appointments.models import Appointment


def make_user(username, role='patient', full_name=''):
    user = get_user_model().objects.create_user(
        username=username, email=f'{username}@example.com', password='DummyPass123!',
    )
    user.profile.role = role
    user.profile.full_name = full_name or username.title()
    user.profile.save()
    return user


def make_appointment(patient, doctor, starts_at=None, **fields):
    """A paid, accepted video appointment starting at ``starts_at`` (default: now, to the minute)."""
    starts_at = timezone.localtime(starts_at or timezone.now()).replace(second=0, microsecond=0)
    values = {
        'appt_type': 'video',
        'status': 'accepted',
        'payment_status': 'paid',
        'appt_date': starts_at.date(),
        'appt_time': starts_at.time(),
    }
    values.update(fields)
    return Appointment.objects.create(patient=patient, doctor=doctor, **values)


def aware(year, month, day, hour, minute):
    return timezone.make_aware(datetime(year, month, day, hour, minute))
