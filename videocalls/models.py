# videocalls/models.py
from django.db import models
import uuid


class VideoCall(models.Model):
    STATUS_CHOICES = [
        ('scheduled', 'Scheduled'),
        ('waiting', 'Waiting'),  # Patient opened the call screen and is waiting for admission
        ('active', 'Active'),    # Doctor admitted the patient
        ('ended', 'Ended'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    appointment = models.OneToOneField('appointments.Appointment', on_delete=models.CASCADE, related_name='video_call')
    room_name = models.CharField(max_length=128, unique=True)
    room_url = models.URLField(max_length=255, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='scheduled')
    patient_joined_at = models.DateTimeField(null=True, blank=True)
    doctor_joined_at = models.DateTimeField(null=True, blank=True)
    ended_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['created_at']

    def __str__(self):
        return f"{self.room_name} (appointment {self.appointment_id}) - {self.status}"

    @property
    def group_name(self):
        return call_group_name(self.pk)


def call_group_name(call_id):
    return f'video_call_{call_id}'
