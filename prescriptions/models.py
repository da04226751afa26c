# prescriptions/models.py
import uuid

from django.conf import settings
from django.db import models


class Prescription(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    appointment = models.ForeignKey('appointments.Appointment', on_delete=models.SET_NULL, null=True, blank=True,
                                    related_name='prescriptions')
    doctor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='written_prescriptions')
    patient = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='prescriptions')
    # As written on the prescription, which may differ from the account profile.
    patient_name = models.CharField(max_length=200, blank=True)
    patient_age = models.CharField(max_length=20, blank=True)
    patient_address = models.TextField(blank=True)
    observations = models.TextField(blank=True)
    # [{name, dosage, frequency, duration, instructions}, ...]
    medicines = models.JSONField(default=list)
    # Image data URL of the doctor's signature.
    doctor_signature = models.TextField(blank=True)
    share_token = models.CharField(max_length=64, unique=True, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"Prescription {self.pk} for patient {self.patient_id} by doctor {self.doctor_id}"

    def is_participant(self, user):
        return user.pk in (self.patient_id, self.doctor_id)
