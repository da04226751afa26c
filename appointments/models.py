# appointments/models.py
from datetime import datetime

from django.conf import settings
from django.db import models
from django.utils import timezone


class Appointment(models.Model):
    TYPE_CHOICES = [
        ('video', 'Video'),
        ('in_clinic', 'In clinic'),
    ]
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('accepted', 'Accepted'),
        ('rejected', 'Rejected'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
    ]
    PAYMENT_STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('paid', 'Paid'),
        ('failed', 'Failed'),
        ('refunded', 'Refunded'),
        ('partial_refund', 'Partial refund'),
    ]

    patient = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='patient_appointments')
    doctor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='doctor_appointments')
    appt_type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='video')
    appt_date = models.DateField()
    appt_time = models.TimeField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    reason = models.TextField(blank=True)

    # Amounts are stored in minor currency units (paise for INR).
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default='pending')
    payment_id = models.CharField(max_length=100, null=True, blank=True)
    payment_amount = models.PositiveIntegerField(null=True, blank=True)
    payment_currency = models.CharField(max_length=8, null=True, blank=True)
    payment_date = models.DateTimeField(null=True, blank=True)
    refund_amount = models.PositiveIntegerField(null=True, blank=True)
    refund_id = models.CharField(max_length=100, null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['appt_date', 'appt_time']

    def __str__(self):
        return f"#{self.pk} {self.appt_type} on {self.appt_date} {self.appt_time} - {self.status}"

    @property
    def starts_at(self):
        return timezone.make_aware(datetime.combine(self.appt_date, self.appt_time))

    def is_participant(self, user):
        return user.pk in (self.patient_id, self.doctor_id)

    def is_doctor(self, user):
        return user.pk == self.doctor_id

    def is_patient(self, user):
        return user.pk == self.patient_id


class AppointmentReminder(models.Model):
    TYPE_CHOICES = [
        ('24h_before', '24 hours before'),
        ('2h_before', '2 hours before'),
        ('1h_before', '1 hour before'),
    ]
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('sent', 'Sent'),
        ('failed', 'Failed'),
        ('skipped', 'Skipped'),
    ]

    appointment = models.ForeignKey(Appointment, on_delete=models.CASCADE, related_name='reminders')
    reminder_type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    scheduled_for = models.DateTimeField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    sent_at = models.DateTimeField(null=True, blank=True)
    error_message = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['scheduled_for']
        constraints = [
            models.UniqueConstraint(fields=['appointment', 'reminder_type'], name='unique_reminder_per_type'),
        ]

    def __str__(self):
        return f"{self.reminder_type} for appointment #{self.appointment_id} ({self.status})"
