# payments/models.py
from django.conf import settings
from django.db import models


class Payment(models.Model):
    STATUS_CHOICES = [
        ('captured', 'Captured'),
        ('authorized', 'Authorized'),
        ('refunded', 'Refunded'),
    ]

    appointment = models.ForeignKey('appointments.Appointment', on_delete=models.CASCADE, related_name='payments')
    razorpay_payment_id = models.CharField(max_length=100, unique=True)
    razorpay_order_id = models.CharField(max_length=100)
    amount = models.PositiveIntegerField()
    currency = models.CharField(max_length=8, default='INR')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES)
    method = models.CharField(max_length=50, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.razorpay_payment_id} ({self.amount} {self.currency}, {self.status})"


class AppointmentPricing(models.Model):
    """Consultation price per appointment type; rows without a doctor are the defaults."""
    appt_type = models.CharField(max_length=20, choices=[('video', 'Video'), ('in_clinic', 'In clinic')])
    doctor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, null=True, blank=True,
                               related_name='pricing')
    amount = models.PositiveIntegerField()
    currency = models.CharField(max_length=8, default='INR')
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-updated_at']

    def __str__(self):
        owner = f"doctor {self.doctor_id}" if self.doctor_id else "default"
        return f"{self.appt_type} ({owner}): {self.amount} {self.currency}"
