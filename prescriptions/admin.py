# prescriptions/admin.py
from django.contrib import admin
from .models import Prescription


@admin.register(Prescription)
class PrescriptionAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'doctor', 'appointment', 'created_at')
    search_fields = ('patient__email', 'doctor__email', 'patient_name')
    raw_id_fields = ('patient', 'doctor', 'appointment')
    readonly_fields = ('share_token',)
