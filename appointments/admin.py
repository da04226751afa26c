# appointments/admin.py
from django.contrib import admin
from .models import Appointment, AppointmentReminder


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'doctor', 'appt_type', 'appt_date', 'appt_time', 'status', 'payment_status')
    list_filter = ('appt_type', 'status', 'payment_status')
    search_fields = ('patient__email', 'doctor__email', 'payment_id')
    raw_id_fields = ('patient', 'doctor')


@admin.register(AppointmentReminder)
class AppointmentReminderAdmin(admin.ModelAdmin):
    list_display = ('id', 'appointment', 'reminder_type', 'scheduled_for', 'status', 'sent_at')
    list_filter = ('reminder_type', 'status')
    raw_id_fields = ('appointment',)
