# videocalls/admin.py
from django.contrib import admin
from .models import VideoCall


@admin.register(VideoCall)
class VideoCallAdmin(admin.ModelAdmin):
    list_display = ('room_name', 'appointment', 'status', 'patient_joined_at', 'doctor_joined_at', 'ended_at')
    list_filter = ('status',)
    search_fields = ('room_name', 'appointment__patient__email', 'appointment__doctor__email')
    readonly_fields = ('id', 'created_at', 'updated_at')
    raw_id_fields = ('appointment',)
