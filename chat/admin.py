# chat/admin.py
from django.contrib import admin
from .models import Conversation, Message


@admin.register(Conversation)
class ConversationAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'doctor', 'appointment', 'updated_at')
    raw_id_fields = ('patient', 'doctor', 'appointment')


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ('id', 'conversation', 'sender', 'created_at', 'read_at')
    list_filter = ('read_at',)
    raw_id_fields = ('conversation', 'sender')
