# chat/urls.py
from django.urls import path
from . import views

urlpatterns = [
    path('conversations/', views.conversations_view, name='conversations'),
    path('conversations/<int:conversation_id>/messages/', views.messages_view, name='conversation_messages'),
]
