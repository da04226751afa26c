# videocalls/urls.py
from django.urls import path
from . import views

urlpatterns = [
    path('<int:appointment_id>/video-call/', views.video_call_view, name='video_call'),
    path('<int:appointment_id>/video-call/token/', views.video_call_token_view, name='video_call_token'),
]
