# daily_events/urls.py
from django.urls import path
from . import views

urlpatterns = [
    path('events', views.daily_event_sink_view, name='daily_event_sink'),
]
