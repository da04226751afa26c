# appointments/urls.py
from django.urls import path
from . import views

urlpatterns = [
    path('', views.book_appointment_view, name='book_appointment'),
    path('<int:appointment_id>/status/', views.appointment_status_view, name='appointment_status'),
]
