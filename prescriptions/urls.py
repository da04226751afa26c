# prescriptions/urls.py
from django.urls import path
from . import views

urlpatterns = [
    path('', views.prescriptions_view, name='prescriptions'),
    path('<uuid:prescription_id>/', views.prescription_detail_view, name='prescription_detail'),
    path('<uuid:prescription_id>/share/', views.share_prescription_view, name='share_prescription'),
    path('shared/<str:token>/', views.shared_prescription_view, name='shared_prescription'),
]
