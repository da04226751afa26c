# payments/urls.py
from django.urls import path
from . import views

urlpatterns = [
    path('create-order/', views.create_order_view, name='create_order'),
    path('verify/', views.verify_payment_view, name='verify_payment'),
    path('refund/', views.refund_view, name='refund'),
    path('pricing/', views.pricing_view, name='pricing'),
    path('webhook/', views.webhook_view, name='payment_webhook'),
]
