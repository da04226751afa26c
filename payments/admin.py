# payments/admin.py
from django.contrib import admin
from .models import AppointmentPricing, Payment


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ('razorpay_payment_id', 'appointment', 'amount', 'currency', 'status', 'method', 'created_at')
    list_filter = ('status', 'currency')
    search_fields = ('razorpay_payment_id', 'razorpay_order_id')
    raw_id_fields = ('appointment',)


@admin.register(AppointmentPricing)
class AppointmentPricingAdmin(admin.ModelAdmin):
    list_display = ('appt_type', 'doctor', 'amount', 'currency', 'is_active', 'updated_at')
    list_filter = ('appt_type', 'is_active')
    raw_id_fields = ('doctor',)
