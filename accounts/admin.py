# accounts/admin.py
from django.contrib import admin
from .models import Profile


@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = ('full_name', 'user', 'role', 'phone')
    list_filter = ('role',)
    search_fields = ('full_name', 'user__email', 'phone')
    raw_id_fields = ('user',)
