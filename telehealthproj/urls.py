# telehealthproj/urls.py
from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/auth/', include('accounts.urls')),
    path('api/appointments/', include('appointments.urls')),
    path('api/appointments/', include('videocalls.urls')),
    path('api/payments/', include('payments.urls')),
    path('api/chat/', include('chat.urls')),
    path('api/prescriptions/', include('prescriptions.urls')),
    # Daily.co posts webhook events here (see daily_events/urls.py).
    path('daily/', include('daily_events.urls')),
]
