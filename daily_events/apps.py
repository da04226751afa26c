from django.apps import AppConfig


class DailyEventsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'daily_events'
