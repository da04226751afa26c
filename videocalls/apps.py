from django.apps import AppConfig


class VideocallsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'videocalls'
    verbose_name = 'Video calls'
