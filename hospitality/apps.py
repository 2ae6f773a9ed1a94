from django.apps import AppConfig


class HospitalityConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'hospitality'
    verbose_name = 'Hospitality exchange'
