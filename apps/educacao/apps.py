from django.apps import AppConfig


class EducacaoConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.educacao"
    label = "educacao"
