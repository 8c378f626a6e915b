from django.contrib import admin

from .models import FichaSaude


@admin.register(FichaSaude)
class FichaSaudeAdmin(admin.ModelAdmin):
    list_display = ("aluno", "tipo", "data", "profissional")
    list_filter = ("tipo", "data")
    search_fields = ("aluno__nome", "profissional")
