from django.contrib import admin

from .models import AtendimentoSocial


@admin.register(AtendimentoSocial)
class AtendimentoSocialAdmin(admin.ModelAdmin):
    list_display = ("aluno", "data", "necessidades_texto", "registrado_por")
    list_filter = ("data",)
    search_fields = ("aluno__nome", "observacoes")
