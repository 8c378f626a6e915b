from django.contrib import admin

from .models import Aluno, Curso, Frequencia, Matricula, Responsavel


class ResponsavelInline(admin.TabularInline):
    model = Responsavel
    extra = 0
    fields = ("nome", "cpf", "telefone", "email", "principal")
    readonly_fields = ("cpf",)


@admin.register(Aluno)
class AlunoAdmin(admin.ModelAdmin):
    list_display = ("nome", "cpf", "data_nascimento", "telefone", "ativo")
    list_filter = ("ativo",)
    search_fields = ("nome", "email", "nis")
    exclude = ("cpf_enc", "cpf_hash", "cpf_last4")
    inlines = [ResponsavelInline]


@admin.register(Curso)
class CursoAdmin(admin.ModelAdmin):
    list_display = ("nome", "turno", "carga_horaria", "vagas")
    list_filter = ("turno",)
    search_fields = ("nome", "gestor_executivo")


@admin.register(Matricula)
class MatriculaAdmin(admin.ModelAdmin):
    list_display = ("aluno", "curso", "data_matricula", "situacao")
    list_filter = ("situacao", "curso")
    search_fields = ("aluno__nome", "curso__nome")
    autocomplete_fields = ("aluno", "curso")


@admin.register(Frequencia)
class FrequenciaAdmin(admin.ModelAdmin):
    list_display = ("matricula", "data", "status")
    list_filter = ("status", "data")
    search_fields = ("matricula__aluno__nome",)
