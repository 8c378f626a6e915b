from __future__ import annotations

import logging

from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.core.exceptions import ValidationError
from django.db.models import Count, Q
from django.shortcuts import get_object_or_404, redirect
from django.urls import reverse
from django.views.decorators.http import require_POST

from apps.core.aggregation import percentage
from apps.core.decorators import require_perm
from apps.core.ui.tables import Cell, Column, build_table, derive, field
from apps.core.views_base import BaseCreateView, BaseDeleteView, BaseDetailView, BaseListView, BaseUpdateView

from .forms import CursoForm, MatricularAlunoForm
from .models import Curso, Matricula
from .services_frequencia import taxa_presenca
from .services_matricula import excluir_curso, matricular
from .views_alunos import situacao_badge, trancar_cell

logger = logging.getLogger(__name__)


def _vagas_text(c: Curso) -> str:
    if not c.vagas:
        return f"{c.ativos} / sem limite"
    return f"{c.ativos} / {c.vagas}"


class CursoListView(BaseListView):
    perm = "educacao.view"
    manage_perm = "educacao.manage"
    title = "Cursos"
    subtitle = "Cursos oferecidos pela organização"
    placeholder = "Buscar por nome ou gestor"
    empty_message = "Nenhum curso cadastrado."
    rows_clickable = True

    export_basename = "cursos"
    export_headers = ["Curso", "Turno", "Carga horária", "Alunos ativos", "Vagas"]

    def get_base_queryset(self):
        return Curso.objects.annotate(
            ativos=Count("matriculas", filter=Q(matriculas__situacao=Matricula.Situacao.ATIVA))
        ).order_by("nome")

    def apply_filters(self, qs):
        turno = (self.request.GET.get("turno") or "").strip().upper()
        if turno in Curso.Turno.values:
            qs = qs.filter(turno=turno)
        return qs

    def apply_search(self, qs, q: str):
        return qs.filter(
            Q(nome__icontains=q)
            | Q(gestor_executivo__icontains=q)
            | Q(gestor_voluntario__icontains=q)
            | Q(orientador_educacional__icontains=q)
        )

    def get_filters(self):
        atual = (self.request.GET.get("turno") or "").strip().upper()
        base = reverse("educacao:curso_list")
        filtros = [{"label": "Todos", "url": base, "active": not atual}]
        filtros += [
            {"label": label, "url": f"{base}?turno={valor}", "active": atual == valor}
            for valor, label in Curso.Turno.choices
        ]
        return filtros

    def get_actions(self, request, **kwargs):
        actions = [
            {"label": "CSV", "url": self.export_url(request, "csv"), "icon": "fa-solid fa-file-csv", "variant": "btn--ghost"},
        ]
        if self.has_manage(request):
            actions.append(
                {
                    "label": "Novo curso",
                    "url": reverse("educacao:curso_create"),
                    "icon": "fa-solid fa-plus",
                    "variant": "btn-primary",
                }
            )
        return actions

    def get_columns(self):
        return [
            Column("Curso", derive(lambda c: Cell(text=c.nome, url=reverse("educacao:curso_detail", args=[c.pk])))),
            Column("Turno", derive(lambda c: c.get_turno_display()), width="100px"),
            Column("Carga horária", derive(lambda c: f"{c.carga_horaria} h"), width="120px"),
            Column("Gestor executivo", field("gestor_executivo")),
            Column("Alunos / vagas", derive(_vagas_text), width="140px"),
        ]

    def get_row_url(self, obj):
        return reverse("educacao:curso_detail", args=[obj.pk])

    def get_export_rows(self, qs):
        return [[c.nome, c.get_turno_display(), c.carga_horaria, c.ativos, c.vagas or "sem limite"] for c in qs]


class CursoCreateView(BaseCreateView):
    perm = "educacao.view"
    manage_perm = "educacao.manage"
    form_class = CursoForm
    title = "Novo curso"
    back_url_name = "educacao:curso_list"
    success_message = "Curso cadastrado com sucesso."

    def get_success_url(self, request, obj=None):
        return reverse("educacao:curso_detail", args=[obj.pk])

    def save(self, request, form):
        curso = form.save()
        logger.info("Curso %s criado por %s", curso.pk, request.user)
        return curso


class CursoUpdateView(BaseUpdateView):
    perm = "educacao.view"
    manage_perm = "educacao.manage"
    model = Curso
    form_class = CursoForm
    title = "Editar curso"
    back_url_name = "educacao:curso_list"
    success_message = "Curso atualizado com sucesso."

    def get_success_url(self, request, obj=None):
        if obj is None:
            return self.get_back_url()
        return reverse("educacao:curso_detail", args=[obj.pk])


class CursoDetailView(BaseDetailView):
    perm = "educacao.view"
    manage_perm = "educacao.manage"
    model = Curso
    template_name = "educacao/curso_detail.html"
    back_url_name = "educacao:curso_list"

    def get_actions(self, request, **kwargs):
        curso = kwargs.get("obj")
        actions = super().get_actions(request)
        if curso is None:
            return actions
        actions.append(
            {
                "label": "Frequência",
                "url": reverse("educacao:frequencia") + f"?curso={curso.pk}",
                "icon": "fa-solid fa-clipboard-check",
                "variant": "btn--ghost",
            }
        )
        if self.has_manage(request):
            actions += [
                {
                    "label": "Editar",
                    "url": reverse("educacao:curso_update", args=[curso.pk]),
                    "icon": "fa-solid fa-pen",
                    "variant": "btn-primary",
                },
                {
                    "label": "Excluir",
                    "url": reverse("educacao:curso_delete", args=[curso.pk]),
                    "icon": "fa-solid fa-trash",
                    "variant": "btn--danger",
                },
            ]
        return actions

    def get_fields(self, request, curso):
        return [
            ("Descrição", curso.descricao),
            ("Turno", curso.get_turno_display()),
            ("Carga horária", f"{curso.carga_horaria} h"),
            ("Gestor executivo", curso.gestor_executivo),
            ("Gestor voluntário", curso.gestor_voluntario),
            ("Orientador educacional", curso.orientador_educacional),
        ]

    def get_extra_context(self, request, curso):
        can_manage = self.has_manage(request)
        matriculas = list(curso.matriculas.select_related("aluno").order_by("aluno__nome"))
        for m in matriculas:
            m.taxa = taxa_presenca(m)

        columns = [
            Column("Aluno", derive(lambda m: Cell(text=m.aluno.nome, url=reverse("educacao:aluno_detail", args=[m.aluno_id])))),
            Column("Matrícula", derive(lambda m: m.data_matricula.strftime("%d/%m/%Y") if m.data_matricula else "")),
            Column("Situação", derive(lambda m: Cell(text=m.get_situacao_display(), badge=situacao_badge(m.situacao)))),
            Column("Presença", derive(lambda m: "—" if m.taxa is None else f"{m.taxa}%"), width="100px"),
        ]
        if can_manage:
            columns.append(Column("", derive(lambda m: trancar_cell(m, origem="curso")), width="120px"))

        ativos = sum(1 for m in matriculas if m.situacao == Matricula.Situacao.ATIVA)
        return {
            "matriculas_table": build_table(
                columns,
                matriculas,
                lambda m: str(m.pk),
                empty_message="Nenhum aluno matriculado neste curso.",
            ),
            "ocupacao": {
                "ativos": ativos,
                "vagas": curso.vagas,
                "percentual": percentage(ativos, curso.vagas) if curso.vagas else None,
            },
            "matricular_form": MatricularAlunoForm(curso=curso) if can_manage else None,
            "can_manage": can_manage,
        }


class CursoDeleteView(BaseDeleteView):
    perm = "educacao.view"
    manage_perm = "educacao.manage"
    model = Curso
    title = "Excluir curso"
    back_url_name = "educacao:curso_list"
    success_message = "Curso excluído."

    def get_cancel_url(self, request, obj):
        return reverse("educacao:curso_detail", args=[obj.pk])

    def delete(self, request, obj):
        excluir_curso(curso=obj, usuario=request.user)


@login_required
@require_perm("educacao.manage")
@require_POST
def curso_matricular(request, pk: int):
    curso = get_object_or_404(Curso, pk=pk)
    form = MatricularAlunoForm(request.POST, curso=curso)
    if not form.is_valid():
        messages.error(request, "Selecione um aluno válido.")
        return redirect("educacao:curso_detail", pk=curso.pk)

    try:
        matricular(aluno=form.cleaned_data["aluno"], curso=curso, usuario=request.user)
    except ValidationError as exc:
        messages.error(request, " ".join(exc.messages))
    else:
        messages.success(request, "Aluno matriculado com sucesso.")
    return redirect("educacao:curso_detail", pk=curso.pk)
