from __future__ import annotations

import datetime
from dataclasses import dataclass

from django.conf import settings
from django.contrib.auth.decorators import login_required
from django.shortcuts import render
from django.utils import timezone

from apps.assistencia.models import AtendimentoSocial
from apps.educacao.models import Aluno, Curso, Frequencia, Matricula

from .aggregation import GroupSummary, aggregate, percentage
from .forms import EventoForm
from .models import Evento
from .session import AuthSession, get_session
from .ui.tables import Column, TableView, build_table, derive, field
from .views_base import BaseCreateView, BaseDeleteView, BaseUpdateView


@dataclass(frozen=True)
class Atividade:
    key: str
    tipo: str
    nome: str
    detalhes: str
    data: datetime.date


@dataclass
class Dashboard:
    session: AuthSession
    stats: list[dict]
    atividades: list[Atividade]
    eventos: list[Evento]
    alunos_por_curso: list[GroupSummary]
    atividades_table: TableView | None = None
    alunos_por_curso_table: TableView | None = None
    can_manage_eventos: bool = False


def _stats() -> list[dict]:
    status_list = list(Frequencia.objects.values_list("status", flat=True))
    presentes = sum(1 for s in status_list if s == Frequencia.Status.PRESENTE)
    media = f"{percentage(presentes, len(status_list))}%"

    return [
        {"label": "Alunos", "value": Aluno.objects.count(), "icon": "fa-solid fa-users"},
        {"label": "Cursos", "value": Curso.objects.count(), "icon": "fa-solid fa-book-open"},
        {"label": "Frequência média", "value": media, "icon": "fa-solid fa-calendar-check"},
        {"label": "Atendimentos sociais", "value": AtendimentoSocial.objects.count(), "icon": "fa-solid fa-heart"},
    ]


def _atividades_recentes(limit: int) -> list[Atividade]:
    atividades: list[Atividade] = []

    for m in Matricula.objects.select_related("aluno", "curso").order_by("-criado_em", "-id")[:limit]:
        atividades.append(Atividade(f"matricula-{m.pk}", "Matrícula", m.aluno.nome, m.curso.nome, m.data_matricula))

    for a in AtendimentoSocial.objects.select_related("aluno").order_by("-criado_em", "-id")[:limit]:
        atividades.append(Atividade(f"atendimento-{a.pk}", "Atendimento", a.aluno.nome, "Assistência Social", a.data))

    faltas = (
        Frequencia.objects.select_related("matricula__aluno")
        .filter(status=Frequencia.Status.AUSENTE)
        .order_by("-criado_em", "-id")[:limit]
    )
    for f in faltas:
        atividades.append(Atividade(f"frequencia-{f.pk}", "Frequência", f.matricula.aluno.nome, "Falta", f.data))

    # mais recentes primeiro (sorted é estável entre empates)
    return sorted(atividades, key=lambda a: a.data, reverse=True)


def build_dashboard(session: AuthSession, hoje: datetime.date) -> Dashboard:
    """
    Monta o painel inicial para a sessão informada.

    Números gerais, atividades recentes (matrículas, atendimentos e faltas),
    próximos eventos (data >= hoje) e alunos ativos por curso.
    """
    recent_limit = getattr(settings, "AMAR_DASHBOARD_RECENT_LIMIT", 3)
    events_limit = getattr(settings, "AMAR_DASHBOARD_EVENTS_LIMIT", 3)

    ativas = Matricula.objects.filter(situacao=Matricula.Situacao.ATIVA).select_related("curso")
    alunos_por_curso = aggregate(ativas, lambda m: m.curso.nome)

    atividades = _atividades_recentes(recent_limit)
    eventos = list(Evento.objects.filter(data__gte=hoje).order_by("data", "hora")[:events_limit])

    atividades_table = build_table(
        [
            Column("Tipo", field("tipo"), width="120px"),
            Column("Nome", field("nome")),
            Column("Detalhes", field("detalhes")),
            Column("Data", derive(lambda a: a.data.strftime("%d/%m/%Y") if a.data else "")),
        ],
        atividades,
        lambda a: a.key,
        empty_message="Nenhuma atividade recente.",
    )
    cursos_table = build_table(
        [
            Column("Curso", field("key")),
            Column("Alunos", field("count"), width="90px"),
            Column("%", derive(lambda g: f"{g.percentage}%"), width="80px"),
        ],
        alunos_por_curso,
        lambda g: g.key,
        empty_message="Nenhuma matrícula ativa.",
    )

    return Dashboard(
        session=session,
        stats=_stats(),
        atividades=atividades,
        eventos=eventos,
        alunos_por_curso=alunos_por_curso,
        atividades_table=atividades_table,
        alunos_por_curso_table=cursos_table,
        can_manage_eventos=session.can("eventos.manage"),
    )


@login_required
def dashboard(request):
    session = get_session(request)
    painel = build_dashboard(session, timezone.localdate())
    return render(
        request,
        "core/dashboard.html",
        {
            "title": "Dashboard",
            "subtitle": f"Olá, {session.display_name}",
            "painel": painel,
            "chart_cursos": {
                "labels": [g.key for g in painel.alunos_por_curso],
                "values": [g.count for g in painel.alunos_por_curso],
            },
        },
    )


class EventoCreateView(BaseCreateView):
    manage_perm = "eventos.manage"
    form_class = EventoForm
    title = "Novo evento"
    success_message = "Evento criado com sucesso."


class EventoUpdateView(BaseUpdateView):
    manage_perm = "eventos.manage"
    model = Evento
    form_class = EventoForm
    title = "Editar evento"
    success_message = "Evento atualizado com sucesso."


class EventoDeleteView(BaseDeleteView):
    manage_perm = "eventos.manage"
    model = Evento
    title = "Excluir evento"
    success_message = "Evento excluído com sucesso."
