from __future__ import annotations

import datetime

from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.core.exceptions import ValidationError
from django.shortcuts import redirect, render
from django.urls import reverse
from django.utils import timezone

from apps.core.aggregation import breakdown, count_of
from apps.core.decorators import require_perm
from apps.core.exports import export_pdf_table
from apps.core.session import get_session
from apps.core.ui.tables import Cell, Column, build_table, derive

from .forms import ChamadaFiltroForm
from .models import Frequencia
from .services_frequencia import marcacoes_do_dia, registrar_frequencia, roster

HISTORICO_DIAS = 30


def _historico(curso, hoje: datetime.date):
    inicio = hoje - datetime.timedelta(days=HISTORICO_DIAS)
    registros = list(
        Frequencia.objects.filter(matricula__curso=curso, data__gte=inicio, data__lte=hoje).values("data", "status")
    )
    por_dia = breakdown(registros, lambda r: r["data"].isoformat(), lambda r: r["status"])

    linhas = []
    for dia in sorted(por_dia, reverse=True):
        grupos = por_dia[dia]
        presentes = count_of(grupos, Frequencia.Status.PRESENTE)
        ausentes = count_of(grupos, Frequencia.Status.AUSENTE)
        pct = next((g.percentage for g in grupos if g.key == Frequencia.Status.PRESENTE), 0)
        linhas.append(
            {
                "data": datetime.date.fromisoformat(dia),
                "presentes": presentes,
                "ausentes": ausentes,
                "percentual": pct,
            }
        )

    columns = [
        Column(
            "Data",
            derive(
                lambda r: Cell(
                    text=r["data"].strftime("%d/%m/%Y"),
                    url=reverse("educacao:frequencia") + f"?curso={curso.pk}&data={r['data'].isoformat()}",
                )
            ),
        ),
        Column("Presentes", derive(lambda r: r["presentes"]), width="110px"),
        Column("Ausentes", derive(lambda r: r["ausentes"]), width="110px"),
        Column("% Presença", derive(lambda r: f"{r['percentual']}%"), width="120px"),
    ]
    return build_table(
        columns,
        linhas,
        lambda r: r["data"].isoformat(),
        empty_message=f"Sem chamadas nos últimos {HISTORICO_DIAS} dias.",
    )


@login_required
@require_perm("educacao.view")
def frequencia_view(request):
    """
    Chamada por curso e data.

    GET ?curso=&data= mostra a lista de alunos com as marcações existentes;
    POST grava status_<matricula> / motivo_<matricula> de toda a turma.
    """
    session = get_session(request)
    can_edit = session.can("frequencia.manage")
    hoje = timezone.localdate()

    params = request.POST if request.method == "POST" else request.GET
    initial = {"data": hoje}
    filtro = ChamadaFiltroForm(params if params.get("curso") else None, initial=initial)

    curso = data = None
    if filtro.is_bound and filtro.is_valid():
        curso = filtro.cleaned_data["curso"]
        data = filtro.cleaned_data["data"]

    if request.method == "POST":
        if not can_edit:
            messages.error(request, "Você não tem permissão para registrar frequência.")
            return redirect("educacao:frequencia")

        matriculas = list(roster(curso)) if curso else []
        marcacoes = [
            (
                m.pk,
                (request.POST.get(f"status_{m.pk}") or Frequencia.Status.PRESENTE).strip().upper(),
                request.POST.get(f"motivo_{m.pk}") or "",
            )
            for m in matriculas
        ]
        try:
            registrar_frequencia(curso=curso, data=data, marcacoes=marcacoes, usuario=request.user)
        except ValidationError as exc:
            messages.error(request, " ".join(exc.messages))
        else:
            messages.success(request, "Frequência registrada com sucesso.")
            base = reverse("educacao:frequencia")
            return redirect(f"{base}?curso={curso.pk}&data={data.isoformat()}")

    alunos = []
    historico = None
    if curso:
        existentes = marcacoes_do_dia(curso, data)
        for m in roster(curso):
            marcada = existentes.get(m.pk)
            alunos.append(
                {
                    "matricula_id": m.pk,
                    "nome": m.aluno.nome,
                    "status": marcada.status if marcada else Frequencia.Status.PRESENTE,
                    "motivo": marcada.motivo_ausencia if marcada else "",
                    "registrada": marcada is not None,
                }
            )
        historico = _historico(curso, hoje)

        if (request.GET.get("export") or "").strip().lower() == "pdf":
            labels = dict(Frequencia.Status.choices)
            return export_pdf_table(
                request,
                filename="frequencia.pdf",
                title=f"Frequência — {curso.nome}",
                headers=["Aluno", "Status", "Motivo da ausência"],
                rows=[[a["nome"], labels.get(a["status"], a["status"]), a["motivo"]] for a in alunos],
                filtros=f"Curso={curso.nome} | Data={data.strftime('%d/%m/%Y')}",
            )

    actions = []
    if curso:
        actions.append(
            {
                "label": "Imprimir PDF",
                "url": reverse("educacao:frequencia") + f"?curso={curso.pk}&data={data.isoformat()}&export=pdf",
                "icon": "fa-solid fa-file-pdf",
                "variant": "btn--ghost",
            }
        )

    return render(
        request,
        "educacao/frequencia.html",
        {
            "title": "Frequência",
            "subtitle": "Registro de presença por curso e data",
            "actions": actions,
            "filtro": filtro,
            "curso": curso,
            "data": data,
            "alunos": alunos,
            "status_choices": Frequencia.Status.choices,
            "can_edit": can_edit,
            "historico": historico,
        },
    )
