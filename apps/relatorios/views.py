from __future__ import annotations

from django.contrib.auth.decorators import login_required
from django.shortcuts import render
from django.urls import reverse
from django.utils import timezone
from django.utils.text import slugify

from apps.core.decorators import require_perm
from apps.core.exports import export_table, export_txt, render_text_report
from apps.core.session import get_session
from apps.core.ui.tables import Column, build_table, derive

from .catalog import CATEGORIAS, buscar_relatorios, get_relatorio_or_404
from .services import gerar_relatorio

EXPORT_FORMATS = ("csv", "xlsx", "pdf", "txt")


@login_required
@require_perm("reports.view")
def index(request):
    q = (request.GET.get("q") or "").strip()
    categoria = (request.GET.get("categoria") or "").strip()
    if categoria not in dict(CATEGORIAS):
        categoria = ""

    grupos = buscar_relatorios(q, categoria)
    base = reverse("relatorios:index")
    filtros = [{"label": "Todas", "url": base, "active": not categoria}]
    filtros += [
        {"label": label, "url": f"{base}?categoria={slug}", "active": categoria == slug}
        for slug, label in CATEGORIAS
    ]

    return render(
        request,
        "relatorios/index.html",
        {
            "title": "Relatórios",
            "subtitle": "Indicadores de alunos, cursos, frequência, assistência e saúde",
            "grupos": grupos,
            "filters": filtros,
            "q": q,
            "categoria": categoria,
            "action_url": base,
            "clear_url": base,
            "has_filters": bool(q or categoria),
            "placeholder": "Buscar relatório",
        },
    )


@login_required
@require_perm("reports.view")
def detail(request, slug: str):
    definicao = get_relatorio_or_404(slug)
    relatorio = gerar_relatorio(slug, get_session(request), timezone.localdate())

    fmt = (request.GET.get("export") or "").strip().lower()
    basename = f"relatorio_{slugify(slug).replace('-', '_')}"
    if fmt == "txt":
        conteudo = render_text_report(
            relatorio.title,
            relatorio.description,
            relatorio.headers,
            relatorio.rows,
            relatorio.summary,
        )
        return export_txt(f"{basename}.txt", conteudo)
    if fmt in EXPORT_FORMATS:
        return export_table(
            request,
            fmt,
            basename=basename,
            title=relatorio.title,
            headers=relatorio.headers,
            rows=relatorio.rows,
            subtitle=relatorio.description,
        )

    columns = [
        Column(header, derive(lambda row, i=i: row[1][i]))
        for i, header in enumerate(relatorio.headers)
    ]
    # linhas não têm id próprio: a posição serve de chave
    table = build_table(
        columns,
        list(enumerate(relatorio.rows)),
        lambda row: str(row[0]),
        empty_message="Sem dados para este relatório.",
    )

    actions = [
        {"label": "Voltar", "url": reverse("relatorios:index"), "icon": "fa-solid fa-arrow-left", "variant": "btn--ghost"},
    ]
    actions += [
        {"label": f.upper(), "url": f"?export={f}", "icon": "fa-solid fa-download", "variant": "btn--ghost"}
        for f in EXPORT_FORMATS
    ]

    return render(
        request,
        "relatorios/detail.html",
        {
            "title": relatorio.title,
            "subtitle": relatorio.description,
            "definicao": definicao,
            "relatorio": relatorio,
            "table": table,
            "actions": actions,
            "chart": {
                "labels": [g.key for g in relatorio.groups],
                "values": [g.count for g in relatorio.groups],
            },
        },
    )
