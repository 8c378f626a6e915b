from __future__ import annotations

import logging

from django.urls import reverse
from django.utils.http import urlencode

from apps.core.ui.tables import Cell, Column, derive
from apps.core.views_base import BaseCreateView, BaseListView

from .forms import AtendimentoSocialForm
from .models import NECESSIDADES, AtendimentoSocial

logger = logging.getLogger(__name__)


class AtendimentoListView(BaseListView):
    perm = "assistencia.view"
    manage_perm = "assistencia.manage"
    title = "Assistência Social"
    subtitle = "Atendimentos e encaminhamentos"
    placeholder = "Buscar por aluno"
    empty_message = "Nenhum atendimento registrado."

    export_basename = "atendimentos_sociais"
    export_headers = ["Data", "Aluno", "Necessidades", "Encaminhamentos", "Observações"]

    def get_base_queryset(self):
        return AtendimentoSocial.objects.select_related("aluno", "registrado_por").order_by("-data", "-criado_em")

    def apply_search(self, qs, q: str):
        return qs.filter(aluno__nome__icontains=q)

    def get_queryset(self):
        qs, q = super().get_queryset()
        necessidade = (self.request.GET.get("necessidade") or "").strip()
        if necessidade in NECESSIDADES:
            # JSONField de lista: filtro em memória funciona em qualquer banco
            qs = [a for a in qs if necessidade in (a.necessidades or [])]
        return qs, q

    def get_filters(self):
        atual = (self.request.GET.get("necessidade") or "").strip()
        base = reverse("assistencia:atendimento_list")
        filtros = [{"label": "Todas", "url": base, "active": not atual}]
        filtros += [
            {"label": n, "url": f"{base}?{urlencode({'necessidade': n})}", "active": atual == n}
            for n in NECESSIDADES
        ]
        return filtros

    def get_actions(self, request, **kwargs):
        actions = [
            {"label": "CSV", "url": self.export_url(request, "csv"), "icon": "fa-solid fa-file-csv", "variant": "btn--ghost"},
        ]
        if self.has_manage(request):
            actions.append(
                {
                    "label": "Novo atendimento",
                    "url": reverse("assistencia:atendimento_create"),
                    "icon": "fa-solid fa-plus",
                    "variant": "btn-primary",
                }
            )
        return actions

    def get_columns(self):
        return [
            Column("Data", derive(lambda a: a.data.strftime("%d/%m/%Y")), width="110px"),
            Column(
                "Aluno",
                derive(lambda a: Cell(text=a.aluno.nome, url=reverse("educacao:aluno_detail", args=[a.aluno_id]))),
            ),
            Column("Necessidades", derive(lambda a: [Cell(text=n, badge="warning") for n in a.necessidades or []])),
            Column("Encaminhamentos", derive(lambda a: [Cell(text=e, badge="info") for e in a.encaminhamentos or []])),
            Column("Observações", derive(lambda a: a.observacoes)),
        ]

    def get_export_rows(self, qs):
        return [
            [a.data.strftime("%d/%m/%Y"), a.aluno.nome, a.necessidades_texto, a.encaminhamentos_texto, a.observacoes]
            for a in qs
        ]


class AtendimentoCreateView(BaseCreateView):
    perm = "assistencia.view"
    manage_perm = "assistencia.manage"
    form_class = AtendimentoSocialForm
    title = "Novo atendimento"
    subtitle = "Registro de atendimento social"
    back_url_name = "assistencia:atendimento_list"
    success_message = "Atendimento registrado com sucesso!"

    def get_form(self, request, **kwargs):
        if "data" not in kwargs and request.GET.get("aluno"):
            kwargs["initial"] = {"aluno": request.GET.get("aluno")}
        return super().get_form(request, **kwargs)

    def save(self, request, form):
        atendimento = form.save(commit=False)
        atendimento.registrado_por = request.user
        atendimento.save()
        logger.info(
            "Atendimento social %s registrado para %s por %s",
            atendimento.pk,
            atendimento.aluno,
            request.user,
        )
        return atendimento
