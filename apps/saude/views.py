from __future__ import annotations

import logging

from django.db.models import Count, Q
from django.urls import reverse

from apps.core.ui.tables import Cell, Column, derive, field
from apps.core.views_base import BaseCreateView, BaseListView

from .forms import FichaSaudeForm
from .models import FichaSaude

logger = logging.getLogger(__name__)

TIPO_PADRAO = FichaSaude.Tipo.ODONTOLOGICA


def _tipo_from(request) -> str:
    tipo = (request.GET.get("tipo") or "").strip().upper()
    return tipo if tipo in FichaSaude.Tipo.values else TIPO_PADRAO


class FichaListView(BaseListView):
    perm = "saude.view"
    manage_perm = "saude.manage"
    title = "Saúde"
    subtitle = "Fichas odontológicas, psicológicas, nutricionais e médicas"
    placeholder = "Buscar por aluno ou profissional"

    export_basename = "fichas_saude"
    export_headers = ["Data", "Aluno", "Tipo", "Profissional", "Observações"]

    @property
    def empty_message(self):
        label = FichaSaude.Tipo(_tipo_from(self.request)).label.lower()
        return f"Nenhuma ficha {label} registrada."

    def get_base_queryset(self):
        return FichaSaude.objects.select_related("aluno").filter(tipo=_tipo_from(self.request))

    def apply_search(self, qs, q: str):
        return qs.filter(Q(aluno__nome__icontains=q) | Q(profissional__icontains=q))

    def get_filters(self):
        atual = _tipo_from(self.request)
        totais = dict(FichaSaude.objects.values_list("tipo").annotate(total=Count("id")))
        base = reverse("saude:ficha_list")
        return [
            {
                "label": f"{label} ({totais.get(valor, 0)})",
                "url": f"{base}?tipo={valor}",
                "active": atual == valor,
            }
            for valor, label in FichaSaude.Tipo.choices
        ]

    def get_actions(self, request, **kwargs):
        tipo = _tipo_from(request)
        actions = [
            {"label": "CSV", "url": f"?tipo={tipo}&export=csv", "icon": "fa-solid fa-file-csv", "variant": "btn--ghost"},
        ]
        if self.has_manage(request):
            actions.append(
                {
                    "label": f"Nova ficha {FichaSaude.Tipo(tipo).label.lower()}",
                    "url": reverse("saude:ficha_create") + f"?tipo={tipo}",
                    "icon": "fa-solid fa-plus",
                    "variant": "btn-primary",
                }
            )
        return actions

    def get_columns(self):
        return [
            Column("Data", derive(lambda f: f.data.strftime("%d/%m/%Y")), width="110px"),
            Column(
                "Aluno",
                derive(lambda f: Cell(text=f.aluno.nome, url=reverse("educacao:aluno_detail", args=[f.aluno_id]))),
            ),
            Column("Profissional", field("profissional")),
            Column(
                "Detalhes",
                derive(lambda f: [Cell(text=valor, title=rotulo) for rotulo, valor in f.detalhes_rotulados()[:2]]),
            ),
            Column("Observações", field("observacoes")),
        ]

    def get_export_rows(self, qs):
        return [[f.data.strftime("%d/%m/%Y"), f.aluno.nome, f.get_tipo_display(), f.profissional, f.observacoes] for f in qs]


class FichaCreateView(BaseCreateView):
    perm = "saude.view"
    manage_perm = "saude.manage"
    form_class = FichaSaudeForm
    back_url_name = "saude:ficha_list"
    success_message = "Ficha de saúde registrada com sucesso!"

    def _tipo(self, request) -> str:
        tipo = (request.POST.get("tipo") or request.GET.get("tipo") or "").strip().upper()
        return tipo if tipo in FichaSaude.Tipo.values else TIPO_PADRAO

    def get_form(self, request, **kwargs):
        if "data" not in kwargs and request.GET.get("aluno"):
            kwargs["initial"] = {"aluno": request.GET.get("aluno")}
        return FichaSaudeForm(tipo=self._tipo(request), **kwargs)

    def get_success_url(self, request, obj=None):
        return reverse("saude:ficha_list") + f"?tipo={obj.tipo}"

    def get_context_data(self, request, **kwargs):
        tipo = self._tipo(request)
        ctx = super().get_context_data(request, **kwargs)
        ctx["title"] = f"Nova ficha {FichaSaude.Tipo(tipo).label.lower()}"
        ctx["hidden_fields"] = {"tipo": tipo}
        ctx["cancel_url"] = reverse("saude:ficha_list") + f"?tipo={tipo}"
        return ctx

    def save(self, request, form):
        ficha = form.save(commit=False)
        ficha.registrado_por = request.user
        ficha.save()
        logger.info("Ficha de saúde %s (%s) registrada para %s por %s", ficha.pk, ficha.tipo, ficha.aluno, request.user)
        return ficha
