from __future__ import annotations

import logging

from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.core.exceptions import ImproperlyConfigured, ValidationError
from django.db import transaction
from django.db.models import Q
from django.shortcuts import get_object_or_404, redirect, render
from django.urls import reverse
from django.views.decorators.http import require_POST

from apps.core.decorators import require_perm
from apps.core.masks import only_digits
from apps.core.security import cpf_hash
from apps.core.session import get_session
from apps.core.ui.tables import Cell, Column, build_table, derive, field
from apps.core.views_base import BaseDeleteView, BaseDetailView, BaseListView

from .forms import AlunoForm, MatricularEmCursoForm, ResponsavelFormSet
from .models import Aluno, Matricula
from .services_frequencia import taxa_presenca
from .services_matricula import matricular, trancar_matricula

logger = logging.getLogger(__name__)


def _status_cell(aluno: Aluno) -> Cell:
    if aluno.ativo:
        return Cell(text="Ativo", badge="success")
    return Cell(text="Inativo", badge="secondary")


class AlunoListView(BaseListView):
    perm = "educacao.view"
    manage_perm = "educacao.manage"
    title = "Alunos"
    subtitle = "Cadastro de alunos atendidos"
    placeholder = "Buscar por nome, CPF ou e-mail"
    empty_message = "Nenhum aluno encontrado."
    rows_clickable = True

    export_basename = "alunos"
    export_headers = ["Nome", "CPF", "Idade", "Telefone", "E-mail", "Situação"]

    def get_base_queryset(self):
        return Aluno.objects.all().order_by("nome")

    def apply_filters(self, qs):
        status = (self.request.GET.get("status") or "").strip()
        if status == "ativos":
            qs = qs.filter(ativo=True)
        elif status == "inativos":
            qs = qs.filter(ativo=False)
        return qs

    def apply_search(self, qs, q: str):
        cond = Q(nome__icontains=q) | Q(email__icontains=q)
        digits = only_digits(q)
        if len(digits) == 11:
            try:
                cond |= Q(cpf_hash=cpf_hash(digits))
            except ImproperlyConfigured:
                logger.warning("Busca por CPF indisponível: chave de hash não configurada.")
        elif len(digits) == 4:
            cond |= Q(cpf_last4=digits)
        return qs.filter(cond)

    def get_filters(self):
        atual = (self.request.GET.get("status") or "").strip()
        base = reverse("educacao:aluno_list")
        opcoes = [("", "Todos"), ("ativos", "Ativos"), ("inativos", "Inativos")]
        return [
            {"label": label, "url": f"{base}?status={valor}" if valor else base, "active": atual == valor}
            for valor, label in opcoes
        ]

    def get_actions(self, request, **kwargs):
        actions = [
            {"label": "CSV", "url": self.export_url(request, "csv"), "icon": "fa-solid fa-file-csv", "variant": "btn--ghost"},
            {"label": "PDF", "url": self.export_url(request, "pdf"), "icon": "fa-solid fa-file-pdf", "variant": "btn--ghost"},
        ]
        if self.has_manage(request):
            actions.append(
                {
                    "label": "Novo aluno",
                    "url": reverse("educacao:aluno_create"),
                    "icon": "fa-solid fa-plus",
                    "variant": "btn-primary",
                }
            )
        return actions

    def get_columns(self):
        return [
            Column("Nome", derive(lambda a: Cell(text=a.nome, url=reverse("educacao:aluno_detail", args=[a.pk])))),
            Column("CPF", field("cpf")),
            Column("Idade", derive(lambda a: a.idade), width="90px"),
            Column("Telefone", field("telefone")),
            Column("E-mail", field("email")),
            Column("Situação", derive(_status_cell), width="110px"),
        ]

    def get_row_url(self, obj):
        return reverse("educacao:aluno_detail", args=[obj.pk])

    def get_export_rows(self, qs):
        return [
            [a.nome, a.cpf, a.idade if a.idade is not None else "", a.telefone, a.email, "Ativo" if a.ativo else "Inativo"]
            for a in qs
        ]


def _aluno_form_page(request, *, aluno: Aluno | None):
    is_create = aluno is None
    instance = aluno or Aluno()

    if request.method == "POST":
        form = AlunoForm(request.POST, instance=instance)
        formset = ResponsavelFormSet(request.POST, instance=instance, prefix="responsaveis")
        if form.is_valid() and formset.is_valid():
            with transaction.atomic():
                aluno = form.save()
                formset.instance = aluno
                formset.save()
            logger.info("Aluno %s %s por %s", aluno.pk, "criado" if is_create else "atualizado", request.user)
            messages.success(request, "Aluno cadastrado com sucesso." if is_create else "Aluno atualizado com sucesso.")
            return redirect("educacao:aluno_detail", pk=aluno.pk)
        messages.error(request, "Corrija os erros do formulário.")
    else:
        form = AlunoForm(instance=instance)
        formset = ResponsavelFormSet(instance=instance, prefix="responsaveis")

    cancel_url = reverse("educacao:aluno_list") if is_create else reverse("educacao:aluno_detail", args=[aluno.pk])
    return render(
        request,
        "educacao/aluno_form.html",
        {
            "title": "Novo aluno" if is_create else f"Editar: {aluno.nome}",
            "subtitle": "Dados pessoais e responsáveis",
            "form": form,
            "formset": formset,
            "cancel_url": cancel_url,
            "submit_label": "Salvar aluno",
            "actions": [
                {"label": "Voltar", "url": cancel_url, "icon": "fa-solid fa-arrow-left", "variant": "btn--ghost"},
            ],
        },
    )


@login_required
@require_perm("educacao.manage")
def aluno_create(request):
    return _aluno_form_page(request, aluno=None)


@login_required
@require_perm("educacao.manage")
def aluno_update(request, pk: int):
    aluno = get_object_or_404(Aluno, pk=pk)
    return _aluno_form_page(request, aluno=aluno)


def _matricula_columns(can_manage: bool):
    columns = [
        Column("Curso", derive(lambda m: Cell(text=m.curso.nome, url=reverse("educacao:curso_detail", args=[m.curso_id])))),
        Column("Data", derive(lambda m: m.data_matricula.strftime("%d/%m/%Y") if m.data_matricula else "")),
        Column("Situação", derive(lambda m: Cell(text=m.get_situacao_display(), badge=situacao_badge(m.situacao)))),
        Column("Presença", derive(lambda m: "—" if m.taxa is None else f"{m.taxa}%"), width="100px"),
    ]
    if can_manage:
        columns.append(Column("", derive(trancar_cell), width="120px"))
    return columns


def situacao_badge(situacao: str) -> str:
    return {
        Matricula.Situacao.ATIVA: "success",
        Matricula.Situacao.TRANCADA: "warning",
        Matricula.Situacao.CONCLUIDA: "info",
    }.get(situacao, "secondary")


def trancar_cell(m: Matricula, origem: str = ""):
    if m.situacao != Matricula.Situacao.ATIVA:
        return ""
    url = reverse("educacao:matricula_trancar", args=[m.pk])
    if origem:
        url = f"{url}?origem={origem}"
    return Cell(text="Trancar", url=url, badge="danger")


class AlunoDetailView(BaseDetailView):
    perm = "educacao.view"
    manage_perm = "educacao.manage"
    model = Aluno
    template_name = "educacao/aluno_detail.html"
    back_url_name = "educacao:aluno_list"

    def get_object(self, request, pk: int):
        return get_object_or_404(Aluno.objects.prefetch_related("responsaveis"), pk=pk)

    def get_actions(self, request, **kwargs):
        aluno = kwargs.get("obj")
        actions = super().get_actions(request)
        if aluno and self.has_manage(request):
            actions += [
                {
                    "label": "Editar",
                    "url": reverse("educacao:aluno_update", args=[aluno.pk]),
                    "icon": "fa-solid fa-pen",
                    "variant": "btn-primary",
                },
                {
                    "label": "Excluir",
                    "url": reverse("educacao:aluno_delete", args=[aluno.pk]),
                    "icon": "fa-solid fa-trash",
                    "variant": "btn--danger",
                },
            ]
        return actions

    def get_fields(self, request, aluno):
        return [
            ("CPF", aluno.cpf_display if self.has_manage(request) else aluno.cpf),
            ("NIS", aluno.nis),
            ("Data de nascimento", aluno.data_nascimento.strftime("%d/%m/%Y") if aluno.data_nascimento else ""),
            ("Idade", f"{aluno.idade} anos" if aluno.idade is not None else ""),
            ("Telefone", aluno.telefone),
            ("E-mail", aluno.email),
            ("Endereço", aluno.endereco),
            ("Situação", "Ativo" if aluno.ativo else "Inativo"),
        ]

    def get_extra_context(self, request, aluno):
        can_manage = self.has_manage(request)
        matriculas = list(aluno.matriculas.select_related("curso").order_by("-data_matricula"))
        for m in matriculas:
            m.taxa = taxa_presenca(m)

        ctx = {
            "responsaveis": list(aluno.responsaveis.all()),
            "matriculas_table": build_table(
                _matricula_columns(can_manage),
                matriculas,
                lambda m: str(m.pk),
                empty_message="Aluno sem matrículas.",
            ),
            "matricular_form": MatricularEmCursoForm(aluno=aluno) if can_manage else None,
            "can_manage": can_manage,
        }

        session = get_session(request)
        if session.can("assistencia.view"):
            ctx["atendimentos"] = list(aluno.atendimentos_sociais.order_by("-data")[:10])
        if session.can("saude.view"):
            ctx["fichas_saude"] = list(aluno.fichas_saude.order_by("-data")[:10])
        return ctx


class AlunoDeleteView(BaseDeleteView):
    perm = "educacao.view"
    manage_perm = "educacao.manage"
    model = Aluno
    title = "Excluir aluno"
    back_url_name = "educacao:aluno_list"
    success_message = "Aluno excluído."

    def get_cancel_url(self, request, obj):
        return reverse("educacao:aluno_detail", args=[obj.pk])


@login_required
@require_perm("educacao.manage")
@require_POST
def aluno_matricular(request, pk: int):
    aluno = get_object_or_404(Aluno, pk=pk)
    form = MatricularEmCursoForm(request.POST, aluno=aluno)
    if not form.is_valid():
        messages.error(request, "Selecione um curso válido.")
        return redirect("educacao:aluno_detail", pk=aluno.pk)

    try:
        matricular(aluno=aluno, curso=form.cleaned_data["curso"], usuario=request.user)
    except ValidationError as exc:
        messages.error(request, " ".join(exc.messages))
    else:
        messages.success(request, "Matrícula realizada com sucesso.")
    return redirect("educacao:aluno_detail", pk=aluno.pk)


@login_required
@require_perm("educacao.manage")
def matricula_trancar(request, pk: int):
    matricula = get_object_or_404(Matricula.objects.select_related("aluno", "curso"), pk=pk)
    origem = request.GET.get("origem") or request.POST.get("origem")
    if origem == "curso":
        next_url = reverse("educacao:curso_detail", args=[matricula.curso_id])
    else:
        next_url = reverse("educacao:aluno_detail", args=[matricula.aluno_id])

    if request.method == "POST":
        try:
            trancar_matricula(matricula=matricula, usuario=request.user)
        except ValidationError as exc:
            messages.error(request, " ".join(exc.messages))
        else:
            messages.success(request, "Matrícula trancada.")
        return redirect(next_url)

    return render(
        request,
        "core/confirm_delete.html",
        {
            "title": "Trancar matrícula",
            "obj": matricula,
            "message": f"Trancar a matrícula de {matricula.aluno} em {matricula.curso}?",
            "confirm_label": "Trancar",
            "cancel_url": next_url,
        },
    )
