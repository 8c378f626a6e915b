from __future__ import annotations

import logging
from typing import Any, Dict, List, Tuple

from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.core.paginator import Paginator
from django.db.models import ProtectedError
from django.http import HttpRequest, HttpResponse, HttpResponseForbidden
from django.shortcuts import get_object_or_404, redirect, render
from django.urls import reverse
from django.utils.decorators import method_decorator
from django.utils.http import urlencode
from django.views import View

from apps.core.exports import export_table
from apps.core.session import get_session
from apps.core.ui.tables import Column, build_table

logger = logging.getLogger(__name__)


class AmarViewMixin:
    perm: str = ""
    manage_perm: str = ""
    title: str = ""
    subtitle: str = ""
    back_url_name: str = ""

    def has_perm(self, request: HttpRequest, perm: str) -> bool:
        return not perm or get_session(request).can(perm)

    def has_manage(self, request: HttpRequest) -> bool:
        return bool(self.manage_perm) and get_session(request).can(self.manage_perm)

    def get_back_url(self) -> str:
        return reverse(self.back_url_name) if self.back_url_name else reverse("core:dashboard")

    def get_actions(self, request: HttpRequest, **kwargs) -> List[Dict[str, Any]]:
        return [
            {"label": "Voltar", "url": self.get_back_url(), "icon": "fa-solid fa-arrow-left", "variant": "btn--ghost"},
        ]

    def dispatch(self, request, *args, **kwargs):
        if not self.has_perm(request, self.perm):
            return HttpResponseForbidden("403 — Você não tem permissão para acessar esta página.")
        return super().dispatch(request, *args, **kwargs)


class ManageRequiredMixin:
    """Views de escrita: exigem `manage_perm`."""

    def dispatch(self, request, *args, **kwargs):
        if self.manage_perm and not get_session(request).can(self.manage_perm):
            return HttpResponseForbidden("403 — Você não tem permissão para alterar estes dados.")
        return super().dispatch(request, *args, **kwargs)


@method_decorator(login_required, name="dispatch")
class BaseListView(AmarViewMixin, View):
    """
    Base padrão para páginas LIST.

    Cada tela implementa:
      - get_base_queryset()
      - apply_search(qs, q)
      - get_columns()  -> colunas da tabela genérica
      - get_row_url(obj) (opcional: linha clicável)
      - export_headers / get_export_rows (opcional: ?export=csv|xlsx|pdf)
    """

    template_name: str = "core/list_base.html"
    paginate_by: int = 20
    search_param: str = "q"
    placeholder: str = "Digite para buscar..."

    empty_message: str = ""
    rows_clickable: bool = False

    export_basename: str = ""
    export_headers: List[str] = []

    def get_base_queryset(self):
        raise NotImplementedError(f"{self.__class__.__name__} precisa implementar get_base_queryset()")

    def apply_search(self, qs, q: str):
        return qs

    def apply_filters(self, qs):
        return qs

    def get_filters(self) -> List[Dict[str, Any]]:
        """Botões de filtro rápido: [{"label", "url", "active"}]."""
        return []

    def get_columns(self) -> List[Column]:
        raise NotImplementedError

    def get_row_key(self, obj) -> str:
        return str(obj.pk)

    def get_row_url(self, obj) -> str | None:
        return None

    def get_export_rows(self, qs) -> List[List[Any]]:
        return []

    def export_url(self, request: HttpRequest, fmt: str) -> str:
        """Link de exportação com a busca e os filtros da tela atual."""
        params = {k: v for k, v in request.GET.items() if v and k not in ("export", "page")}
        params["export"] = fmt
        return f"?{urlencode(params)}"

    def get_queryset(self):
        q = (self.request.GET.get(self.search_param) or "").strip()
        qs = self.apply_filters(self.get_base_queryset())
        if q:
            qs = self.apply_search(qs, q)
        return qs, q

    def get(self, request: HttpRequest, *args, **kwargs) -> HttpResponse:
        qs, q = self.get_queryset()

        fmt = (request.GET.get("export") or "").strip().lower()
        if fmt and self.export_basename:
            response = export_table(
                request,
                fmt,
                basename=self.export_basename,
                title=self.title,
                headers=self.export_headers,
                rows=self.get_export_rows(qs),
                filtros=f"Busca={q or '-'}",
            )
            if response is not None:
                logger.info("Exportação %s de %s por %s", fmt, self.export_basename, request.user)
                return response

        paginator = Paginator(qs, self.paginate_by)
        page_obj = paginator.get_page(request.GET.get("page"))

        on_row_click = self.get_row_url if self.rows_clickable else None
        table = build_table(
            self.get_columns(),
            page_obj.object_list,
            self.get_row_key,
            on_row_click=on_row_click,
            empty_message=self.empty_message or None,
        )

        context = {
            "title": self.title,
            "subtitle": self.subtitle,
            "actions": self.get_actions(request, q=q),
            "filters": self.get_filters(),
            "q": q,
            "action_url": request.path,
            "clear_url": request.path,
            "has_filters": bool(q),
            "placeholder": self.placeholder,
            "table": table,
            "page_obj": page_obj,
        }
        return render(request, self.template_name, context)


@method_decorator(login_required, name="dispatch")
class BaseCreateView(ManageRequiredMixin, AmarViewMixin, View):
    template_name: str = "core/form_base.html"
    form_class = None
    submit_label: str = "Salvar"
    success_message: str = "Salvo com sucesso."

    def get_form(self, request: HttpRequest, **kwargs):
        if not self.form_class:
            raise NotImplementedError("Defina form_class")
        return self.form_class(**kwargs)

    def get_success_url(self, request: HttpRequest, obj=None) -> str:
        return self.get_back_url()

    def save(self, request: HttpRequest, form):
        return form.save()

    def form_valid(self, request: HttpRequest, form):
        obj = self.save(request, form)
        messages.success(request, self.success_message)
        return redirect(self.get_success_url(request, obj=obj))

    def form_invalid(self, request: HttpRequest, form):
        messages.error(request, "Corrija os erros do formulário.")
        return render(request, self.template_name, self.get_context_data(request, form=form))

    def get_context_data(self, request: HttpRequest, **kwargs) -> Dict[str, Any]:
        return {
            "title": self.title or "Novo",
            "subtitle": self.subtitle,
            "actions": self.get_actions(request),
            "mode": "create",
            "cancel_url": self.get_back_url(),
            "submit_label": self.submit_label,
            **kwargs,
        }

    def get(self, request: HttpRequest, *args, **kwargs) -> HttpResponse:
        return render(request, self.template_name, self.get_context_data(request, form=self.get_form(request)))

    def post(self, request: HttpRequest, *args, **kwargs) -> HttpResponse:
        form = self.get_form(request, data=request.POST, files=request.FILES)
        if form.is_valid():
            return self.form_valid(request, form)
        return self.form_invalid(request, form)


@method_decorator(login_required, name="dispatch")
class BaseUpdateView(ManageRequiredMixin, AmarViewMixin, View):
    template_name: str = "core/form_base.html"
    form_class = None
    model = None
    submit_label: str = "Atualizar"
    success_message: str = "Atualizado com sucesso."

    def get_object(self, request: HttpRequest, pk: int):
        if not self.model:
            raise NotImplementedError("Defina model")
        return get_object_or_404(self.model, pk=pk)

    def get_form(self, request: HttpRequest, instance=None, **kwargs):
        if not self.form_class:
            raise NotImplementedError("Defina form_class")
        return self.form_class(instance=instance, **kwargs)

    def get_success_url(self, request: HttpRequest, obj=None) -> str:
        return self.get_back_url()

    def save(self, request: HttpRequest, form, obj=None):
        return form.save()

    def form_valid(self, request: HttpRequest, form, obj=None):
        obj = self.save(request, form, obj=obj)
        messages.success(request, self.success_message)
        return redirect(self.get_success_url(request, obj=obj))

    def form_invalid(self, request: HttpRequest, form, obj=None):
        messages.error(request, "Corrija os erros do formulário.")
        return render(request, self.template_name, self.get_context_data(request, form=form, obj=obj))

    def get_context_data(self, request: HttpRequest, **kwargs) -> Dict[str, Any]:
        return {
            "title": self.title or "Editar",
            "subtitle": self.subtitle,
            "actions": self.get_actions(request, obj=kwargs.get("obj")),
            "mode": "update",
            "cancel_url": self.get_success_url(request, obj=kwargs.get("obj")),
            "submit_label": self.submit_label,
            **kwargs,
        }

    def get(self, request: HttpRequest, pk: int, *args, **kwargs) -> HttpResponse:
        obj = self.get_object(request, pk)
        form = self.get_form(request, instance=obj)
        return render(request, self.template_name, self.get_context_data(request, form=form, obj=obj))

    def post(self, request: HttpRequest, pk: int, *args, **kwargs) -> HttpResponse:
        obj = self.get_object(request, pk)
        form = self.get_form(request, instance=obj, data=request.POST, files=request.FILES)
        if form.is_valid():
            return self.form_valid(request, form, obj=obj)
        return self.form_invalid(request, form, obj=obj)


@method_decorator(login_required, name="dispatch")
class BaseDetailView(AmarViewMixin, View):
    template_name: str = "core/detail_base.html"
    model = None

    def get_object(self, request: HttpRequest, pk: int):
        if not self.model:
            raise NotImplementedError("Defina model")
        return get_object_or_404(self.model, pk=pk)

    def get_fields(self, request: HttpRequest, obj) -> List[Tuple[str, Any]]:
        return []

    def get_extra_context(self, request: HttpRequest, obj) -> Dict[str, Any]:
        return {}

    def get_context_data(self, request: HttpRequest, obj, **kwargs) -> Dict[str, Any]:
        return {
            "title": self.title or str(obj),
            "subtitle": self.subtitle,
            "actions": self.get_actions(request, obj=obj),
            "obj": obj,
            "fields": self.get_fields(request, obj),
            **self.get_extra_context(request, obj),
            **kwargs,
        }

    def get(self, request: HttpRequest, pk: int, *args, **kwargs) -> HttpResponse:
        obj = self.get_object(request, pk)
        return render(request, self.template_name, self.get_context_data(request, obj=obj))


@method_decorator(login_required, name="dispatch")
class BaseDeleteView(ManageRequiredMixin, AmarViewMixin, View):
    """GET mostra a confirmação; POST exclui."""

    template_name: str = "core/confirm_delete.html"
    model = None
    success_message: str = "Excluído com sucesso."

    def get_object(self, request: HttpRequest, pk: int):
        return get_object_or_404(self.model, pk=pk)

    def get_success_url(self, request: HttpRequest) -> str:
        return self.get_back_url()

    def get_cancel_url(self, request: HttpRequest, obj) -> str:
        return self.get_back_url()

    def delete(self, request: HttpRequest, obj) -> None:
        obj.delete()

    def get(self, request: HttpRequest, pk: int, *args, **kwargs) -> HttpResponse:
        obj = self.get_object(request, pk)
        return render(
            request,
            self.template_name,
            {"title": self.title or "Excluir", "obj": obj, "cancel_url": self.get_cancel_url(request, obj)},
        )

    def post(self, request: HttpRequest, pk: int, *args, **kwargs) -> HttpResponse:
        obj = self.get_object(request, pk)
        label = str(obj)
        try:
            self.delete(request, obj)
        except ProtectedError:
            messages.error(request, "Não é possível excluir: existem registros vinculados.")
            return redirect(self.get_cancel_url(request, obj))
        logger.info("%s excluído: %s por %s", obj.__class__.__name__, label, request.user)
        messages.success(request, self.success_message)
        return redirect(self.get_success_url(request))
