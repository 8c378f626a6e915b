from __future__ import annotations

import logging

from django.contrib import messages
from django.contrib.auth import get_user_model
from django.contrib.auth.decorators import login_required
from django.db import transaction
from django.db.models import Q
from django.shortcuts import get_object_or_404, redirect, render
from django.urls import reverse
from django.views.decorators.http import require_http_methods

from apps.core.decorators import require_perm
from apps.core.rbac import ROLE_DESCRIPTIONS
from apps.core.session import ROLE_LABELS
from apps.core.ui.tables import Cell, Column, derive, field
from apps.core.views_base import BaseDeleteView, BaseListView

from .forms import UsuarioForm, split_nome
from .models import Profile, UserManagementAudit

logger = logging.getLogger(__name__)

User = get_user_model()

ROLE_BADGES = {
    "ADMIN": "danger",
    "PROFESSOR": "info",
    "ASSISTENTE_SOCIAL": "success",
    "PROFISSIONAL_SAUDE": "warning",
    "USUARIO": "secondary",
}


def log_user_action(*, actor, target, action: str, details: str = "") -> None:
    UserManagementAudit.objects.create(
        actor=actor if getattr(actor, "is_authenticated", False) else None,
        target=target,
        target_username=target.get_username() if target else "",
        action=action,
        details=details or "",
    )
    logger.info("Usuário %s: %s por %s %s", action, target, actor, details)


def _role_of(user) -> str:
    profile = getattr(user, "profile", None)
    return getattr(profile, "role", "") or Profile.Role.USUARIO


class UsuarioListView(BaseListView):
    perm = "accounts.manage_users"
    title = "Usuários"
    subtitle = "Contas de acesso e funções"
    placeholder = "Buscar por nome ou e-mail"
    empty_message = "Nenhum usuário encontrado."
    rows_clickable = True

    def get_base_queryset(self):
        return User.objects.select_related("profile").order_by("first_name", "username")

    def apply_filters(self, qs):
        role = (self.request.GET.get("role") or "").strip().upper()
        if role in Profile.Role.values:
            qs = qs.filter(profile__role=role)
        return qs

    def apply_search(self, qs, q: str):
        return qs.filter(
            Q(first_name__icontains=q) | Q(last_name__icontains=q) | Q(email__icontains=q) | Q(username__icontains=q)
        )

    def get_filters(self):
        atual = (self.request.GET.get("role") or "").strip().upper()
        base = reverse("accounts:usuarios_list")
        filtros = [{"label": "Todos", "url": base, "active": not atual}]
        filtros += [
            {"label": label, "url": f"{base}?role={valor}", "active": atual == valor}
            for valor, label in Profile.Role.choices
        ]
        return filtros

    def get_actions(self, request, **kwargs):
        return [
            {
                "label": "Novo usuário",
                "url": reverse("accounts:usuario_create"),
                "icon": "fa-solid fa-user-plus",
                "variant": "btn-primary",
            }
        ]

    def get_columns(self):
        return [
            Column("Nome", derive(lambda u: u.get_full_name() or u.get_username())),
            Column("E-mail", field("email")),
            Column(
                "Função",
                derive(lambda u: Cell(text=ROLE_LABELS.get(_role_of(u), _role_of(u)), badge=ROLE_BADGES.get(_role_of(u), "secondary"))),
            ),
            Column(
                "Situação",
                derive(
                    lambda u: Cell(text="Ativo", badge="success")
                    if u.is_active and getattr(getattr(u, "profile", None), "ativo", True)
                    else Cell(text="Inativo", badge="secondary")
                ),
                width="110px",
            ),
            Column("Último acesso", derive(lambda u: u.last_login.strftime("%d/%m/%Y %H:%M") if u.last_login else "")),
        ]

    def get_row_url(self, obj):
        return reverse("accounts:usuario_update", args=[obj.pk])


def _usuario_form_page(request, *, edited_user=None):
    is_create = edited_user is None
    form = UsuarioForm(request.POST or None, edited_user=edited_user)

    if request.method == "POST" and form.is_valid():
        data = form.cleaned_data
        first, last = split_nome(data["nome"])
        ativo = bool(data.get("ativo"))

        if edited_user is not None and edited_user.pk == request.user.pk:
            if not ativo or data["role"] != Profile.Role.ADMIN:
                messages.error(request, "Você não pode desativar nem rebaixar a sua própria conta.")
                return redirect("accounts:usuario_update", pk=edited_user.pk)

        with transaction.atomic():
            user = edited_user or User(username=data["email"])
            user.first_name = first
            user.last_name = last
            user.email = data["email"]
            user.is_active = ativo
            if data.get("password1"):
                user.set_password(data["password1"])
            user.save()

            profile, _ = Profile.objects.get_or_create(user=user)
            role_anterior = profile.role
            profile.role = data["role"]
            profile.telefone = data["telefone"]
            profile.ativo = ativo
            profile.save()

        if is_create:
            log_user_action(actor=request.user, target=user, action=UserManagementAudit.Action.CREATE, details=f"role={user.profile.role}")
            messages.success(request, "Usuário criado com sucesso.")
        else:
            details = f"role={role_anterior}->{profile.role}" if role_anterior != profile.role else ""
            log_user_action(actor=request.user, target=user, action=UserManagementAudit.Action.UPDATE, details=details)
            if data.get("password1"):
                log_user_action(actor=request.user, target=user, action=UserManagementAudit.Action.RESET_PASSWORD)
            messages.success(request, "Usuário atualizado com sucesso.")
        return redirect("accounts:usuarios_list")

    role_atual = form["role"].value() or Profile.Role.USUARIO
    return render(
        request,
        "accounts/usuario_form.html",
        {
            "title": "Novo usuário" if is_create else f"Editar: {edited_user.get_full_name() or edited_user.get_username()}",
            "form": form,
            "edited_user": edited_user,
            "cancel_url": reverse("accounts:usuarios_list"),
            "role_descriptions": [
                {"role": role, "label": ROLE_LABELS.get(role, role), "itens": itens, "atual": role == role_atual}
                for role, itens in ROLE_DESCRIPTIONS.items()
            ],
            "actions": [
                {
                    "label": "Voltar",
                    "url": reverse("accounts:usuarios_list"),
                    "icon": "fa-solid fa-arrow-left",
                    "variant": "btn--ghost",
                }
            ],
        },
    )


@login_required
@require_perm("accounts.manage_users")
@require_http_methods(["GET", "POST"])
def usuario_create(request):
    return _usuario_form_page(request)


@login_required
@require_perm("accounts.manage_users")
@require_http_methods(["GET", "POST"])
def usuario_update(request, pk: int):
    edited_user = get_object_or_404(User.objects.select_related("profile"), pk=pk)
    return _usuario_form_page(request, edited_user=edited_user)


class UsuarioDeleteView(BaseDeleteView):
    perm = "accounts.manage_users"
    manage_perm = "accounts.manage_users"
    model = User
    title = "Excluir usuário"
    back_url_name = "accounts:usuarios_list"
    success_message = "Usuário excluído com sucesso."

    def post(self, request, pk: int, *args, **kwargs):
        if int(pk) == request.user.pk:
            messages.error(request, "Você não pode excluir a sua própria conta.")
            return redirect("accounts:usuarios_list")
        return super().post(request, pk, *args, **kwargs)

    def delete(self, request, obj):
        log_user_action(actor=request.user, target=obj, action=UserManagementAudit.Action.DELETE)
        obj.delete()
