from __future__ import annotations

import logging

from django.contrib import messages
from django.contrib.auth import authenticate, get_user_model, login, logout, update_session_auth_hash
from django.contrib.auth.decorators import login_required
from django.shortcuts import redirect, render
from django.utils.http import url_has_allowed_host_and_scheme
from django.views.decorators.http import require_http_methods

from apps.core.rbac import ROLE_DESCRIPTIONS
from apps.core.session import get_session

from .forms import AlterarSenhaForm, LoginForm, MeuPerfilForm, RegisterForm, split_nome
from .models import Profile
from .security import esta_bloqueado, liberar, registrar_falha, resolver_usuario

logger = logging.getLogger(__name__)

User = get_user_model()


def _client_ip(request) -> str:
    return request.META.get("REMOTE_ADDR", "0.0.0.0")


def _safe_next(request) -> str:
    nxt = request.POST.get("next") or request.GET.get("next") or ""
    if nxt and url_has_allowed_host_and_scheme(nxt, allowed_hosts={request.get_host()}, require_https=request.is_secure()):
        return nxt
    return ""


@require_http_methods(["GET", "POST"])
def login_view(request):
    if request.user.is_authenticated:
        return redirect("core:dashboard")

    error = None
    form = LoginForm(request.POST or None)

    if request.method == "POST" and form.is_valid():
        identificador = form.cleaned_data["identificador"].strip()
        senha = form.cleaned_data["password"]

        ip = _client_ip(request)
        if esta_bloqueado(ip, identificador):
            logger.warning("Login bloqueado por excesso de tentativas: %s (%s)", identificador, ip)
            error = "Muitas tentativas. Aguarde alguns minutos e tente novamente."
            return render(request, "accounts/login.html", {"form": form, "error": error, "next": _safe_next(request)})

        user = authenticate(request, username=resolver_usuario(identificador), password=senha)
        profile = getattr(user, "profile", None) if user else None
        if user is None or (profile is not None and not profile.ativo):
            if registrar_falha(ip, identificador):
                logger.warning("Login bloqueado após falhas seguidas: %s (%s)", identificador, ip)
            else:
                logger.warning("Falha de login: %s (%s)", identificador, ip)
            error = "E-mail/usuário ou senha inválidos."
            return render(request, "accounts/login.html", {"form": form, "error": error, "next": _safe_next(request)})

        liberar(ip, identificador)
        login(request, user)
        logger.info("Login: %s", user.get_username())
        return redirect(_safe_next(request) or "core:dashboard")

    return render(request, "accounts/login.html", {"form": form, "error": error, "next": _safe_next(request)})


def logout_view(request):
    if request.user.is_authenticated:
        logger.info("Logout: %s", request.user.get_username())
    logout(request)
    return redirect("accounts:login")


@require_http_methods(["GET", "POST"])
def register_view(request):
    """Cadastro público: a conta nasce com a função Usuário (somente consulta)."""
    if request.user.is_authenticated:
        return redirect("core:dashboard")

    form = RegisterForm(request.POST or None)
    if request.method == "POST" and form.is_valid():
        email = form.cleaned_data["email"]
        first, last = split_nome(form.cleaned_data["nome"])
        user = User.objects.create_user(
            username=email,
            email=email,
            password=form.cleaned_data["password1"],
            first_name=first,
            last_name=last,
        )
        Profile.objects.update_or_create(user=user, defaults={"role": Profile.Role.USUARIO, "ativo": True})
        logger.info("Nova conta cadastrada: %s", email)
        messages.success(request, "Conta criada com sucesso. Faça login para continuar.")
        return redirect("accounts:login")

    return render(request, "accounts/register.html", {"form": form})


@login_required
@require_http_methods(["GET", "POST"])
def meu_perfil(request):
    user = request.user
    profile, _ = Profile.objects.get_or_create(user=user)
    session = get_session(request)

    perfil_form = MeuPerfilForm(
        initial={"nome": user.get_full_name(), "email": user.email, "telefone": profile.telefone},
        user=user,
    )
    senha_form = AlterarSenhaForm(user=user)

    if request.method == "POST":
        acao = request.POST.get("acao") or "perfil"
        if acao == "senha":
            senha_form = AlterarSenhaForm(request.POST, user=user)
            if senha_form.is_valid():
                user.set_password(senha_form.cleaned_data["password1"])
                user.save(update_fields=["password"])
                update_session_auth_hash(request, user)
                logger.info("Senha alterada: %s", user.get_username())
                messages.success(request, "Senha alterada com sucesso.")
                return redirect("accounts:meu_perfil")
        else:
            perfil_form = MeuPerfilForm(request.POST, user=user)
            if perfil_form.is_valid():
                user.first_name, user.last_name = split_nome(perfil_form.cleaned_data["nome"])
                user.email = perfil_form.cleaned_data["email"]
                user.save(update_fields=["first_name", "last_name", "email"])
                profile.telefone = perfil_form.cleaned_data["telefone"]
                profile.save(update_fields=["telefone", "atualizado_em"])
                messages.success(request, "Perfil atualizado.")
                return redirect("accounts:meu_perfil")
        messages.error(request, "Corrija os erros do formulário.")

    return render(
        request,
        "accounts/meu_perfil.html",
        {
            "title": "Meu perfil",
            "perfil_form": perfil_form,
            "senha_form": senha_form,
            "role_label": session.role_label,
            "role_descricao": ROLE_DESCRIPTIONS.get(session.role, []),
        },
    )
