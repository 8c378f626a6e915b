# apps/core/middleware.py
from __future__ import annotations

from django.conf import settings
from django.http import Http404, HttpResponseForbidden
from django.shortcuts import redirect
from django.urls import resolve

from .rbac import PERM_ACCOUNTS, PERM_ASSISTENCIA, PERM_EDU, PERM_REPORTS, PERM_SAUDE, has_perm
from .session import AuthSession


class AuthSessionMiddleware:
    """
    Monta `request.auth_session` uma única vez por request.
    Deve vir depois do AuthenticationMiddleware.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.auth_session = AuthSession.from_user(getattr(request, "user", None))
        return self.get_response(request)


class RBACMiddleware:
    """
    Bloqueio real (backend) por namespace de URL.
    - Se digitar URL na mão, não passa.
    - Continua permitindo login/cadastro, estáticos e admin.
    """

    # namespace -> perm macro
    NS_TO_PERM = {
        "educacao": PERM_EDU,
        "assistencia": PERM_ASSISTENCIA,
        "saude": PERM_SAUDE,
        "relatorios": PERM_REPORTS,
    }

    PUBLIC_URL_NAMES = {
        "accounts:login",
        "accounts:logout",
        "accounts:register",
        "accounts:meu_perfil",
    }
    PUBLIC_PATH_PREFIXES = (
        "/accounts/login",
        "/accounts/cadastro",
    )

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        path = request.path or ""
        static_url = getattr(settings, "STATIC_URL", "/static/") or "/static/"

        if path.startswith(static_url):
            return self.get_response(request)

        if path.startswith("/admin/"):
            return self.get_response(request)

        if not request.user.is_authenticated:
            if any(path.startswith(prefix) for prefix in self.PUBLIC_PATH_PREFIXES):
                return self.get_response(request)
            login_url = getattr(settings, "LOGIN_URL", "/accounts/login/")
            return redirect(f"{login_url}?next={request.get_full_path()}")

        try:
            match = resolve(path)
        except Http404:
            return self.get_response(request)

        if match.view_name in self.PUBLIC_URL_NAMES:
            return self.get_response(request)

        ns = match.namespace or ""
        required = self.NS_TO_PERM.get(ns)
        if ns == "accounts":
            required = PERM_ACCOUNTS
        if not required:
            return self.get_response(request)

        session = getattr(request, "auth_session", None) or AuthSession.from_user(request.user)
        if not has_perm(session.perms, required):
            return HttpResponseForbidden("Você não tem permissão para acessar esta área.")

        return self.get_response(request)
