# apps/core/context_processors.py
from __future__ import annotations

from django.conf import settings

from apps.core.session import get_session


def permissions(request):
    """Permissões e identidade usadas no menu lateral / cabeçalho."""
    session = get_session(request)
    return {
        "auth_session": session,
        "org_name": getattr(settings, "AMAR_ORG_NAME", ""),
        "can_edu": session.can("educacao.view"),
        "can_edu_manage": session.can("educacao.manage"),
        "can_frequencia": session.can("frequencia.manage"),
        "can_assistencia": session.can("assistencia.view"),
        "can_saude": session.can("saude.view"),
        "can_reports": session.can("reports.view"),
        "can_users": session.can("accounts.manage_users"),
    }
