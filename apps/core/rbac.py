# apps/core/rbac.py
from __future__ import annotations


# =========================
# PERFIL / ADMIN
# =========================
def get_profile(user):
    if not user or not getattr(user, "is_authenticated", False):
        return None
    return getattr(user, "profile", None)


def get_role(user) -> str:
    p = get_profile(user)
    return (getattr(p, "role", "") or "").upper()


def is_admin(user) -> bool:
    return bool(
        getattr(user, "is_superuser", False)
        or getattr(user, "is_staff", False)
        or get_role(user) == "ADMIN"
    )


# =========================
# PERMISSÕES
# =========================
PERM_EDU = "educacao"
PERM_ASSISTENCIA = "assistencia"
PERM_SAUDE = "saude"
PERM_REPORTS = "reports"
PERM_ACCOUNTS = "accounts"
PERM_EVENTOS = "eventos"

ALL_PERMS = {PERM_EDU, PERM_ASSISTENCIA, PERM_SAUDE, PERM_REPORTS, PERM_ACCOUNTS, PERM_EVENTOS}

# Matriz por role (perms finas). A macro ('educacao') é derivada de 'educacao.*'.
ROLE_PERMS_FINE = {
    "ADMIN": {
        "educacao.view",
        "educacao.manage",
        "frequencia.manage",
        "assistencia.view",
        "assistencia.manage",
        "saude.view",
        "saude.manage",
        "reports.view",
        "eventos.manage",
        "accounts.manage_users",
    },
    "PROFESSOR": {
        "educacao.view",
        "frequencia.manage",
        "reports.view",
    },
    "ASSISTENTE_SOCIAL": {
        "educacao.view",
        "assistencia.view",
        "assistencia.manage",
        "reports.view",
    },
    "PROFISSIONAL_SAUDE": {
        "educacao.view",
        "saude.view",
        "saude.manage",
        "reports.view",
    },
    "USUARIO": {
        "educacao.view",
    },
}

# Texto exibido na tela de usuários ("o que esta função pode fazer")
ROLE_DESCRIPTIONS = {
    "ADMIN": ["Acesso total ao sistema", "Gerenciar usuários", "Gerenciar eventos"],
    "PROFESSOR": ["Consultar alunos e cursos", "Registrar frequência", "Ver relatórios"],
    "ASSISTENTE_SOCIAL": ["Consultar alunos", "Registrar atendimentos sociais", "Ver relatórios"],
    "PROFISSIONAL_SAUDE": ["Consultar alunos", "Registrar fichas de saúde", "Ver relatórios"],
    "USUARIO": ["Consultar alunos e cursos"],
}


def _macro_from_fine(perm: str) -> str | None:
    """
    'educacao.manage' -> 'educacao'
    """
    if not perm or "." not in perm:
        return None
    return perm.split(".", 1)[0]


def perms_for_role(role: str) -> set[str]:
    fine = set(ROLE_PERMS_FINE.get(role, set()))
    perms = set(fine)
    for fp in fine:
        m = _macro_from_fine(fp)
        if m:
            perms.add(m)
    return perms


def get_user_perms(user) -> set[str]:
    """
    Set de permissões do usuário (macros + finas).
    Usuário sem profile ou inativo não recebe nada.
    """
    if not user or not getattr(user, "is_authenticated", False):
        return set()

    if is_admin(user):
        return perms_for_role("ADMIN") | ALL_PERMS

    p = get_profile(user)
    if not p or not getattr(p, "ativo", True):
        return set()

    return perms_for_role(getattr(p, "role", None) or "USUARIO")


def has_perm(perms: set[str] | frozenset[str], perm: str) -> bool:
    # macros já estão no set: 'educacao' vale se houver qualquer 'educacao.*'
    return perm in perms


def can(user, perm: str) -> bool:
    return has_perm(get_user_perms(user), perm)
