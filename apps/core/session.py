from __future__ import annotations

from dataclasses import dataclass, field

from .rbac import get_role, get_user_perms, has_perm, is_admin

ROLE_LABELS = {
    "ADMIN": "Administrador",
    "PROFESSOR": "Professor",
    "ASSISTENTE_SOCIAL": "Assistente Social",
    "PROFISSIONAL_SAUDE": "Profissional de Saúde",
    "USUARIO": "Usuário",
}


@dataclass(frozen=True)
class AuthSession:
    """
    Identidade do usuário atual, somente leitura.

    Montada uma vez por request (AuthSessionMiddleware) e passada
    explicitamente para quem monta páginas (dashboard, relatórios).
    """
    user_id: int | None = None
    username: str = ""
    email: str = ""
    display_name: str = ""
    role: str = ""
    perms: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def anonymous(cls) -> "AuthSession":
        return cls()

    @classmethod
    def from_user(cls, user) -> "AuthSession":
        if not user or not getattr(user, "is_authenticated", False):
            return cls.anonymous()
        role = "ADMIN" if is_admin(user) else (get_role(user) or "USUARIO")
        full_name = (user.get_full_name() or "").strip()
        return cls(
            user_id=user.pk,
            username=user.get_username(),
            email=user.email or "",
            display_name=full_name or user.email or user.get_username(),
            role=role,
            perms=frozenset(get_user_perms(user)),
        )

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @property
    def role_label(self) -> str:
        return ROLE_LABELS.get(self.role, ROLE_LABELS["USUARIO"])

    def can(self, perm: str) -> bool:
        return has_perm(self.perms, perm)


def get_session(request) -> AuthSession:
    session = getattr(request, "auth_session", None)
    if session is None:
        session = AuthSession.from_user(getattr(request, "user", None))
    return session
