"""
Bloqueio temporário de login após falhas seguidas.

Os contadores ficam no cache do Django, um por conta+IP e outro só por IP.
A conta é normalizada antes de virar chave: "Ana", " ana " e o e-mail
cadastrado da Ana contam como a mesma conta.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.utils import timezone

PREFIXO = "amar:login"


@dataclass
class Tentativas:
    falhas: int = 0
    bloqueado_ate: datetime | None = None

    def bloqueado(self, agora: datetime) -> bool:
        return self.bloqueado_ate is not None and self.bloqueado_ate > agora


def max_falhas_conta() -> int:
    return settings.AMAR_LOGIN_MAX_FALHAS_CONTA


def max_falhas_ip() -> int:
    return settings.AMAR_LOGIN_MAX_FALHAS_IP


def _bloqueio() -> timedelta:
    return timedelta(minutes=settings.AMAR_LOGIN_BLOQUEIO_MINUTOS)


def resolver_usuario(identificador: str) -> str:
    """E-mail cadastrado vira o nome de usuário da conta; o resto passa sem espaços."""
    identificador = (identificador or "").strip()
    if "@" in identificador:
        user = get_user_model().objects.filter(email__iexact=identificador).order_by("id").first()
        if user:
            return user.get_username()
    return identificador


def conta(identificador: str) -> str:
    return resolver_usuario(identificador).lower()


def _chaves(ip: str, identificador: str) -> list[tuple[str, int]]:
    return [
        (f"{PREFIXO}:conta:{ip}:{conta(identificador)}", max_falhas_conta()),
        (f"{PREFIXO}:ip:{ip}", max_falhas_ip()),
    ]


def _ler(chave: str) -> Tentativas:
    return cache.get(chave) or Tentativas()


def esta_bloqueado(ip: str, identificador: str) -> bool:
    agora = timezone.now()
    return any(_ler(chave).bloqueado(agora) for chave, _ in _chaves(ip, identificador))


def registrar_falha(ip: str, identificador: str) -> bool:
    """Conta a falha; devolve True se a conta ou o IP ficou bloqueado."""
    agora = timezone.now()
    bloqueou = False
    for chave, limite in _chaves(ip, identificador):
        tentativas = _ler(chave)
        tentativas.falhas += 1
        if tentativas.falhas >= limite:
            tentativas.bloqueado_ate = agora + _bloqueio()
            bloqueou = True
        cache.set(chave, tentativas, timeout=int(_bloqueio().total_seconds()))
    return bloqueou


def liberar(ip: str, identificador: str) -> None:
    cache.delete_many([chave for chave, _ in _chaves(ip, identificador)])
