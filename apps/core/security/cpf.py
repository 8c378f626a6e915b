from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import os

from cryptography.fernet import Fernet, InvalidToken
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

from apps.core.masks import format_cpf, only_digits

logger = logging.getLogger(__name__)


def _key(setting_name: str, explicit: str | None) -> str:
    return (
        explicit
        or getattr(settings, setting_name, "")
        or os.getenv(f"DJANGO_{setting_name}")
        or ""
    ).strip()


def normalize_cpf(value: str | None) -> str:
    return only_digits(value)


def mask_cpf(value: str | None) -> str:
    digits = normalize_cpf(value)
    if len(digits) != 11:
        return ""
    return f"***.***.***-{digits[-2:]}"


def cpf_hash(value: str | None, key: str | None = None) -> str:
    digits = normalize_cpf(value)
    if not digits:
        return ""

    hash_key = _key("CPF_HASH_KEY", key)
    if not hash_key:
        raise ImproperlyConfigured("Defina DJANGO_CPF_HASH_KEY para gerar hash de CPF.")

    return hmac.new(hash_key.encode("utf-8"), digits.encode("utf-8"), hashlib.sha256).hexdigest()


def _fernet_from_key(key: str | None = None) -> Fernet:
    enc_key = _key("CPF_ENCRYPTION_KEY", key)
    if not enc_key:
        raise ImproperlyConfigured("Defina DJANGO_CPF_ENCRYPTION_KEY para cifrar CPF.")

    fernet_key = base64.urlsafe_b64encode(hashlib.sha256(enc_key.encode("utf-8")).digest())
    return Fernet(fernet_key)


def encrypt_cpf(value: str | None, key: str | None = None) -> str:
    digits = normalize_cpf(value)
    if not digits:
        return ""
    return _fernet_from_key(key).encrypt(digits.encode("utf-8")).decode("utf-8")


def decrypt_cpf(value: str | None, key: str | None = None) -> str:
    token = (value or "").strip()
    if not token:
        return ""

    try:
        digits = _fernet_from_key(key).decrypt(token.encode("utf-8")).decode("utf-8")
    except InvalidToken as exc:
        raise ValueError("CPF criptografado inválido ou chave incorreta.") from exc

    return normalize_cpf(digits)


def resolve_cpf_digits(legacy_value: str | None = "", encrypted_value: str | None = "") -> str:
    """
    Prioriza o campo criptografado e cai para o valor em texto (se ainda
    não estiver mascarado).
    """
    if encrypted_value:
        try:
            decrypted = decrypt_cpf(encrypted_value)
        except (ImproperlyConfigured, ValueError):
            logger.warning("Não foi possível decifrar CPF; usando valor legado.")
        else:
            if decrypted:
                return decrypted
    if "*" in (legacy_value or ""):
        return ""
    return normalize_cpf(legacy_value)


def derive_cpf_security_fields(value: str | None) -> tuple[str, str, str]:
    """
    Retorna (cpf_enc, cpf_hash, cpf_last4). Em DEBUG sem chaves configuradas,
    cifra/hash ficam vazios em vez de travar o cadastro.
    """
    digits = normalize_cpf(value)
    if not digits:
        return "", "", ""

    try:
        encrypted = encrypt_cpf(digits)
        hashed = cpf_hash(digits)
    except ImproperlyConfigured:
        if not settings.DEBUG:
            raise
        logger.warning("Chaves de CPF ausentes; CPF salvo apenas mascarado.")
        encrypted, hashed = "", ""

    return encrypted, hashed, digits[-4:]


def display_cpf(legacy_value: str | None = "", encrypted_value: str | None = "") -> str:
    """CPF completo formatado quando decifrável; senão o valor mascarado salvo."""
    digits = resolve_cpf_digits(legacy_value, encrypted_value)
    if digits:
        return format_cpf(digits)
    return legacy_value or ""


def protect_cpf(instance) -> None:
    """
    Preenche cpf / cpf_enc / cpf_hash / cpf_last4 de um model antes do save.
    O campo `cpf` fica só com o valor mascarado.
    """
    cpf_digits = resolve_cpf_digits(instance.cpf, instance.cpf_enc)
    cpf_enc, hashed, cpf_last4 = derive_cpf_security_fields(cpf_digits)
    if cpf_digits:
        if cpf_enc:
            instance.cpf_enc = cpf_enc
        if hashed:
            instance.cpf_hash = hashed
    else:
        instance.cpf_enc = ""
        instance.cpf_hash = ""
    instance.cpf_last4 = cpf_last4
    instance.cpf = mask_cpf(cpf_digits)
