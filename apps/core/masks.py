from __future__ import annotations

import re
from datetime import date


def only_digits(value: str | None) -> str:
    return "".join(ch for ch in (value or "") if ch.isdigit())


def format_cpf(value: str | None) -> str:
    """
    Máscara progressiva de CPF: "12345678901" -> "123.456.789-01".
    Entradas parciais são formatadas até onde for possível.
    """
    digits = only_digits(value)
    if not digits:
        return ""
    out = re.sub(r"(\d{3})(\d)", r"\1.\2", digits, count=1)
    out = re.sub(r"(\d{3})(\d)", r"\1.\2", out, count=1)
    out = re.sub(r"(\d{3})(\d{1,2})$", r"\1-\2", out, count=1)
    return out[:14]


def format_phone(value: str | None) -> str:
    """
    Fixo (até 10 dígitos): "(98) 3222-1100".
    Celular (11 dígitos): "(98) 9 8888-7777".
    """
    digits = only_digits(value)
    if not digits:
        return ""
    if len(digits) <= 10:
        out = re.sub(r"(\d{2})(\d)", r"(\1) \2", digits, count=1)
        out = re.sub(r"(\d{4})(\d)", r"\1-\2", out, count=1)
        return out[:14]
    out = re.sub(r"(\d{2})(\d{1})(\d{4})(\d{4})", r"(\1) \2 \3-\4", digits, count=1)
    return out[:17]


def calcular_idade(nascimento: date | None, hoje: date | None = None) -> int | None:
    if not nascimento:
        return None
    hoje = hoje or date.today()
    idade = hoje.year - nascimento.year
    if (hoje.month, hoje.day) < (nascimento.month, nascimento.day):
        idade -= 1
    return idade
