from .cpf import (
    cpf_hash,
    derive_cpf_security_fields,
    decrypt_cpf,
    display_cpf,
    encrypt_cpf,
    mask_cpf,
    normalize_cpf,
    protect_cpf,
    resolve_cpf_digits,
)

__all__ = [
    "cpf_hash",
    "derive_cpf_security_fields",
    "decrypt_cpf",
    "display_cpf",
    "encrypt_cpf",
    "mask_cpf",
    "normalize_cpf",
    "protect_cpf",
    "resolve_cpf_digits",
]
