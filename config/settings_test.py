import os

os.environ.setdefault("DJANGO_SECRET_KEY", "test-secret-key")
os.environ.setdefault("DJANGO_DEBUG", "true")
os.environ.setdefault("DJANGO_CPF_HASH_KEY", "hash-key-tests")
os.environ.setdefault("DJANGO_CPF_ENCRYPTION_KEY", "enc-key-tests")

from .settings import *  # noqa

# Em testes o schema sai direto dos models.
MIGRATION_MODULES = {
    "core": None,
    "accounts": None,
    "educacao": None,
    "assistencia": None,
    "saude": None,
}

PASSWORD_HASHERS = [
    "django.contrib.auth.hashers.MD5PasswordHasher",
]

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "test-cache",
    }
}

SECURE_SSL_REDIRECT = False
SESSION_COOKIE_SECURE = False
CSRF_COOKIE_SECURE = False
LOGGING["loggers"]["apps"]["level"] = "WARNING"  # noqa: F405
