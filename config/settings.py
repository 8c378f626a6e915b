import os
from pathlib import Path
from django.core.exceptions import ImproperlyConfigured


def _env_bool(name: str, default: bool = False) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return val.strip().lower() in {"1", "true", "t", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    val = os.getenv(name)
    if val is None:
        return default
    try:
        return int(val.strip())
    except ValueError:
        return default


def _env_list(name: str, default: list[str] | None = None) -> list[str]:
    val = os.getenv(name)
    if val is None:
        return list(default or [])
    return [item.strip() for item in val.split(",") if item.strip()]


def _safe_samesite(value: str, default: str = "Lax") -> str:
    raw = (value or "").strip().lower()
    mapping = {
        "lax": "Lax",
        "strict": "Strict",
        "none": "None",
    }
    return mapping.get(raw, default)


def _cache_config(debug: bool) -> dict:
    backend = os.getenv("DJANGO_CACHE_BACKEND", "").strip().lower()

    if not backend:
        backend = "locmem" if debug else "redis"

    if backend == "redis":
        redis_url = os.getenv("DJANGO_REDIS_URL", "redis://127.0.0.1:6379/1")
        return {
            "default": {
                "BACKEND": "django.core.cache.backends.redis.RedisCache",
                "LOCATION": redis_url,
            }
        }

    if backend == "locmem":
        if not debug and not _env_bool("DJANGO_ALLOW_LOCMEM_IN_PRODUCTION", default=False):
            raise ImproperlyConfigured(
                "DJANGO_CACHE_BACKEND=locmem em produção não é permitido. "
                "Use redis (ou, se for exceção controlada, defina "
                "DJANGO_ALLOW_LOCMEM_IN_PRODUCTION=true)."
            )
        return {
            "default": {
                "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
                "LOCATION": "amar-cache",
            }
        }

    raise ImproperlyConfigured(
        "DJANGO_CACHE_BACKEND inválido. Valores aceitos: redis, locmem."
    )


BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY")
if not SECRET_KEY:
    raise ImproperlyConfigured(
        "Defina a variável de ambiente DJANGO_SECRET_KEY antes de iniciar o projeto."
    )
CPF_HASH_KEY = os.getenv("DJANGO_CPF_HASH_KEY", "")
CPF_ENCRYPTION_KEY = os.getenv("DJANGO_CPF_ENCRYPTION_KEY", "")
DEBUG = _env_bool("DJANGO_DEBUG", default=False)
ALLOWED_HOSTS = _env_list(
    "DJANGO_ALLOWED_HOSTS",
    default=["127.0.0.1", "localhost"],
)

if not DEBUG and "*" in ALLOWED_HOSTS:
    raise ImproperlyConfigured("Em produção, DJANGO_ALLOWED_HOSTS não pode conter '*'.")

if not DEBUG and not (CPF_HASH_KEY and CPF_ENCRYPTION_KEY):
    raise ImproperlyConfigured(
        "Defina DJANGO_CPF_HASH_KEY e DJANGO_CPF_ENCRYPTION_KEY em produção."
    )


INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",

    # Apps da ONG
    "apps.core",
    "apps.accounts",
    "apps.educacao",
    "apps.assistencia",
    "apps.saude",
    "apps.relatorios",
]


MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",

    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "apps.core.middleware.AuthSessionMiddleware",
    "apps.core.middleware.RBACMiddleware",

    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]


ROOT_URLCONF = "config.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [BASE_DIR / "templates"],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
                "apps.core.context_processors.permissions",
            ],
        },
    },
]

WSGI_APPLICATION = "config.wsgi.application"

DB_ENGINE = os.getenv("DJANGO_DB_ENGINE", "").strip().lower()
if DB_ENGINE in {"postgres", "postgresql"}:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.getenv("DJANGO_DB_NAME", ""),
            "USER": os.getenv("DJANGO_DB_USER", ""),
            "PASSWORD": os.getenv("DJANGO_DB_PASSWORD", ""),
            "HOST": os.getenv("DJANGO_DB_HOST", "127.0.0.1"),
            "PORT": os.getenv("DJANGO_DB_PORT", "5432"),
            "CONN_MAX_AGE": _env_int("DJANGO_DB_CONN_MAX_AGE", 60),
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }

AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
]

LANGUAGE_CODE = "pt-br"
TIME_ZONE = "America/Sao_Paulo"
USE_I18N = True
USE_TZ = True

STATIC_URL = "/static/"
STATICFILES_DIRS = [BASE_DIR / "static"] if (BASE_DIR / "static").exists() else []
STATIC_ROOT = BASE_DIR / "staticfiles"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# =========================
# Autenticação
# =========================
LOGIN_URL = "/accounts/login/"
LOGIN_REDIRECT_URL = "/"
LOGOUT_REDIRECT_URL = "/accounts/login/"

# =========================
# Cache (para limitar tentativas de login)
# =========================
CACHES = _cache_config(DEBUG)

# =========================
# ONG
# =========================
AMAR_ORG_NAME = os.getenv("AMAR_ORG_NAME", "ONG Amar Sem Limites")
AMAR_DASHBOARD_RECENT_LIMIT = _env_int("AMAR_DASHBOARD_RECENT_LIMIT", 3)
AMAR_DASHBOARD_EVENTS_LIMIT = _env_int("AMAR_DASHBOARD_EVENTS_LIMIT", 3)

# Bloqueio de login: por conta (e-mail ou usuário, na mesma chave) e por IP
AMAR_LOGIN_MAX_FALHAS_CONTA = _env_int("AMAR_LOGIN_MAX_FALHAS_CONTA", 5)
AMAR_LOGIN_MAX_FALHAS_IP = _env_int("AMAR_LOGIN_MAX_FALHAS_IP", 25)
AMAR_LOGIN_BLOQUEIO_MINUTOS = _env_int("AMAR_LOGIN_BLOQUEIO_MINUTOS", 10)

# =========================
# Logging
# =========================
LOG_LEVEL = os.getenv("DJANGO_LOG_LEVEL", "INFO").strip().upper() or "INFO"
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "simple"},
    },
    "root": {"handlers": ["console"], "level": "WARNING"},
    "loggers": {
        "apps": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "django.request": {"handlers": ["console"], "level": "WARNING", "propagate": False},
    },
}

# =========================
# Segurança HTTP / Sessão / CSRF
# =========================
SECURE_SSL_REDIRECT = _env_bool("DJANGO_SECURE_SSL_REDIRECT", default=not DEBUG)
SECURE_CONTENT_TYPE_NOSNIFF = _env_bool("DJANGO_SECURE_CONTENT_TYPE_NOSNIFF", default=True)
SECURE_REFERRER_POLICY = os.getenv("DJANGO_SECURE_REFERRER_POLICY", "strict-origin-when-cross-origin").strip()
X_FRAME_OPTIONS = os.getenv("DJANGO_X_FRAME_OPTIONS", "DENY").strip().upper() or "DENY"

SECURE_HSTS_SECONDS = _env_int("DJANGO_SECURE_HSTS_SECONDS", default=(31536000 if not DEBUG else 0))
SECURE_HSTS_INCLUDE_SUBDOMAINS = _env_bool(
    "DJANGO_SECURE_HSTS_INCLUDE_SUBDOMAINS",
    default=not DEBUG,
)
SECURE_HSTS_PRELOAD = _env_bool("DJANGO_SECURE_HSTS_PRELOAD", default=not DEBUG)

SESSION_COOKIE_SECURE = _env_bool("DJANGO_SESSION_COOKIE_SECURE", default=not DEBUG)
CSRF_COOKIE_SECURE = _env_bool("DJANGO_CSRF_COOKIE_SECURE", default=not DEBUG)
SESSION_COOKIE_HTTPONLY = _env_bool("DJANGO_SESSION_COOKIE_HTTPONLY", default=True)
CSRF_COOKIE_HTTPONLY = _env_bool("DJANGO_CSRF_COOKIE_HTTPONLY", default=False)
SESSION_COOKIE_SAMESITE = _safe_samesite(os.getenv("DJANGO_SESSION_COOKIE_SAMESITE", "Lax"), "Lax")
CSRF_COOKIE_SAMESITE = _safe_samesite(os.getenv("DJANGO_CSRF_COOKIE_SAMESITE", "Lax"), "Lax")
SESSION_COOKIE_AGE = _env_int("DJANGO_SESSION_COOKIE_AGE", 60 * 60 * 8)

SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
CSRF_TRUSTED_ORIGINS = _env_list("DJANGO_CSRF_TRUSTED_ORIGINS", default=[])

DATA_UPLOAD_MAX_MEMORY_SIZE = _env_int("DJANGO_DATA_UPLOAD_MAX_MEMORY_SIZE", 10 * 1024 * 1024)
