"""
Django settings for SipLocal.

Secrets come from the environment (or a local .env) - never hardcode
credentials. Provider keys default to empty so tests and local runs work
without them; `manage.py check` reports what is missing.
"""

from pathlib import Path

import environ  # type: ignore[import-untyped]

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent

# Initialize environ
env = environ.Env(
    DEBUG=(bool, False),
    ALLOWED_HOSTS=(list, []),
)
environ.Env.read_env(BASE_DIR.parent.parent / ".env")

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = env("SECRET_KEY", default="django-insecure-local-only")

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = env("DEBUG")

ALLOWED_HOSTS = env("ALLOWED_HOSTS")

# Application definition
INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    # Local apps
    "apps.web.core",
    "apps.web.merchants",
    "apps.web.orders",
    "apps.web.pos",
    "apps.web.notifications",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "apps.web.config.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "apps.web.config.wsgi.application"

# Database
# https://docs.djangoproject.com/en/5.1/ref/settings/#databases
# Connection string: DATABASE_URL (Postgres in production)
DATABASES = {
    "default": env.db("DATABASE_URL", default=f"sqlite:///{BASE_DIR / 'db.sqlite3'}"),
}

# Password validation
_V = "django.contrib.auth.password_validation"
AUTH_PASSWORD_VALIDATORS = [
    {"NAME": f"{_V}.UserAttributeSimilarityValidator"},
    {"NAME": f"{_V}.MinimumLengthValidator"},
    {"NAME": f"{_V}.CommonPasswordValidator"},
    {"NAME": f"{_V}.NumericPasswordValidator"},
]

# Internationalization
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

# Static files (admin only)
STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR.parent.parent / "staticfiles"

# Default primary key field type
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# =============================================================================
# Providers
# =============================================================================

# Stripe (platform account, used for stripe_card and apple_pay)
STRIPE_SECRET_KEY = env("STRIPE_SECRET_KEY", default="")

# Square ("sandbox" or "production")
SQUARE_ENVIRONMENT = env("SQUARE_ENVIRONMENT", default="sandbox")
SQUARE_WEBHOOK_SIGNATURE_KEY = env("SQUARE_WEBHOOK_SIGNATURE_KEY", default="")
# Public URL Square signs; falls back to the request's absolute URI
SQUARE_WEBHOOK_NOTIFICATION_URL = env("SQUARE_WEBHOOK_NOTIFICATION_URL", default="")

# Clover ("sandbox" or "production")
CLOVER_ENVIRONMENT = env("CLOVER_ENVIRONMENT", default="sandbox")

# OneSignal push notifications
ONESIGNAL_APP_ID = env("ONESIGNAL_APP_ID", default="")
ONESIGNAL_API_KEY = env("ONESIGNAL_API_KEY", default="")

# Shared key for internal endpoints (/credentials)
INTERNAL_API_KEY = env("INTERNAL_API_KEY", default="")

# =============================================================================
# Orders
# =============================================================================

# Cancellation window before an authorized payment is captured
CAPTURE_DELAY_SECONDS = env.int("CAPTURE_DELAY_SECONDS", default=30)
# Extra wait before the single retry of a capture that errored
CAPTURE_FALLBACK_GRACE_SECONDS = env.int("CAPTURE_FALLBACK_GRACE_SECONDS", default=2)
CAPTURE_MAX_ATTEMPTS = env.int("CAPTURE_MAX_ATTEMPTS", default=2)
# A RUNNING capture claim older than this is treated as abandoned
CAPTURE_CLAIM_TIMEOUT_SECONDS = env.int("CAPTURE_CLAIM_TIMEOUT_SECONDS", default=600)

DEFAULT_CURRENCY = env("DEFAULT_CURRENCY", default="USD")

# =============================================================================
# Logging
# =============================================================================

LOG_LEVEL = env("LOG_LEVEL", default="INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {
        "redact_secrets": {"()": "apps.web.core.logging.RedactSecretsFilter"},
    },
    "formatters": {
        "default": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "default",
            "filters": ["redact_secrets"],
        },
    },
    "root": {"handlers": ["console"], "level": "WARNING"},
    "loggers": {
        "apps": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "django": {"handlers": ["console"], "level": "INFO", "propagate": False},
    },
}
