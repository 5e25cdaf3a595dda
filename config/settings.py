"""Django settings for the soil moisture service.

Values come from the environment with development-safe defaults.
"""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-only-not-for-prod")
DEBUG = _env_bool("DJANGO_DEBUG", False)
ALLOWED_HOSTS = [
    host.strip()
    for host in os.getenv("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1").split(
        ","
    )
    if host.strip()
]

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "django_prometheus",
    "rest_framework",
    "drf_spectacular",
    "soil_moisture",
]

MIDDLEWARE = [
    "django_prometheus.middleware.PrometheusBeforeMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django_prometheus.middleware.PrometheusAfterMiddleware",
]

ROOT_URLCONF = "config.urls"
WSGI_APPLICATION = "config.wsgi.application"
ASGI_APPLICATION = "config.asgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.getenv("DJANGO_SQLITE_PATH", str(BASE_DIR / "db.sqlite3")),
    }
}

CACHES = {
    "default": {
        "BACKEND": os.getenv(
            "DJANGO_CACHE_BACKEND",
            "django.core.cache.backends.locmem.LocMemCache",
        ),
        "LOCATION": os.getenv("DJANGO_CACHE_LOCATION", "soil-moisture"),
    }
}

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.AllowAny",
    ],
    "DEFAULT_RENDERER_CLASSES": ["rest_framework.renderers.JSONRenderer"],
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
    "EXCEPTION_HANDLER": "config.api.exceptions.custom_exception_handler",
    "UNAUTHENTICATED_USER": None,
}

SPECTACULAR_SETTINGS = {
    "TITLE": "Soil Moisture API",
    "DESCRIPTION": "Remotely sensed soil moisture index by region and time.",
    "VERSION": "1.0.0",
}

CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", "memory://")
CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", None)
CELERY_TASK_ALWAYS_EAGER = _env_bool("CELERY_TASK_ALWAYS_EAGER", False)
CELERY_BEAT_SCHEDULE = {
    "soil-moisture-refresh": {
        "task": "soil_moisture.tasks.refresh_soil_moisture_cache",
        "schedule": 6 * 60 * 60,
    },
}

GOOGLE_EE_CLIENT_EMAIL = os.getenv("GOOGLE_EE_CLIENT_EMAIL")
GOOGLE_EE_PRIVATE_KEY = os.getenv("GOOGLE_EE_PRIVATE_KEY")
GOOGLE_EE_PROJECT = os.getenv("GOOGLE_EE_PROJECT")

SOIL_MOISTURE_ENGINE = os.getenv("SOIL_MOISTURE_ENGINE", "earthengine")
SOIL_MOISTURE_DEFAULT_INDEX = os.getenv("SOIL_MOISTURE_DEFAULT_INDEX", "smi")
SOIL_MOISTURE_CACHE_TTL_SECONDS = int(
    os.getenv("SOIL_MOISTURE_CACHE_TTL_SECONDS", "3600")
)
SOIL_MOISTURE_ENGINE_TIMEOUT_SECONDS = float(
    os.getenv("SOIL_MOISTURE_ENGINE_TIMEOUT_SECONDS", "120")
)
SOIL_MOISTURE_ENGINE_MAX_CONCURRENCY = int(
    os.getenv("SOIL_MOISTURE_ENGINE_MAX_CONCURRENCY", "8")
)
SOIL_MOISTURE_MAX_RANGE_DAYS = int(
    os.getenv("SOIL_MOISTURE_MAX_RANGE_DAYS", "731")
)
SOIL_MOISTURE_REFRESH_LOOKBACK_DAYS = int(
    os.getenv("SOIL_MOISTURE_REFRESH_LOOKBACK_DAYS", "90")
)
SOIL_MOISTURE_TREND_LABEL_FORMAT = os.getenv(
    "SOIL_MOISTURE_TREND_LABEL_FORMAT", "%b"
)
# name -> [min_lon, min_lat, max_lon, max_lat]; empty uses the built-in set.
SOIL_MOISTURE_REGIONS: dict[str, list[float]] = {}

LOG_LEVEL = os.getenv("DJANGO_LOG_LEVEL", "INFO")
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
        },
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "plain"},
    },
    "root": {"handlers": ["console"], "level": "WARNING"},
    "loggers": {
        "soil_moisture": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
    },
}
