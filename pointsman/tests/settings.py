"""
Django settings for Pointsman tests.

In-memory SQLite by default. Set POINTSMAN_TEST_PG_NAME (plus the optional
POINTSMAN_TEST_PG_USER/PASSWORD/HOST/PORT) to run against PostgreSQL, which
also enables the threaded concurrency tests.
"""

import os

SECRET_KEY = "test-secret-key-for-pointsman-tests"

DEBUG = True

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "django.contrib.admin",
    "django.contrib.sessions",
    "django.contrib.messages",
    "pointsman",
]

MIDDLEWARE = [
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
]

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    }
]

ROOT_URLCONF = "pointsman.tests.urls"

STATIC_URL = "/static/"

if os.environ.get("POINTSMAN_TEST_PG_NAME"):
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.environ["POINTSMAN_TEST_PG_NAME"],
            "USER": os.environ.get("POINTSMAN_TEST_PG_USER", "postgres"),
            "PASSWORD": os.environ.get("POINTSMAN_TEST_PG_PASSWORD", ""),
            "HOST": os.environ.get("POINTSMAN_TEST_PG_HOST", "localhost"),
            "PORT": os.environ.get("POINTSMAN_TEST_PG_PORT", "5432"),
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": ":memory:",
        }
    }

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

USE_TZ = True
TIME_ZONE = "UTC"

POINTSMAN = {
    "ACCESS_GUARD": "pointsman.adapters.ownership.OwnershipAccessGuard",
    "NOTIFICATION_BACKEND": "pointsman.adapters.signals.SignalNotificationBackend",
}
