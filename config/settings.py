"""
GRC Access - Django Settings (Infrastructure Only)
==================================================
Django serves as the ORM and app container for the access-control core.
The HTTP layer that calls into grc_access lives elsewhere, so no URLconf
or middleware stack is configured here.
"""

import os
from pathlib import Path

# ── Paths ─────────────────────────────────────────────────────
BASE_DIR = Path(__file__).resolve().parent.parent

# ── Security ──────────────────────────────────────────────────
SECRET_KEY = os.environ.get("GRC_SECRET_KEY", "grc-access-dev-key-replace-before-deployment")

DEBUG = os.environ.get("GRC_DEBUG", "1") == "1"

ALLOWED_HOSTS = []

# ── Installed Apps ────────────────────────────────────────────
INSTALLED_APPS = [
    "django.contrib.contenttypes",
    # ── GRC Access apps (leaves first) ────────────────────
    "grc_access.audit",
    "grc_access.identity_store",
    "grc_access.federation",
]

MIDDLEWARE = []

# ── Database ──────────────────────────────────────────────────
# SQLite for development. Production DB configured separately.
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.environ.get("GRC_DB_PATH", str(BASE_DIR / "db.sqlite3")),
    }
}

# ── Internationalization ──────────────────────────────────────
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ── Access Control ────────────────────────────────────────────
# Read through grc_access.conf.get_access_settings(); omitted keys fall
# back to grc_access.conf.DEFAULTS.
GRC_ACCESS = {
    "MAX_FAILED_LOGINS": 5,
    "LOCKOUT_MINUTES": 30,
    "SAML_REVOKE_UNLISTED_GROUP_ROLES": False,
    "SAML_DEFAULT_ROLE": "viewer",
    "DEFAULT_LANDING_URL": "/dashboard",
}

# ── Logging ───────────────────────────────────────────────────
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "plain",
        },
    },
    "loggers": {
        "grc": {
            "handlers": ["console"],
            "level": os.environ.get("GRC_LOG_LEVEL", "INFO"),
            "propagate": True,
        },
    },
}
