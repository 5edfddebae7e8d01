"""
Custody Ledger – Django Settings (Infrastructure Only)
=======================================================
Django serves as the configuration and persistence container.
The custody engine is the authority — Django does not dictate structure.
"""

import os
from pathlib import Path

# ── Paths ─────────────────────────────────────────────────────
BASE_DIR = Path(__file__).resolve().parent.parent

# ── Security ──────────────────────────────────────────────────
SECRET_KEY = os.environ.get(
    "CUSTODY_SECRET_KEY", "custody-dev-key-replace-before-deployment"
)

DEBUG = os.environ.get("CUSTODY_DEBUG", "1") == "1"

ALLOWED_HOSTS = []

# ── Installed Apps ────────────────────────────────────────────
INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "core.event_store",
]

# ── Database ──────────────────────────────────────────────────
# SQLite for development. Production DB configured separately.
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.environ.get("CUSTODY_DB_PATH", BASE_DIR / "db.sqlite3"),
    }
}

# ── Internationalization ──────────────────────────────────────
TIME_ZONE = "UTC"
USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ── Custody Ledger ────────────────────────────────────────────
# Administrator principal, fixed for the lifetime of the process.
CUSTODY_ADMINISTRATOR = os.environ.get("CUSTODY_ADMINISTRATOR", "")

# ── Logging ───────────────────────────────────────────────────
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "plain",
        },
    },
    "loggers": {
        "custody": {
            "handlers": ["console"],
            "level": os.environ.get("CUSTODY_LOG_LEVEL", "INFO"),
            "propagate": True,
        },
    },
}
