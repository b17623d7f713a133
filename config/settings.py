"""
Django settings for the submission tracking daemons project.

Only the pieces a command-line project needs are configured: no URLs,
views or admin site. Everything site-specific is read from the environment
(see config/env.py).
"""

from pathlib import Path

from config.env import env_float, env_int, env_path, env_str, load_env

load_env()

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = env_str("DJANGO_SECRET_KEY", "insecure-tracking-daemons-key")
DEBUG = env_str("DJANGO_DEBUG", "false").lower() in {"1", "true", "yes"}
ALLOWED_HOSTS: list[str] = []

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "apps.pipelines",
    "apps.daemons",
]

DATABASES = {
    "default": {
        "ENGINE": env_str("DATABASE_ENGINE", "django.db.backends.sqlite3"),
        "NAME": env_str("DATABASE_NAME", str(BASE_DIR / "db.sqlite3")),
        "USER": env_str("DATABASE_USER"),
        "PASSWORD": env_str("DATABASE_PASSWORD"),
        "HOST": env_str("DATABASE_HOST"),
        "PORT": env_str("DATABASE_PORT"),
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

USE_TZ = True
TIME_ZONE = env_str("DJANGO_TIME_ZONE", "UTC")

# --- Daemon orchestration ---

DAEMON_RUN_DIR = env_path("DAEMON_RUN_DIR", BASE_DIR / "var" / "run")
DAEMON_HANDSHAKE_DIR = env_path("DAEMON_HANDSHAKE_DIR", DAEMON_RUN_DIR / "handshake")
DAEMON_LOG_DIR = env_path("DAEMON_LOG_DIR", BASE_DIR / "var" / "log")
DAEMON_WORK_DIR = env_path("DAEMON_WORK_DIR", BASE_DIR / "var" / "submissions")

DAEMON_HANDSHAKE_TIMEOUT = env_float("DAEMON_HANDSHAKE_TIMEOUT", 5.0)
DAEMON_MONITOR_INTERVAL = env_float("DAEMON_MONITOR_INTERVAL", 2.0)
DAEMON_TERMINATION_INTERVAL = env_float("DAEMON_TERMINATION_INTERVAL", 5.0)
DAEMON_TERMINATION_ROUNDS = env_int("DAEMON_TERMINATION_ROUNDS", 16)
DAEMON_TERMINATION_SIGNAL = env_str("DAEMON_TERMINATION_SIGNAL", "SIGUSR1")
DAEMON_SPAWN_MODE = env_str("DAEMON_SPAWN_MODE", "serial")
DAEMON_LOCK_TIMEOUT = env_float("DAEMON_LOCK_TIMEOUT", 30.0)
DAEMON_ADMIN_EMAIL = env_str("DAEMON_ADMIN_EMAIL")

# Extra worker implementations: {"TypeName": "dotted.path.to.WorkerClass"}
DAEMON_WORKER_CLASSES: dict[str, str] = {}

# Named severity levels combined bitwise into a checker threshold.
CHECKER_SEVERITY_LEVELS = {
    "DEBUG": 1,
    "INFO": 2,
    "WARN": 4,
    "ERROR": 8,
    "FATAL": 16,
}

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s %(levelname)-8s [%(process)d] %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
        },
    },
    "loggers": {
        "apps": {
            "handlers": ["console"],
            "level": env_str("DAEMON_LOG_LEVEL", "INFO").upper(),
            "propagate": False,
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
}
