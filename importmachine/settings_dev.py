import os

from .settings_template import *  # NOQA ignore=F405
from .settings_template import LOGGING

DEBUG = True

IMPORTMACHINE_ENVIRONMENT = "development"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.postgresql",
        "NAME": os.getenv("POSTGRESQL_DB", "importmachine"),
        "USER": os.getenv("POSTGRESQL_USER", "importmachine"),
        "PASSWORD": os.getenv("POSTGRESQL_PW", ""),
        "HOST": os.getenv("POSTGRESQL_HOST", "localhost"),
        "PORT": os.getenv("POSTGRESQL_PORT", "5432"),
    }
}

LOGGING["handlers"]["stream"]["level"] = "DEBUG"
LOGGING["handlers"]["file"]["level"] = "DEBUG"
LOGGING["loggers"]["django"]["level"] = "DEBUG"
LOGGING["loggers"]["importmachine"]["level"] = "DEBUG"
LOGGING["loggers"]["structlog"]["handlers"] = ["structlog_console"]
