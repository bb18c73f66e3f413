"""Logging setup for the service and its worker pool.

Production output is one JSON object per record on stdout (python-json-logger),
with ``severity``/``timestamp``/``logger`` keys. Extra fields passed via
``extra=`` (``content_id``, ``job_id``, ``attempt``...) become top-level keys,
which is how job progress is traced across workers. A plain text formatter is
available for local runs.
"""

import copy
import logging
import logging.config

# Chatty client libraries: one line per HTTP request is noise at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "google_genai", "urllib3")

LOGGING_CONFIG: dict = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "json": {
            "()": "pythonjsonlogger.json.JsonFormatter",
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
            "rename_fields": {
                "levelname": "severity",
                "asctime": "timestamp",
                "name": "logger",
            },
            "static_fields": {
                "service": "study-ingest",
            },
        },
        "plain": {
            "format": "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "stdout": {
            "class": "logging.StreamHandler",
            "formatter": "json",
            "stream": "ext://sys.stdout",
        },
    },
    "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
    "root": {
        "level": "INFO",
        "handlers": ["stdout"],
    },
}


def build_logging_config(level: str = "INFO", json_format: bool = True) -> dict:
    """Return a dictConfig mapping for ``level`` and the chosen formatter."""
    config = copy.deepcopy(LOGGING_CONFIG)
    config["root"]["level"] = level.upper()
    config["handlers"]["stdout"]["formatter"] = "json" if json_format else "plain"
    return config


def configure_logging(level: str = "INFO", json_format: bool = True) -> None:
    """Apply the logging configuration. Called once from the FastAPI lifespan."""
    logging.config.dictConfig(build_logging_config(level, json_format))
