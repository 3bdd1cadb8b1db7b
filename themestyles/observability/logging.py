"""JSON log records tagged with the request id and the theme being served.

Records emitted outside a request (startup compile, the CLI) carry the
``startup`` request id so they can be told apart from admin-triggered
compiles in the same stream.
"""

from __future__ import annotations

import logging
from logging.config import dictConfig

from asgi_correlation_id.context import correlation_id
from pythonjsonlogger import jsonlogger

OUTSIDE_REQUEST_ID = "startup"

# uvicorn.access stays at WARNING; the compile trigger logs its own outcome.
UVICORN_LOGGERS = {"uvicorn.error": None, "uvicorn.access": "WARNING"}


class RequestContextFilter(logging.Filter):
    """Add ``request_id`` and ``theme`` fields to every record."""

    def __init__(self, theme: str = "") -> None:
        super().__init__()
        self.theme = theme

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = correlation_id.get() or OUTSIDE_REQUEST_ID
        record.theme = self.theme
        return True


def configure_logging(level: str = "INFO", *, theme: str = "") -> None:
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {
                "request_context": {"()": RequestContextFilter, "theme": theme},
            },
            "formatters": {
                "json": {
                    "()": jsonlogger.JsonFormatter,
                    "fmt": (
                        "%(asctime)s %(levelname)s %(name)s %(message)s "
                        "%(request_id)s %(theme)s"
                    ),
                    "rename_fields": {"levelname": "level", "name": "logger"},
                }
            },
            "handlers": {
                "stream": {
                    "class": "logging.StreamHandler",
                    "formatter": "json",
                    "filters": ["request_context"],
                }
            },
            "root": {"handlers": ["stream"], "level": level},
            "loggers": {
                "themestyles": {"level": level},
                **{
                    name: {
                        "handlers": ["stream"],
                        "level": fixed or level,
                        "propagate": False,
                    }
                    for name, fixed in UVICORN_LOGGERS.items()
                },
            },
        }
    )
