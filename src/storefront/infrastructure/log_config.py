"""structlog configuration on top of stdlib logging."""

from __future__ import annotations

import logging
import re
import sys

import structlog

_CARD_NUMBER = re.compile(r"\b(?:\d[ -]?){13,19}\b")
_EMAIL_LOCAL_PART = re.compile(r"\b([A-Za-z0-9._%+-])[A-Za-z0-9._%+-]*@")


def mask_sensitive_data(_, __, event_dict: dict) -> dict:
    """Mask card numbers and e-mail local parts in every string value."""
    for key, value in event_dict.items():
        if isinstance(value, str):
            value = _CARD_NUMBER.sub("***MASKED***", value)
            event_dict[key] = _EMAIL_LOCAL_PART.sub(r"\1***@", value)
    return event_dict


def configure_logging(level: str = "INFO", json: bool = False) -> None:
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        mask_sensitive_data,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    if json:
        renderers = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        renderers = [structlog.dev.ConsoleRenderer(colors=False)]
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *renderers,
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)
