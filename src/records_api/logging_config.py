"""Structured logging with structlog."""

from __future__ import annotations

import logging
import sys
from typing import Optional

import structlog

from .settings import Settings, get_settings


# PUBLIC_INTERFACE
def configure_logging(settings: Optional[Settings] = None) -> None:
    """
    Configure structlog on top of stdlib logging.

    LOG_FORMAT=json renders one JSON object per line; anything else uses the
    colourless console renderer.
    """
    settings = settings or get_settings()
    level = getattr(logging, settings.log_level, logging.INFO)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    logging.getLogger().setLevel(level)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if settings.log_format == "json":
        # the console renderer formats tracebacks itself
        processors.append(structlog.processors.format_exc_info)
    processors.append(structlog.stdlib.ProcessorFormatter.wrap_for_formatter)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # create_app reconfigures per app; cached loggers would miss it
        cache_logger_on_first_use=False,
    )

    if settings.log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)
    formatter = structlog.stdlib.ProcessorFormatter(processor=renderer)

    for handler in logging.root.handlers:
        handler.setFormatter(formatter)
