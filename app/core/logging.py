"""Structured logging setup (structlog on top of stdlib logging)."""

import logging
import sys

import structlog

from app.config import settings


def setup_logging(level: str = None, log_format: str = None) -> None:
    """
    Configure structlog and the stdlib root logger.

    LOG_FORMAT=json renders one JSON object per line (production);
    anything else uses the coloured console renderer.
    """
    level_name = (level or settings.LOG_LEVEL).upper()
    log_level = getattr(logging, level_name, logging.INFO)
    use_json = (log_format or settings.LOG_FORMAT).lower() == "json"

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    formatter_processors = [structlog.stdlib.ProcessorFormatter.remove_processors_meta]
    if use_json:
        formatter_processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        formatter_processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=formatter_processors,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(log_level)

    # Telethon is chatty at INFO (connection/update chatter)
    logging.getLogger("telethon").setLevel(max(log_level, logging.WARNING))
    logging.getLogger("botocore").setLevel(max(log_level, logging.WARNING))
