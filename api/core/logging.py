"""
Logging configuration for the API.

Both structlog loggers and plain stdlib loggers end up in the same handlers,
rendered by structlog: JSON lines when log_format is "json", coloured
console output otherwise. The request ID bound by the request middleware
(structlog.contextvars) is merged into every record.

Usage:
    # Service modules log through the standard library:
    import logging
    logger = logging.getLogger(__name__)
    logger.info("Mask created")

    # Code that wants key/value fields uses structlog:
    from middleware.logging_middleware import get_logger
    logger = get_logger(__name__)
    logger.info("Pipeline state changed", state="staged")
"""
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

import structlog

from core.config import settings

# Applied to every record, whether it came from structlog or stdlib logging
SHARED_PROCESSORS = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.stdlib.ExtraAdder(),
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    structlog.processors.UnicodeDecoder(),
]


def build_formatter(log_format: str) -> structlog.stdlib.ProcessorFormatter:
    """Formatter that renders stdlib and structlog records through the shared chain."""
    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True, exception_formatter=structlog.dev.plain_traceback)

    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=SHARED_PROCESSORS,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    )


def setup_logging(log_format: Optional[str] = None, log_level: Optional[str] = None):
    """Configure logging for the application."""
    log_format = log_format or settings.log_format
    log_level_name = (log_level or settings.log_level).upper()
    level = getattr(logging, log_level_name, logging.INFO)

    structlog.configure(
        processors=[structlog.stdlib.filter_by_level]
        + SHARED_PROCESSORS
        + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(build_formatter(log_format))
    root_logger.addHandler(console_handler)

    if settings.environment == "production":
        log_dir = Path("logs")
        log_dir.mkdir(exist_ok=True)
        # Files are always JSON so they can be searched
        file_formatter = build_formatter("json")

        file_handler = RotatingFileHandler(
            log_dir / "api.log",
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(file_formatter)
        root_logger.addHandler(file_handler)

        # Pipeline failures and cleanup errors
        error_handler = RotatingFileHandler(
            log_dir / "api_errors.log",
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(file_formatter)
        root_logger.addHandler(error_handler)

    # Reduce noise from third-party libraries
    for name in ("uvicorn.access", "uvicorn.error", "httpx", "httpcore", "openai", "PIL"):
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        f"Logging configured: level={log_level_name}, format={log_format}, env={settings.environment}"
    )
