"""Structlog configuration for the notification engine.

Log output is JSON in production (empty PREFIX) and console-rendered
elsewhere. Every event passes through the redaction processors so that
credentials and subscriber destinations never reach the log stream in
plaintext.

Usage:
    from infrastructure.logging import configure_logging, get_module_logger

    configure_logging()

    logger = get_module_logger()
    logger.info("dispatch_completed", request_id="req-1", status="delivered")
"""

import inspect
import logging
import sys
from typing import List, Optional

import structlog
from structlog.stdlib import BoundLogger
from structlog.typing import Processor

from infrastructure.configuration import Settings
from infrastructure.logging.formatters import (
    mask_destinations,
    mask_sensitive_data,
    truncate_large_values,
)

SILENT_LEVEL = logging.CRITICAL + 1


def _is_test_environment() -> bool:
    """Return True when running under pytest."""
    return "pytest" in sys.modules


def _build_processors(prod_mode: bool) -> List[Processor]:
    processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.LINENO,
                structlog.processors.CallsiteParameter.FUNC_NAME,
            ]
        ),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        # Redaction runs before rendering; renderers see masked values only
        mask_sensitive_data(),
        mask_destinations(),
        truncate_large_values(),
    ]
    if prod_mode:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())
    return processors


def _configure_silent() -> BoundLogger:
    # Loggers still work under pytest, nothing is emitted.
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", level=SILENT_LEVEL, force=True)
    logging.root.setLevel(SILENT_LEVEL)
    return structlog.stdlib.get_logger()


def configure_logging(
    log_level: Optional[str] = None,
    is_production: Optional[bool] = None,
) -> BoundLogger:
    """Configure structlog and the standard logging root.

    Args:
        log_level: Overrides settings.LOG_LEVEL.
        is_production: Overrides settings.is_production; selects JSON over
            console rendering.

    Returns:
        A logger bound to the configured pipeline.
    """
    if _is_test_environment():
        return _configure_silent()

    settings = None
    if is_production is None or log_level is None:
        settings = Settings()
    prod_mode = is_production if is_production is not None else settings.is_production
    level_name = (log_level or settings.LOG_LEVEL).upper()

    structlog.configure(
        processors=_build_processors(prod_mode),
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level_name, logging.INFO),
    )

    base = structlog.stdlib.get_logger()
    if settings is not None:
        base = base.bind(git_sha=settings.GIT_SHA)
    return base


# Configured on import so module-level loggers are usable immediately.
logger: BoundLogger = configure_logging()


def _caller_module_name(depth: int = 2) -> Optional[str]:
    frame = inspect.currentframe()
    for _ in range(depth):
        if frame is None:
            return None
        frame = frame.f_back
    if frame is None:
        return None
    module = inspect.getmodule(frame)
    if module is not None:
        return module.__name__
    return frame.f_globals.get("__name__")


def get_logger(name: Optional[str] = None) -> BoundLogger:
    """Return a logger bound with ``logger_name`` (the caller's module by default)."""
    return logger.bind(logger_name=name or _caller_module_name() or "unknown")


def get_module_logger() -> BoundLogger:
    """Return a logger bound with the calling module's component and path.

    Example:
        # in infrastructure/notifications/dispatcher.py
        logger = get_module_logger()
        # context: component="dispatcher",
        #          module_path="infrastructure.notifications.dispatcher"
    """
    module_name = _caller_module_name()
    if not module_name:
        return logger.bind(component="unknown")
    return logger.bind(
        component=module_name.rsplit(".", 1)[-1],
        module_path=module_name,
    )
