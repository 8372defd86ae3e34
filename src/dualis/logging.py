"""Structured logging for the client, built on structlog.

Events render as JSON lines (DUALIS_LOG_JSON=true) or as console output.
Records of standard library loggers such as httpx pass through the same
renderer, so one stream carries everything. Credentials never appear in
events.

Nothing is configured on import; applications call setup_logging() once or
construct DualisClient(configure_logging=True).
"""

import logging
import sys

import structlog

# Loggers that report every request at INFO
NOISY_LOGGERS: tuple[str, ...] = ("httpx", "httpcore")


def _shared_processors() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]


def _final_processors(json_output: bool) -> list:
    if json_output:
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [structlog.dev.ConsoleRenderer()]


def setup_logging(json_output: bool = False, log_level: str = "INFO") -> None:
    """Route structlog and stdlib logging through one stdout handler.

    Args:
        json_output: Render JSON lines instead of console output.
        log_level: Name of the root level (DEBUG, INFO, WARNING, ...).
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_shared_processors(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_shared_processors(),
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *_final_processors(json_output),
        ],
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(name: str) -> structlog.BoundLogger:
    """Logger bound to name (usually the calling module's __name__)."""
    return structlog.get_logger(name)
