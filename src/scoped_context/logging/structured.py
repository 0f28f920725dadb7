"""Development helper wiring structlog output to the scoped context.

The library never configures logging itself; applications own that. This
helper exists for local runs and the test suite, and shows the one processor
a host setup needs: ``structlog.contextvars.merge_contextvars``.
"""

from __future__ import annotations

import logging
import sys

import structlog

_FORMATS = ("json", "console")


def setup_logging(level: str = "INFO", fmt: str = "json", log_file: str = "") -> None:
    """Configure structlog and the root logger to render the scoped context.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        fmt: Output format - "json" or "console".
        log_file: Optional file path for log output. Empty = stdout only.

    Raises:
        ValueError: If ``fmt`` is not a known format.
    """
    if fmt not in _FORMATS:
        raise ValueError(f"Invalid log format: {fmt}. Must be one of {', '.join(_FORMATS)}")

    log_level = getattr(logging, level.upper(), logging.INFO)

    # merge_contextvars first so scoped keys reach every renderer
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if fmt == "console":
        renderer: structlog.types.Processor = structlog.dev.ConsoleRenderer(colors=False)
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
    )

    # foreign_pre_chain gives plain logging.getLogger() records the same context
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler: logging.Handler = (
        logging.FileHandler(log_file) if log_file else logging.StreamHandler(sys.stdout)
    )
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)
