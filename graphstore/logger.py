import structlog
from structlog.typing import FilteringBoundLogger

import logging
import sys


def setup_structlog(
    log_level: str = "INFO",
    json_logs: bool = True,
    include_timestamp: bool = True,
    capture_warnings: bool = True,
) -> None:
    """
    Configure structlog for the graph store client.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Whether to output logs in JSON format
        include_timestamp: Whether to include timestamps in logs
        capture_warnings: Route ``warnings.warn`` output (insecure TLS,
            transport fallback) through the ``py.warnings`` logger as well
    """

    # Events go to stderr, stdout is left to the application
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level.upper()),
    )
    logging.captureWarnings(capture_warnings)

    processors = [
        # Drop events below the stdlib level before any rendering work
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        # graphstore.networking... / graphstore.store... tells transport and
        # dataset events apart
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.LINENO,
            ]
        ),
    ]

    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="ISO", utc=True))

    if json_logs:
        # One JSON object per line, failures carry a structured traceback
        processors.extend(
            [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
        )
    else:
        # Plain console output, no ANSI codes in redirected stderr
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> FilteringBoundLogger:
    """Get a structured logger instance, e.g. ``get_logger(__name__)``."""
    return structlog.get_logger(name)
