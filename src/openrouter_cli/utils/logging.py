"""
Logging utilities for openrouter-cli
"""
import logging
import sys

import structlog


def setup_logging(level: str = "WARNING"):
    """Setup structured logging on stderr so stdout carries only results"""
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level)
    logging.getLogger().setLevel(level)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def configure_default_logging():
    """
    Default for library use without setup_logging(): warnings and above,
    printed to stderr. Leaves an existing structlog configuration alone.
    """
    if structlog.is_configured():
        return

    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(logging.WARNING),
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
    )


def get_logger(name: str):
    """Get a structured logger instance"""
    return structlog.get_logger(name)
