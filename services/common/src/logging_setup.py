# =============================================================================
# GIC Common - Logging Configuration
# =============================================================================
"""Structured logging shared by the FastAPI apps and the Lambda handlers."""

import logging

import structlog


def configure_logging(log_level: str = "INFO") -> None:
    """
    Configure structured logging with structlog.
    
    Sets up JSON-formatted logs suitable for CloudWatch and local
    development. Safe to call more than once.
    
    Args:
        log_level: Name of the stdlib level to filter at
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(format="%(message)s", level=level)
    root_logger.setLevel(level)
    
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
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
