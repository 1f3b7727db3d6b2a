"""
Observability module for simplq.

Provides structured logging via structlog.
"""

from simplq.observability.logging import get_logger, setup_logging

__all__ = [
    "get_logger",
    "setup_logging",
]
