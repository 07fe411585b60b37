"""
Logging infrastructure for the application.
"""

from .setup import setup_logging, LoggingManager, InterceptHandler

__all__ = [
    "setup_logging",
    "LoggingManager",
    "InterceptHandler",
]
