"""
Logging setup and configuration utilities.

Log records are written through loguru. Modules keep using
``logging.getLogger(__name__)``; an intercept handler on the root logger
forwards their records to the loguru sinks configured here.
"""

import logging
import sys
from pathlib import Path
from typing import Any, Dict

from loguru import logger as loguru_logger

from ..config.models import LoggingConfig
from ...core.interfaces.lifecycle import IComponent

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
    "{name}:{function}:{line} - {message}"
)


class InterceptHandler(logging.Handler):
    """Forwards standard-library log records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: Any = loguru_logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Walk out of the logging module so loguru reports the real caller
        frame = logging.currentframe()
        depth = 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        loguru_logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage())


def setup_logging(config: LoggingConfig) -> None:
    """
    Setup application logging with the given configuration.

    Args:
        config: Logging configuration
    """
    loguru_logger.remove()

    if config.console_enabled:
        loguru_logger.add(
            sys.stderr,
            format=CONSOLE_FORMAT,
            level=config.level,
            colorize=True,
            backtrace=True,
            diagnose=False
        )

    if config.file_enabled:
        log_dir = Path(config.log_directory)
        log_dir.mkdir(parents=True, exist_ok=True)
        loguru_logger.add(
            log_dir / "upload.log",
            format=FILE_FORMAT,
            level=config.level,
            rotation=config.max_file_size,
            retention=config.backup_count,
            compression="zip",
            backtrace=True,
            diagnose=False
        )

    logging.basicConfig(
        handlers=[InterceptHandler()],
        level=logging.getLevelName(config.level.upper()),
        force=True
    )
    # aiohttp's access chatter is not useful on a client
    logging.getLogger("aiohttp").setLevel(logging.WARNING)


class LoggingManager(IComponent):
    """Lifecycle wrapper that applies the logging configuration on start."""

    def __init__(self, config: LoggingConfig) -> None:
        self._config = config
        self._started = False
        self._logger = logging.getLogger(__name__)

    @property
    def name(self) -> str:
        return "LoggingManager"

    async def start(self) -> None:
        if self._started:
            return

        setup_logging(self._config)
        self._started = True
        self._logger.debug(f"Logging started at level {self._config.level}")

    async def stop(self) -> None:
        if not self._started:
            return

        await loguru_logger.complete()
        self._started = False

    async def check_health(self) -> Dict[str, Any]:
        log_dir = Path(self._config.log_directory)

        return {
            'healthy': True,
            'status': 'running' if self._started else 'stopped',
            'details': {
                'log_level': self._config.level,
                'log_directory': str(log_dir),
                'log_directory_exists': log_dir.exists(),
                'console_enabled': self._config.console_enabled,
                'file_enabled': self._config.file_enabled,
                'max_file_size': self._config.max_file_size,
                'backup_count': self._config.backup_count
            }
        }
