"""
Base HTTP client shared by the backend and object-storage clients.

The client owns one ``aiohttp.ClientSession`` between ``start`` and
``stop`` and keeps request metrics for health reporting.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import aiohttp

from ...core.interfaces.lifecycle import IComponent

logger = logging.getLogger(__name__)


@dataclass
class ClientMetrics:
    """Client request metrics."""
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    total_response_time: float = 0.0
    max_response_time: float = 0.0
    bytes_sent: int = 0
    last_request_time: Optional[float] = None
    last_error: Optional[str] = None

    @property
    def average_response_time(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.total_response_time / self.total_requests

    @property
    def success_rate(self) -> float:
        """Calculate success rate percentage."""
        if self.total_requests == 0:
            return 100.0
        return (self.successful_requests / self.total_requests) * 100.0

    def record_request(self, success: bool, response_time: float, bytes_sent: int = 0) -> None:
        self.total_requests += 1
        self.total_response_time += response_time
        self.last_request_time = time.time()
        self.bytes_sent += bytes_sent

        if success:
            self.successful_requests += 1
        else:
            self.failed_requests += 1

        if response_time > self.max_response_time:
            self.max_response_time = response_time

    def record_error(self, error: str) -> None:
        self.last_error = error


class BaseHttpClient(IComponent):
    """aiohttp session holder with lifecycle and metrics."""

    def __init__(self, timeout: float, session: Optional[aiohttp.ClientSession] = None) -> None:
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None
        self._metrics = ClientMetrics()

    @property
    def metrics(self) -> ClientMetrics:
        return self._metrics

    @property
    def is_started(self) -> bool:
        return self._session is not None and not self._session.closed

    async def start(self) -> None:
        if self.is_started:
            return
        self._session = aiohttp.ClientSession(timeout=self._timeout)
        self._owns_session = True
        logger.debug(f"{self.name} started")

    async def stop(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None
        logger.debug(f"{self.name} stopped")

    async def check_health(self) -> Dict[str, Any]:
        return {
            'healthy': self.is_started,
            'status': 'running' if self.is_started else 'stopped',
            'details': {
                'total_requests': self._metrics.total_requests,
                'success_rate': self._metrics.success_rate,
                'average_response_time': self._metrics.average_response_time,
                'bytes_sent': self._metrics.bytes_sent,
                'last_error': self._metrics.last_error,
            }
        }

    def _require_session(self) -> aiohttp.ClientSession:
        if not self.is_started:
            raise RuntimeError(f"{self.name} is not started")
        return self._session  # type: ignore[return-value]
