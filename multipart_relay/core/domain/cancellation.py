"""
Cooperative cancellation shared by the orchestrator and the transport.
"""

import asyncio
from typing import Optional

from ..exceptions import UploadCancelledError


class CancellationToken:
    """
    A one-shot cancellation flag.

    The orchestrator checks it before each chunk and the transport races
    the in-flight PUT against ``wait()``. Once raised it stays raised.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: str = "Upload cancelled by user") -> None:
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise UploadCancelledError(self._reason or "Upload cancelled")

    async def wait(self) -> None:
        await self._event.wait()
