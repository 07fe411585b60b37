"""
Direct transfers to storage-provider presigned URLs.
"""

import asyncio
import logging
import time
from typing import Optional

import aiohttp

from ...core.exceptions import StorageTransferError
from ...core.interfaces.upload import IObjectStorage
from .base import BaseHttpClient

logger = logging.getLogger(__name__)


class ObjectStorageClient(BaseHttpClient, IObjectStorage):
    """
    PUTs raw bytes to presigned targets.

    No bearer credential is sent: the presigned URL carries its own
    authorization.
    """

    @property
    def name(self) -> str:
        return "ObjectStorageClient"

    async def put(self, url: str, data: bytes, content_type: str) -> Optional[str]:
        session = self._require_session()
        start_time = time.time()

        try:
            async with session.put(url, data=data, headers={"Content-Type": content_type}) as response:
                elapsed = time.time() - start_time
                if response.status >= 400:
                    text = await response.text()
                    self._metrics.record_request(False, elapsed)
                    self._metrics.record_error(f"PUT: HTTP {response.status}")
                    raise StorageTransferError(
                        f"Upload failed: {response.status} {text}",
                        status=response.status,
                        body=text)

                self._metrics.record_request(True, elapsed, bytes_sent=len(data))
                # CIMultiDict lookups are case-insensitive
                return response.headers.get("ETag")

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self._metrics.record_request(False, time.time() - start_time)
            self._metrics.record_error(f"PUT: {e!r}")
            raise StorageTransferError(f"Upload request failed: {e!r}") from e
