"""
Part transport: sign, transfer, capture token, confirm.

Each step fails independently. Signing and transfer failures propagate;
the confirm step is bookkeeping only and its failure is reported in the
result instead of raised.
"""

import asyncio
import logging
from typing import Awaitable, Optional, TypeVar

from ..domain.cancellation import CancellationToken
from ..domain.models import ChunkRange, PartTransferResult
from ..exceptions import BackendError, MissingCompletionTokenError, UploadCancelledError
from ..interfaces.upload import IObjectStorage, IPartTransport, IUploadBackend

logger = logging.getLogger(__name__)

T = TypeVar('T')

MB = 1024 * 1024


async def run_cancellable(operation: Awaitable[T], cancel_token: CancellationToken) -> T:
    """
    Await an operation unless the token fires first.

    On cancellation the operation is cancelled immediately and
    ``UploadCancelledError`` is raised, even if the operation happened to
    finish in the same loop iteration.
    """
    if cancel_token.cancelled:
        if asyncio.iscoroutine(operation):
            operation.close()
        cancel_token.raise_if_cancelled()

    task = asyncio.ensure_future(operation)
    waiter = asyncio.ensure_future(cancel_token.wait())
    try:
        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.cancel()
        raise
    finally:
        waiter.cancel()

    if cancel_token.cancelled:
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        raise UploadCancelledError(cancel_token.reason or "Upload cancelled")

    return task.result()


class PartTransport(IPartTransport):
    """Transfers planned chunks through presigned URLs."""

    def __init__(
        self,
        backend: IUploadBackend,
        storage: IObjectStorage,
        require_token: bool = True
    ) -> None:
        self._backend = backend
        self._storage = storage
        self._require_token = require_token

    async def transfer_part(
        self,
        upload_id: str,
        project_id: str,
        file_name: str,
        chunk: ChunkRange,
        data: bytes,
        cancel_token: CancellationToken
    ) -> PartTransferResult:
        """
        Upload one chunk and report it to the backend.

        Raises:
            BackendError: If the part could not be signed
            StorageTransferError: If the PUT failed, or returned no token
                while tokens are required
            UploadCancelledError: If the token fired before the PUT finished
        """
        part_number = chunk.part_number
        cancel_token.raise_if_cancelled()

        logger.debug(f"Requesting presigned URL for part {part_number}...")
        url = await run_cancellable(
            self._backend.sign_part(file_name, upload_id, part_number, project_id),
            cancel_token)

        logger.info(
            f"Uploading part {part_number} ({chunk.length / MB:.2f}MB: "
            f"{chunk.start_byte / MB:.2f}MB-{chunk.end_byte / MB:.2f}MB)...")
        token = await run_cancellable(
            self._storage.put(url, data, "application/octet-stream"),
            cancel_token)

        if not token:
            if self._require_token:
                raise MissingCompletionTokenError(part_number)
            logger.warning(f"Part {part_number} uploaded without an ETag")
            token = ""

        logger.info(f"Part {part_number} uploaded successfully (ETag: {token[:8]}...)")

        confirmed = await self._confirm(file_name, upload_id, part_number, token, project_id)
        return PartTransferResult(part_number=part_number, token=token, confirmed=confirmed)

    async def transfer_whole(
        self,
        url: str,
        data: bytes,
        content_type: str,
        cancel_token: CancellationToken
    ) -> Optional[str]:
        """PUT a whole file to a presigned URL."""
        return await run_cancellable(self._storage.put(url, data, content_type), cancel_token)

    async def _confirm(
        self,
        file_name: str,
        upload_id: str,
        part_number: int,
        token: str,
        project_id: str
    ) -> bool:
        try:
            await self._backend.confirm_part(file_name, upload_id, part_number, token, project_id)
        except BackendError as e:
            logger.warning(f"Failed to confirm part {part_number} to server: {e}")
            return False

        logger.debug(f"Part {part_number} confirmed on server")
        return True
