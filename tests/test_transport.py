"""
Tests for part transport and cancellable awaiting.
"""

import asyncio
from unittest.mock import Mock

import pytest

from multipart_relay.core.domain.cancellation import CancellationToken
from multipart_relay.core.domain.models import ChunkRange, PartTransferResult
from multipart_relay.core.exceptions import (
    BackendError, MissingCompletionTokenError, StorageTransferError, UploadCancelledError
)
from multipart_relay.core.services.transport import PartTransport, run_cancellable

CHUNK = ChunkRange(part_number=2, start_byte=10, end_byte=20)
DATA = b"x" * 10


class TestRunCancellable:
    """Test cases for run_cancellable()."""

    async def test_returns_result(self) -> None:
        async def work():
            return 42

        assert await run_cancellable(work(), CancellationToken()) == 42

    async def test_propagates_errors(self) -> None:
        async def work():
            raise ValueError("boom")

        with pytest.raises(ValueError):
            await run_cancellable(work(), CancellationToken())

    async def test_already_cancelled(self) -> None:
        token = CancellationToken()
        token.cancel("stop")
        started = []

        async def work():
            started.append(True)

        with pytest.raises(UploadCancelledError, match="stop"):
            await run_cancellable(work(), token)
        assert started == []

    async def test_cancel_interrupts_operation(self) -> None:
        token = CancellationToken()
        finished = []

        async def slow():
            await asyncio.sleep(10)
            finished.append(True)

        asyncio.get_running_loop().call_later(0.01, token.cancel)

        with pytest.raises(UploadCancelledError):
            await run_cancellable(slow(), token)
        assert finished == []


class TestPartTransport:
    """Test cases for PartTransport."""

    async def test_transfer_part(self, backend: Mock, storage: Mock) -> None:
        transport = PartTransport(backend, storage)

        result = await transport.transfer_part(
            "u-1", "project1", "clip.bin", CHUNK, DATA, CancellationToken())

        assert result == PartTransferResult(part_number=2, token='"etag-2"', confirmed=True)
        backend.sign_part.assert_awaited_once_with("clip.bin", "u-1", 2, "project1")
        storage.put.assert_awaited_once_with(
            "https://storage.test/u-1/part/2", DATA, "application/octet-stream")
        backend.confirm_part.assert_awaited_once_with(
            "clip.bin", "u-1", 2, '"etag-2"', "project1")

    async def test_confirm_failure_is_reported(self, backend: Mock, storage: Mock) -> None:
        backend.confirm_part.side_effect = BackendError("down", status=503)
        transport = PartTransport(backend, storage)

        result = await transport.transfer_part(
            "u-1", "project1", "clip.bin", CHUNK, DATA, CancellationToken())

        assert result.confirmed is False
        assert result.token == '"etag-2"'

    async def test_sign_failure_propagates(self, backend: Mock, storage: Mock) -> None:
        backend.sign_part.side_effect = BackendError("denied", status=403)
        transport = PartTransport(backend, storage)

        with pytest.raises(BackendError):
            await transport.transfer_part(
                "u-1", "project1", "clip.bin", CHUNK, DATA, CancellationToken())
        storage.put.assert_not_called()

    async def test_put_failure_propagates(self, backend: Mock, storage: Mock) -> None:
        storage.put.side_effect = StorageTransferError("expired", status=403)
        transport = PartTransport(backend, storage)

        with pytest.raises(StorageTransferError):
            await transport.transfer_part(
                "u-1", "project1", "clip.bin", CHUNK, DATA, CancellationToken())
        backend.confirm_part.assert_not_called()

    async def test_missing_token_raises(self, backend: Mock, storage: Mock) -> None:
        storage.put.side_effect = None
        storage.put.return_value = None
        transport = PartTransport(backend, storage)

        with pytest.raises(MissingCompletionTokenError) as exc_info:
            await transport.transfer_part(
                "u-1", "project1", "clip.bin", CHUNK, DATA, CancellationToken())
        assert exc_info.value.part_number == 2
        backend.confirm_part.assert_not_called()

    async def test_missing_token_allowed(self, backend: Mock, storage: Mock) -> None:
        storage.put.side_effect = None
        storage.put.return_value = None
        transport = PartTransport(backend, storage, require_token=False)

        result = await transport.transfer_part(
            "u-1", "project1", "clip.bin", CHUNK, DATA, CancellationToken())

        assert result.token == ""
        backend.confirm_part.assert_awaited_once_with("clip.bin", "u-1", 2, "", "project1")

    async def test_cancel_during_put_skips_confirm(self, backend: Mock, storage: Mock) -> None:
        """A part interrupted mid-transfer is never confirmed."""
        token = CancellationToken()

        async def hanging_put(url, data, content_type):
            token.cancel()
            await asyncio.sleep(10)
            return '"late"'

        storage.put.side_effect = hanging_put
        transport = PartTransport(backend, storage)

        with pytest.raises(UploadCancelledError):
            await transport.transfer_part("u-1", "project1", "clip.bin", CHUNK, DATA, token)
        backend.confirm_part.assert_not_called()

    async def test_cancelled_before_start(self, backend: Mock, storage: Mock) -> None:
        token = CancellationToken()
        token.cancel()
        transport = PartTransport(backend, storage)

        with pytest.raises(UploadCancelledError):
            await transport.transfer_part("u-1", "project1", "clip.bin", CHUNK, DATA, token)
        backend.sign_part.assert_not_called()

    async def test_transfer_whole(self, backend: Mock, storage: Mock) -> None:
        transport = PartTransport(backend, storage)

        token = await transport.transfer_whole(
            "https://storage.test/single", b"abc", "text/plain", CancellationToken())

        assert token == '"etag-single"'
        storage.put.assert_awaited_once_with("https://storage.test/single", b"abc", "text/plain")
