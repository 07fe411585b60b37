"""
Shared fixtures for the upload engine tests.
"""

import os
from pathlib import Path
from typing import Callable, Dict, Optional
from unittest.mock import AsyncMock, Mock

import pytest

from multipart_relay.core.domain.files import LocalFile
from multipart_relay.core.domain.models import RemoteUploadStatus
from multipart_relay.core.interfaces.upload import IObjectStorage, IUploadBackend
from multipart_relay.infrastructure.storage.kv import MemoryKeyValueStore
from multipart_relay.infrastructure.storage.session_store import LocalSessionStore


@pytest.fixture
def make_file(tmp_path: Path) -> Callable[..., LocalFile]:
    """Create a file of a given size filled with a repeating byte pattern."""

    def _make(size: int, name: str = "data.bin", mtime: Optional[float] = None) -> LocalFile:
        path = tmp_path / name
        path.write_bytes(bytes(i % 251 for i in range(size)))
        if mtime is not None:
            os.utime(path, (mtime, mtime))
        return LocalFile.from_path(path)

    return _make


@pytest.fixture
def session_store() -> LocalSessionStore:
    return LocalSessionStore(MemoryKeyValueStore())


@pytest.fixture
def remote_status() -> Dict[str, object]:
    """Mutable backend status used by the mock backend's get_status."""
    return {"file_name": None, "file_size": None, "parts": {}}


@pytest.fixture
def backend(remote_status: Dict[str, object]) -> Mock:
    """Mock backend handing out predictable presigned URLs."""
    mock_backend = Mock(spec=IUploadBackend)
    mock_backend.sign_single_upload = AsyncMock(return_value="https://storage.test/single")
    mock_backend.start_multipart = AsyncMock(return_value="upload-new")
    mock_backend.get_status = AsyncMock(
        side_effect=lambda upload_id, project_id: RemoteUploadStatus(
            file_name=remote_status["file_name"],  # type: ignore[arg-type]
            file_size=remote_status["file_size"],  # type: ignore[arg-type]
            parts=dict(remote_status["parts"])))  # type: ignore[call-overload]
    mock_backend.sign_part = AsyncMock(
        side_effect=lambda file_name, upload_id, part_number, project_id:
            f"https://storage.test/{upload_id}/part/{part_number}")
    mock_backend.confirm_part = AsyncMock(return_value=None)
    mock_backend.complete_multipart = AsyncMock(return_value="Upload completed")
    mock_backend.abort_multipart = AsyncMock(return_value=None)
    return mock_backend


@pytest.fixture
def storage() -> Mock:
    """Mock object storage returning an ETag derived from the URL."""
    mock_storage = Mock(spec=IObjectStorage)
    mock_storage.put = AsyncMock(
        side_effect=lambda url, data, content_type: f'"etag-{url.rsplit("/", 1)[-1]}"')
    return mock_storage
