"""
Upload engine interfaces.

This module defines the contracts between the protocol services and the
collaborators they drive: the backend that issues presigned URLs and keeps
the part ledger, the object storage that receives the bytes, and the local
key-value area that caches session identities.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from ..domain.cancellation import CancellationToken
from ..domain.models import (
    ChunkRange, PartRecord, PartTransferResult, RemoteUploadStatus, UploadSession
)


class IKeyValueStore(ABC):
    """
    Durable string key-value area local to one client instance.

    Implementations raise ``StoreUnavailableError`` when the area cannot be
    used. Each call must be atomic for its key.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        pass

    @abstractmethod
    def keys(self, prefix: str = "") -> List[str]:
        pass


class ISessionStore(ABC):
    """
    Fingerprint to session cache.

    All operations are best-effort and never raise: a failing backing store
    reads as "no session".
    """

    @abstractmethod
    def save(self, fingerprint: str, session: UploadSession) -> None:
        pass

    @abstractmethod
    def load(self, fingerprint: str) -> Optional[UploadSession]:
        pass

    @abstractmethod
    def remove(self, fingerprint: str) -> None:
        pass

    @abstractmethod
    def list_sessions(self) -> Dict[str, UploadSession]:
        pass


class IUploadBackend(ABC):
    """
    Backend endpoints that issue presigned targets and track parts.

    Every method raises ``BackendError`` on transport failure or a
    non-success response.
    """

    @abstractmethod
    async def sign_single_upload(self, file_name: str, file_type: str, key: str) -> str:
        """Get a presigned PUT URL for a whole file."""
        pass

    @abstractmethod
    async def start_multipart(
        self,
        file_name: str,
        file_type: str,
        project_id: str,
        file_size: int,
        chunk_size: int
    ) -> str:
        """Open a multipart upload and return its upload id."""
        pass

    @abstractmethod
    async def get_status(self, upload_id: str, project_id: str) -> RemoteUploadStatus:
        """Query the authoritative part ledger of an upload."""
        pass

    @abstractmethod
    async def sign_part(
        self,
        file_name: str,
        upload_id: str,
        part_number: int,
        project_id: str
    ) -> str:
        """Get a presigned PUT URL for one part."""
        pass

    @abstractmethod
    async def confirm_part(
        self,
        file_name: str,
        upload_id: str,
        part_number: int,
        token: str,
        project_id: str
    ) -> None:
        """Record a part's completion token with the backend."""
        pass

    @abstractmethod
    async def complete_multipart(
        self,
        file_name: str,
        upload_id: str,
        parts: List[PartRecord],
        project_id: str
    ) -> Optional[str]:
        """Assemble the final object; returns the backend's message, if any."""
        pass

    @abstractmethod
    async def abort_multipart(self, file_name: str, upload_id: str, project_id: str) -> None:
        """Release server-side resources of an upload."""
        pass


class IObjectStorage(ABC):
    """Direct transfer to storage-provider targets."""

    @abstractmethod
    async def put(self, url: str, data: bytes, content_type: str) -> Optional[str]:
        """
        PUT bytes to a presigned URL.

        Returns:
            The completion token (ETag header) or None if absent

        Raises:
            StorageTransferError: On transport failure or non-success status
        """
        pass


class IPartTransport(ABC):
    """Transfers one planned chunk end to end."""

    @abstractmethod
    async def transfer_part(
        self,
        upload_id: str,
        project_id: str,
        file_name: str,
        chunk: ChunkRange,
        data: bytes,
        cancel_token: CancellationToken
    ) -> PartTransferResult:
        pass

    @abstractmethod
    async def transfer_whole(
        self,
        url: str,
        data: bytes,
        content_type: str,
        cancel_token: CancellationToken
    ) -> Optional[str]:
        pass
