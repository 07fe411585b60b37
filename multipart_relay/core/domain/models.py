"""
Domain models for resumable multipart uploads.

This module defines the records exchanged between the fingerprint generator,
the session store, the reconciler, the planner, the part transport and the
orchestrator.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class TransferState(Enum):
    """Lifecycle of one orchestrated upload."""
    IDLE = "idle"
    PLANNING = "planning"
    TRANSFERRING = "transferring"
    COMPLETING = "completing"
    ABORTING = "aborting"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TransferState.DONE, TransferState.FAILED)


class UploadStrategy(Enum):
    """How a file is sent to object storage."""
    SINGLE = "single"
    MULTIPART = "multipart"


@dataclass(frozen=True)
class UploadSession:
    """
    Locally cached record of an in-progress multipart upload.

    Only identifies which upload id to ask the backend about; the backend's
    part ledger stays authoritative.
    """
    upload_id: str
    file_name: str
    file_size: int
    chunk_size: int
    project_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "upload_id": self.upload_id,
            "file_name": self.file_name,
            "file_size": self.file_size,
            "chunk_size": self.chunk_size,
            "project_id": self.project_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UploadSession':
        """Build a session from its persisted form.

        Raises:
            KeyError, TypeError, ValueError: if the record is malformed
        """
        return cls(
            upload_id=str(data["upload_id"]),
            file_name=str(data["file_name"]),
            file_size=int(data["file_size"]),
            chunk_size=int(data["chunk_size"]),
            project_id=str(data["project_id"]),
        )

    def matches(self, file_name: str, file_size: int, chunk_size: int, project_id: str) -> bool:
        """Check whether a new attempt may resume this session."""
        return (
            self.file_name == file_name
            and self.file_size == file_size
            and self.chunk_size == chunk_size
            and self.project_id == project_id
        )


@dataclass(frozen=True)
class PartRecord:
    """A part and the completion token the storage provider issued for it."""
    part_number: int
    token: str

    def to_wire(self) -> Dict[str, Any]:
        return {"PartNumber": self.part_number, "ETag": self.token}


@dataclass(frozen=True)
class ChunkRange:
    """Half-open byte range ``[start_byte, end_byte)`` for one part."""
    part_number: int
    start_byte: int
    end_byte: int

    @property
    def length(self) -> int:
        return self.end_byte - self.start_byte


@dataclass(frozen=True)
class ReconcileResult:
    """Outcome of a successful resume check."""
    upload_id: str
    confirmed_parts: Dict[int, str] = field(default_factory=dict)


@dataclass(frozen=True)
class PartTransferResult:
    """Outcome of transferring one part.

    ``confirmed`` is False when the best-effort confirm call failed; the
    bytes and token are still valid.
    """
    part_number: int
    token: str
    confirmed: bool


@dataclass(frozen=True)
class RemoteUploadStatus:
    """Backend view of a multipart upload."""
    file_name: Optional[str]
    file_size: Optional[int]
    parts: Dict[int, str] = field(default_factory=dict)


@dataclass
class UploadProgress:
    """Progress snapshot handed to progress callbacks."""
    file_name: str
    bytes_uploaded: int
    total_bytes: int
    part_number: Optional[int] = None
    parts_total: int = 1
    skipped: bool = False

    @property
    def percentage(self) -> float:
        """Calculate upload progress percentage."""
        if self.total_bytes == 0:
            return 100.0
        return (self.bytes_uploaded / self.total_bytes) * 100.0


@dataclass
class UploadResult:
    """Summary of a finished upload."""
    file_name: str
    file_size: int
    strategy: UploadStrategy
    upload_id: Optional[str] = None
    parts: List[PartRecord] = field(default_factory=list)
    parts_skipped: int = 0
    parts_uploaded: int = 0
    resumed: bool = False
    message: Optional[str] = None


@dataclass
class SessionStatus:
    """Local and remote view of a cached session, for status reporting."""
    fingerprint: str
    session: UploadSession
    remote: Optional[RemoteUploadStatus] = None
    remote_error: Optional[str] = None
    parts_total: int = 0

    @property
    def parts_confirmed(self) -> int:
        if self.remote is None:
            return 0
        return len(self.remote.parts)
