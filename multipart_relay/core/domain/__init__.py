"""
Domain models for the upload engine.
"""

from .models import (
    TransferState, UploadStrategy, UploadSession, PartRecord, ChunkRange,
    ReconcileResult, PartTransferResult, RemoteUploadStatus, UploadProgress,
    UploadResult, SessionStatus
)
from .files import LocalFile
from .cancellation import CancellationToken

__all__ = [
    "TransferState",
    "UploadStrategy",
    "UploadSession",
    "PartRecord",
    "ChunkRange",
    "ReconcileResult",
    "PartTransferResult",
    "RemoteUploadStatus",
    "UploadProgress",
    "UploadResult",
    "SessionStatus",
    "LocalFile",
    "CancellationToken",
]
