"""
Multipart Relay - resumable multipart uploads to object storage through
presigned URLs.

The engine fingerprints a local file, reconciles cached progress with the
backend's part ledger, splits the file into ordered byte ranges and uploads
each one through a presigned URL, then completes or aborts the upload.
"""

__version__ = "0.1.0"

from .core.domain import (
    CancellationToken, ChunkRange, LocalFile, PartRecord, TransferState,
    UploadProgress, UploadResult, UploadSession, UploadStrategy
)
from .core.exceptions import (
    BackendError, IncompletePartsError, MissingCompletionTokenError,
    SessionMismatchError, StorageTransferError, UploadCancelledError, UploadError
)
from .core.services import PartTransport, SessionReconciler, UploadOrchestrator, fingerprint, plan
from .application.startup import UploadApplication

__all__ = [
    "CancellationToken",
    "ChunkRange",
    "LocalFile",
    "PartRecord",
    "TransferState",
    "UploadProgress",
    "UploadResult",
    "UploadSession",
    "UploadStrategy",
    "BackendError",
    "IncompletePartsError",
    "MissingCompletionTokenError",
    "SessionMismatchError",
    "StorageTransferError",
    "UploadCancelledError",
    "UploadError",
    "PartTransport",
    "SessionReconciler",
    "UploadOrchestrator",
    "fingerprint",
    "plan",
    "UploadApplication",
]
