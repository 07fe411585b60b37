"""
Exception hierarchy for the upload engine.

Errors fall into four groups: transport errors raised by the backend or the
object storage, mismatch errors that invalidate a cached session,
cancellation, and completion refusals. Best-effort failures (confirm-part,
local store access) never surface as exceptions to callers of the engine.
"""

from typing import Optional


class UploadError(Exception):
    """Base class for all upload engine errors."""

    def __init__(self, message: str, error_code: str = "UPLOAD_ERROR") -> None:
        self.message = message
        self.error_code = error_code
        super().__init__(self.message)


class BackendError(UploadError):
    """A backend endpoint failed or answered with a non-success status.

    ``status`` is ``None`` when the request never produced a response
    (connection refused, DNS failure, timeout).
    """

    def __init__(self, message: str, status: Optional[int] = None, body: str = "") -> None:
        super().__init__(message, "BACKEND_ERROR")
        self.status = status
        self.body = body


class StorageTransferError(UploadError):
    """The direct PUT to a presigned storage target failed."""

    def __init__(self, message: str, status: Optional[int] = None, body: str = "") -> None:
        super().__init__(message, "STORAGE_TRANSFER_ERROR")
        self.status = status
        self.body = body


class MissingCompletionTokenError(StorageTransferError):
    """The storage target accepted a part but returned no completion token."""

    def __init__(self, part_number: int) -> None:
        super().__init__(
            f"Storage response for part {part_number} carried no ETag")
        self.error_code = "MISSING_COMPLETION_TOKEN"
        self.part_number = part_number


class SessionMismatchError(UploadError):
    """The cached session and the backend disagree about the file."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "SESSION_MISMATCH")


class UploadCancelledError(UploadError):
    """The upload was cancelled by the caller."""

    def __init__(self, message: str = "Upload cancelled") -> None:
        super().__init__(message, "UPLOAD_CANCELLED")


class IncompletePartsError(UploadError):
    """Completion was refused because some parts have no completion token."""

    def __init__(self, missing_parts: list) -> None:
        super().__init__(
            f"Cannot complete upload, parts without token: {missing_parts}",
            "INCOMPLETE_PARTS")
        self.missing_parts = missing_parts


class StoreUnavailableError(UploadError):
    """The local key-value area cannot be read or written."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "STORE_UNAVAILABLE")
