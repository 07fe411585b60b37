"""
Session reconciliation between the local cache and the backend ledger.

The local session only says which upload id to ask about. Whatever the
backend reports is authoritative, and any doubt resolves to starting over
rather than risking a mismatched assembly.
"""

import logging
from typing import Dict, Optional

from ..domain.files import LocalFile
from ..domain.models import ReconcileResult, RemoteUploadStatus
from ..exceptions import BackendError
from ..interfaces.upload import ISessionStore, IUploadBackend
from .planner import part_count

logger = logging.getLogger(__name__)


def remote_mismatch(remote: RemoteUploadStatus, file: LocalFile) -> Optional[str]:
    """Describe how the backend's record disagrees with a file, if it does.

    Fields the backend leaves empty are not compared.
    """
    if remote.file_name and remote.file_name != file.name:
        return f"server file name {remote.file_name!r} != {file.name!r}"
    if remote.file_size and remote.file_size != file.size:
        return f"server file size {remote.file_size} != {file.size}"
    return None


def confirmed_parts(parts: Dict[int, str], file_size: int, chunk_size: int) -> Dict[int, str]:
    """Keep only ledger entries that name a planned part and carry a token."""
    total = part_count(file_size, chunk_size)
    confirmed = {}
    for part_number, token in parts.items():
        if not token:
            continue
        if not 1 <= part_number <= total:
            logger.warning(f"Ignoring server part {part_number} outside 1..{total}")
            continue
        confirmed[part_number] = token
    return confirmed


class SessionReconciler:
    """Decides whether a cached session can be resumed."""

    def __init__(self, session_store: ISessionStore, backend: IUploadBackend) -> None:
        self._store = session_store
        self._backend = backend

    async def reconcile(
        self,
        fingerprint: str,
        file: LocalFile,
        chunk_size: int,
        project_id: str
    ) -> Optional[ReconcileResult]:
        """
        Find a resumable session for a file.

        Args:
            fingerprint: Local resumption key of the file
            file: The file being uploaded
            chunk_size: Chunk size of the current attempt in bytes
            project_id: Owning project of the current attempt

        Returns:
            The upload id and the server's confirmed parts, or None when the
            upload must start fresh. Every None path except "nothing cached"
            removes the local session.
        """
        session = self._store.load(fingerprint)
        if session is None:
            return None

        if not session.matches(file.name, file.size, chunk_size, project_id):
            logger.info(
                "Local upload state does not match current project, file, size, "
                "or chunk size. Starting new upload.")
            self._store.remove(fingerprint)
            return None

        logger.info(f"Found local upload id {session.upload_id}, checking server status...")
        try:
            remote = await self._backend.get_status(session.upload_id, project_id)
        except BackendError as e:
            logger.warning(f"Server status check failed, starting a new upload: {e}")
            self._store.remove(fingerprint)
            return None

        mismatch = remote_mismatch(remote, file)
        if mismatch:
            logger.warning(f"Server upload state mismatch ({mismatch}). Starting new upload.")
            self._store.remove(fingerprint)
            return None

        parts = confirmed_parts(remote.parts, file.size, chunk_size)
        logger.info(
            f"Server reported {len(parts)}/{part_count(file.size, chunk_size)} "
            f"parts already uploaded")
        return ReconcileResult(upload_id=session.upload_id, confirmed_parts=parts)
