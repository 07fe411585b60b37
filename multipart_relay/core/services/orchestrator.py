"""
Upload orchestrator: the top-level state machine of one upload.

The orchestrator picks the single-shot or multipart strategy, resumes or
opens a multipart session, transfers parts strictly sequentially in
ascending order, and finalizes or aborts. Nothing is retried here; after
any failure it is safe to call ``upload`` again for the same file, because
the starting point is recomputed from the backend's part ledger.
"""

import asyncio
import logging
from typing import Callable, Dict, List, Optional

from ..domain.cancellation import CancellationToken
from ..domain.files import LocalFile
from ..domain.models import (
    PartRecord, SessionStatus, TransferState, UploadProgress, UploadResult,
    UploadSession, UploadStrategy
)
from ..exceptions import (
    BackendError, IncompletePartsError, SessionMismatchError, UploadCancelledError
)
from ..interfaces.upload import IPartTransport, ISessionStore, IUploadBackend
from .fingerprint import fingerprint
from .planner import part_count, plan
from .reconciler import SessionReconciler, confirmed_parts, remote_mismatch
from .transport import MB, run_cancellable

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[UploadProgress], None]

DEFAULT_CHUNK_SIZE = 64 * MB
DEFAULT_MULTIPART_THRESHOLD = 128 * MB
DEFAULT_KEY_TEMPLATE = "data/org1/{project_id}/input"


def choose_strategy(file_size: int, chunk_size: int, multipart_threshold: int) -> UploadStrategy:
    """Files below ``max(threshold, 2 * chunk_size)`` go in one PUT."""
    if file_size < max(multipart_threshold, 2 * chunk_size):
        return UploadStrategy.SINGLE
    return UploadStrategy.MULTIPART


class UploadOrchestrator:
    """
    Drives one upload at a time through
    ``idle -> planning -> transferring -> completing -> done``, with
    ``aborting`` and ``failed`` on cancellation or error.
    """

    def __init__(
        self,
        backend: IUploadBackend,
        transport: IPartTransport,
        session_store: ISessionStore,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        multipart_threshold: int = DEFAULT_MULTIPART_THRESHOLD,
        key_template: str = DEFAULT_KEY_TEMPLATE
    ) -> None:
        self._backend = backend
        self._transport = transport
        self._store = session_store
        self._reconciler = SessionReconciler(session_store, backend)
        self._chunk_size = chunk_size
        self._multipart_threshold = multipart_threshold
        self._key_template = key_template

        self._state = TransferState.IDLE
        self._cancel_token = CancellationToken()
        self._cancelled = False
        self._last_error: Optional[str] = None

        # Identity of the active multipart upload, needed to abort it
        self._fingerprint: Optional[str] = None
        self._upload_id: Optional[str] = None
        self._file_name: Optional[str] = None
        self._project_id: Optional[str] = None

    @property
    def state(self) -> TransferState:
        return self._state

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    @property
    def is_active(self) -> bool:
        return self._state not in (TransferState.IDLE, TransferState.DONE, TransferState.FAILED)

    def cancel(self, reason: str = "Upload cancelled by user") -> None:
        """Request cooperative cancellation of the running upload, or of the next one."""
        if self.is_active:
            logger.info(reason)
        self._cancel_token.cancel(reason)

    async def upload(
        self,
        file: LocalFile,
        project_id: str,
        chunk_size: Optional[int] = None,
        progress_callback: Optional[ProgressCallback] = None
    ) -> UploadResult:
        """
        Upload a file, resuming a previous multipart attempt when possible.

        Args:
            file: File to upload
            project_id: Owning project
            chunk_size: Part size in bytes (defaults to the configured one)
            progress_callback: Called after every skipped or transferred part

        Returns:
            Summary of the finished upload

        Raises:
            UploadCancelledError: If ``cancel`` was called; the backend
                session is aborted and the local session removed
            SessionMismatchError: If the backend disagrees with the file;
                the local session is removed
            UploadError: On any other failure; the local session is kept
        """
        if self.is_active:
            raise RuntimeError("An upload is already running on this orchestrator")

        chunk_size = chunk_size or self._chunk_size
        self._reset()
        self._state = TransferState.PLANNING

        try:
            strategy = choose_strategy(file.size, chunk_size, self._multipart_threshold)
            if strategy is UploadStrategy.SINGLE:
                result = await self._upload_single(file, project_id, progress_callback)
            else:
                result = await self._upload_multipart(
                    file, project_id, chunk_size, progress_callback)

        except UploadCancelledError as e:
            self._last_error = str(e)
            await asyncio.shield(self._abort_active())
            raise

        except asyncio.CancelledError:
            # The calling task was cancelled, e.g. by asyncio.wait_for
            self._cancel_token.cancel("Upload interrupted")
            self._last_error = "Upload interrupted"
            await asyncio.shield(self._abort_active())
            raise

        except SessionMismatchError as e:
            self._last_error = str(e)
            self._state = TransferState.FAILED
            logger.error(f"Upload of {file.name} failed: {e}")
            if self._fingerprint:
                self._store.remove(self._fingerprint)
            raise

        except Exception as e:
            self._last_error = str(e)
            self._state = TransferState.FAILED
            logger.error(f"Upload of {file.name} failed: {e}")
            raise

        finally:
            # Fresh token per run; a cancel() made before the next run starts still reaches it
            self._cancel_token = CancellationToken()

        self._state = TransferState.DONE
        return result

    async def abort_saved(self, file: LocalFile, project_id: Optional[str] = None) -> bool:
        """
        Abort the cached multipart session of a file without uploading.

        Returns:
            True if a session existed and the backend accepted the abort
        """
        key = fingerprint(file)
        session = self._store.load(key)
        if session is None:
            return False

        try:
            await self._backend.abort_multipart(
                session.file_name, session.upload_id, project_id or session.project_id)
        except BackendError as e:
            logger.warning(f"Failed to abort server-side upload {session.upload_id}: {e}")
            return False

        self._store.remove(key)
        logger.info(f"Server-side multipart {session.upload_id} aborted and local state removed")
        return True

    async def describe(self, file: LocalFile) -> Optional[SessionStatus]:
        """Report the cached session of a file and the backend's view of it."""
        key = fingerprint(file)
        session = self._store.load(key)
        if session is None:
            return None

        status = SessionStatus(
            fingerprint=key,
            session=session,
            parts_total=part_count(session.file_size, session.chunk_size))
        try:
            status.remote = await self._backend.get_status(session.upload_id, session.project_id)
        except BackendError as e:
            status.remote_error = str(e)
        return status

    def _reset(self) -> None:
        self._cancelled = False
        self._last_error = None
        self._fingerprint = None
        self._upload_id = None
        self._file_name = None
        self._project_id = None

    async def _upload_single(
        self,
        file: LocalFile,
        project_id: str,
        progress_callback: Optional[ProgressCallback]
    ) -> UploadResult:
        logger.info(f"Single upload: {file.name} ({file.size / MB:.2f}MB)")
        key = self._key_template.format(project_id=project_id, file_name=file.name)

        url = await run_cancellable(
            self._backend.sign_single_upload(file.name, file.content_type, key),
            self._cancel_token)

        self._state = TransferState.TRANSFERRING
        data = await file.read_all()
        await self._transport.transfer_whole(url, data, file.content_type, self._cancel_token)

        self._report(progress_callback, UploadProgress(
            file_name=file.name, bytes_uploaded=file.size, total_bytes=file.size,
            part_number=1, parts_total=1))
        logger.info(f"Single upload of {file.name} completed")

        return UploadResult(
            file_name=file.name,
            file_size=file.size,
            strategy=UploadStrategy.SINGLE,
            parts_uploaded=1)

    async def _upload_multipart(
        self,
        file: LocalFile,
        project_id: str,
        chunk_size: int,
        progress_callback: Optional[ProgressCallback]
    ) -> UploadResult:
        total_parts = part_count(file.size, chunk_size)
        logger.info(
            f"Starting multipart upload: {file.name} ({file.size / MB:.2f}MB, "
            f"{total_parts} chunks of {chunk_size / MB:.2f}MB each)")

        key = fingerprint(file)
        self._fingerprint = key
        self._file_name = file.name
        self._project_id = project_id

        reconciled = await run_cancellable(
            self._reconciler.reconcile(key, file, chunk_size, project_id),
            self._cancel_token)

        if reconciled is not None:
            upload_id = reconciled.upload_id
            tokens: Dict[int, str] = dict(reconciled.confirmed_parts)
        else:
            upload_id = await run_cancellable(
                self._backend.start_multipart(
                    file.name, file.content_type, project_id, file.size, chunk_size),
                self._cancel_token)
            self._store.save(key, UploadSession(
                upload_id=upload_id,
                file_name=file.name,
                file_size=file.size,
                chunk_size=chunk_size,
                project_id=project_id))
            tokens = {}
            logger.info(f"Received upload id: {upload_id}")

        self._upload_id = upload_id
        already_confirmed = set(tokens)

        self._state = TransferState.TRANSFERRING
        uploaded_bytes = 0
        skipped = 0
        needs_verification = False

        for chunk in plan(file.size, chunk_size):
            if chunk.part_number in already_confirmed:
                uploaded_bytes += chunk.length
                skipped += 1
                logger.info(
                    f"Skipping part {chunk.part_number}/{total_parts} "
                    f"({chunk.length / MB:.2f}MB) - already uploaded")
                self._report(progress_callback, UploadProgress(
                    file_name=file.name, bytes_uploaded=uploaded_bytes,
                    total_bytes=file.size, part_number=chunk.part_number,
                    parts_total=total_parts, skipped=True))
                continue

            self._cancel_token.raise_if_cancelled()

            data = await file.read_range(chunk.start_byte, chunk.end_byte)
            result = await self._transport.transfer_part(
                upload_id, project_id, file.name, chunk, data, self._cancel_token)

            tokens[chunk.part_number] = result.token
            if not result.confirmed or not result.token:
                needs_verification = True

            uploaded_bytes += chunk.length
            progress = UploadProgress(
                file_name=file.name, bytes_uploaded=uploaded_bytes,
                total_bytes=file.size, part_number=chunk.part_number,
                parts_total=total_parts)
            logger.info(
                f"Progress: {progress.percentage:.0f}% "
                f"({uploaded_bytes / MB:.2f}MB/{file.size / MB:.2f}MB)")
            self._report(progress_callback, progress)

        self._state = TransferState.COMPLETING

        if file.has_changed():
            raise SessionMismatchError(f"{file.name} changed while it was being uploaded")

        if needs_verification:
            tokens = await self._verify_parts(file, upload_id, project_id, chunk_size, tokens)

        parts = self._ordered_parts(tokens, total_parts)

        logger.info("Completing multipart upload...")
        message = await run_cancellable(
            self._backend.complete_multipart(file.name, upload_id, parts, project_id),
            self._cancel_token)
        self._store.remove(key)
        logger.info(
            f"Upload finished: {file.name} ({file.size / MB:.2f}MB)"
            + (f" - {message}" if message else ""))

        return UploadResult(
            file_name=file.name,
            file_size=file.size,
            strategy=UploadStrategy.MULTIPART,
            upload_id=upload_id,
            parts=parts,
            parts_skipped=skipped,
            parts_uploaded=total_parts - skipped,
            resumed=reconciled is not None,
            message=message)

    async def _verify_parts(
        self,
        file: LocalFile,
        upload_id: str,
        project_id: str,
        chunk_size: int,
        tokens: Dict[int, str]
    ) -> Dict[int, str]:
        """Re-read the ledger after a confirm failure; server tokens win."""
        logger.info("Some parts were not confirmed, re-checking server status before completing")
        remote = await run_cancellable(
            self._backend.get_status(upload_id, project_id), self._cancel_token)

        mismatch = remote_mismatch(remote, file)
        if mismatch:
            raise SessionMismatchError(f"Server upload state mismatch: {mismatch}")

        merged = dict(tokens)
        for part_number, token in confirmed_parts(remote.parts, file.size, chunk_size).items():
            if merged.get(part_number) and merged[part_number] != token:
                logger.warning(
                    f"Server token for part {part_number} differs from the uploaded one, "
                    f"using the server's")
            merged[part_number] = token
        return merged

    @staticmethod
    def _ordered_parts(tokens: Dict[int, str], total_parts: int) -> List[PartRecord]:
        missing = [n for n in range(1, total_parts + 1) if not tokens.get(n)]
        if missing:
            raise IncompletePartsError(missing)
        return [PartRecord(n, tokens[n]) for n in range(1, total_parts + 1)]

    async def _abort_active(self) -> None:
        """Release the backend session and forget it locally."""
        self._state = TransferState.ABORTING
        self._cancelled = True

        if self._upload_id is None and self._fingerprint:
            # Cancelled while reconciling: abort whatever session was cached
            session = self._store.load(self._fingerprint)
            if session is not None:
                self._upload_id = session.upload_id

        if self._fingerprint:
            self._store.remove(self._fingerprint)

        upload_id, file_name, project_id = self._upload_id, self._file_name, self._project_id
        if upload_id and file_name and project_id:
            try:
                await self._backend.abort_multipart(file_name, upload_id, project_id)
                logger.info(f"Server-side multipart {upload_id} aborted")
            except BackendError as e:
                logger.warning(f"Failed to abort server-side upload {upload_id}: {e}")

        self._state = TransferState.FAILED

    @staticmethod
    def _report(callback: Optional[ProgressCallback], progress: UploadProgress) -> None:
        if callback is None:
            return
        try:
            callback(progress)
        except Exception as e:
            logger.warning(f"Progress callback raised: {e}")
