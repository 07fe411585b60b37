"""
Backend upload API client.

Talks JSON to the backend that issues presigned URLs and keeps the part
ledger. The backend never sees file bytes.
"""

import asyncio
import json
import logging
import time
from typing import Any, Dict, List, Optional, Type, TypeVar

import aiohttp
from pydantic import BaseModel, ValidationError

from ...core.domain.models import PartRecord, RemoteUploadStatus
from ...core.exceptions import BackendError
from ...core.interfaces.upload import IUploadBackend
from ..config.models import BackendConfig, EndpointConfig
from .base import BaseHttpClient
from .schemas import (
    CompleteMultipartResponse, SignedUrlResponse, StartMultipartResponse,
    UploadStatusResponse
)

logger = logging.getLogger(__name__)

M = TypeVar('M', bound=BaseModel)


class BackendClient(BaseHttpClient, IUploadBackend):
    """aiohttp implementation of the backend upload endpoints."""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 30.0,
        endpoints: Optional[EndpointConfig] = None,
        session: Optional[aiohttp.ClientSession] = None
    ) -> None:
        super().__init__(timeout, session)
        self._base_url = base_url.rstrip('/')
        self._token = token
        self._endpoints = endpoints or EndpointConfig()

    @classmethod
    def from_config(cls, config: BackendConfig) -> 'BackendClient':
        return cls(
            base_url=config.base_url,
            token=config.token,
            timeout=config.timeout,
            endpoints=config.endpoints)

    @property
    def name(self) -> str:
        return "BackendClient"

    @property
    def base_url(self) -> str:
        return self._base_url

    async def sign_single_upload(self, file_name: str, file_type: str, key: str) -> str:
        body = await self._post(self._endpoints.single_sign, {
            "file_name": file_name,
            "file_type": file_type,
            "key": key,
        })
        return self._parse(SignedUrlResponse, body, "single upload sign").url

    async def start_multipart(
        self,
        file_name: str,
        file_type: str,
        project_id: str,
        file_size: int,
        chunk_size: int
    ) -> str:
        body = await self._post(self._endpoints.multipart_start, {
            "file_name": file_name,
            "file_type": file_type,
            "project_id": project_id,
            "file_size": file_size,
            "chunk_size": chunk_size,
        })
        return self._parse(StartMultipartResponse, body, "multipart start").upload_id

    async def get_status(self, upload_id: str, project_id: str) -> RemoteUploadStatus:
        body = await self._post(self._endpoints.multipart_status, {
            "upload_id": upload_id,
            "project_id": project_id,
        })
        status = self._parse(UploadStatusResponse, body, "multipart status")
        return RemoteUploadStatus(
            file_name=status.file_name,
            file_size=status.file_size,
            parts=dict(status.parts))

    async def sign_part(
        self,
        file_name: str,
        upload_id: str,
        part_number: int,
        project_id: str
    ) -> str:
        body = await self._post(self._endpoints.multipart_sign_part, {
            "file_name": file_name,
            "upload_id": upload_id,
            "part_number": part_number,
            "project_id": project_id,
        })
        return self._parse(SignedUrlResponse, body, f"sign part {part_number}").url

    async def confirm_part(
        self,
        file_name: str,
        upload_id: str,
        part_number: int,
        token: str,
        project_id: str
    ) -> None:
        await self._post(self._endpoints.multipart_confirm, {
            "file_name": file_name,
            "upload_id": upload_id,
            "part_number": part_number,
            "etag": token,
            "project_id": project_id,
        })

    async def complete_multipart(
        self,
        file_name: str,
        upload_id: str,
        parts: List[PartRecord],
        project_id: str
    ) -> Optional[str]:
        body = await self._post(self._endpoints.multipart_complete, {
            "file_name": file_name,
            "upload_id": upload_id,
            "parts": [part.to_wire() for part in parts],
            "project_id": project_id,
        })
        if isinstance(body, dict):
            return self._parse(CompleteMultipartResponse, body, "multipart complete").message
        if isinstance(body, str) and body:
            return body
        return None

    async def abort_multipart(self, file_name: str, upload_id: str, project_id: str) -> None:
        await self._post(self._endpoints.multipart_abort, {
            "file_name": file_name,
            "upload_id": upload_id,
            "project_id": project_id,
        })

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def _post(self, path: str, payload: Dict[str, Any]) -> Any:
        """
        POST a JSON payload and decode the reply.

        Returns:
            The decoded JSON body, or the raw text when it is not JSON

        Raises:
            BackendError: On connection failure, timeout or non-2xx status
        """
        session = self._require_session()
        url = f"{self._base_url}{path}"
        start_time = time.time()

        try:
            async with session.post(url, json=payload, headers=self._headers()) as response:
                text = await response.text()
                elapsed = time.time() - start_time

                if response.status >= 400:
                    self._metrics.record_request(False, elapsed)
                    self._metrics.record_error(f"{path}: HTTP {response.status}")
                    raise BackendError(
                        f"{path} failed: {response.status} {text}",
                        status=response.status,
                        body=text)

                self._metrics.record_request(True, elapsed)

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self._metrics.record_request(False, time.time() - start_time)
            self._metrics.record_error(f"{path}: {e!r}")
            raise BackendError(f"{path} request failed: {e!r}") from e

        if not text:
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            return text

    @staticmethod
    def _parse(model: Type[M], body: Any, operation: str) -> M:
        if not isinstance(body, dict):
            raise BackendError(f"Unexpected {operation} response: {body!r}")
        try:
            return model.model_validate(body)
        except ValidationError as e:
            raise BackendError(f"Invalid {operation} response: {e}") from e
