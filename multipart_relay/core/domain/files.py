"""
Local file handle used by the upload engine.

A ``LocalFile`` captures the attributes the engine keys resumption on
(name, size, modification time) at the moment the upload is requested, and
reads byte ranges asynchronously when parts are transferred.
"""

import hashlib
import mimetypes
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import aiofiles

HEAD_DIGEST_BYTES = 64 * 1024
DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class LocalFile:
    """A file on local disk that is about to be uploaded."""
    path: Path
    name: str
    size: int
    modified_ms: int
    content_type: str = DEFAULT_CONTENT_TYPE
    head_digest: Optional[str] = None

    @classmethod
    def from_path(cls, path: Union[str, Path], hash_head: bool = False) -> 'LocalFile':
        """
        Stat a file and build its handle.

        Args:
            path: Path to the file
            hash_head: Also digest the first 64 KiB, so that files sharing
                name, size and mtime get distinct fingerprints

        Raises:
            FileNotFoundError: If the path does not exist
            IsADirectoryError: If the path is a directory
        """
        file_path = Path(path).expanduser()
        if file_path.is_dir():
            raise IsADirectoryError(f"Not a regular file: {file_path}")

        stat = file_path.stat()
        content_type, _ = mimetypes.guess_type(file_path.name)

        head_digest = None
        if hash_head:
            with open(file_path, "rb") as f:
                head_digest = hashlib.sha256(f.read(HEAD_DIGEST_BYTES)).hexdigest()[:16]

        return cls(
            path=file_path,
            name=file_path.name,
            size=stat.st_size,
            modified_ms=int(stat.st_mtime * 1000),
            content_type=content_type or DEFAULT_CONTENT_TYPE,
            head_digest=head_digest,
        )

    async def read_range(self, start: int, end: int) -> bytes:
        """Read bytes ``[start, end)`` from the file."""
        async with aiofiles.open(self.path, "rb") as f:
            await f.seek(start)
            return await f.read(end - start)

    async def read_all(self) -> bytes:
        return await self.read_range(0, self.size)

    def has_changed(self) -> bool:
        """Check whether size or mtime moved since the handle was built."""
        try:
            stat = os.stat(self.path)
        except OSError:
            return True
        return stat.st_size != self.size or int(stat.st_mtime * 1000) != self.modified_ms
