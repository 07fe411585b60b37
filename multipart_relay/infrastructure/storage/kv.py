"""
Local key-value areas backing the session cache.
"""

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, List, Optional, Union

from ...core.exceptions import StoreUnavailableError
from ...core.interfaces.upload import IKeyValueStore


class MemoryKeyValueStore(IKeyValueStore):
    """Process-local store; sessions do not survive a restart."""

    def __init__(self) -> None:
        self._data: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self, prefix: str = "") -> List[str]:
        with self._lock:
            return [k for k in self._data if k.startswith(prefix)]


class JsonFileKeyValueStore(IKeyValueStore):
    """
    Store kept as a single JSON object on disk.

    Every call is one locked read-modify-write, and writes replace the file
    atomically, so a crash never leaves a torn record behind.
    """

    def __init__(self, file_path: Union[str, Path]) -> None:
        self._path = Path(file_path).expanduser()
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)

    def delete(self, key: str) -> None:
        with self._lock:
            data = self._read()
            if key in data:
                del data[key]
                self._write(data)

    def keys(self, prefix: str = "") -> List[str]:
        with self._lock:
            return [k for k in self._read() if k.startswith(prefix)]

    def _read(self) -> Dict[str, str]:
        if not self._path.exists():
            return {}

        try:
            with open(self._path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise StoreUnavailableError(f"Corrupt session store {self._path}: {e}")
        except OSError as e:
            raise StoreUnavailableError(f"Cannot read session store {self._path}: {e}")

        if not isinstance(data, dict):
            raise StoreUnavailableError(f"Session store {self._path} is not a JSON object")
        return data

    def _write(self, data: Dict[str, str]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=self._path.parent, prefix=".sessions-", suffix=".tmp")
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    json.dump(data, f, indent=2)
                os.replace(tmp_path, self._path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            raise StoreUnavailableError(f"Cannot write session store {self._path}: {e}")
