"""
Local persistence for upload sessions.
"""

from .kv import MemoryKeyValueStore, JsonFileKeyValueStore
from .session_store import LocalSessionStore

__all__ = [
    "MemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "LocalSessionStore",
]
