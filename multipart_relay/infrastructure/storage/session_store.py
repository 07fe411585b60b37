"""
Best-effort session cache keyed by file fingerprint.
"""

import json
import logging
from typing import Dict, Optional

from ...core.domain.models import UploadSession
from ...core.interfaces.upload import IKeyValueStore, ISessionStore

logger = logging.getLogger(__name__)

KEY_PREFIX = "upload:"


class LocalSessionStore(ISessionStore):
    """
    Maps fingerprints to their last-known multipart session.

    Store failures read as cache misses: the backend's ledger is the record
    of progress, so losing the cache only costs a fresh start.
    """

    def __init__(self, store: IKeyValueStore) -> None:
        self._store = store

    def save(self, fingerprint: str, session: UploadSession) -> None:
        try:
            self._store.set(self._key(fingerprint), json.dumps(session.to_dict()))
        except Exception as e:
            logger.warning(f"Could not save upload session for {fingerprint}: {e}")

    def load(self, fingerprint: str) -> Optional[UploadSession]:
        try:
            raw = self._store.get(self._key(fingerprint))
        except Exception as e:
            logger.warning(f"Could not load upload session for {fingerprint}: {e}")
            return None

        if raw is None:
            return None
        return self._decode(fingerprint, raw)

    def remove(self, fingerprint: str) -> None:
        try:
            self._store.delete(self._key(fingerprint))
        except Exception as e:
            logger.warning(f"Could not remove upload session for {fingerprint}: {e}")

    def list_sessions(self) -> Dict[str, UploadSession]:
        try:
            keys = self._store.keys(KEY_PREFIX)
        except Exception as e:
            logger.warning(f"Could not list upload sessions: {e}")
            return {}

        sessions = {}
        for key in keys:
            fingerprint = key[len(KEY_PREFIX):]
            session = self.load(fingerprint)
            if session is not None:
                sessions[fingerprint] = session
        return sessions

    @staticmethod
    def _key(fingerprint: str) -> str:
        return f"{KEY_PREFIX}{fingerprint}"

    @staticmethod
    def _decode(fingerprint: str, raw: str) -> Optional[UploadSession]:
        try:
            return UploadSession.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Ignoring malformed upload session for {fingerprint}: {e}")
            return None
