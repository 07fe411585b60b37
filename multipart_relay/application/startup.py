"""
Application startup and wiring.

This module builds the upload engine from configuration and manages the
lifecycle of the components that hold resources.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..core.interfaces.lifecycle import IComponent
from ..core.interfaces.upload import IKeyValueStore
from ..core.services.orchestrator import UploadOrchestrator
from ..core.services.transport import PartTransport
from ..infrastructure.clients.backend import BackendClient
from ..infrastructure.clients.storage import ObjectStorageClient
from ..infrastructure.config.models import ApplicationConfig, SessionStoreConfig
from ..infrastructure.logging.setup import LoggingManager
from ..infrastructure.storage.kv import JsonFileKeyValueStore, MemoryKeyValueStore
from ..infrastructure.storage.session_store import LocalSessionStore

logger = logging.getLogger(__name__)


def create_key_value_store(config: SessionStoreConfig) -> IKeyValueStore:
    """Build the key-value area named by the session store configuration."""
    if config.backend == "memory":
        return MemoryKeyValueStore()
    return JsonFileKeyValueStore(Path(config.directory).expanduser() / config.filename)


class UploadApplication:
    """
    Owns the wired upload engine.

    Components are started in order and stopped in reverse order; if one
    fails to start, those already started are stopped before the error
    propagates.
    """

    def __init__(
        self,
        config: ApplicationConfig,
        store: Optional[IKeyValueStore] = None,
        configure_logging: bool = True
    ) -> None:
        self._config = config

        self.kv_store = store or create_key_value_store(config.sessions)
        self.session_store = LocalSessionStore(self.kv_store)
        self.backend = BackendClient.from_config(config.backend)
        self.storage = ObjectStorageClient(timeout=config.backend.storage_timeout)
        self.transport = PartTransport(
            self.backend,
            self.storage,
            require_token=config.upload.require_completion_token)
        self.orchestrator = UploadOrchestrator(
            backend=self.backend,
            transport=self.transport,
            session_store=self.session_store,
            chunk_size=config.upload.chunk_size_bytes,
            multipart_threshold=config.upload.multipart_threshold_bytes,
            key_template=config.upload.single_upload_key_template)

        self._components: List[IComponent] = []
        if configure_logging:
            self._components.append(LoggingManager(config.logging))
        self._components.extend([self.backend, self.storage])
        self._started_components: List[IComponent] = []

    @property
    def config(self) -> ApplicationConfig:
        return self._config

    async def start(self) -> None:
        for component in self._components:
            try:
                await component.start()
                self._started_components.append(component)
                logger.debug(f"Started component: {component.name}")
            except Exception as e:
                logger.error(f"Failed to start component {component.name}: {e}")
                await self.stop()
                raise

    async def stop(self) -> None:
        for component in reversed(self._started_components):
            try:
                await component.stop()
                logger.debug(f"Stopped component: {component.name}")
            except Exception as e:
                logger.error(f"Error stopping component {component.name}: {e}")

        self._started_components.clear()

    async def check_health(self) -> Dict[str, Any]:
        components = {}
        for component in self._components:
            components[component.name] = await component.check_health()

        return {
            'healthy': all(c['healthy'] for c in components.values()),
            'components': components,
        }

    async def __aenter__(self) -> 'UploadApplication':
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        await self.stop()
