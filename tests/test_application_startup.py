"""
Tests for application wiring and component lifecycle.
"""

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from multipart_relay.application.startup import UploadApplication, create_key_value_store
from multipart_relay.infrastructure.config.models import (
    ApplicationConfig, SessionStoreConfig, UploadConfig
)
from multipart_relay.infrastructure.storage.kv import JsonFileKeyValueStore, MemoryKeyValueStore


@pytest.fixture
def config() -> ApplicationConfig:
    return ApplicationConfig(
        upload=UploadConfig(chunk_size_mb=8, multipart_threshold_mb=32),
        sessions=SessionStoreConfig(backend="memory"))


class TestCreateKeyValueStore:
    """Test cases for create_key_value_store()."""

    def test_memory(self) -> None:
        assert isinstance(create_key_value_store(SessionStoreConfig(backend="memory")), MemoryKeyValueStore)

    def test_file(self, tmp_path: Path) -> None:
        store = create_key_value_store(SessionStoreConfig(directory=str(tmp_path), filename="s.json"))

        assert isinstance(store, JsonFileKeyValueStore)
        assert store.path == tmp_path / "s.json"


class TestUploadApplication:
    """Test cases for UploadApplication."""

    def test_wiring_follows_config(self, config: ApplicationConfig) -> None:
        app = UploadApplication(config, configure_logging=False)

        assert isinstance(app.kv_store, MemoryKeyValueStore)
        assert app.orchestrator._chunk_size == 8 * 1024 * 1024
        assert app.orchestrator._multipart_threshold == 32 * 1024 * 1024
        assert app.backend.base_url == "http://localhost:8080"

    def test_injected_store(self, config: ApplicationConfig) -> None:
        store = MemoryKeyValueStore()
        app = UploadApplication(config, store=store, configure_logging=False)
        assert app.kv_store is store

    async def test_context_manager_starts_and_stops(self, config: ApplicationConfig) -> None:
        app = UploadApplication(config, configure_logging=False)

        async with app:
            assert app.backend.is_started
            assert app.storage.is_started
            health = await app.check_health()
            assert health['healthy'] is True
            assert set(health['components']) == {"BackendClient", "ObjectStorageClient"}

        assert not app.backend.is_started
        assert not app.storage.is_started

    async def test_failed_start_stops_started_components(self, config: ApplicationConfig) -> None:
        app = UploadApplication(config, configure_logging=False)

        with patch.object(app.storage, 'start', AsyncMock(side_effect=RuntimeError("boom"))):
            with pytest.raises(RuntimeError):
                await app.start()

        assert not app.backend.is_started

    async def test_logging_manager_included(self, config: ApplicationConfig) -> None:
        app = UploadApplication(config)

        with patch('multipart_relay.infrastructure.logging.setup.setup_logging') as mock_setup:
            async with app:
                mock_setup.assert_called_once_with(config.logging)
