"""
Configuration models and data structures.

This module defines the configuration models used throughout the application,
providing type safety and validation for configuration values.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Optional
from urllib.parse import urlparse

MB = 1024 * 1024


@dataclass
class EndpointConfig:
    """Backend endpoint paths, relative to the backend base URL."""
    single_sign: str = "/upload"
    multipart_start: str = "/upload/multipart/start"
    multipart_status: str = "/upload/multipart/status"
    multipart_sign_part: str = "/upload/multipart/upload"
    multipart_confirm: str = "/upload/multipart/confirm"
    multipart_complete: str = "/upload/multipart/complete"
    multipart_abort: str = "/upload/multipart/abort"


@dataclass
class BackendConfig:
    """Backend API connection settings."""
    base_url: str = "http://localhost:8080"
    token: Optional[str] = None
    timeout: float = 30.0
    storage_timeout: float = 600.0
    endpoints: EndpointConfig = field(default_factory=EndpointConfig)


@dataclass
class UploadConfig:
    """Upload engine settings."""
    project_id: str = "project1"
    chunk_size_mb: int = 64
    multipart_threshold_mb: int = 128
    single_upload_key_template: str = "data/org1/{project_id}/input"
    require_completion_token: bool = True
    fingerprint_content_hash: bool = True

    @property
    def chunk_size_bytes(self) -> int:
        return self.chunk_size_mb * MB

    @property
    def multipart_threshold_bytes(self) -> int:
        return self.multipart_threshold_mb * MB


@dataclass
class SessionStoreConfig:
    """Local session cache settings."""
    backend: str = "file"
    directory: str = "~/.multipart_relay"
    filename: str = "sessions.json"


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_directory: str = "logs"
    max_file_size: str = "10MB"
    backup_count: int = 5
    console_enabled: bool = True
    file_enabled: bool = False


SESSION_BACKENDS = ("file", "memory")


@dataclass
class ApplicationConfig:
    """Main application configuration."""

    name: str = "Multipart Relay"
    version: str = "0.1.0"
    debug: bool = False
    environment: str = "production"

    backend: BackendConfig = field(default_factory=BackendConfig)
    upload: UploadConfig = field(default_factory=UploadConfig)
    sessions: SessionStoreConfig = field(default_factory=SessionStoreConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    config_file_path: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self._validate_backend()
        self._validate_upload()
        self._validate_sessions()

    def _validate_backend(self) -> None:
        parsed = urlparse(self.backend.base_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(
                f"Backend URL must be an http(s) URL, got {self.backend.base_url!r}")

        timeouts = [
            ("Backend timeout", self.backend.timeout),
            ("Storage timeout", self.backend.storage_timeout),
        ]
        for name, timeout in timeouts:
            if timeout <= 0:
                raise ValueError(f"{name} must be positive, got {timeout}")

    def _validate_upload(self) -> None:
        if not (1 <= self.upload.chunk_size_mb <= 1024):
            raise ValueError(
                f"Chunk size must be between 1 and 1024 MB, got {self.upload.chunk_size_mb}")
        if self.upload.multipart_threshold_mb < 0:
            raise ValueError(
                f"Multipart threshold cannot be negative, got {self.upload.multipart_threshold_mb}")
        if not self.upload.project_id:
            raise ValueError("Project ID cannot be empty")

    def _validate_sessions(self) -> None:
        if self.sessions.backend not in SESSION_BACKENDS:
            raise ValueError(
                f"Session store backend must be one of {SESSION_BACKENDS}, "
                f"got {self.sessions.backend!r}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ApplicationConfig':
        """Create configuration from dictionary."""
        backend_data = dict(data.get('backend', {}))
        endpoints = EndpointConfig(**backend_data.pop('endpoints', {}))
        backend_config = BackendConfig(endpoints=endpoints, **backend_data)
        upload_config = UploadConfig(**data.get('upload', {}))
        session_config = SessionStoreConfig(**data.get('sessions', {}))
        logging_config = LoggingConfig(**data.get('logging', {}))

        return cls(
            name=data.get('name', 'Multipart Relay'),
            version=data.get('version', '0.1.0'),
            debug=data.get('debug', False),
            environment=data.get('environment', 'production'),
            backend=backend_config,
            upload=upload_config,
            sessions=session_config,
            logging=logging_config,
            config_file_path=data.get('config_file_path')
        )
