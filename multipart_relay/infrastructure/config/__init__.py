"""
Configuration loading and validation.
"""

from .models import (
    ApplicationConfig, BackendConfig, EndpointConfig, UploadConfig,
    SessionStoreConfig, LoggingConfig
)
from .loader import ConfigLoader

__all__ = [
    "ApplicationConfig",
    "BackendConfig",
    "EndpointConfig",
    "UploadConfig",
    "SessionStoreConfig",
    "LoggingConfig",
    "ConfigLoader",
]
