"""
HTTP clients for the backend API and object storage.
"""

from .base import BaseHttpClient, ClientMetrics
from .backend import BackendClient
from .storage import ObjectStorageClient

__all__ = [
    "BaseHttpClient",
    "ClientMetrics",
    "BackendClient",
    "ObjectStorageClient",
]
