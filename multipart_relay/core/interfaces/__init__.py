"""
Core interfaces defining the contracts between the upload services and
their collaborators.
"""

from .lifecycle import IStartable, IStoppable, IHealthCheckable, IComponent
from .upload import (
    IKeyValueStore, ISessionStore, IUploadBackend, IObjectStorage, IPartTransport
)

__all__ = [
    "IStartable",
    "IStoppable",
    "IHealthCheckable",
    "IComponent",
    "IKeyValueStore",
    "ISessionStore",
    "IUploadBackend",
    "IObjectStorage",
    "IPartTransport",
]
