"""
Application layer: wiring and lifecycle of the upload engine.
"""

from .startup import UploadApplication, create_key_value_store

__all__ = [
    "UploadApplication",
    "create_key_value_store",
]
