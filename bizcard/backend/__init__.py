"""
Adapters for the managed backend: the auth subsystem and blob storage.

Structured storage lives in ``bizcard.repositories``.
"""

from .auth import AuthBackend, AuthBackendError
from .storage import BlobStore, LocalBlobStore

__all__ = ["AuthBackend", "AuthBackendError", "BlobStore", "LocalBlobStore"]
