"""Remote profile and submission stores.

Backends:
- MemoryStore: in-process dicts (tests, throwaway sessions)
- LocalStore: JSON files in the crowcode data directory
- FirestoreStore: Cloud Firestore ``users``/``submissions`` collections
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .base import (
    ProfileStore,
    RemoteProfile,
    SetOp,
    StoreError,
    SubmissionStore,
    empty_favorites,
)
from .local import LocalStore
from .memory import MemoryStore

if TYPE_CHECKING:
    from ..config import Settings


def open_store(settings: "Settings"):
    """Build the backend named by ``settings.store``."""
    if settings.store == "memory":
        return MemoryStore()
    if settings.store == "firestore":
        from .firestore import FirestoreStore

        return FirestoreStore(
            project=settings.firestore_project,
            database=settings.firestore_database,
        )
    return LocalStore(settings.resolved_data_dir())


__all__ = [
    "ProfileStore",
    "SubmissionStore",
    "RemoteProfile",
    "SetOp",
    "StoreError",
    "empty_favorites",
    "MemoryStore",
    "LocalStore",
    "open_store",
]
