"""Metadata storage for connections, projects, discovered objects and sync status."""
from typing import Optional

from config import CONFIG
from services.api.metadata.db import MetadataDB, get_metadata_db
from services.api.metadata.repository import PostgresStorage
from services.api.metadata.storage import InMemoryStorage, StorageFacade

_storage: Optional[StorageFacade] = None


def create_storage(backend: Optional[str] = None) -> StorageFacade:
    """
    Build the storage facade for a backend name.

    Args:
        backend: "memory" or "postgres" (defaults to STORAGE_BACKEND)

    Returns:
        Ready-to-use storage facade
    """
    backend = (backend or CONFIG.storage.backend).lower()
    if backend == "memory":
        return InMemoryStorage()
    if backend in ("postgres", "postgresql"):
        db = get_metadata_db()
        db.initialize_schema()
        storage = PostgresStorage(db)
        storage.seed_function_mappings()
        return storage
    raise ValueError(f"Unknown storage backend: {backend}")


def get_storage() -> StorageFacade:
    """Get the process-wide storage facade."""
    global _storage
    if _storage is None:
        _storage = create_storage()
    return _storage


def set_storage(storage: Optional[StorageFacade]):
    """Replace the process-wide storage facade (used by tests)."""
    global _storage
    _storage = storage


__all__ = [
    'MetadataDB', 'get_metadata_db', 'StorageFacade', 'InMemoryStorage',
    'PostgresStorage', 'create_storage', 'get_storage', 'set_storage'
]
