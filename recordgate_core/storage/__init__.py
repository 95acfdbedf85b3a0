# recordgate_core/storage/__init__.py

from .models import AuditEvent, IdentityRow, RecordRow
from .provider import StorageProvider
from .providers.memory_provider import InMemoryStorage
from .providers.sqlite_provider import SQLiteStorage
from ..constants import DEFAULT_DB_PATH, DEFAULT_STORAGE_PROVIDER
import os


def load_storage_provider(config: dict | None = None) -> StorageProvider:
    """
    Factory resolver for selecting the runtime storage backend.

    For now:
        - sqlite (default)
        - memory
    """
    config = config or {}
    provider = config.get("provider") or os.getenv("RECORDGATE_STORAGE_PROVIDER", DEFAULT_STORAGE_PROVIDER)
    provider = provider.lower()

    if provider == "memory":
        return InMemoryStorage()

    if provider == "sqlite":
        db_path = config.get("sqlite_path") or os.getenv("RECORDGATE_DB_PATH", DEFAULT_DB_PATH)
        return SQLiteStorage(db_path)

    raise ValueError(f"Unknown storage provider: {provider}")


__all__ = [
    "AuditEvent",
    "IdentityRow",
    "RecordRow",
    "StorageProvider",
    "InMemoryStorage",
    "SQLiteStorage",
    "load_storage_provider",
]
