# signed_store/storage/__init__.py

from .models import ObjectHandle, ObjectInfo
from .provider import AccessTracker
from .providers.atime_provider import FileAtimeTracker
from .providers.memory_provider import InMemoryAccessTracker
from .providers.sqlite_provider import SQLiteAccessTracker
from .content_store import ContentStore, key_to_identity
from signed_store.constants import DEFAULT_ACCESS_TRACKING, LEDGER_FILENAME
import os


def load_access_tracker(root: str, config: dict | None = None) -> AccessTracker:
    """
    Factory resolver for where last-access instants are kept.

        - sqlite (default): explicit ledger next to the objects
        - atime: the files' own access-time attribute
        - memory: process-local, for tests
    """
    config = config or {}
    provider = config.get("provider") or os.getenv("SIGNED_STORE_ACCESS_TRACKING", DEFAULT_ACCESS_TRACKING)

    if provider == "memory":
        return InMemoryAccessTracker()

    if provider == "atime":
        return FileAtimeTracker()

    if provider == "sqlite":
        ledger_path = config.get("ledger_path") or os.getenv("SIGNED_STORE_LEDGER_PATH") or os.path.join(str(root), LEDGER_FILENAME)
        return SQLiteAccessTracker(ledger_path)

    raise ValueError(f"Unknown access tracking mode: {provider}")


__all__ = [
    "ObjectHandle",
    "ObjectInfo",
    "AccessTracker",
    "FileAtimeTracker",
    "InMemoryAccessTracker",
    "SQLiteAccessTracker",
    "ContentStore",
    "key_to_identity",
    "load_access_tracker",
]
