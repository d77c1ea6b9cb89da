"""
Key-value store implementations for sync metadata and favorites.

The default backend is SQLite (SqliteKeyValueStore). The in-memory backend
(MemoryKeyValueStore) keeps nothing between runs and is meant for tests.

To select backend, set the CONFSYNC_STATE_BACKEND environment variable:
    - CONFSYNC_STATE_BACKEND=sqlite (default)
    - CONFSYNC_STATE_BACKEND=memory
"""

import logging
import os
from pathlib import Path
from typing import Optional, Union

from ..core.state_store import KeyValueStore
from .memory_store import MemoryKeyValueStore
from .sqlite_store import SqliteKeyValueStore


logger = logging.getLogger(__name__)


def create_kv_store(
    backend: Optional[str] = None,
    db_path: Optional[Union[str, Path]] = None,
    auto_init: bool = True,
) -> KeyValueStore:
    """
    Factory function to create the appropriate key-value store.

    Args:
        backend: Backend type ('sqlite' or 'memory'). Defaults to
            CONFSYNC_STATE_BACKEND env var or 'sqlite'.
        db_path: Path to SQLite database file
        auto_init: Auto-create tables

    Returns:
        KeyValueStore instance

    Raises:
        ValueError: If backend is not recognized
    """
    if backend is None:
        backend = os.environ.get("CONFSYNC_STATE_BACKEND", "sqlite")
    backend = backend.lower()

    if backend == "sqlite":
        if db_path is None:
            db_path = Path("local/state/confsync.db")
        return SqliteKeyValueStore(db_path=Path(db_path), auto_init=auto_init)

    elif backend == "memory":
        logger.info("Using in-memory state store; favorites and cache metadata will not persist")
        return MemoryKeyValueStore()

    else:
        raise ValueError(
            f"Unknown backend: {backend}. "
            "Supported backends: 'sqlite' (default), 'memory'"
        )


__all__ = ["KeyValueStore", "SqliteKeyValueStore", "MemoryKeyValueStore", "create_kv_store"]
