"""
In-process key-value store. Nothing survives the process.
"""

import threading
from typing import Dict, Optional

from ..core.state_store import KeyValueStore


class MemoryKeyValueStore(KeyValueStore):
    """Dictionary-backed store for tests and ephemeral runs."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        with self._lock:
            return self._data.get(key, default)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def items(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._data)
