"""
Key-value store interface for small pieces of persisted state.

Holds cache metadata (version, validator) and the favorites list; the
documents themselves live in cache files.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional


class KeyValueStore(ABC):
    """
    Abstract base class for key-value stores.

    Values are strings. Implementations must be safe to call from the
    foreground and from background refresh threads.
    """

    @abstractmethod
    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """
        Get the value stored under ``key``.

        Args:
            key: Entry key
            default: Value returned when the key is absent

        Returns:
            Stored value or ``default``
        """
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """
        Store ``value`` under ``key``, replacing any previous value.

        Raises:
            StorageError: If the value cannot be persisted
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """
        Remove ``key``.

        Returns:
            True if an entry was removed
        """
        pass

    @abstractmethod
    def items(self) -> Dict[str, str]:
        """Return a copy of all entries."""
        pass

    def close(self) -> None:
        """Close any open resources. Optional."""
        pass
