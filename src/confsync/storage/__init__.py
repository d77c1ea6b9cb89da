"""
Local persistence for cached documents and favorites.
"""

from .favorites import FAVORITES_KEY, FavoritesStore
from .snapshot_store import BOOTSTRAP_DIR, PersistentSnapshotStore

__all__ = ["BOOTSTRAP_DIR", "FAVORITES_KEY", "FavoritesStore", "PersistentSnapshotStore"]
