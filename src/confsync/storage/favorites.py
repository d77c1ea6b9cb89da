"""
Persisted set of favorited session ids.
"""

import json
import logging
import threading
from typing import Callable, FrozenSet, Iterable, List, Optional, Set

from ..core.exceptions import StorageError
from ..core.state_store import KeyValueStore
from ..hydration.hydrator import HydratedGraph, start_time_key


logger = logging.getLogger(__name__)

FAVORITES_KEY = "session_favorites"

GraphProvider = Callable[[], Optional[HydratedGraph]]


class FavoritesStore:
    """
    Favorite session ids, stored as a JSON list under one key.

    The set outlives snapshot replacements: ids missing from the current
    snapshot are kept until cleared.

    ``lock`` is shared with the content orchestrator. Holding it while
    hydrating and publishing a graph guarantees that a toggle lands either
    before the favorite ids are read or after the new graph is live.
    """

    def __init__(self, kv_store: KeyValueStore, key: str = FAVORITES_KEY):
        self.kv_store = kv_store
        self.key = key
        self.lock = threading.RLock()
        self._graph_provider: Optional[GraphProvider] = None
        self._favorites: Set[str] = self._load()

    def attach(self, graph_provider: GraphProvider) -> None:
        """Register the callable returning the live graph to patch on toggle."""
        self._graph_provider = graph_provider

    def ids(self) -> FrozenSet[str]:
        with self.lock:
            return frozenset(self._favorites)

    def is_favorite(self, session_id: str) -> bool:
        with self.lock:
            return session_id in self._favorites

    def toggle(self, session_id: str) -> bool:
        """
        Flip membership of ``session_id``.

        The whole set is persisted before returning, then the live graph's
        flag for that session is patched.

        Returns:
            The new favorite state

        Raises:
            StorageError: If the set cannot be persisted; membership is
                left unchanged in that case
        """
        with self.lock:
            new_state = session_id not in self._favorites
            updated = set(self._favorites)
            if new_state:
                updated.add(session_id)
            else:
                updated.discard(session_id)

            self._save(updated)
            self._favorites = updated

            graph = self._graph_provider() if self._graph_provider else None
            if graph is not None:
                graph.set_favorite(session_id, new_state)

        logger.debug(f"Favorite {session_id} -> {new_state}")
        return new_state

    def clear(self) -> None:
        """Remove every favorite and reset the flags in the live graph."""
        with self.lock:
            previous = self._favorites
            self._save(set())
            self._favorites = set()
            graph = self._graph_provider() if self._graph_provider else None
            if graph is not None:
                for session_id in previous:
                    graph.set_favorite(session_id, False)
        logger.info(f"Cleared {len(previous)} favorites")

    def list(self, sessions: Iterable) -> List:
        """
        Return the favorited entries of ``sessions``, ordered by start time.

        Accepts hydrated sessions or plain snapshot sessions.
        """
        with self.lock:
            favorites = set(self._favorites)
        return sorted(
            (s for s in sessions if s.id in favorites),
            key=start_time_key,
        )

    def _load(self) -> Set[str]:
        try:
            raw = self.kv_store.get(self.key)
        except StorageError as e:
            logger.warning(f"Cannot read favorites, starting empty: {e}")
            return set()
        if not raw:
            return set()
        try:
            values = json.loads(raw)
        except ValueError as e:
            logger.warning(f"Ignoring corrupt favorites entry: {e}")
            return set()
        if not isinstance(values, list):
            logger.warning("Ignoring favorites entry that is not a list")
            return set()
        return {str(v) for v in values}

    def _save(self, favorites: Set[str]) -> None:
        try:
            self.kv_store.set(self.key, json.dumps(sorted(favorites)))
        except StorageError:
            logger.error("Failed to persist favorites")
            raise
