"""
Feature flag sync.

Startup loads flags from the cache, else from the bundled bootstrap (which
is then persisted), and starts a background remote refresh. There is no
version gate: every successful remote fetch replaces the current flags.
"""

import logging
import threading
from typing import Callable, List, Optional

from ..core.connector import Connector
from ..core.exceptions import StorageError
from ..core.models import FeatureFlagSet
from ..storage.snapshot_store import PersistentSnapshotStore


logger = logging.getLogger(__name__)

FlagsListener = Callable[[FeatureFlagSet], None]


class FeatureFlagSync:
    """
    Owner of the live feature flag set.

    Subscribers are called with the new flag set after every accepted
    change, outside any lock. A failing subscriber is logged and skipped.
    """

    def __init__(
        self,
        connector: Connector,
        store: PersistentSnapshotStore,
        flags_url: str,
    ):
        """
        Initialize flag sync.

        Args:
            connector: Connector used for conditional fetches
            store: Persistent store for the flag document
            flags_url: URL of the remote flag document
        """
        self.connector = connector
        self.store = store
        self.flags_url = flags_url

        self._lock = threading.Lock()
        # Held across persist and swap so disk and memory change together
        self._write_lock = threading.RLock()
        self._flags = FeatureFlagSet.create_default()
        self._listeners: List[FlagsListener] = []
        self._listeners_lock = threading.Lock()

    @property
    def current_flags(self) -> FeatureFlagSet:
        with self._lock:
            return self._flags

    def is_enabled(self, name: str, default: bool = False) -> bool:
        return self.current_flags.is_enabled(name, default)

    def subscribe(self, listener: FlagsListener) -> FlagsListener:
        with self._listeners_lock:
            self._listeners.append(listener)
        return listener

    def unsubscribe(self, listener: FlagsListener) -> bool:
        with self._listeners_lock:
            try:
                self._listeners.remove(listener)
            except ValueError:
                return False
        return True

    def initialize(self, background: bool = True) -> Optional[threading.Thread]:
        """
        Load local flags, then start a remote refresh.

        Args:
            background: Run the remote refresh on a detached thread. When
                False the refresh runs inline before returning.

        Returns:
            The refresh thread, or None when run inline
        """
        logger.info("Initializing feature flags")
        self.load_local()

        if not background:
            self.refresh_from_remote()
            return None

        thread = threading.Thread(
            target=self.refresh_from_remote,
            name="confsync-flags-refresh",
            daemon=True,
        )
        thread.start()
        return thread

    def load_local(self) -> FeatureFlagSet:
        """
        Load flags from the cache, else from the bootstrap (persisting it).

        Keeps the built-in defaults when neither exists.
        """
        with self._write_lock:
            cached = self.store.load_cached()
            if cached is not None:
                self._swap(cached)
                logger.info(f"Loaded flags from cache (version: {cached.version})")
            else:
                bootstrap = self.store.load_bootstrap()
                if bootstrap is not None:
                    try:
                        self.store.save(bootstrap)
                    except StorageError as e:
                        logger.error(f"Could not persist bootstrap flags: {e}")
                    self._swap(bootstrap)
                    logger.info(f"Loaded flags from bootstrap (version: {bootstrap.version})")
                else:
                    logger.warning("No cached or bootstrap flags, using defaults")
            return self.current_flags

    def refresh_from_remote(self) -> bool:
        """
        Fetch flags from the remote and apply them unconditionally.

        Never raises.

        Returns:
            True if new flags were applied
        """
        try:
            validator = self.store.metadata().validator
            if validator:
                logger.debug(f"Using cached flags validator: {validator}")

            outcome = self.connector.fetch(self.flags_url, validator)

            if outcome.is_unchanged:
                logger.info("Flags not modified (304)")
                return False
            if not outcome.is_fetched:
                logger.warning(f"Flag fetch failed ({outcome.kind.value}): {outcome.reason}")
                return False

            flags: FeatureFlagSet = outcome.payload
            if outcome.validator:
                flags = flags.with_etag(outcome.validator)

            with self._write_lock:
                try:
                    self.store.save(flags, validator=outcome.validator)
                except StorageError as e:
                    logger.error(f"Fetched flags could not be persisted: {e}")
                self._swap(flags)
            logger.info(f"Applied remote flags (version: {flags.version})")
        except Exception as e:
            logger.error(f"Error refreshing remote flags: {e}", exc_info=True)
            return False

        self._notify(flags)
        return True

    def update_flag(self, name: str, value: bool) -> FeatureFlagSet:
        """
        Set one flag locally, persist it and notify subscribers.

        Args:
            name: Flag name (case-insensitive)
            value: New value

        Returns:
            The updated flag set

        Raises:
            ValueError: If the flag is not part of the current set
        """
        with self._write_lock:
            current = self.current_flags
            key = current.find_flag(name)
            if key is None:
                raise ValueError(
                    f"Unknown flag: {name}. Known flags: {', '.join(sorted(current.flags))}"
                )
            updated = current.with_flag(key, value)

            try:
                self.store.save(updated)
            except StorageError as e:
                logger.error(f"Updated flags could not be persisted: {e}")
            self._swap(updated)

        logger.info(f"Updated {key} = {value}")
        self._notify(updated)
        return updated

    def _swap(self, flags: FeatureFlagSet) -> None:
        with self._lock:
            self._flags = flags

    def _notify(self, flags: FeatureFlagSet) -> None:
        with self._listeners_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(flags)
            except Exception as e:
                logger.error(f"Flags listener failed: {e}")
