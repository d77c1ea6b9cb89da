"""
Content sync orchestrator.

Owns the live conference snapshot and its hydrated graph. Cold start reads
local data only; refresh performs a conditional fetch, applies the version
gate, persists accepted data and republishes the graph.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from ..core.connector import Connector
from ..core.exceptions import StorageError
from ..core.models import (
    ContentSnapshot,
    Day,
    FetchOutcome,
    Room,
    Speaker,
    Sponsor,
    SyncState,
    Track,
)
from ..core.versioning import is_newer
from ..hydration.hydrator import HydratedGraph, HydratedSession, hydrate, start_time_key
from ..storage.favorites import FavoritesStore
from ..storage.snapshot_store import PersistentSnapshotStore


logger = logging.getLogger(__name__)


class RefreshOutcome:
    ACCEPTED = "accepted"
    UNCHANGED = "unchanged"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass
class RefreshReport:
    """Report of one refresh call."""
    started_at: datetime
    outcome: str = RefreshOutcome.FAILED
    completed_at: Optional[datetime] = None
    cached_version: Optional[str] = None
    remote_version: Optional[str] = None
    active_version: Optional[str] = None
    fetch_kind: Optional[str] = None
    attempts: int = 0
    fallback_source: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "outcome": self.outcome,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "cached_version": self.cached_version,
            "remote_version": self.remote_version,
            "active_version": self.active_version,
            "fetch_kind": self.fetch_kind,
            "attempts": self.attempts,
            "fallback_source": self.fallback_source,
            "error": self.error,
        }

    def summary(self) -> str:
        """Get a human-readable summary."""
        lines = [
            f"Refresh: {self.outcome}",
            f"  Cached version: {self.cached_version or '-'}",
            f"  Remote version: {self.remote_version or '-'}",
            f"  Active version: {self.active_version or '-'}",
            f"  Attempts: {self.attempts}",
        ]
        if self.completed_at:
            duration = (self.completed_at - self.started_at).total_seconds()
            lines.append(f"  Duration: {duration:.1f}s")
        if self.fallback_source:
            lines.append(f"  Fallback: {self.fallback_source}")
        if self.error:
            lines.append(f"  Error: {self.error}")
        return "\n".join(lines)


class ContentSyncOrchestrator:
    """
    Owner of the canonical in-memory content snapshot.

    State machine: EMPTY -> LOADED <-> REFRESHING. Once any data has been
    obtained the orchestrator never returns to EMPTY.

    The live ``(snapshot, graph)`` pair is replaced with a single assignment
    under ``_lock``; readers always see a complete pair.
    """

    def __init__(
        self,
        connector: Connector,
        store: PersistentSnapshotStore,
        favorites: FavoritesStore,
        content_url: str,
    ):
        """
        Initialize the orchestrator.

        Args:
            connector: Connector used for conditional fetches
            store: Persistent store for the content document
            favorites: Favorites store joined into every hydration
            content_url: URL of the remote content document
        """
        self.connector = connector
        self.store = store
        self.favorites = favorites
        self.content_url = content_url

        self._lock = threading.Lock()
        self._live: Optional[Tuple[ContentSnapshot, HydratedGraph]] = None
        self._state = SyncState.EMPTY
        self.last_report: Optional[RefreshReport] = None

        self.favorites.attach(self.current_graph)

    @property
    def state(self) -> SyncState:
        with self._lock:
            return self._state

    def current_graph(self) -> Optional[HydratedGraph]:
        """Return the published graph without triggering a load."""
        with self._lock:
            return self._live[1] if self._live else None

    def get_snapshot(self) -> Optional[HydratedGraph]:
        """
        Return the hydrated graph, loading local data on first use.

        Never touches the network.

        Returns:
            HydratedGraph, or None when no local data exists
        """
        graph = self.current_graph()
        if graph is not None:
            return graph

        snapshot, source = self.store.load_with_source()
        if snapshot is None:
            return None

        with self.favorites.lock:
            graph = self.current_graph()
            if graph is not None:
                return graph
            graph = self._publish(snapshot)
        logger.info(f"Loaded content version {snapshot.content_version} from {source}")
        return graph

    def refresh(self) -> RefreshReport:
        """
        Refresh content from the remote.

        Never raises. On any failure the current snapshot is kept, and if
        none is loaded yet the local cache or bootstrap is loaded instead.

        Returns:
            RefreshReport describing what happened
        """
        report = RefreshReport(started_at=datetime.now(timezone.utc))
        with self._lock:
            self._state = SyncState.REFRESHING

        try:
            metadata = self.store.metadata()
            report.cached_version = metadata.version
            logger.info(f"Starting content refresh (cached version: {metadata.version or 'none'})")

            outcome = self.connector.fetch(self.content_url, metadata.validator)
            report.fetch_kind = outcome.kind.value
            report.attempts = outcome.attempts

            if outcome.is_unchanged:
                report.outcome = RefreshOutcome.UNCHANGED
                logger.info("Content not modified, keeping current snapshot")
            elif outcome.is_fetched:
                self._apply_fetched(outcome, metadata.version, report)
            else:
                report.outcome = RefreshOutcome.FAILED
                report.error = outcome.reason
                logger.warning(f"Remote fetch failed ({outcome.kind.value}): {outcome.reason}")
                report.fallback_source = self._load_fallback()
        except Exception as e:
            logger.error(f"Unexpected error during refresh: {e}", exc_info=True)
            report.outcome = RefreshOutcome.FAILED
            report.error = str(e)
            try:
                report.fallback_source = self._load_fallback()
            except Exception as fallback_error:
                logger.error(f"Local fallback failed: {fallback_error}")
        finally:
            with self._lock:
                self._state = SyncState.LOADED if self._live else SyncState.EMPTY
                report.active_version = self._live[0].content_version if self._live else None

        report.completed_at = datetime.now(timezone.utc)
        self.last_report = report
        logger.info(f"Refresh finished: {report.outcome} (active version: {report.active_version})")
        return report

    def refresh_in_background(self) -> threading.Thread:
        """Run ``refresh`` on a detached daemon thread."""
        thread = threading.Thread(
            target=self.refresh,
            name="confsync-content-refresh",
            daemon=True,
        )
        thread.start()
        return thread

    def _apply_fetched(
        self,
        outcome: FetchOutcome,
        cached_version: Optional[str],
        report: RefreshReport,
    ) -> None:
        snapshot: ContentSnapshot = outcome.payload
        report.remote_version = snapshot.content_version

        # Gate again under the publish lock: an overlapping refresh may have
        # stored a newer version since this one read the metadata.
        with self.favorites.lock:
            latest_version = self.store.metadata().version
            if latest_version != cached_version:
                logger.info(f"Cached version moved from {cached_version} to {latest_version}")
                report.cached_version = latest_version
            logger.info(
                f"Cached version: {latest_version}, remote version: {snapshot.content_version}"
            )

            if not is_newer(snapshot.content_version, latest_version):
                report.outcome = RefreshOutcome.REJECTED
                logger.info("Remote version is not newer, keeping cached version")
                return

            try:
                self.store.save(snapshot, validator=outcome.validator)
            except StorageError as e:
                # Serve the new data anyway; without a stored validator the next
                # refresh downloads it again.
                logger.error(f"Accepted content could not be persisted: {e}")
                report.error = str(e)

            self._publish(snapshot)
        report.outcome = RefreshOutcome.ACCEPTED
        logger.info(f"Content version {snapshot.content_version} is now live")

    def _load_fallback(self) -> Optional[str]:
        """Load local data if nothing is live yet. Returns the source used."""
        if self.current_graph() is not None:
            return None
        snapshot, source = self.store.load_with_source()
        if snapshot is None:
            return None
        with self.favorites.lock:
            if self.current_graph() is not None:
                return None
            self._publish(snapshot)
        logger.info(f"Using local {source} as fallback (version {snapshot.content_version})")
        return source

    def _publish(self, snapshot: ContentSnapshot) -> HydratedGraph:
        """Hydrate and swap in. Caller must hold ``favorites.lock``."""
        graph = hydrate(snapshot, self.favorites.ids())
        with self._lock:
            self._live = (snapshot, graph)
            if self._state == SyncState.EMPTY:
                self._state = SyncState.LOADED
        return graph

    # Queries over the live graph

    def get_sessions(self) -> List[HydratedSession]:
        graph = self.get_snapshot()
        return graph.session_list() if graph else []

    def get_sessions_by_day(self, day_index: int) -> List[HydratedSession]:
        return sorted(
            (s for s in self.get_sessions() if s.day_index == day_index),
            key=start_time_key,
        )

    def get_session(self, session_id: str) -> Optional[HydratedSession]:
        graph = self.get_snapshot()
        return graph.get_session(session_id) if graph else None

    def get_speakers(self) -> List[Speaker]:
        graph = self.get_snapshot()
        return list(graph.snapshot.speakers) if graph else []

    def get_speaker(self, speaker_id: str) -> Optional[Speaker]:
        graph = self.get_snapshot()
        return graph.speakers.get(speaker_id) if graph else None

    def get_tracks(self) -> List[Track]:
        graph = self.get_snapshot()
        return sorted(graph.snapshot.tracks, key=lambda t: t.order) if graph else []

    def get_rooms(self) -> List[Room]:
        graph = self.get_snapshot()
        return list(graph.snapshot.rooms) if graph else []

    def get_days(self) -> List[Day]:
        graph = self.get_snapshot()
        return sorted(graph.snapshot.days, key=lambda d: d.index) if graph else []

    def get_sponsors(self) -> List[Sponsor]:
        graph = self.get_snapshot()
        return list(graph.snapshot.sponsors) if graph else []

    def get_favorite_sessions(self) -> List[HydratedSession]:
        return self.favorites.list(self.get_sessions())

    def toggle_favorite(self, session_id: str) -> bool:
        self.get_snapshot()
        return self.favorites.toggle(session_id)
