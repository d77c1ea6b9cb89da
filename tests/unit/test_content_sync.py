"""
Unit tests for the content sync orchestrator.

A StaticConnector stands in for the CDN, so conditional-GET behavior is real
while no network is used.
"""

import threading
from unittest.mock import patch

import pytest

from confsync.core.exceptions import StorageError
from confsync.core.models import ContentSnapshot, FetchKind, FetchOutcome, SyncState
from confsync.runner import ContentSyncOrchestrator, RefreshOutcome
from confsync.storage import FavoritesStore, PersistentSnapshotStore


CONTENT_URL = "https://cdn.test/main/conference.json"


@pytest.fixture
def favorites(kv_store):
    return FavoritesStore(kv_store)


@pytest.fixture
def orchestrator(content_connector, content_store, favorites):
    return ContentSyncOrchestrator(
        connector=content_connector,
        store=content_store,
        favorites=favorites,
        content_url=CONTENT_URL,
    )


class TestColdStart:
    """Tests for local loading."""

    def test_starts_empty(self, orchestrator):
        assert orchestrator.state == SyncState.EMPTY
        assert orchestrator.current_graph() is None

    def test_get_snapshot_loads_bootstrap_without_network(self, orchestrator, content_connector):
        graph = orchestrator.get_snapshot()

        assert graph.content_version == "1"
        assert orchestrator.state == SyncState.LOADED
        assert content_connector.request_history == []

    def test_get_snapshot_prefers_cache(self, orchestrator, content_store, make_content_document):
        content_store.save(ContentSnapshot.from_dict(make_content_document("7")))

        assert orchestrator.get_snapshot().content_version == "7"

    def test_get_snapshot_returns_same_graph(self, orchestrator):
        assert orchestrator.get_snapshot() is orchestrator.get_snapshot()

    def test_no_local_data(self, tmp_path, kv_store, content_connector, favorites):
        store = PersistentSnapshotStore(
            cache_path=tmp_path / "none.json",
            kv_store=kv_store,
            decoder=ContentSnapshot.from_dict,
        )
        orchestrator = ContentSyncOrchestrator(content_connector, store, favorites, CONTENT_URL)

        assert orchestrator.get_snapshot() is None
        assert orchestrator.get_sessions() == []
        assert orchestrator.state == SyncState.EMPTY


class TestRefresh:
    """Tests for refresh and the version gate."""

    def test_bootstrap_then_remote_then_not_modified(
        self, orchestrator, content_connector, content_store, make_content_document
    ):
        """Test the full lifecycle: bootstrap v1, accept remote v2, then 304."""
        assert orchestrator.get_snapshot().content_version == "1"
        etag = content_connector.serve(CONTENT_URL, make_content_document("2", title="Updated"))

        report = orchestrator.refresh()

        assert report.outcome == RefreshOutcome.ACCEPTED
        assert report.remote_version == "2"
        assert report.active_version == "2"
        assert orchestrator.get_session("s-keynote").title == "Updated"
        assert content_store.metadata().version == "2"
        assert content_store.metadata().validator == etag
        assert content_store.load_cached().content_version == "2"

        graph_before = orchestrator.current_graph()
        report = orchestrator.refresh()

        assert report.outcome == RefreshOutcome.UNCHANGED
        assert report.fetch_kind == FetchKind.UNCHANGED.value
        assert content_connector.request_history[-1].prior_validator == etag
        assert orchestrator.current_graph() is graph_before
        assert orchestrator.state == SyncState.LOADED

    def test_refresh_from_empty_accepts_remote(self, orchestrator, content_connector, make_content_document):
        content_connector.serve(CONTENT_URL, make_content_document("1"))

        report = orchestrator.refresh()

        assert report.outcome == RefreshOutcome.ACCEPTED
        assert report.cached_version is None
        assert orchestrator.state == SyncState.LOADED

    def test_equal_version_is_rejected(self, orchestrator, content_connector, make_content_document):
        content_connector.serve(CONTENT_URL, make_content_document("2"))
        orchestrator.refresh()

        content_connector.serve(CONTENT_URL, make_content_document("2", title="Same version"))
        report = orchestrator.refresh()

        assert report.outcome == RefreshOutcome.REJECTED
        assert orchestrator.get_session("s-keynote").title != "Same version"

    def test_older_version_is_rejected(self, orchestrator, content_connector, content_store, make_content_document):
        content_connector.serve(CONTENT_URL, make_content_document("10"))
        orchestrator.refresh()

        content_connector.serve(CONTENT_URL, make_content_document("9"))
        report = orchestrator.refresh()

        assert report.outcome == RefreshOutcome.REJECTED
        assert report.active_version == "10"
        assert content_store.metadata().version == "10"

    @pytest.mark.parametrize("body", [None, []])
    def test_non_object_body_keeps_current_snapshot(self, orchestrator, content_connector, content_store, body):
        """Test a null or list body fails the refresh instead of publishing an empty snapshot."""
        orchestrator.get_snapshot()
        content_connector.serve(CONTENT_URL, body)

        report = orchestrator.refresh()

        assert report.outcome == RefreshOutcome.FAILED
        assert report.fetch_kind == FetchKind.PARSE.value
        assert report.active_version == "1"
        assert len(orchestrator.get_sessions()) == 3
        assert content_store.metadata().version is None

    def test_corrupt_cache_restart_refetches(
        self, orchestrator, content_connector, content_store, favorites, make_content_document
    ):
        """Test metadata of an unreadable cache neither gates nor validates the next refresh."""
        content_connector.serve(CONTENT_URL, make_content_document("5"))
        orchestrator.refresh()
        content_store.cache_path.write_text("{ not json", encoding="utf-8")

        restarted = ContentSyncOrchestrator(content_connector, content_store, favorites, CONTENT_URL)

        assert restarted.get_snapshot().content_version == "1"
        assert content_store.metadata().version is None
        assert content_store.metadata().validator is None

        report = restarted.refresh()

        assert report.outcome == RefreshOutcome.ACCEPTED
        assert report.cached_version is None
        assert report.active_version == "5"
        assert content_connector.request_history[-1].prior_validator is None

    def test_overlapping_refreshes_never_go_backwards(
        self, orchestrator, content_connector, content_store, make_content_document
    ):
        """Test a slow refresh carrying v2 cannot replace v3 stored meanwhile."""
        orchestrator.get_snapshot()
        background_fetching = threading.Event()
        release = threading.Event()

        def fetch(url, prior_validator=None):
            if threading.current_thread().name == "confsync-content-refresh":
                background_fetching.set()
                release.wait(timeout=5)
                return FetchOutcome.fetched(ContentSnapshot.from_dict(make_content_document("2")), validator='"e2"')
            return FetchOutcome.fetched(ContentSnapshot.from_dict(make_content_document("3")), validator='"e3"')

        with patch.object(content_connector, "fetch", side_effect=fetch):
            thread = orchestrator.refresh_in_background()
            assert background_fetching.wait(timeout=5)
            report = orchestrator.refresh()
            release.set()
            thread.join(timeout=5)

        assert report.outcome == RefreshOutcome.ACCEPTED
        background_report = orchestrator.last_report
        assert background_report is not report
        assert background_report.outcome == RefreshOutcome.REJECTED
        assert background_report.cached_version == "3"
        assert orchestrator.current_graph().content_version == "3"
        assert content_store.metadata().version == "3"
        assert content_store.metadata().validator == '"e3"'

    def test_failure_keeps_current_snapshot(self, orchestrator, content_connector, make_content_document):
        content_connector.serve(CONTENT_URL, make_content_document("2"))
        orchestrator.refresh()
        graph = orchestrator.current_graph()

        content_connector.enqueue(FetchOutcome.failed("timed out", attempts=3))
        report = orchestrator.refresh()

        assert report.outcome == RefreshOutcome.FAILED
        assert report.error == "timed out"
        assert report.fallback_source is None
        assert orchestrator.current_graph() is graph
        assert orchestrator.state == SyncState.LOADED

    def test_failure_when_empty_loads_bootstrap(self, orchestrator, content_connector):
        content_connector.offline = True

        report = orchestrator.refresh()

        assert report.outcome == RefreshOutcome.FAILED
        assert report.fetch_kind == FetchKind.OFFLINE.value
        assert report.fallback_source == "bootstrap"
        assert report.active_version == "1"
        assert orchestrator.state == SyncState.LOADED

    def test_failure_with_nothing_local_stays_empty(self, tmp_path, kv_store, content_connector, favorites):
        store = PersistentSnapshotStore(
            cache_path=tmp_path / "none.json",
            kv_store=kv_store,
            decoder=ContentSnapshot.from_dict,
        )
        orchestrator = ContentSyncOrchestrator(content_connector, store, favorites, CONTENT_URL)

        report = orchestrator.refresh()

        assert report.outcome == RefreshOutcome.FAILED
        assert report.active_version is None
        assert orchestrator.state == SyncState.EMPTY

    def test_storage_error_still_publishes(
        self, orchestrator, content_connector, content_store, make_content_document
    ):
        """Test a failed persist serves the new data but stores no validator."""
        content_connector.serve(CONTENT_URL, make_content_document("2"))

        with patch.object(content_store, "_atomic_write", side_effect=StorageError("disk full")):
            report = orchestrator.refresh()

        assert report.outcome == RefreshOutcome.ACCEPTED
        assert "disk full" in report.error
        assert orchestrator.current_graph().content_version == "2"
        assert content_store.metadata().validator is None
        assert content_store.metadata().version is None

    def test_unexpected_exception_is_contained(self, orchestrator, content_connector):
        with patch.object(content_connector, "fetch", side_effect=RuntimeError("boom")):
            report = orchestrator.refresh()

        assert report.outcome == RefreshOutcome.FAILED
        assert report.error == "boom"
        assert report.fallback_source == "bootstrap"
        assert orchestrator.state == SyncState.LOADED

    def test_last_report_and_summary(self, orchestrator, content_connector, make_content_document):
        content_connector.serve(CONTENT_URL, make_content_document("2"))

        report = orchestrator.refresh()

        assert orchestrator.last_report is report
        assert report.completed_at >= report.started_at
        assert "Refresh: accepted" in report.summary()
        assert report.to_dict()["active_version"] == "2"

    def test_refresh_in_background(self, orchestrator, content_connector, make_content_document):
        content_connector.serve(CONTENT_URL, make_content_document("3"))

        thread = orchestrator.refresh_in_background()
        thread.join(timeout=5)

        assert not thread.is_alive()
        assert thread.daemon is True
        assert orchestrator.last_report.outcome == RefreshOutcome.ACCEPTED
        assert orchestrator.current_graph().content_version == "3"


class TestFavoritesIntegration:
    """Tests for favorites across snapshot replacements."""

    def test_toggle_updates_live_graph(self, orchestrator):
        assert orchestrator.toggle_favorite("s-keynote") is True

        assert orchestrator.get_session("s-keynote").is_favorite is True
        assert [s.id for s in orchestrator.get_favorite_sessions()] == ["s-keynote"]

    def test_favorites_survive_new_snapshot(self, orchestrator, content_connector, make_content_document):
        orchestrator.toggle_favorite("s-workshop")
        content_connector.serve(CONTENT_URL, make_content_document("2"))

        orchestrator.refresh()

        assert orchestrator.get_session("s-workshop").is_favorite is True
        assert orchestrator.get_session("s-keynote").is_favorite is False

    def test_concurrent_toggles_during_refreshes(self, orchestrator, content_connector, make_content_document):
        """Test the published graph always agrees with the favorites set."""
        orchestrator.get_snapshot()
        session_ids = ["s-keynote", "s-pipelines", "s-workshop"]

        def toggler():
            for i in range(30):
                orchestrator.toggle_favorite(session_ids[i % 3])

        def refresher():
            for version in range(2, 12):
                content_connector.serve(CONTENT_URL, make_content_document(str(version)))
                orchestrator.refresh()

        threads = [threading.Thread(target=toggler), threading.Thread(target=refresher)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)

        graph = orchestrator.current_graph()
        flagged = {s.id for s in graph.session_list() if s.is_favorite}
        assert flagged == set(orchestrator.favorites.ids())


class TestQueries:
    """Tests for read queries."""

    def test_sessions_by_day_sorted(self, orchestrator):
        day0 = orchestrator.get_sessions_by_day(0)

        assert [s.id for s in day0] == ["s-keynote", "s-pipelines"]
        assert [s.id for s in orchestrator.get_sessions_by_day(1)] == ["s-workshop"]
        assert orchestrator.get_sessions_by_day(5) == []

    def test_entities(self, orchestrator):
        assert [t.id for t in orchestrator.get_tracks()] == ["t-web", "t-data"]
        assert [d.index for d in orchestrator.get_days()] == [0, 1]
        assert len(orchestrator.get_rooms()) == 2
        assert len(orchestrator.get_speakers()) == 2
        assert orchestrator.get_speaker("sp-ada").full_name == "Ada Byron"
        assert orchestrator.get_speaker("missing") is None
        assert orchestrator.get_sponsors()[0].tier == "Gold"
        assert orchestrator.get_session("missing") is None
