"""
Shared test fixtures and configuration for pytest.
"""

import copy
import json
import logging
import sys
from pathlib import Path

import pytest

# Add src directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


logger = logging.getLogger(__name__)

BOOTSTRAP_CONTENT = Path(__file__).parent.parent / "src" / "confsync" / "bootstrap" / "conference.json"


# ============================================================================
# Pytest hooks
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")
    config.addinivalue_line("markers", "slow: Tests that take a long time to run")


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture(scope="session")
def bootstrap_document() -> dict:
    """The bundled conference document as a plain dict."""
    with open(BOOTSTRAP_CONTENT, "r", encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def content_document(bootstrap_document) -> dict:
    """A mutable copy of the bundled conference document."""
    return copy.deepcopy(bootstrap_document)


@pytest.fixture
def make_content_document(bootstrap_document):
    """Factory producing a conference document with a given content version."""
    def _make(version: str, title: str = None) -> dict:
        document = copy.deepcopy(bootstrap_document)
        document["contentVersion"] = version
        if title:
            document["sessions"][0]["title"] = title
        return document
    return _make


@pytest.fixture
def kv_store():
    """Fixture providing an in-memory key-value store."""
    from confsync.state import MemoryKeyValueStore

    store = MemoryKeyValueStore()
    yield store
    store.close()


@pytest.fixture
def content_connector():
    """Fixture providing a static connector decoding conference documents."""
    from confsync.connectors import StaticConnector
    from confsync.core.models import ContentSnapshot

    connector = StaticConnector(name="content", decoder=ContentSnapshot.from_dict)
    yield connector
    connector.close()


@pytest.fixture
def flags_connector():
    """Fixture providing a static connector decoding flag documents."""
    from confsync.connectors import StaticConnector
    from confsync.core.models import FeatureFlagSet

    connector = StaticConnector(name="flags", decoder=FeatureFlagSet.from_dict)
    yield connector
    connector.close()


@pytest.fixture
def content_store(tmp_path, kv_store):
    """Content snapshot store writing under a temporary directory."""
    from confsync.core.models import ContentSnapshot
    from confsync.services import CONTENT_VALIDATOR_KEY, CONTENT_VERSION_KEY
    from confsync.storage import PersistentSnapshotStore

    return PersistentSnapshotStore(
        cache_path=tmp_path / "cache" / "conference_cache.json",
        kv_store=kv_store,
        decoder=ContentSnapshot.from_dict,
        bootstrap_path=BOOTSTRAP_CONTENT,
        version_key=CONTENT_VERSION_KEY,
        validator_key=CONTENT_VALIDATOR_KEY,
        version_of=lambda snapshot: snapshot.content_version,
        name="content",
    )
