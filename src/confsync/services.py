"""
Construction of the long-lived sync services.

Everything is built once from a ``SyncConfig`` and handed to consumers by
reference.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .config import SyncConfig
from .connectors import HttpConnector
from .core.connector import Connector, socket_probe
from .core.models import ContentSnapshot, FeatureFlagSet
from .core.state_store import KeyValueStore
from .runner import ContentSyncOrchestrator, FeatureFlagSync
from .state import create_kv_store
from .storage import BOOTSTRAP_DIR, FavoritesStore, PersistentSnapshotStore


logger = logging.getLogger(__name__)

CONTENT_VERSION_KEY = "cached_version"
CONTENT_VALIDATOR_KEY = "cached_etag"
FLAGS_VALIDATOR_KEY = "flags_cached_etag"


@dataclass
class SyncServices:
    """The wired-up service graph."""
    config: SyncConfig
    kv_store: KeyValueStore
    content_connector: Connector
    flags_connector: Connector
    content_store: PersistentSnapshotStore
    flags_store: PersistentSnapshotStore
    favorites: FavoritesStore
    content: ContentSyncOrchestrator
    flags: FeatureFlagSync

    def close(self) -> None:
        """Release HTTP sessions and the state store."""
        self.content_connector.close()
        self.flags_connector.close()
        self.kv_store.close()


def build_http_connector(
    config: SyncConfig,
    name: str,
    decoder,
    extra_headers: Optional[dict] = None,
) -> HttpConnector:
    remote = config.get_remote_config()
    connectivity = socket_probe(remote["base_url"]) if remote.get("connectivity_check") else None
    return HttpConnector(
        name=name,
        decoder=decoder,
        timeout=remote.get("timeout", 10),
        max_attempts=remote.get("max_attempts", 3),
        backoff_delays=remote.get("backoff_seconds") or (1.0, 2.0, 4.0),
        user_agent=remote.get("user_agent"),
        extra_headers=extra_headers,
        fallback_validator_header=remote.get("fallback_validator_header"),
        connectivity=connectivity,
        enabled=bool(remote.get("enabled", True)),
    )


def build_services(
    config: SyncConfig,
    kv_store: Optional[KeyValueStore] = None,
    content_connector: Optional[Connector] = None,
    flags_connector: Optional[Connector] = None,
) -> SyncServices:
    """
    Build all services from configuration.

    Args:
        config: Loaded configuration
        kv_store: Override for the key-value store
        content_connector: Override for the content connector
        flags_connector: Override for the flags connector

    Returns:
        SyncServices with every component wired together
    """
    storage = config.get_storage_config()
    state = config.get_state_config()
    remote = config.get_remote_config()
    cache_dir = Path(storage.get("cache_dir", "local/cache"))

    if kv_store is None:
        kv_store = create_kv_store(backend=state.get("type"), db_path=state.get("db_path"))

    if content_connector is None:
        content_connector = build_http_connector(config, "content", ContentSnapshot.from_dict)
    if flags_connector is None:
        flags_connector = build_http_connector(
            config, "flags", FeatureFlagSet.from_dict, extra_headers=remote.get("flags_headers")
        )

    content_store = PersistentSnapshotStore(
        cache_path=cache_dir / storage.get("content_cache_file", "conference_cache.json"),
        kv_store=kv_store,
        decoder=ContentSnapshot.from_dict,
        bootstrap_path=Path(storage.get("content_bootstrap") or BOOTSTRAP_DIR / "conference.json"),
        version_key=CONTENT_VERSION_KEY,
        validator_key=CONTENT_VALIDATOR_KEY,
        version_of=lambda snapshot: snapshot.content_version,
        name="content",
        pretty_print=bool(storage.get("pretty_print", False)),
    )
    flags_store = PersistentSnapshotStore(
        cache_path=cache_dir / storage.get("flags_cache_file", "featureflags_cache.json"),
        kv_store=kv_store,
        decoder=FeatureFlagSet.from_dict,
        bootstrap_path=Path(storage.get("flags_bootstrap") or BOOTSTRAP_DIR / "featureflags.json"),
        validator_key=FLAGS_VALIDATOR_KEY,
        name="flags",
        pretty_print=bool(storage.get("pretty_print", False)),
    )

    favorites = FavoritesStore(kv_store)
    content = ContentSyncOrchestrator(
        connector=content_connector,
        store=content_store,
        favorites=favorites,
        content_url=config.content_url(),
    )
    flags = FeatureFlagSync(
        connector=flags_connector,
        store=flags_store,
        flags_url=config.flags_url(),
    )

    logger.debug(f"Built services (content: {config.content_url()}, flags: {config.flags_url()})")
    return SyncServices(
        config=config,
        kv_store=kv_store,
        content_connector=content_connector,
        flags_connector=flags_connector,
        content_store=content_store,
        flags_store=flags_store,
        favorites=favorites,
        content=content,
        flags=flags,
    )
