"""
Durable storage for the last accepted remote document.

The document lives in a JSON cache file, written atomically (temp file in
the same directory, then ``os.replace``). Its version and validator are
kept in a key-value store. When no cache file exists yet, a read-only
bootstrap document shipped with the package is used instead.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Generic, Optional, Tuple, TypeVar

from ..core.exceptions import StorageError
from ..core.models import CacheMetadata
from ..core.state_store import KeyValueStore


logger = logging.getLogger(__name__)

T = TypeVar("T")

BOOTSTRAP_DIR = Path(__file__).resolve().parent.parent / "bootstrap"

SOURCE_CACHE = "cache"
SOURCE_BOOTSTRAP = "bootstrap"


def _default_encoder(document: Any) -> Any:
    return document.to_dict() if hasattr(document, "to_dict") else document


class PersistentSnapshotStore(Generic[T]):
    """
    Cache file plus metadata for one document type.

    Read failures (missing file, unreadable file, corrupt JSON, wrong shape)
    are logged and treated as a cache miss. Write failures raise
    ``StorageError``.
    """

    def __init__(
        self,
        cache_path: Path,
        kv_store: KeyValueStore,
        decoder: Callable[[Any], T],
        encoder: Optional[Callable[[T], Any]] = None,
        bootstrap_path: Optional[Path] = None,
        version_key: Optional[str] = None,
        validator_key: Optional[str] = None,
        version_of: Optional[Callable[[T], Optional[str]]] = None,
        name: str = "snapshot",
        pretty_print: bool = False,
    ):
        """
        Initialize the snapshot store.

        Args:
            cache_path: Path of the JSON cache file
            kv_store: Store for version/validator metadata
            decoder: Turns decoded JSON into the document type
            encoder: Turns the document back into JSON-able data
            bootstrap_path: Bundled fallback document
            version_key: Metadata key for the document version (None = untracked)
            validator_key: Metadata key for the validator (None = untracked)
            version_of: Extracts the version from a document
            name: Label used in log lines
            pretty_print: Whether to indent the cache file
        """
        self.cache_path = Path(cache_path)
        self.kv_store = kv_store
        self.decoder = decoder
        self.encoder = encoder or _default_encoder
        self.bootstrap_path = Path(bootstrap_path) if bootstrap_path else None
        self.version_key = version_key
        self.validator_key = validator_key
        self.version_of = version_of
        self.name = name
        self.pretty_print = pretty_print

    def load(self) -> Optional[T]:
        """Load the cached document, else the bootstrap, else None."""
        document, _ = self.load_with_source()
        return document

    def load_with_source(self) -> Tuple[Optional[T], Optional[str]]:
        """
        Load the best local document.

        Returns:
            (document, source) where source is 'cache', 'bootstrap' or None
        """
        cached = self.load_cached()
        if cached is not None:
            return cached, SOURCE_CACHE

        bootstrap = self.load_bootstrap()
        if bootstrap is not None:
            return bootstrap, SOURCE_BOOTSTRAP

        logger.warning(f"{self.name}: no cached or bootstrap document available")
        return None, None

    def load_cached(self) -> Optional[T]:
        """
        Load the cache file.

        A missing or unreadable file also drops the stored version and
        validator, which describe a document that is no longer on disk.
        """
        if not self.cache_path.exists():
            logger.debug(f"{self.name}: no cache file at {self.cache_path}")
            self._drop_metadata()
            return None
        try:
            document = self._read(self.cache_path)
        except StorageError as e:
            logger.warning(f"{self.name}: ignoring unreadable cache: {e}")
            self._drop_metadata()
            return None
        logger.debug(f"{self.name}: loaded cache from {self.cache_path}")
        return document

    def load_bootstrap(self) -> Optional[T]:
        if self.bootstrap_path is None or not self.bootstrap_path.exists():
            logger.debug(f"{self.name}: no bootstrap document configured")
            return None
        try:
            document = self._read(self.bootstrap_path)
        except StorageError as e:
            logger.error(f"{self.name}: bootstrap document is unusable: {e}")
            return None
        logger.info(f"{self.name}: loaded bootstrap from {self.bootstrap_path}")
        return document

    def has_cache(self) -> bool:
        return self.cache_path.exists()

    def save(self, document: T, validator: Optional[str] = None) -> None:
        """
        Persist ``document`` and its metadata.

        The file is written first; metadata is only updated once the file is
        in place. An empty validator leaves the stored validator untouched.

        Raises:
            StorageError: If the file or metadata cannot be written
        """
        try:
            content = self.encoder(document)
            indent = 2 if self.pretty_print else None
            text = json.dumps(content, indent=indent, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise StorageError(f"{self.name}: cannot serialize document: {e}") from e

        self._atomic_write(text)

        if self.version_key and self.version_of:
            version = self.version_of(document)
            if version is not None:
                self.kv_store.set(self.version_key, str(version))
        if validator:
            self.set_validator(validator)

        logger.debug(f"{self.name}: wrote cache to {self.cache_path}")

    def metadata(self) -> CacheMetadata:
        """
        Return the stored version and validator.

        Both read as absent when the cache file is missing or unreadable, or
        when the entries cannot be read.
        """
        if self.load_cached() is None:
            return CacheMetadata()
        try:
            version = self.kv_store.get(self.version_key) if self.version_key else None
            validator = self.kv_store.get(self.validator_key) if self.validator_key else None
        except StorageError as e:
            logger.warning(f"{self.name}: cannot read cache metadata: {e}")
            return CacheMetadata()
        return CacheMetadata(version=version or None, validator=validator or None)

    def set_validator(self, validator: str) -> None:
        if self.validator_key:
            self.kv_store.set(self.validator_key, validator)

    def clear(self) -> None:
        """Remove the cache file and its metadata."""
        try:
            self.cache_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StorageError(f"{self.name}: cannot remove cache: {e}") from e
        for key in (self.version_key, self.validator_key):
            if key:
                self.kv_store.delete(key)
        logger.info(f"{self.name}: cache cleared")

    def _drop_metadata(self) -> None:
        for key in (self.version_key, self.validator_key):
            if not key:
                continue
            try:
                if self.kv_store.delete(key):
                    logger.info(f"{self.name}: dropped stale metadata '{key}'")
            except StorageError as e:
                logger.warning(f"{self.name}: cannot drop stale metadata '{key}': {e}")

    def _read(self, path: Path) -> T:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise StorageError(f"cannot read {path}: {e}") from e
        try:
            return self.decoder(data)
        except (TypeError, ValueError, KeyError, AttributeError) as e:
            raise StorageError(f"unexpected document shape in {path}: {e}") from e

    def _atomic_write(self, text: str) -> None:
        try:
            self.cache_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.cache_path.parent, suffix=".tmp")
        except OSError as e:
            raise StorageError(f"{self.name}: cannot create cache file: {e}") from e
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(tmp_path, self.cache_path)
        except OSError as e:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            logger.error(f"{self.name}: failed to write cache: {e}")
            raise StorageError(f"{self.name}: failed to write cache: {e}") from e
