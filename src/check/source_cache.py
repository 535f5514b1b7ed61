"""Local cache of package source archives."""

from __future__ import annotations

import logging
import os
import threading
from typing import Callable, Dict, Mapping, Optional, Union

from common.errors import FetchSourceFailure, HttpFetchError
from common.http_client import download_file
from versioning.models import PackageRecord

logger = logging.getLogger(__name__)


class _SkippedNoSource:
    """Sentinel returned when a package has no source in the snapshot."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SKIPPED_NO_SOURCE"

    def __bool__(self) -> bool:
        return False


SKIPPED_NO_SOURCE = _SkippedNoSource()

SourceResult = Union[str, _SkippedNoSource]


class SourceCache:
    """Resolves package names to local source archives.

    Archives are kept in ``cache_dir`` under their upstream file name, so a
    reused directory persists across runs. Each name is downloaded at most
    once, even when requested from several worker threads.
    """

    def __init__(
        self,
        source_snapshot: Mapping[str, PackageRecord],
        cache_dir: str,
        *,
        download: Optional[Callable[..., str]] = None,
    ):
        """Initialize the source cache.

        Args:
            source_snapshot: Source-form metadata snapshot.
            cache_dir: Directory holding cached archives; created if absent.
            download: ``download(url, dest, context=...)`` callable.
        """
        self._snapshot = source_snapshot
        self.cache_dir = cache_dir
        self._download = download or download_file
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        self.downloads = 0
        os.makedirs(cache_dir, exist_ok=True)

    def _lock_for(self, name: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(name, threading.Lock())

    def cached_path(self, name: str) -> Optional[str]:
        """Where the archive for ``name`` lives (or would live) in the cache."""
        record = self._snapshot.get(name)
        if record is None or not record.source_url:
            return None
        return os.path.join(self.cache_dir, record.source_url.rsplit("/", 1)[-1])

    def fetch_source(self, name: str) -> SourceResult:
        """Return the local archive path for ``name``, downloading it if needed.

        Returns:
            The archive path, or ``SKIPPED_NO_SOURCE`` when the snapshot has no
            source for ``name``.

        Raises:
            FetchSourceFailure: If the download fails.
        """
        local = self.cached_path(name)
        if local is None:
            logger.info("Skipping %s: can't find source", name)
            return SKIPPED_NO_SOURCE

        with self._lock_for(name):
            if os.path.exists(local):
                logger.debug("Cache hit for %s: %s", name, local)
                return local
            logger.info("Downloading %s", name)
            try:
                self._download(self._snapshot[name].source_url, local, context="source")
            except (HttpFetchError, OSError) as exc:
                raise FetchSourceFailure(name, str(exc)) from exc
            self.downloads += 1
        return local
