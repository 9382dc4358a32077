"""Disk-based cache for remote documents.

Uses :mod:`diskcache` to persist the raw text of documents fetched over
HTTP(S) with a configurable time-to-live (TTL), so that repeated generation
runs against the same remote references do not refetch them.  Local files
are never cached.

Cache keys are SHA-256 hashes of the URL.  The cache only ever sees
successfully fetched and parsed documents; failures are never stored.

This is a transport-level cache shared across runs.  The per-run
URI-to-document map lives in :class:`~specir.parser.documents.DocumentCache`
and is never persisted.

See Also:
    :class:`~specir.models.FetchCacheConfig` -- the Pydantic model that
    controls ``enabled`` and ``ttl_seconds``.
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Any, Optional

import diskcache

from specir.models import FetchCacheConfig


class FetchCache:
    """Disk-backed cache of fetched document bodies.

    Stores ``{"content": str, "hint": str}`` entries in a
    :class:`diskcache.Cache` directory.  Entries expire after
    :attr:`~specir.models.FetchCacheConfig.ttl_seconds`.

    Args:
        cache_dir: Root directory for the cache.  A ``documents/``
            subdirectory is created inside it.
        config: Cache configuration (``enabled`` flag and ``ttl_seconds``).

    Example::

        from specir.cache import FetchCache
        from specir.models import FetchCacheConfig

        cache = FetchCache("/tmp/specir", FetchCacheConfig(enabled=True))
        cache.set("https://example.com/common.yaml", {"content": "...", "hint": "yaml"})
        hit = cache.get("https://example.com/common.yaml")
    """

    def __init__(self, cache_dir: str | Path, config: FetchCacheConfig) -> None:
        self._config = config
        self._cache: Optional[diskcache.Cache] = None
        self._cache_dir = Path(cache_dir)
        if config.enabled:
            self._cache = diskcache.Cache(str(self._cache_dir / "documents"))

    @property
    def enabled(self) -> bool:
        return self._cache is not None

    def get(self, url: str) -> Optional[dict[str, Any]]:
        """Look up a cached document body.

        Returns:
            The stored entry on a hit, or ``None`` on a miss, for non-HTTP
            URLs, or when caching is disabled.
        """
        if self._cache is None or not _is_remote(url):
            return None
        return self._cache.get(self._make_key(url))

    def set(self, url: str, entry: dict[str, Any]) -> None:
        """Store a fetched document body.  Non-HTTP URLs are silently skipped."""
        if self._cache is None or not _is_remote(url):
            return
        self._cache.set(self._make_key(url), entry, expire=self._config.ttl_seconds)

    def invalidate(self, url: str) -> None:
        if self._cache is None:
            return
        self._cache.delete(self._make_key(url))

    def clear(self) -> None:
        """Remove all entries from the cache."""
        if self._cache is not None:
            self._cache.clear()

    def stats(self) -> dict[str, Any]:
        """Return cache statistics.

        Returns:
            A ``dict`` with ``enabled`` (bool), and when enabled:
            ``size`` (number of entries), ``directory`` (str path), and
            ``ttl_seconds`` (int).
        """
        if self._cache is None:
            return {"enabled": False}
        return {
            "enabled": True,
            "size": len(self._cache),
            "directory": str(self._cache_dir / "documents"),
            "ttl_seconds": self._config.ttl_seconds,
        }

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache` and release resources."""
        if self._cache is not None:
            self._cache.close()

    def _make_key(self, url: str) -> str:
        return hashlib.sha256(url.encode()).hexdigest()


def _is_remote(url: str) -> bool:
    return url.startswith(("http://", "https://"))
