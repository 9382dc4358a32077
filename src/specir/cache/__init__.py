"""Disk-based caching of remote documents for specir.

This package provides :class:`FetchCache`, an optional layer that stores
the text of documents fetched over HTTP(S) to disk using :mod:`diskcache`,
keyed by URL with a configurable TTL.

The cache is consulted by :func:`~specir.parser.loader.fetch_document` and
is controlled by the ``cache`` section of the run configuration
(:class:`~specir.models.FetchCacheConfig`).
"""

from specir.cache.cache import FetchCache

__all__ = ["FetchCache"]
