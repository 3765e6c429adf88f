"""Machine-wide artifact cache and the download manager that fills it.

Public API::

    from jx.core.cache import ArtifactCache, CacheKey, DownloadManager
"""

from jx.core.cache.downloader import DownloadManager, DownloadStats
from jx.core.cache.store import (
    ArtifactCache,
    CacheEntry,
    CacheKey,
    default_cache_root,
)

__all__ = [
    "ArtifactCache",
    "CacheEntry",
    "CacheKey",
    "DownloadManager",
    "DownloadStats",
    "default_cache_root",
]
