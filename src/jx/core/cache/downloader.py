"""Parallel, deduplicated, verified artifact downloads into the cache."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import Protocol

from jx.core.cache.store import ArtifactCache, CacheEntry, CacheKey
from jx.core.dependency.coordinates import Coordinate
from jx.core.retry import RetryPolicy, with_retries
from jx.exceptions import JxError

logger = logging.getLogger(__name__)

DEFAULT_MAX_PARALLEL = 8

ArtifactFetcher = Callable[[Coordinate, str], Awaitable[bytes]]
"""Single-attempt fetch of an artifact's bytes from a repository URL."""


class Downloadable(Protocol):
    """What the download manager needs to know about an artifact.

    ``LockEntry`` satisfies this protocol.
    """

    coordinate: Coordinate
    checksum: str
    source: str

    @property
    def has_artifact(self) -> bool: ...


@dataclass
class DownloadStats:
    """Counts for the last ``ensure_all`` call."""

    downloaded: list[CacheKey] = field(default_factory=list)
    cached: list[CacheKey] = field(default_factory=list)
    skipped: list[CacheKey] = field(default_factory=list)


class DownloadManager:
    """Ensures artifacts are present in an ``ArtifactCache``.

    Args:
        cache: Destination cache.
        fetcher: Single-attempt artifact fetch; retries happen here.
        max_parallel: Upper bound on concurrent fetches.
        policy: Retry budget for transient network failures.
    """

    def __init__(
        self,
        cache: ArtifactCache,
        fetcher: ArtifactFetcher,
        *,
        max_parallel: int = DEFAULT_MAX_PARALLEL,
        policy: RetryPolicy = RetryPolicy(),
    ) -> None:
        self.cache = cache
        self._fetcher = fetcher
        self._semaphore = asyncio.Semaphore(max(1, max_parallel))
        self._policy = policy
        self._inflight: dict[CacheKey, asyncio.Future[CacheEntry]] = {}
        self.stats = DownloadStats()

    async def ensure_all(
        self,
        entries: Iterable[Downloadable],
        *,
        chain_for: Callable[[CacheKey], list[str]] | None = None,
    ) -> dict[CacheKey, CacheEntry]:
        """Make every artifact in *entries* available in the cache.

        Entries with ``pom`` packaging have no artifact and are skipped.
        The first failure cancels all outstanding downloads and is raised,
        carrying the dependency chain *chain_for* reports for its key.

        Returns:
            Cache entry per key, for every entry that has an artifact.

        Raises:
            IntegrityError: Downloaded bytes did not match the checksum.
            NotFoundError: An artifact is missing from its repository.
            NetworkError: A download failed after exhausting retries.
        """
        self.stats = DownloadStats()
        wanted: dict[CacheKey, Downloadable] = {}
        for entry in entries:
            key = CacheKey.from_coordinate(entry.coordinate)
            if not entry.has_artifact:
                self.stats.skipped.append(key)
                continue
            wanted.setdefault(key, entry)

        keys = sorted(wanted)
        tasks = {key: asyncio.ensure_future(self.ensure(wanted[key])) for key in keys}
        if not tasks:
            return {}
        try:
            await asyncio.wait(tasks.values(), return_when=asyncio.FIRST_EXCEPTION)
        finally:
            pending = [t for t in tasks.values() if not t.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        for key in keys:
            task = tasks[key]
            if task.cancelled() or task.exception() is None:
                continue
            exc = task.exception()
            if isinstance(exc, JxError) and chain_for is not None:
                exc.with_chain(chain_for(key))
            raise exc
        return {key: tasks[key].result() for key in keys}

    async def ensure(self, entry: Downloadable) -> CacheEntry:
        """Ensure one artifact is cached; concurrent calls share one fetch."""
        key = CacheKey.from_coordinate(entry.coordinate)
        shared = self._inflight.get(key)
        if shared is not None:
            return await asyncio.shield(shared)

        task = asyncio.ensure_future(self._obtain(key, entry))
        self._inflight[key] = task
        task.add_done_callback(lambda _t, k=key: self._inflight.pop(k, None))
        return await task

    def _lookup(self, key: CacheKey, checksum: str) -> CacheEntry | None:
        cached = self.cache.get(key)
        if cached is not None and (not checksum or cached.matches(checksum)):
            return cached
        return None

    async def _obtain(self, key: CacheKey, entry: Downloadable) -> CacheEntry:
        cached = await asyncio.to_thread(self._lookup, key, entry.checksum)
        if cached is not None:
            logger.debug("Cache hit for %s", key)
            self.stats.cached.append(key)
            return cached
        return await self._download(key, entry)

    async def _download(self, key: CacheKey, entry: Downloadable) -> CacheEntry:
        async def attempt() -> bytes:
            return await self._fetcher(entry.coordinate, entry.source)

        async with self._semaphore:
            logger.info("Downloading %s from %s", key, entry.source)
            data = await with_retries(attempt, policy=self._policy, describe=str(key))
        stored = await asyncio.to_thread(
            self.cache.put, key, data, entry.checksum or None
        )
        self.stats.downloaded.append(key)
        return stored
