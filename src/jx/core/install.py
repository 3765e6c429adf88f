"""Install orchestration: declared dependencies -> lock -> cache -> ``lib/``.

The pipeline for one ``install`` run is::

    load lock -> (stale | absent | forced) resolve -> build lock -> diff
      -> download into cache -> commit lock -> materialize into lib/

The lock is committed only after every selected artifact is in the cache,
so an interrupted or failed run never leaves a lock behind that points at
artifacts that were never verified.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from jx.config import ProjectConfig
from jx.core.cache import ArtifactCache, CacheEntry, CacheKey, DownloadManager
from jx.core.cache.downloader import ArtifactFetcher
from jx.core.cache.locking import temp_path_for
from jx.core.dependency import (
    PRODUCTION_SCOPES,
    ResolvedGraph,
    VersionResolver,
    pick_dynamic,
)
from jx.core.lockfile import LockEntry, LockFile, LockFileManager, fingerprint_declared
from jx.core.retry import RetryPolicy
from jx.exceptions import JxError, NotFoundError, StaleLockError
from jx.registry.base import RegistryClient

logger = logging.getLogger(__name__)


def _carry_checksums(previous: LockFile, lock: LockFile) -> None:
    """Keep digests trusted on first use when the coordinate is unchanged."""
    for entry in lock.entries:
        if entry.checksum or not entry.has_artifact:
            continue
        old = previous.get_entry(entry.identity)
        if old is not None and old.checksum and old.coordinate == entry.coordinate:
            lock.record_checksum(entry.identity, old.checksum)


@dataclass
class InstallReport:
    """Outcome of one install run."""

    resolved: bool = False
    lock_written: bool = False
    total: int = 0
    downloaded: int = 0
    cached: int = 0
    materialized: list[Path] = field(default_factory=list)
    pruned: list[Path] = field(default_factory=list)
    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    changed: list[dict[str, str]] = field(default_factory=list)


@dataclass(frozen=True)
class Outdated:
    """A declared dependency and the newest release the registry offers."""

    identity: str
    current: str
    latest: str

    @property
    def is_outdated(self) -> bool:
        return self.current != self.latest


class Installer:
    """Runs the install pipeline for one project.

    Args:
        config: The project's ``jx.toml``.
        registry: Metadata source; the caller keeps ownership.
        cache: Artifact cache. Defaults to the machine-wide cache.
        fetcher: Single-attempt artifact download. Defaults to the
            registry's ``fetch_artifact``.
    """

    def __init__(
        self,
        config: ProjectConfig,
        registry: RegistryClient,
        *,
        cache: ArtifactCache | None = None,
        fetcher: ArtifactFetcher | None = None,
    ) -> None:
        self.config = config
        self.registry = registry
        self.cache = cache or ArtifactCache()
        self.settings = config.install_settings()
        self.lock_manager = LockFileManager(config.lock_path)
        self._fetcher = fetcher or getattr(registry, "fetch_artifact", None)
        if self._fetcher is None:
            raise TypeError(f"{registry.name} registry cannot download artifacts; pass a fetcher")

    # -- Resolution ---------------------------------------------------------

    async def resolve(self) -> ResolvedGraph:
        """Resolve the declared dependencies without touching disk."""
        resolver = VersionResolver(
            self.registry,
            managed_versions=self.config.managed_versions(),
            max_parallel=self.settings.max_parallel,
        )
        return await resolver.resolve(self.config.declared_dependencies())

    async def locked_graph(self) -> ResolvedGraph:
        """The graph from a fresh lock, resolving only when the lock is stale."""
        lock = self.lock_manager.load()
        if self.lock_manager.is_stale(
            lock, self.config.declared_dependencies(), self.config.managed_versions()
        ):
            return await self.resolve()
        return lock.to_graph()

    async def outdated(self, identities: Iterable[str] | None = None) -> list[Outdated]:
        """Newest available release for each declared (or named) dependency.

        Raises:
            JxError: If a named identity is not declared.
            NotFoundError: If the registry lists no release for one.
        """
        declared = {d.identity: d for d in self.config.declared_dependencies()}
        wanted = sorted(identities) if identities is not None else sorted(declared)
        for identity in wanted:
            if identity not in declared:
                raise JxError(f"{identity} is not a declared dependency")

        async def check(identity: str) -> Outdated:
            dep = declared[identity]
            versions = await self.registry.fetch_versions(dep.coordinate.group, dep.coordinate.artifact)
            latest = pick_dynamic("RELEASE", versions)
            if latest is None:
                raise NotFoundError(f"No release of {identity} is available")
            return Outdated(identity=identity, current=dep.version, latest=latest)

        return list(await asyncio.gather(*(check(i) for i in wanted)))

    # -- Install ------------------------------------------------------------

    async def install(self, *, force: bool = False, production: bool = False) -> InstallReport:
        """Bring the lock, the cache and ``lib/`` in line with ``jx.toml``.

        Args:
            force: Re-resolve even when the lock is fresh.
            production: Skip ``test`` and ``provided`` dependencies.

        Raises:
            JxError: Any resolution, download or lock failure. The lock
                file is left untouched.
        """
        declared = self.config.declared_dependencies()
        managed = self.config.managed_versions()
        report = InstallReport()

        previous = self.lock_manager.load()
        lock: LockFile | None = None
        if force:
            logger.info("Re-resolution forced")
        else:
            try:
                lock = self.lock_manager.require_fresh(previous, declared, managed)
            except StaleLockError as exc:
                logger.info("%s", exc.message)

        if lock is None:
            logger.info("Resolving %d declared dependencies", len(declared))
            graph = await self.resolve()
            lock = LockFile.from_graph(graph, fingerprint_declared(declared, managed))
            report.resolved = True
            if previous is not None:
                _carry_checksums(previous, lock)
                changes = previous.diff(lock)
            else:
                changes = {"added": lock.identities, "removed": [], "changed": []}
            report.added = changes["added"]
            report.removed = changes["removed"]
            report.changed = changes["changed"]
        else:
            logger.info("Lock file is up to date; skipping resolution")
            graph = lock.to_graph()

        selected = [
            e for e in lock.entries if not production or e.scope in PRODUCTION_SCOPES
        ]
        report.total = len(selected)

        downloads = DownloadManager(
            self.cache,
            self._fetcher,
            max_parallel=self.settings.max_parallel,
            policy=RetryPolicy(attempts=self.settings.retries),
        )
        entries = await downloads.ensure_all(
            selected,
            chain_for=lambda key: graph.chain_to(key.coordinate.identity),
        )
        report.downloaded = len(downloads.stats.downloaded)
        report.cached = len(downloads.stats.cached)

        recorded = self._record_checksums(lock, selected, entries)
        if report.resolved or recorded:
            await asyncio.to_thread(self.lock_manager.commit, lock)
            report.lock_written = True

        report.materialized, report.pruned = await asyncio.to_thread(
            self.materialize, selected, entries
        )
        return report

    @staticmethod
    def _record_checksums(
        lock: LockFile, selected: list[LockEntry], entries: dict[CacheKey, CacheEntry]
    ) -> bool:
        """Write trust-on-first-use digests into *lock*; True if any were new."""
        recorded = False
        for entry in selected:
            if entry.checksum or not entry.has_artifact:
                continue
            cached = entries[CacheKey.from_coordinate(entry.coordinate)]
            logger.warning(
                "%s has no published checksum; trusting %s on first use",
                entry.coordinate, cached.checksum,
            )
            lock.record_checksum(entry.identity, cached.checksum)
            recorded = True
        return recorded

    # -- Materialization ----------------------------------------------------

    def materialize(
        self, selected: list[LockEntry], entries: dict[CacheKey, CacheEntry]
    ) -> tuple[list[Path], list[Path]]:
        """Place every selected artifact in the lib directory.

        Jars in the lib directory that are not selected are removed.

        Returns:
            (materialized paths, pruned paths), each sorted.
        """
        lib = self.config.lib_path
        lib.mkdir(parents=True, exist_ok=True)
        placed: list[Path] = []
        for entry in selected:
            if not entry.has_artifact:
                continue
            source = entries[CacheKey.from_coordinate(entry.coordinate)].path
            dest = lib / entry.coordinate.filename
            self._place(source, dest)
            placed.append(dest)

        keep = {p.name for p in placed}
        pruned = sorted(p for p in lib.glob("*.jar") if p.name not in keep)
        for stale in pruned:
            logger.info("Removing %s", stale)
            stale.unlink()
        return sorted(placed), pruned

    def _place(self, source: Path, dest: Path) -> None:
        if self.settings.link:
            dest.unlink(missing_ok=True)
            try:
                os.link(source, dest)
                return
            except OSError as exc:
                logger.warning("Cannot hard-link %s (%s); copying instead", source, exc)
        tmp = temp_path_for(dest)
        try:
            shutil.copyfile(source, tmp)
            os.replace(tmp, dest)
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise
