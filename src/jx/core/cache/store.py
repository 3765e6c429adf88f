"""Content-verified, machine-wide artifact cache.

Layout::

    <root>/<group as path>/<artifact>/<version>/<artifact>-<version>[-<classifier>].jar
    <root>/<group as path>/<artifact>/<version>/<artifact>-<version>[-<classifier>].jar.meta.json

The sidecar holds the ``sha1`` and ``sha256`` digests and the size of the
artifact. Artifacts are immutable per key: a file is only ever written
once its bytes have been verified, and the artifact file is moved into
place last, so its presence marks a complete entry.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import shutil
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from jx.core.cache.locking import advisory_lock, atomic_write, temp_path_for
from jx.core.dependency.coordinates import Coordinate
from jx.exceptions import IntegrityError

logger = logging.getLogger(__name__)

CACHE_ENV_VAR = "JX_CACHE_DIR"
META_SUFFIX = ".meta.json"


def default_cache_root() -> Path:
    """``$JX_CACHE_DIR`` when set, else ``~/.jx/cache``."""
    override = os.environ.get(CACHE_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".jx" / "cache"


def _digest(data: bytes, algorithm: str) -> str:
    return hashlib.new(algorithm, data).hexdigest()


def _split(checksum: str) -> tuple[str, str]:
    algo, _, hexdigest = checksum.strip().lower().partition(":")
    if not hexdigest or algo not in hashlib.algorithms_available:
        raise IntegrityError(f"Unsupported checksum {checksum!r}", expected=checksum)
    return algo, hexdigest


@dataclass(frozen=True, order=True)
class CacheKey:
    """Immutable cache identity of one artifact file."""

    group: str
    artifact: str
    version: str
    classifier: str | None = None

    @classmethod
    def from_coordinate(cls, coordinate: Coordinate) -> CacheKey:
        return cls(coordinate.group, coordinate.artifact, coordinate.version, coordinate.classifier)

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.group, self.artifact, self.version, self.classifier)

    @property
    def relative_path(self) -> Path:
        parts = self.group.split(".")
        return Path(*parts, self.artifact, self.version, self.coordinate.filename)

    def __str__(self) -> str:
        return str(self.coordinate)


@dataclass(frozen=True)
class CacheEntry:
    """A verified artifact in the cache."""

    key: CacheKey
    path: Path
    sha1: str
    sha256: str
    size: int

    @property
    def checksum(self) -> str:
        return f"sha256:{self.sha256}"

    def matches(self, checksum: str) -> bool:
        """Whether the stored artifact has the digest *checksum* names."""
        algo, expected = _split(checksum)
        if algo == "sha256":
            return self.sha256 == expected
        if algo == "sha1":
            return self.sha1 == expected
        return _digest(self.path.read_bytes(), algo) == expected


class ArtifactCache:
    """Machine-wide artifact cache rooted at *root*.

    Safe to share between processes: writes go through a temporary file
    and ``os.replace`` under a per-artifact advisory lock.
    """

    def __init__(self, root: Path | None = None) -> None:
        self.root = Path(root) if root is not None else default_cache_root()

    def path(self, key: CacheKey) -> Path:
        """Location of *key*'s artifact file (which may not exist yet)."""
        return self.root / key.relative_path

    def _meta_path(self, key: CacheKey) -> Path:
        artifact = self.path(key)
        return artifact.with_name(artifact.name + META_SUFFIX)

    def get(self, key: CacheKey) -> CacheEntry | None:
        """Return the entry for *key*, or None if absent or incomplete."""
        artifact = self.path(key)
        meta_path = self._meta_path(key)
        if not artifact.is_file() or not meta_path.is_file():
            return None
        try:
            meta = json.loads(meta_path.read_text(encoding="utf-8"))
            entry = CacheEntry(
                key=key,
                path=artifact,
                sha1=meta["sha1"],
                sha256=meta["sha256"],
                size=int(meta["size"]),
            )
        except (OSError, ValueError, KeyError, TypeError):
            logger.warning("Ignoring unreadable cache metadata %s", meta_path)
            return None
        if artifact.stat().st_size != entry.size:
            logger.warning("Cached %s has unexpected size; ignoring it", key)
            return None
        return entry

    def has(self, key: CacheKey, checksum: str | None = None) -> bool:
        """True when *key* is cached and, if given, matches *checksum*."""
        entry = self.get(key)
        if entry is None:
            return False
        return checksum is None or entry.matches(checksum)

    def put(self, key: CacheKey, data: bytes, expected: str | None = None) -> CacheEntry:
        """Verify *data* against *expected* and store it under *key*.

        The bytes go to a temporary file first; the final path is only
        created once verification has passed.

        Raises:
            IntegrityError: If *data* does not match *expected*. Nothing is
                left behind under the key.
        """
        artifact = self.path(key)
        tmp = temp_path_for(artifact)
        try:
            tmp.write_bytes(data)
            stored = tmp.read_bytes()
            sha1 = _digest(stored, "sha1")
            sha256 = _digest(stored, "sha256")
            if expected:
                algo, wanted = _split(expected)
                actual = {"sha1": sha1, "sha256": sha256}.get(algo) or _digest(stored, algo)
                if actual != wanted:
                    raise IntegrityError(
                        f"Checksum mismatch for {key}",
                        expected=expected,
                        actual=f"{algo}:{actual}",
                    )
            meta = {"sha1": sha1, "sha256": sha256, "size": len(stored)}
            # The sidecar is removed before the artifact moves and written after
            # it; an interrupted put leaves an incomplete entry, never a stale one.
            with advisory_lock(artifact.with_name(artifact.name + ".lock")):
                self._meta_path(key).unlink(missing_ok=True)
                os.replace(tmp, artifact)
                atomic_write(
                    self._meta_path(key),
                    json.dumps(meta, sort_keys=True).encode("utf-8"),
                )
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise
        logger.debug("Cached %s (%d bytes)", key, len(stored))
        return CacheEntry(key=key, path=artifact, sha1=sha1, sha256=sha256, size=len(stored))

    def entries(self) -> Iterator[CacheEntry]:
        """Every complete entry in the cache, in path order."""
        if not self.root.is_dir():
            return
        for meta_path in sorted(self.root.rglob(f"*.jar{META_SUFFIX}")):
            key = self._key_for(meta_path)
            if key is None:
                continue
            entry = self.get(key)
            if entry is not None:
                yield entry

    def _key_for(self, meta_path: Path) -> CacheKey | None:
        relative = meta_path.relative_to(self.root).parts
        if len(relative) < 4:
            return None
        *group_parts, artifact, version, filename = relative
        stem = filename[: -len(".jar" + META_SUFFIX)]
        prefix = f"{artifact}-{version}"
        if not stem.startswith(prefix):
            return None
        classifier = stem[len(prefix) + 1:] or None
        return CacheKey(".".join(group_parts), artifact, version, classifier)

    def size(self) -> int:
        """Total size in bytes of all cached artifacts."""
        return sum(entry.size for entry in self.entries())

    def clear(self) -> int:
        """Remove everything under the cache root.

        Returns:
            The number of artifacts that were cached.
        """
        count = sum(1 for _ in self.entries())
        if self.root.is_dir():
            shutil.rmtree(self.root)
        logger.info("Removed %d cached artifacts from %s", count, self.root)
        return count
