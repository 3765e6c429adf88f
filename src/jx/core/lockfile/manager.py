"""Reading, staleness checks and atomic commits of ``jx-lock.json``."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from pathlib import Path

from jx.core.cache.locking import advisory_lock, atomic_write
from jx.core.dependency.coordinates import Dependency
from jx.core.lockfile.lockfile import LockFile, fingerprint_declared
from jx.exceptions import LockfileError, StaleLockError

logger = logging.getLogger(__name__)

DEFAULT_LOCK_FILE = "jx-lock.json"


class LockFileManager:
    """Owns one lock file on disk.

    The stored lock is authoritative unless it is absent, stale (its
    fingerprint no longer matches the declared set) or the caller forces a
    fresh resolution.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    @property
    def _lock_path(self) -> Path:
        return self.path.with_name(f".{self.path.name}.lock")

    def load(self) -> LockFile | None:
        """Return the stored lock, or None when no lock file exists.

        Raises:
            LockfileError: If the file exists but cannot be parsed.
        """
        if not self.path.is_file():
            return None
        try:
            lock = LockFile.read(self.path)
        except (OSError, UnicodeDecodeError) as exc:
            raise LockfileError(f"Cannot read {self.path}: {exc}") from exc
        logger.debug("Loaded %d lock entries from %s", len(lock), self.path)
        return lock

    def is_stale(
        self,
        lock: LockFile | None,
        declared: Iterable[Dependency],
        managed_versions: Mapping[str, str] | None = None,
    ) -> bool:
        if lock is None:
            return True
        return lock.fingerprint != fingerprint_declared(declared, managed_versions)

    def require_fresh(
        self,
        lock: LockFile | None,
        declared: Iterable[Dependency],
        managed_versions: Mapping[str, str] | None = None,
    ) -> LockFile:
        """Return *lock* if it matches the declared set.

        Raises:
            StaleLockError: If the lock is absent or stale.
        """
        if lock is None:
            raise StaleLockError(f"No lock file at {self.path}")
        if self.is_stale(lock, declared, managed_versions):
            raise StaleLockError(f"{self.path} does not match the declared dependencies")
        return lock

    def commit(self, lock: LockFile) -> LockFile:
        """Write *lock* atomically under an advisory lock.

        Concurrent readers observe either the previous file or the new one.

        Raises:
            LockfileError: If the lock fails validation.
        """
        errors = lock.validate()
        if errors:
            raise LockfileError("Refusing to write invalid lock file: " + "; ".join(errors))
        with advisory_lock(self._lock_path):
            atomic_write(self.path, lock.to_json().encode("utf-8"))
        logger.info("Wrote %d lock entries to %s", len(lock), self.path)
        return lock
