"""Lock file data models: LockEntry, LockfileMetadata and checksum helpers.

Defines the core data structures of the ``jx-lock.json`` format. These are
pure data holders with no I/O, safe to import from anywhere without
circular-dependency concerns.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass, field

from jx.core.dependency.coordinates import Coordinate, Scope

# ---------------------------------------------------------------------------
# Checksum format: "<algorithm>:<hex>"
# ---------------------------------------------------------------------------

SUPPORTED_ALGORITHMS: dict[str, int] = {
    "md5": 32,
    "sha1": 40,
    "sha256": 64,
    "sha512": 128,
}

_CHECKSUM_RE = re.compile(r"^(?P<algo>md5|sha1|sha256|sha512):(?P<hex>[0-9a-f]+)$")


def parse_checksum(checksum: str) -> tuple[str, str]:
    """Split ``algo:hex`` into its parts.

    Raises:
        ValueError: If the algorithm is unsupported or the digest has the
            wrong length for it.
    """
    m = _CHECKSUM_RE.match(checksum.strip().lower())
    if not m or len(m.group("hex")) != SUPPORTED_ALGORITHMS[m.group("algo")]:
        raise ValueError(f"Invalid checksum: {checksum!r}")
    return m.group("algo"), m.group("hex")


def is_valid_checksum(checksum: str) -> bool:
    try:
        parse_checksum(checksum)
    except ValueError:
        return False
    return True


def compute_checksum(data: bytes, algorithm: str = "sha256") -> str:
    """Hash *data* and return it in ``algo:hex`` form."""
    digest = hashlib.new(algorithm, data).hexdigest()
    return f"{algorithm}:{digest}"


# ---------------------------------------------------------------------------
# LockEntry: A single resolved artifact in the lock file
# ---------------------------------------------------------------------------


@dataclass
class LockEntry:
    """The persisted counterpart of one resolved dependency node.

    Attributes:
        coordinate: Resolved coordinate (exact version, optional classifier).
        scope: Resolved scope.
        checksum: ``algo:hex`` digest of the artifact. Empty for ``pom``
            packaging, and for artifacts whose repository published no
            digest until the first download records one.
        source: Repository URL the artifact is downloaded from.
        depth: Depth at which the version was chosen (0 = declared).
        packaging: Maven packaging (``jar``, ``pom``...).
        dependencies: Identities of resolved children, sorted.
    """

    coordinate: Coordinate
    scope: Scope
    checksum: str
    source: str
    depth: int = 0
    packaging: str = "jar"
    dependencies: list[str] = field(default_factory=list)

    @property
    def identity(self) -> str:
        return self.coordinate.identity

    @property
    def has_artifact(self) -> bool:
        return self.packaging != "pom"

    def sort_key(self) -> tuple[str, str, str]:
        return (self.coordinate.group, self.coordinate.artifact, self.coordinate.classifier or "")


# ---------------------------------------------------------------------------
# LockfileMetadata: Top-level metadata section
# ---------------------------------------------------------------------------


@dataclass
class LockfileMetadata:
    """Metadata section of the lock file.

    Attributes:
        total_entries: Expected number of entries. Used during validation
            to detect truncated or hand-edited files.
        resolution_strategy: The conflict policy that produced the lock.
    """

    total_entries: int = 0
    resolution_strategy: str = "nearest-wins"
