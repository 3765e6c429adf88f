"""Java Dependency Lock File --- Reproducible Installs.

This package implements the ``jx-lock.json`` lock file format. The lock
file captures the exact resolved state of a project's dependencies ---
every artifact at its resolved version and scope, with its checksum,
source repository and resolved children --- together with a fingerprint
of the declared dependency set it was computed from.

The package is split into focused submodules:

- ``models``: Data classes (``LockEntry``, ``LockfileMetadata``) and the
  ``algo:hex`` checksum helpers.
- ``lockfile``: The ``LockFile`` class with entry management,
  serialization and graph projection, plus ``fingerprint_declared``.
- ``operations``: Deserialization (``from_dict``, ``from_json``, ``read``),
  validation, and diffing.
- ``factory``: The ``from_graph`` factory method for constructing lock
  files from resolver output.
- ``manager``: ``LockFileManager``, which loads, checks staleness of and
  atomically commits the file on disk.

All public names are re-exported here so callers can write
``from jx.core.lockfile import LockFile``.
"""

from jx.core.lockfile.models import (
    LockEntry,
    LockfileMetadata,
    compute_checksum,
    is_valid_checksum,
    parse_checksum,
)

from jx.core.lockfile.lockfile import LockFile, fingerprint_declared

# Attach operations to LockFile as methods/classmethods
from jx.core.lockfile import operations as _ops
from jx.core.lockfile import factory as _factory

LockFile.from_dict = classmethod(_ops._from_dict)
LockFile.from_json = classmethod(_ops._from_json)
LockFile.read = classmethod(_ops._read)
LockFile.validate = _ops._validate
LockFile.diff = _ops._diff
LockFile.from_graph = classmethod(_factory._from_graph)

from jx.core.lockfile.manager import DEFAULT_LOCK_FILE, LockFileManager  # noqa: E402

__all__ = [
    "DEFAULT_LOCK_FILE",
    "LockEntry",
    "LockFile",
    "LockFileManager",
    "LockfileMetadata",
    "compute_checksum",
    "fingerprint_declared",
    "is_valid_checksum",
    "parse_checksum",
]
