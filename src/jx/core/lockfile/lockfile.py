"""Lock file core class --- entry management, fingerprinting, serialization.

The ``LockFile`` class is the central data structure representing a
``jx-lock.json`` file. It provides:

- **Entry management:** add, get, count and list entries.
- **Fingerprinting:** a hash of the declared dependency set the lock was
  computed from; a mismatch means the lock is stale.
- **Serialization:** deterministic ``to_dict`` and ``to_json``.
- **Graph projection:** rebuild a ``ResolvedGraph`` from the entries.

Determinism guarantee: ``to_json()`` produces byte-identical output for
equal content. Entries are sorted by identity, every dictionary key is
sorted, and no timestamp is written, so resolving the same declared set
twice yields the same file.

References
----------
.. [npm-lock] npm documentation. "package-lock.json." File format
   guaranteeing deterministic installs across environments.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from jx import _PRODUCT_ID
from jx.core.dependency.coordinates import Dependency
from jx.core.dependency.graph import DependencyNode, ResolvedGraph
from jx.core.lockfile.models import LockEntry, LockfileMetadata


def fingerprint_declared(
    declared: Iterable[Dependency],
    managed_versions: Mapping[str, str] | None = None,
) -> str:
    """Hash the declared dependency set (order-insensitive).

    The project-level managed-version table is part of the input because
    it changes transitive versions.

    Returns:
        ``sha256:<hex>`` fingerprint.
    """
    records = sorted(
        (dep.fingerprint_record() for dep in declared),
        key=lambda r: json.dumps(r, sort_keys=True),
    )
    payload = {
        "dependencies": records,
        "managed": dict(sorted((managed_versions or {}).items())),
    }
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return "sha256:" + hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class LockFile:
    """Resolved, fingerprinted record of a project's dependencies.

    Analogous to package-lock.json for Java artifacts. Includes:

    - Exact resolved versions and scopes.
    - Artifact checksums (``algo:hex``) and source repository URLs.
    - Resolved child identities so the graph can be rebuilt.
    - The fingerprint of the declared dependency set.

    Example::

        lf = LockFile(fingerprint=fingerprint_declared(declared))
        lf.add_entry(LockEntry(
            coordinate=Coordinate("org.slf4j", "slf4j-api", "2.0.9"),
            scope=Scope.COMPILE,
            checksum="sha256:abcd...",
            source="https://repo1.maven.org/maven2/",
        ))
    """

    LOCKFILE_VERSION: str = "1.0"

    def __init__(self, fingerprint: str = "") -> None:
        self.fingerprint = fingerprint
        self._entries: dict[str, LockEntry] = {}
        self._roots: list[str] = []
        self._metadata = LockfileMetadata()

    # -- Entry management ---------------------------------------------------

    def add_entry(self, entry: LockEntry, *, root: bool = False) -> None:
        """Add an entry, replacing any previous entry for the same identity."""
        self._entries[entry.identity] = entry
        if root and entry.identity not in self._roots:
            self._roots.append(entry.identity)
        self._metadata.total_entries = len(self._entries)

    def get_entry(self, identity: str) -> LockEntry | None:
        return self._entries.get(identity)

    def __iter__(self) -> Iterator[LockEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> list[LockEntry]:
        """Entries in lock-file order (group, artifact, classifier)."""
        return sorted(self._entries.values(), key=LockEntry.sort_key)

    @property
    def identities(self) -> list[str]:
        return sorted(self._entries)

    @property
    def roots(self) -> list[str]:
        """Identities declared directly by the project."""
        return [r for r in self._roots if r in self._entries]

    @property
    def metadata(self) -> LockfileMetadata:
        return self._metadata

    # -- Checksums ----------------------------------------------------------

    def record_checksum(self, identity: str, checksum: str) -> None:
        """Fill in a checksum learned at download time (trust on first use)."""
        entry = self._entries[identity]
        if not entry.checksum:
            entry.checksum = checksum

    # -- Serialization ------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Serialize the lock file to a dict matching the schema.

        Returns:
            A dictionary suitable for JSON serialization.
        """
        entries: list[dict[str, Any]] = []
        for entry in self.entries:
            c = entry.coordinate
            entries.append({
                "group": c.group,
                "artifact": c.artifact,
                "version": c.version,
                "classifier": c.classifier,
                "packaging": entry.packaging,
                "scope": entry.scope.value,
                "checksum": entry.checksum,
                "source": entry.source,
                "depth": entry.depth,
                "root": entry.identity in self._roots,
                "dependencies": sorted(entry.dependencies),
            })
        return {
            "lockfile_version": self.LOCKFILE_VERSION,
            "generated_by": _PRODUCT_ID,
            "fingerprint": self.fingerprint,
            "entries": entries,
            "metadata": {
                "total_entries": self._metadata.total_entries,
                "resolution_strategy": self._metadata.resolution_strategy,
            },
        }

    def to_json(self, indent: int = 2) -> str:
        """Deterministic JSON representation, newline-terminated."""
        return json.dumps(self.to_dict(), indent=indent, sort_keys=True) + "\n"

    # -- Graph projection ---------------------------------------------------

    def to_graph(self) -> ResolvedGraph:
        """Rebuild the resolved graph (nodes, roots and resolved edges).

        Chains are not persisted; each node gets a single-element path.
        """
        graph = ResolvedGraph()
        roots = set(self._roots)
        for entry in self.entries:
            dep = Dependency(coordinate=entry.coordinate, scope=entry.scope)
            graph.add_node(
                DependencyNode(
                    coordinate=entry.coordinate,
                    scope=entry.scope,
                    depth=entry.depth,
                    paths=[(dep,)],
                    repository_url=entry.source,
                    checksum=entry.checksum or None,
                    packaging=entry.packaging,
                ),
                root=entry.identity in roots,
            )
        for entry in self.entries:
            for child in entry.dependencies:
                target = self._entries.get(child)
                if target is not None:
                    graph.add_edge(
                        entry.identity,
                        Dependency(coordinate=target.coordinate, scope=target.scope),
                    )
        return graph
