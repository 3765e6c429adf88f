"""Lock file factory --- constructing lock files from resolved graphs.

The ``from_graph`` function builds a ``LockFile`` directly from the
``ResolvedGraph`` produced by ``VersionResolver``. This is the primary
entry point in the normal workflow::

    graph = await VersionResolver(registry).resolve(declared)
    lock = LockFile.from_graph(graph, fingerprint_declared(declared))
    LockFileManager(path).commit(lock)
"""

from __future__ import annotations

from typing import Any

from jx.core.dependency.graph import ResolvedGraph
from jx.core.lockfile.models import LockEntry


def _from_graph(cls: type, graph: ResolvedGraph, fingerprint: str = "") -> Any:
    """Create a lock file from a resolved graph.

    Each node becomes one entry; its resolved children become the entry's
    ``dependencies``. Checksums come from registry metadata when the
    repository publishes them and are left empty otherwise, to be filled
    in at download time.
    """
    lf = cls(fingerprint=fingerprint)
    roots = set(graph.roots)
    for node in graph:
        lf.add_entry(
            LockEntry(
                coordinate=node.coordinate,
                scope=node.scope,
                checksum=node.checksum or "",
                source=node.repository_url,
                depth=node.depth,
                packaging=node.packaging,
                dependencies=graph.children(node.identity),
            ),
            root=node.identity in roots,
        )
    return lf
