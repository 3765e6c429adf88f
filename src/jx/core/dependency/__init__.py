"""Dependency model and breadth-first version resolution.

This package implements the coordinate/dependency value types, the
resolved dependency graph, and the resolver that builds it from registry
metadata. All public names are re-exported here so callers can write
``from jx.core.dependency import X``.

Resolution model
----------------
A resolution run turns a declared set of dependencies D into a graph
G = (N, E) where:

- **N** holds exactly one node per identity ``group:artifact``
- **E** records every parent -> requested-child edge seen
- the chosen version for an identity is the one requested closest to the
  root, with the highest version winning ties at equal depth
"""

from jx.core.dependency.coordinates import (
    PRODUCTION_SCOPES,
    Coordinate,
    Dependency,
    Exclusion,
    Scope,
    common_exclusions,
    compare_versions,
    highest_version,
    is_dynamic,
    is_excluded,
    parse_coordinate,
    split_identity,
    version_key,
)
from jx.core.dependency.graph import (
    DependencyNode,
    ResolvedGraph,
    format_chain,
)
from jx.core.dependency.resolver import (
    ResolutionStats,
    VersionResolver,
    pick_dynamic,
)

__all__ = [
    "PRODUCTION_SCOPES",
    "Coordinate",
    "Dependency",
    "Exclusion",
    "Scope",
    "common_exclusions",
    "compare_versions",
    "highest_version",
    "is_dynamic",
    "is_excluded",
    "parse_coordinate",
    "split_identity",
    "version_key",
    "DependencyNode",
    "ResolvedGraph",
    "format_chain",
    "ResolutionStats",
    "VersionResolver",
    "pick_dynamic",
]
