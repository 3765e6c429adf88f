"""Resolved dependency graph: an arena of nodes keyed by artifact identity.

Each identity (``group:artifact``) appears exactly once with the version
that won conflict resolution. Edges keep the *requested* dependency (the
version the parent asked for), so diagnostics can show both what was asked
for and what was chosen. The graph is acyclic by construction; the
resolver rejects cycles before they are recorded.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from jx.core.dependency.coordinates import Coordinate, Dependency, Scope


# ---------------------------------------------------------------------------
# DependencyNode: A vertex in the resolved graph
# ---------------------------------------------------------------------------


@dataclass
class DependencyNode:
    """One resolved artifact identity.

    Attributes:
        coordinate: Coordinate at the winning version.
        scope: Broadest scope among the chains that reached this node.
        depth: Depth of the winning request (0 = declared by the project).
        paths: Every chain of dependencies by which the node was reached,
            each ending with the request itself.
        repository_url: Repository the metadata was found in.
        checksum: Published artifact checksum (``algo:hex``), if any.
        packaging: Maven packaging; ``pom`` artifacts carry no jar.
    """

    coordinate: Coordinate
    scope: Scope
    depth: int
    paths: list[tuple[Dependency, ...]] = field(default_factory=list)
    repository_url: str = ""
    checksum: str | None = None
    packaging: str = "jar"

    @property
    def identity(self) -> str:
        return self.coordinate.identity

    @property
    def version(self) -> str:
        return self.coordinate.version

    @property
    def has_artifact(self) -> bool:
        return self.packaging != "pom"


def format_chain(chain: Iterable[Dependency]) -> list[str]:
    """Render a chain of dependencies as coordinate strings."""
    return [str(dep.coordinate) for dep in chain]


# ---------------------------------------------------------------------------
# ResolvedGraph
# ---------------------------------------------------------------------------


class ResolvedGraph:
    """The resolved dependency graph for one project.

    Supports:
    - Node lookup by identity, deterministic iteration (sorted identities)
    - Explicit parent -> child edges, including skipped optional edges
    - Scope filtering (e.g., production installs)
    - Shortest chain from a declared dependency for error reporting
    - Cycle detection for graphs rebuilt from untrusted lock files

    Thread safety: This class is NOT thread-safe. A graph is owned by the
    resolution run (or lock load) that built it.
    """

    def __init__(self) -> None:
        self._nodes: dict[str, DependencyNode] = {}
        self._edges: dict[str, list[Dependency]] = {}
        self._roots: list[str] = []

    # -- Construction -------------------------------------------------------

    def add_node(self, node: DependencyNode, *, root: bool = False) -> None:
        """Add or replace the node for ``node.identity``."""
        self._nodes[node.identity] = node
        if root and node.identity not in self._roots:
            self._roots.append(node.identity)

    def add_edge(self, parent: str, child: Dependency) -> None:
        """Record that *parent* requested *child*."""
        edges = self._edges.setdefault(parent, [])
        if child not in edges:
            edges.append(child)

    # -- Queries ------------------------------------------------------------

    def get(self, identity: str) -> DependencyNode | None:
        return self._nodes.get(identity)

    def __contains__(self, identity: object) -> bool:
        return identity in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[DependencyNode]:
        for identity in sorted(self._nodes):
            yield self._nodes[identity]

    @property
    def roots(self) -> list[str]:
        """Identities declared directly by the project, in declaration order."""
        return [r for r in self._roots if r in self._nodes]

    def edges(self, identity: str) -> list[Dependency]:
        """All dependencies *identity* requested, optional ones included."""
        return list(self._edges.get(identity, []))

    def children(self, identity: str) -> list[str]:
        """Sorted identities of resolved nodes *identity* depends on."""
        return sorted({
            dep.identity for dep in self._edges.get(identity, [])
            if dep.identity in self._nodes and dep.identity != identity
        })

    def projection(self) -> dict[str, tuple[str, str]]:
        """Identity -> (version, scope); the part of a graph a lock file must preserve."""
        return {
            identity: (node.version, node.scope.value)
            for identity, node in sorted(self._nodes.items())
        }

    def edge_projection(self) -> dict[str, list[str]]:
        """Identity -> resolved child identities."""
        return {identity: self.children(identity) for identity in sorted(self._nodes)}

    # -- Derived graphs -----------------------------------------------------

    def filter_scopes(self, scopes: Iterable[Scope]) -> ResolvedGraph:
        """Return a copy containing only nodes whose scope is in *scopes*."""
        wanted = frozenset(scopes)
        filtered = ResolvedGraph()
        for identity in self._roots:
            node = self._nodes.get(identity)
            if node is not None and node.scope in wanted:
                filtered.add_node(node, root=True)
        for node in self:
            if node.scope in wanted:
                filtered.add_node(node)
        for parent, deps in self._edges.items():
            if parent not in filtered:
                continue
            for dep in deps:
                if dep.identity in filtered or dep.optional:
                    filtered.add_edge(parent, dep)
        return filtered

    def chain_to(self, identity: str) -> list[str]:
        """Shortest chain of coordinates from a declared dependency to *identity*.

        Uses BFS over resolved edges starting at the roots. Returns an
        empty list if the identity is not reachable.
        """
        if identity not in self._nodes:
            return []
        parents: dict[str, str | None] = {}
        queue: deque[str] = deque()
        for root in sorted(self.roots):
            parents[root] = None
            queue.append(root)
        while queue:
            current = queue.popleft()
            if current == identity:
                chain: list[str] = []
                cur: str | None = current
                while cur is not None:
                    chain.append(str(self._nodes[cur].coordinate))
                    cur = parents[cur]
                chain.reverse()
                return chain
            for child in self.children(current):
                if child not in parents:
                    parents[child] = current
                    queue.append(child)
        return []

    def path_between(self, source: str, target: str) -> list[str]:
        """Shortest list of identities leading from *source* to *target*.

        Follows resolved edges only. Empty when *target* is unreachable.
        """
        if source not in self._nodes or target not in self._nodes:
            return []
        parents: dict[str, str | None] = {source: None}
        queue: deque[str] = deque([source])
        while queue:
            current = queue.popleft()
            if current == target:
                path: list[str] = []
                cur: str | None = current
                while cur is not None:
                    path.append(cur)
                    cur = parents[cur]
                path.reverse()
                return path
            for child in self.children(current):
                if child not in parents:
                    parents[child] = current
                    queue.append(child)
        return []

    # -- Traversal ----------------------------------------------------------

    def walk(self, *, transitive: bool = True) -> Iterator[tuple[int, DependencyNode, bool]]:
        """Depth-first walk from the roots for tree rendering.

        Yields ``(level, node, repeated)``. A node already printed is
        yielded once more with ``repeated=True`` and not descended into,
        so shared subtrees are shown once.
        """
        seen: set[str] = set()

        def _visit(identity: str, level: int) -> Iterator[tuple[int, DependencyNode, bool]]:
            node = self._nodes[identity]
            repeated = identity in seen
            yield level, node, repeated
            if repeated:
                return
            seen.add(identity)
            if transitive:
                for child in self.children(identity):
                    yield from _visit(child, level + 1)

        for root in self.roots:
            yield from _visit(root, 0)

    def detect_cycles(self) -> list[list[str]]:
        """Detect circular dependencies using DFS coloring.

        Resolver-built graphs never contain cycles; graphs rebuilt from a
        lock file on disk may, if the file was edited by hand.

        Returns:
            A list of cycles, each a list of identities whose first and
            last element coincide (e.g., ["a:a", "b:b", "a:a"]).
        """
        WHITE, GRAY, BLACK = 0, 1, 2
        color: dict[str, int] = {identity: WHITE for identity in self._nodes}
        stack: list[str] = []
        cycles: list[list[str]] = []

        def _dfs(u: str) -> None:
            color[u] = GRAY
            stack.append(u)
            for v in self.children(u):
                if color[v] == GRAY:
                    start = stack.index(v)
                    cycles.append(stack[start:] + [v])
                elif color[v] == WHITE:
                    _dfs(v)
            stack.pop()
            color[u] = BLACK

        for identity in sorted(self._nodes):
            if color[identity] == WHITE:
                _dfs(identity)
        return cycles
