"""Breadth-first version resolution with nearest-wins conflict handling.

Builds the transitive dependency graph level by level from the project's
declared dependencies, fetching metadata through a ``RegistryClient``.

Conflict policy
---------------
When several chains reach one identity (``group:artifact``) at different
versions, the request closest to the root wins; among requests at the
same depth, the highest version wins (see ``version_key``). Requests at a
level are sorted before any decision, so the outcome depends only on
depth and version, never on the order in which fetches complete.

Scope rules
-----------
``compile`` and ``runtime`` dependencies are expanded; ``test`` and
``provided`` end their branch. Children of a ``runtime`` dependency are
``runtime``. Transitive ``test``/``provided`` dependencies are not
followed. A node's scope is the broadest scope among every chain that
reaches it. A node whose scope widens after its children were requested
is expanded again, so the children widen with it.

Exclusions
----------
An exclusion removes an identity from the branch that declares it. A
node reached by several chains drops a child only when every one of
those chains excludes it; a later chain that excludes less re-expands
the node.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from jx.core.dependency.coordinates import (
    Coordinate,
    Dependency,
    Exclusion,
    Scope,
    common_exclusions,
    is_dynamic,
    is_excluded,
    is_snapshot,
    version_key,
)
from jx.core.dependency.graph import DependencyNode, ResolvedGraph, format_chain
from jx.exceptions import CycleError, JxError, NotFoundError, ResolutionError

if TYPE_CHECKING:
    from jx.registry.base import ArtifactMetadata, RegistryClient

logger = logging.getLogger(__name__)

DEFAULT_MAX_PARALLEL: int = 8


# ---------------------------------------------------------------------------
# Internal request type
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _Request:
    """One chain asking for one dependency at one depth.

    ``chain`` ends with ``dependency`` itself. ``exclusions`` are those
    inherited from ancestors; the dependency's own exclusions apply to its
    children.
    """

    dependency: Dependency
    scope: Scope
    chain: tuple[Dependency, ...]
    exclusions: frozenset[Exclusion] = frozenset()
    parent: str | None = None

    @property
    def identity(self) -> str:
        return self.dependency.identity

    @property
    def explicit(self) -> bool:
        return self.parent is None

    def sort_key(self) -> tuple:
        return (
            self.identity,
            version_key(self.dependency.version),
            -self.scope.breadth,
            tuple(format_chain(self.chain)),
        )


@dataclass(frozen=True)
class _Expansion:
    """Scope and exclusions a node's children were last requested with."""

    scope: Scope
    exclusions: frozenset[Exclusion]


def _shared_exclusions(reqs: Sequence[_Request]) -> frozenset[Exclusion]:
    """Exclusions every chain in *reqs* applies below the requested node.

    A child is dropped only when all chains reaching its parent exclude it.
    """
    return common_exclusions(r.exclusions | r.dependency.exclusions for r in reqs)


@dataclass
class ResolutionStats:
    """Counters for one resolution run.

    Attributes:
        metadata_fetches: Distinct coordinates fetched from the registry.
        levels: Number of breadth-first levels processed.
        skipped_optional: Declared optional dependencies that could not be
            found and were left out.
    """

    metadata_fetches: int = 0
    levels: int = 0
    skipped_optional: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# VersionResolver
# ---------------------------------------------------------------------------


class VersionResolver:
    """Resolve declared dependencies into a ``ResolvedGraph``.

    Metadata is fetched at most once per coordinate per run: every request
    for a coordinate joins one shared future, so diamonds cost a single
    fetch even when both branches ask at the same time. Fetches within a
    level run concurrently, bounded by ``max_parallel``.

    Args:
        registry: Source of artifact metadata.
        managed_versions: Project-level identity -> version table. Overrides
            the version of every *transitive* request for that identity.
        max_parallel: Maximum concurrent metadata fetches.
    """

    def __init__(
        self,
        registry: RegistryClient,
        managed_versions: Mapping[str, str] | None = None,
        max_parallel: int = DEFAULT_MAX_PARALLEL,
    ) -> None:
        self._registry = registry
        self._managed = dict(managed_versions or {})
        self._semaphore = asyncio.Semaphore(max(1, max_parallel))
        self._inflight: dict[Coordinate, asyncio.Future[ArtifactMetadata]] = {}
        self.stats = ResolutionStats()

    async def resolve(self, declared: Sequence[Dependency]) -> ResolvedGraph:
        """Resolve *declared* into a graph with one version per identity.

        Returns:
            The resolved graph. Roots are the declared identities.

        Raises:
            CycleError: A request closes a loop of dependencies.
            ResolutionError: A dependency has no resolvable version.
            NotFoundError: Required metadata does not exist (carries the chain).
            NetworkError: A repository failed after retries (carries the chain).
        """
        self._inflight.clear()
        self.stats = ResolutionStats()
        graph = ResolvedGraph()
        expanded: dict[str, _Expansion] = {}
        frontier = [
            _Request(dependency=dep, scope=dep.scope, chain=(dep,))
            for dep in (self._declared_version(d) for d in declared)
        ]
        depth = 0
        try:
            while frontier:
                frontier = await self._pin_dynamic(frontier)
                frontier.sort(key=_Request.sort_key)
                self._check_cycles(frontier)
                frontier = await self._resolve_level(graph, frontier, depth, expanded)
                depth += 1
                self.stats.levels = depth
        finally:
            for future in self._inflight.values():
                if not future.done():
                    future.cancel()
        logger.info(
            "Resolved %d artifacts in %d levels (%d metadata fetches)",
            len(graph), self.stats.levels, self.stats.metadata_fetches,
        )
        return graph

    # -- Levels ---------------------------------------------------------------

    async def _resolve_level(
        self,
        graph: ResolvedGraph,
        frontier: list[_Request],
        depth: int,
        expanded: dict[str, _Expansion],
    ) -> list[_Request]:
        """Decide every identity requested at *depth*; return the next frontier."""
        groups: dict[str, list[_Request]] = defaultdict(list)
        for req in frontier:
            groups[req.identity].append(req)
            if req.parent is not None:
                self._add_edge(graph, req.parent, req.dependency, req.chain)

        # Identities decided at a shallower depth only gain paths, scope and
        # chains that exclude less. Either of the last two re-expands them.
        to_expand: list[tuple[DependencyNode, _Request, frozenset[Exclusion]]] = []
        winners: list[tuple[str, Coordinate, list[_Request]]] = []
        for identity in sorted(groups):
            reqs = groups[identity]
            node = graph.get(identity)
            if node is not None:
                for req in reqs:
                    node.paths.append(req.chain)
                widest = max(reqs, key=lambda r: r.scope.breadth)
                if widest.scope.breadth > node.scope.breadth:
                    logger.debug("Widening %s scope %s -> %s", identity, node.scope.value, widest.scope.value)
                    node.scope = widest.scope
                if not node.scope.propagates:
                    continue
                exclusions = _shared_exclusions(reqs)
                previous = expanded.get(identity)
                if previous is not None:
                    exclusions = common_exclusions([exclusions, previous.exclusions])
                if previous != _Expansion(node.scope, exclusions):
                    matching = [r for r in reqs if r.dependency.version == node.version] or reqs
                    to_expand.append((node, _representative(matching), exclusions))
                continue
            version = max((r.dependency.version for r in reqs), key=version_key)
            winning = [r for r in reqs if r.dependency.version == version]
            winners.append((identity, winning[0].dependency.coordinate, reqs))

        metadata = await self._fetch_all(winners)

        for identity, coordinate, reqs in winners:
            meta = metadata.get(identity)
            if meta is None:
                continue  # unreachable optional declared dependency
            widest = max(reqs, key=lambda r: r.scope.breadth)
            node = DependencyNode(
                coordinate=coordinate,
                scope=widest.scope,
                depth=depth,
                paths=[r.chain for r in reqs],
                repository_url=meta.repository_url,
                checksum=meta.checksum,
                packaging=meta.packaging,
            )
            graph.add_node(node, root=depth == 0)
            if node.scope.propagates:
                rep = _representative(
                    [r for r in reqs if r.dependency.version == coordinate.version]
                )
                to_expand.append((node, rep, _shared_exclusions(reqs)))

        next_frontier: list[_Request] = []
        for node, rep, exclusions in to_expand:
            expanded[node.identity] = _Expansion(node.scope, exclusions)
            meta = await self._metadata(node.coordinate, rep.chain)
            next_frontier.extend(self._children(graph, node, rep, meta, exclusions))
        return next_frontier

    def _children(
        self,
        graph: ResolvedGraph,
        node: DependencyNode,
        rep: _Request,
        meta: ArtifactMetadata,
        exclusions: frozenset[Exclusion],
    ) -> list[_Request]:
        """Requests for the direct dependencies of *node*, reached via *rep*.

        *exclusions* are those shared by every chain that reached *node*.
        """
        requests: list[_Request] = []
        for child in meta.dependencies:
            scope = node.scope.child_scope(child.scope)
            if scope is None:
                continue
            if is_excluded(child.identity, exclusions):
                logger.debug("Excluding %s below %s", child.identity, node.identity)
                continue
            version = self._child_version(child, meta)
            if not version:
                raise ResolutionError(
                    f"No version declared or managed for {child.identity}",
                    chain=format_chain(rep.chain) + [child.identity],
                )
            pinned = Dependency(
                coordinate=child.coordinate.with_version(version),
                scope=scope,
                optional=child.optional,
                exclusions=child.exclusions,
            )
            if child.optional:
                # Recorded for diagnostics; resolved only through a non-optional chain.
                self._add_edge(graph, node.identity, pinned, rep.chain + (pinned,))
                continue
            requests.append(_Request(
                dependency=pinned,
                scope=scope,
                chain=rep.chain + (pinned,),
                exclusions=exclusions,
                parent=node.identity,
            ))
        return requests

    def _declared_version(self, dep: Dependency) -> Dependency:
        if dep.version:
            return dep
        managed = self._managed.get(dep.identity)
        if not managed:
            raise ResolutionError(
                f"Declared dependency {dep.identity} has no version",
                chain=[dep.identity],
            )
        return dep.with_version(managed)

    def _child_version(self, child: Dependency, meta: ArtifactMetadata) -> str:
        managed = self._managed.get(child.identity)
        if managed:
            return managed
        if child.version:
            return child.version
        return meta.managed_version(child.identity) or ""

    # -- Metadata -------------------------------------------------------------

    async def _fetch_all(
        self, winners: list[tuple[str, Coordinate, list[_Request]]]
    ) -> dict[str, ArtifactMetadata]:
        """Fetch metadata for every new winner concurrently.

        Errors are examined in sorted identity order so the reported
        failure does not depend on which fetch failed first.
        """
        results = await asyncio.gather(
            *(self._metadata(coord, _representative(reqs).chain) for _, coord, reqs in winners),
            return_exceptions=True,
        )
        metadata: dict[str, ArtifactMetadata] = {}
        for (identity, coordinate, reqs), result in zip(winners, results):
            if isinstance(result, BaseException):
                if isinstance(result, NotFoundError) and all(
                    r.explicit and r.dependency.optional for r in reqs
                ):
                    logger.warning("Skipping optional dependency %s: %s", coordinate, result.message)
                    self.stats.skipped_optional.append(str(coordinate))
                    continue
                raise result
            metadata[identity] = result
        return metadata

    async def _metadata(
        self, coordinate: Coordinate, chain: tuple[Dependency, ...]
    ) -> ArtifactMetadata:
        """Memoized metadata lookup; concurrent callers share one fetch.

        Keyed by the full coordinate: a classified artifact publishes its
        own checksum.
        """
        future = self._inflight.get(coordinate)
        if future is None:
            future = asyncio.ensure_future(self._fetch(coordinate))
            self._inflight[coordinate] = future
        try:
            return await asyncio.shield(future)
        except JxError as exc:
            raise exc.with_chain(format_chain(chain))

    async def _fetch(self, coordinate: Coordinate) -> ArtifactMetadata:
        async with self._semaphore:
            self.stats.metadata_fetches += 1
            logger.debug("Fetching metadata for %s", coordinate)
            return await self._registry.fetch_metadata(coordinate)

    async def _pin_dynamic(self, frontier: list[_Request]) -> list[_Request]:
        """Replace ``*`` / ``LATEST`` / ``RELEASE`` versions with concrete ones."""
        dynamic = [r for r in frontier if is_dynamic(r.dependency.version)]
        if not dynamic:
            return frontier
        identities = sorted({r.identity for r in dynamic})
        listings = await asyncio.gather(*(
            self._registry.fetch_versions(*identity.split(":", 1)) for identity in identities
        ))
        available = dict(zip(identities, listings))
        pinned: list[_Request] = []
        for req in frontier:
            if not is_dynamic(req.dependency.version):
                pinned.append(req)
                continue
            version = pick_dynamic(req.dependency.version, available[req.identity])
            if version is None:
                raise ResolutionError(
                    f"No version of {req.identity} matches {req.dependency.version!r}",
                    chain=format_chain(req.chain),
                )
            dep = req.dependency.with_version(version)
            pinned.append(_Request(
                dependency=dep,
                scope=req.scope,
                chain=req.chain[:-1] + (dep,),
                exclusions=req.exclusions,
                parent=req.parent,
            ))
        return pinned

    # -- Validation -----------------------------------------------------------

    @staticmethod
    def _add_edge(
        graph: ResolvedGraph,
        parent: str,
        dependency: Dependency,
        chain: tuple[Dependency, ...],
    ) -> None:
        """Record *parent* -> *dependency* unless the edge closes a cycle.

        A cycle can close through identities resolved on other branches,
        which never appear on *chain* itself.
        """
        loop = graph.path_between(dependency.identity, parent)
        if loop:
            cycle = loop + [dependency.identity]
            raise CycleError(
                f"Dependency cycle detected: {' -> '.join(cycle)}",
                chain=format_chain(chain),
                chains=[cycle],
            )
        graph.add_edge(parent, dependency)

    @staticmethod
    def _check_cycles(frontier: list[_Request]) -> None:
        for req in frontier:
            ancestors = [dep.identity for dep in req.chain[:-1]]
            if req.identity in ancestors:
                chain = format_chain(req.chain)
                raise CycleError(
                    f"Dependency cycle detected at {req.identity}",
                    chain=chain,
                    chains=[chain],
                )


def _representative(reqs: list[_Request]) -> _Request:
    """The request whose chain drives expansion: broadest scope, then sorted order."""
    return min(reqs, key=lambda r: (-r.scope.breadth, r.sort_key()))


def pick_dynamic(selector: str, versions: list[str]) -> str | None:
    """Choose the concrete version a dynamic selector stands for.

    ``LATEST`` accepts snapshots; ``*`` and ``RELEASE`` do not.
    """
    candidates = list(versions)
    if selector.strip().upper() != "LATEST":
        candidates = [v for v in candidates if not is_snapshot(v)]
    if not candidates:
        return None
    return max(candidates, key=version_key)
