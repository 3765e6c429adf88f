"""Property-based tests for breadth-first resolution invariants.

Generates random acyclic registries and verifies:
- One node per identity, and every declared dependency is a root.
- Nearest wins: a node's depth is its shortest distance from a root.
- Determinism: response timing never changes the resolved graph.
"""
from __future__ import annotations

import asyncio
from collections import deque

from fakes import FakeRegistry, dep
from hypothesis import given, settings
from hypothesis import strategies as st

from jx.core.dependency import VersionResolver
from jx.core.lockfile import LockFile


@st.composite
def dags(draw: st.DrawFn) -> tuple[dict[int, list[int]], list[int]]:
    """Adjacency of a DAG over 2..8 nodes (edges only go to higher ids)."""
    size = draw(st.integers(min_value=2, max_value=8))
    adjacency = {
        i: draw(st.lists(st.integers(min_value=i + 1, max_value=size - 1), unique=True))
        if i < size - 1 else []
        for i in range(size)
    }
    roots = draw(st.lists(st.integers(min_value=0, max_value=size - 1), min_size=1, unique=True))
    return adjacency, roots


def _coord(i: int) -> str:
    return f"g:n{i}:1"


def _registry(adjacency: dict[int, list[int]], delays: dict[str, float]) -> FakeRegistry:
    return FakeRegistry(
        {_coord(i): [dep(_coord(j)) for j in children] for i, children in adjacency.items()},
        delays=delays,
    )


def _resolve(registry: FakeRegistry, roots: list[int]):
    return asyncio.run(VersionResolver(registry).resolve([dep(_coord(r)) for r in roots]))


def _distances(adjacency: dict[int, list[int]], roots: list[int]) -> dict[str, int]:
    dist = {r: 0 for r in roots}
    queue = deque(roots)
    while queue:
        node = queue.popleft()
        for child in adjacency[node]:
            if child not in dist:
                dist[child] = dist[node] + 1
                queue.append(child)
    return {f"g:n{i}": d for i, d in dist.items()}


class TestResolutionInvariants:
    @given(dag=dags())
    @settings(max_examples=40, deadline=None)
    def test_nearest_depth_and_reachability(self, dag) -> None:
        adjacency, roots = dag
        graph = _resolve(_registry(adjacency, {}), roots)
        expected = _distances(adjacency, roots)
        assert {n.identity: n.depth for n in graph} == expected
        assert sorted(graph.roots) == sorted(f"g:n{r}" for r in roots)

    @given(dag=dags(), jitter=st.lists(st.sampled_from([0.0, 0.001, 0.003]), min_size=8, max_size=8))
    @settings(max_examples=25, deadline=None)
    def test_timing_does_not_change_result(self, dag, jitter) -> None:
        adjacency, roots = dag
        baseline = _resolve(_registry(adjacency, {}), roots)
        delays = {_coord(i): jitter[i] for i in adjacency}
        jittered = _resolve(_registry(adjacency, delays), roots)
        assert jittered.projection() == baseline.projection()
        assert LockFile.from_graph(jittered).to_json() == LockFile.from_graph(baseline).to_json()

    @given(dag=dags())
    @settings(max_examples=25, deadline=None)
    def test_each_identity_fetched_once(self, dag) -> None:
        adjacency, roots = dag
        registry = _registry(adjacency, {})
        _resolve(registry, roots)
        assert all(count == 1 for count in registry.metadata_calls.values())
