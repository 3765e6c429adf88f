"""In-memory registry used instead of the network in tests.

``FakeRegistry`` serves metadata, version listings and artifact bytes from
dictionaries, counts every call, and can inject per-coordinate delays
(to shuffle completion order) and failures.
"""

from __future__ import annotations

import asyncio
import hashlib
from collections import Counter

from jx.core.dependency import Coordinate, Dependency, Exclusion, Scope
from jx.core.lockfile import LockEntry, LockFile
from jx.exceptions import NetworkError, NotFoundError
from jx.registry.base import ArtifactMetadata, RegistryClient

REPO_URL = "https://repo.test/maven2/"


def dep(
    text: str,
    scope: Scope = Scope.COMPILE,
    *,
    optional: bool = False,
    exclusions: tuple[str, ...] = (),
) -> Dependency:
    """``dep("g:a:1.0")`` shorthand for a Dependency."""
    group, artifact, *rest = text.split(":")
    version = rest[0] if rest else ""
    classifier = rest[1] if len(rest) > 1 else None
    return Dependency(
        coordinate=Coordinate(group, artifact, version, classifier),
        scope=scope,
        optional=optional,
        exclusions=frozenset(Exclusion.parse(e) for e in exclusions),
    )


def jar_bytes(coordinate: Coordinate) -> bytes:
    return f"jar:{coordinate}".encode()


def sha256_of(data: bytes) -> str:
    return "sha256:" + hashlib.sha256(data).hexdigest()


class FakeRegistry(RegistryClient):
    """Registry backed by ``{"g:a:v": [Dependency, ...]}``.

    Args:
        graph: Coordinate string -> direct dependencies.
        versions: Identity -> available versions (defaults to those in *graph*).
        delays: Coordinate string -> seconds to sleep before answering.
        managed: Coordinate string -> managed-version table.
        packaging: Coordinate string -> packaging (default ``jar``).
        publish_checksums: Whether metadata carries the artifact's sha256.
    """

    def __init__(
        self,
        graph: dict[str, list[Dependency]] | None = None,
        *,
        versions: dict[str, list[str]] | None = None,
        delays: dict[str, float] | None = None,
        managed: dict[str, dict[str, str]] | None = None,
        packaging: dict[str, str] | None = None,
        publish_checksums: bool = True,
    ) -> None:
        self.graph = dict(graph or {})
        self.delays = dict(delays or {})
        self.managed = dict(managed or {})
        self.packaging = dict(packaging or {})
        self.publish_checksums = publish_checksums
        self._versions = dict(versions or {})
        self.metadata_calls: Counter[str] = Counter()
        self.artifact_calls: Counter[str] = Counter()
        self.metadata_failures: dict[str, Exception] = {}
        self.artifact_failures: dict[str, list[Exception]] = {}
        self.artifact_overrides: dict[str, bytes] = {}
        self.closed = False

    @property
    def name(self) -> str:
        return "fake"

    def add(self, coordinate: str, *deps: Dependency) -> None:
        self.graph[coordinate] = list(deps)

    async def fetch_metadata(self, coordinate: Coordinate) -> ArtifactMetadata:
        key = str(coordinate)
        self.metadata_calls[key] += 1
        await asyncio.sleep(self.delays.get(key, 0))
        if key in self.metadata_failures:
            raise self.metadata_failures[key]
        if key not in self.graph:
            raise NotFoundError(f"{key} not found in any repository")
        packaging = self.packaging.get(key, "jar")
        checksum = None
        if self.publish_checksums and packaging != "pom":
            checksum = sha256_of(jar_bytes(coordinate))
        return ArtifactMetadata(
            coordinate=coordinate,
            dependencies=tuple(self.graph[key]),
            managed_versions=self.managed.get(key, {}),
            repository_url=REPO_URL,
            checksum=checksum,
            packaging=packaging,
        )

    async def fetch_versions(self, group: str, artifact: str) -> list[str]:
        identity = f"{group}:{artifact}"
        if identity in self._versions:
            return list(self._versions[identity])
        found = [k.split(":")[2] for k in self.graph if k.startswith(identity + ":")]
        if not found:
            raise NotFoundError(f"{identity} not found in any repository")
        return found

    async def fetch_artifact(self, coordinate: Coordinate, repository_url: str) -> bytes:
        key = str(coordinate)
        self.artifact_calls[key] += 1
        await asyncio.sleep(self.delays.get(key, 0))
        failures = self.artifact_failures.get(key)
        if failures:
            raise failures.pop(0)
        if key in self.artifact_overrides:
            return self.artifact_overrides[key]
        return jar_bytes(coordinate)

    async def close(self) -> None:
        self.closed = True


def transient(message: str = "HTTP 503") -> NetworkError:
    return NetworkError(message, status_code=503)


def make_entry(
    text: str,
    scope: Scope = Scope.COMPILE,
    *,
    depth: int = 0,
    children: list[str] | None = None,
    checksum: str | None = None,
    packaging: str = "jar",
) -> LockEntry:
    """LockEntry for ``g:a:v`` whose checksum matches ``jar_bytes``."""
    coordinate = dep(text).coordinate
    if checksum is None:
        checksum = "" if packaging == "pom" else sha256_of(jar_bytes(coordinate))
    return LockEntry(
        coordinate=coordinate,
        scope=scope,
        checksum=checksum,
        source=REPO_URL,
        depth=depth,
        packaging=packaging,
        dependencies=sorted(children or []),
    )


def make_lockfile(*entries: LockEntry, roots: tuple[str, ...] | None = None) -> LockFile:
    """Build a LockFile; entries at depth 0 are roots unless *roots* is given."""
    lf = LockFile(fingerprint="sha256:" + "0" * 64)
    for entry in entries:
        is_root = entry.identity in roots if roots is not None else entry.depth == 0
        lf.add_entry(entry, root=is_root)
    return lf


def small_lockfile() -> LockFile:
    """app -> (lib, api); lib -> api; junit is a test root."""
    return make_lockfile(
        make_entry("org.example:app:1.0", children=["org.example:lib", "org.slf4j:slf4j-api"]),
        make_entry("org.example:lib:2.1", depth=1, children=["org.slf4j:slf4j-api"]),
        make_entry("org.slf4j:slf4j-api:2.0.9", depth=1),
        make_entry("junit:junit:4.13.2", Scope.TEST),
    )
