"""Registry client for Maven-layout repositories (Maven Central and mirrors).

Repositories are consulted in configured order. A 404 in one repository
falls through to the next; ``NotFoundError`` is raised only once every
repository has missed. Any other failure stops the lookup.

Metadata for a coordinate is its *effective* POM: the parent chain merged
in (properties, dependencies and ``dependencyManagement``, the child
winning), ``${...}`` properties interpolated, and ``scope=import`` BOMs
folded into the managed-version table.

Example::

    async with MavenRegistryClient([Repository("central", MAVEN_CENTRAL_URL)]) as reg:
        meta = await reg.fetch_metadata(Coordinate("org.slf4j", "slf4j-api", "2.0.9"))
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import httpx

from jx.core.dependency.coordinates import Coordinate, version_key
from jx.core.retry import RetryPolicy, with_retries
from jx.exceptions import NotFoundError, ResolutionError
from jx.registry.base import (
    MAVEN_CENTRAL_URL,
    ArtifactMetadata,
    RegistryClient,
    Repository,
    artifact_url,
    versions_index_url,
)
from jx.registry.http_client import create_client, fetch_bytes, fetch_text
from jx.registry.pom import (
    PomModel,
    merge_parent,
    parse_pom,
    parse_versions_index,
    to_dependency,
)

logger = logging.getLogger(__name__)

# Parent chains and BOM imports nested deeper than this are rejected.
MAX_INHERITANCE_DEPTH = 32

# Checksum sidecars tried in order of preference, with their digest lengths.
_CHECKSUM_SIDECARS = (("sha256", 64), ("sha1", 40))


class MavenRegistryClient(RegistryClient):
    """Fetches POM metadata, version listings and artifacts over HTTP.

    Args:
        repositories: Repositories in lookup order. Defaults to Maven Central.
        client: Shared ``httpx.AsyncClient``; created (and owned) when omitted.
        policy: Retry budget applied to metadata requests.
    """

    def __init__(
        self,
        repositories: Sequence[Repository] | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        policy: RetryPolicy = RetryPolicy(),
    ) -> None:
        self.repositories = list(repositories or [Repository("central", MAVEN_CENTRAL_URL)])
        self._client = client or create_client()
        self._owns_client = client is None
        self._policy = policy

    @property
    def name(self) -> str:
        return "maven"

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # -- HTTP helpers -------------------------------------------------------

    async def _get_text(self, repo: Repository, url: str) -> str:
        return await with_retries(
            lambda: fetch_text(self._client, url, auth=repo.auth),
            policy=self._policy,
            describe=url,
        )

    def _repository_for(self, url: str) -> Repository | None:
        normalized = url if url.endswith("/") else url + "/"
        for repo in self.repositories:
            if repo.url == normalized:
                return repo
        return None

    async def _find_pom(self, coordinate: Coordinate) -> tuple[PomModel, Repository]:
        """The first repository's POM for *coordinate*, not yet merged."""
        pom_coord = Coordinate(coordinate.group, coordinate.artifact, coordinate.version)
        for repo in self.repositories:
            url = artifact_url(repo.url, pom_coord, "pom")
            try:
                text = await self._get_text(repo, url)
            except NotFoundError:
                logger.debug("%s not in %s", pom_coord, repo.name)
                continue
            return parse_pom(text, source=url), repo
        raise NotFoundError(f"{pom_coord} not found in any repository")

    # -- Effective model ----------------------------------------------------

    async def _effective(
        self, coordinate: Coordinate, depth: int = 0
    ) -> tuple[PomModel, dict[str, str], Repository]:
        """Merged, interpolated model plus its managed-version table."""
        if depth > MAX_INHERITANCE_DEPTH:
            raise ResolutionError(f"Parent or BOM chain of {coordinate} is too deep")
        model, repo = await self._find_pom(coordinate)
        if model.parent is not None:
            parent, _, _ = await self._effective(model.parent, depth + 1)
            model = merge_parent(model, parent)
        model = model.interpolate()

        managed = model.managed_versions()
        for bom in model.bom_imports():
            _, bom_managed, _ = await self._effective(bom, depth + 1)
            for identity, version in bom_managed.items():
                managed.setdefault(identity, version)
        return model, managed, repo

    async def fetch_metadata(self, coordinate: Coordinate) -> ArtifactMetadata:
        model, managed, repo = await self._effective(coordinate)
        owner = str(coordinate)
        deps = []
        for raw in model.dependencies:
            dep = to_dependency(raw, owner)
            if dep is not None:
                deps.append(dep)
        packaging = model.packaging or "jar"
        checksum = None
        if packaging != "pom":
            checksum = await self._fetch_checksum(repo, coordinate)
        return ArtifactMetadata(
            coordinate=coordinate,
            dependencies=tuple(deps),
            parent=model.parent,
            managed_versions=managed,
            repository_url=repo.url,
            checksum=checksum,
            packaging=packaging,
        )

    async def _fetch_checksum(self, repo: Repository, coordinate: Coordinate) -> str | None:
        """Published digest of the artifact, or None when none is served."""
        for algo, length in _CHECKSUM_SIDECARS:
            url = artifact_url(repo.url, coordinate, f"jar.{algo}")
            try:
                text = await self._get_text(repo, url)
            except NotFoundError:
                continue
            # Sidecars are either "<hex>" or "<hex>  <filename>".
            token = text.strip().split()[0].lower() if text.strip() else ""
            if len(token) == length and all(c in "0123456789abcdef" for c in token):
                return f"{algo}:{token}"
            logger.warning("Ignoring malformed %s sidecar for %s", algo, coordinate)
        return None

    # -- Versions & artifacts -----------------------------------------------

    async def fetch_versions(self, group: str, artifact: str) -> list[str]:
        """Union of the versions every repository lists, ascending."""
        found: set[str] = set()
        seen = False
        for repo in self.repositories:
            url = versions_index_url(repo.url, group, artifact)
            try:
                text = await self._get_text(repo, url)
            except NotFoundError:
                continue
            seen = True
            found.update(parse_versions_index(text))
        if not seen:
            raise NotFoundError(f"{group}:{artifact} not found in any repository")
        return sorted(found, key=version_key)

    async def fetch_artifact(self, coordinate: Coordinate, repository_url: str) -> bytes:
        """Download the artifact jar from *repository_url* in one attempt.

        Retries are the download manager's responsibility.
        """
        repo = self._repository_for(repository_url)
        auth = repo.auth if repo is not None else None
        url = artifact_url(repository_url, coordinate)
        return await fetch_bytes(self._client, url, auth=auth)
