"""Base classes and data models for registry access.

Defines the ``RegistryClient`` abstract base class that concrete clients
(the Maven repository client, in-memory fakes in tests) implement, along
with the ``ArtifactMetadata`` and ``Repository`` data models and the
Maven repository layout helpers shared with the download manager.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field

from jx.core.dependency.coordinates import Coordinate, Dependency

logger = logging.getLogger(__name__)

MAVEN_CENTRAL_URL: str = "https://repo1.maven.org/maven2/"


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Repository:
    """A Maven-layout repository.

    Attributes:
        name: Human-readable name (e.g. "central").
        url: Base URL; always normalised to end with ``/``.
        username: Optional basic-auth user.
        password: Optional basic-auth password.
    """

    name: str
    url: str
    username: str | None = None
    password: str | None = None

    def __post_init__(self) -> None:
        if not self.url.endswith("/"):
            object.__setattr__(self, "url", self.url + "/")

    @property
    def auth(self) -> tuple[str, str] | None:
        if self.username is None:
            return None
        return self.username, self.password or ""


@dataclass(frozen=True)
class ArtifactMetadata:
    """Dependency metadata for one coordinate, as a registry reports it.

    Attributes:
        coordinate: The coordinate the metadata describes.
        dependencies: Direct dependencies, in declaration order. Versions
            may be empty when the managed table supplies them.
        parent: Parent coordinate used for inherited version management.
        managed_versions: Identity -> version table (dependencyManagement),
            already merged with the parent chain and imported BOMs.
        repository_url: Repository the metadata was found in.
        checksum: Published checksum of the artifact (``algo:hex``), or
            None when the repository does not serve one.
        packaging: Maven packaging (``jar``, ``pom``, ``bundle``...).
    """

    coordinate: Coordinate
    dependencies: tuple[Dependency, ...] = ()
    parent: Coordinate | None = None
    managed_versions: Mapping[str, str] = field(default_factory=dict)
    repository_url: str = ""
    checksum: str | None = None
    packaging: str = "jar"

    def managed_version(self, identity: str) -> str | None:
        return self.managed_versions.get(identity)


# ---------------------------------------------------------------------------
# Maven repository layout
# ---------------------------------------------------------------------------


def artifact_path(coordinate: Coordinate, extension: str = "jar") -> str:
    """Relative path of an artifact file inside a Maven repository."""
    group_path = coordinate.group.replace(".", "/")
    stem = f"{coordinate.artifact}-{coordinate.version}"
    if coordinate.classifier:
        stem += f"-{coordinate.classifier}"
    return f"{group_path}/{coordinate.artifact}/{coordinate.version}/{stem}.{extension}"


def artifact_url(repository_url: str, coordinate: Coordinate, extension: str = "jar") -> str:
    """Absolute URL of an artifact file in *repository_url*."""
    base = repository_url if repository_url.endswith("/") else repository_url + "/"
    return base + artifact_path(coordinate, extension)


def versions_index_url(repository_url: str, group: str, artifact: str) -> str:
    """URL of the ``maven-metadata.xml`` version listing for an identity."""
    base = repository_url if repository_url.endswith("/") else repository_url + "/"
    return f"{base}{group.replace('.', '/')}/{artifact}/maven-metadata.xml"


# ---------------------------------------------------------------------------
# Abstract base client
# ---------------------------------------------------------------------------


class RegistryClient(ABC):
    """Abstract base class for dependency metadata sources.

    Implementations are stateless per call: they may be queried
    concurrently and do not memoize. Callers (the resolver) are
    responsible for deduplicating requests.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name of this registry."""

    @abstractmethod
    async def fetch_metadata(self, coordinate: Coordinate) -> ArtifactMetadata:
        """Fetch direct dependencies and managed versions for *coordinate*.

        Raises:
            NotFoundError: The coordinate is absent from every repository.
            NetworkError: A repository could not be reached.
        """

    @abstractmethod
    async def fetch_versions(self, group: str, artifact: str) -> list[str]:
        """List the versions available for ``group:artifact``.

        Raises:
            NotFoundError: No repository knows the identity.
            NetworkError: A repository could not be reached.
        """

    async def close(self) -> None:
        """Release network resources. Default: nothing to release."""

    async def __aenter__(self) -> RegistryClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
