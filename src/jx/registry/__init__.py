"""Registry access for Maven-layout repositories.

Provides the abstract client contract consumed by the resolver and the
concrete Maven repository client.

Public API::

    from jx.registry import ArtifactMetadata, RegistryClient, Repository
    from jx.registry.maven import MavenRegistryClient
"""

from __future__ import annotations

from jx.registry.base import (
    MAVEN_CENTRAL_URL,
    ArtifactMetadata,
    RegistryClient,
    Repository,
    artifact_path,
    artifact_url,
)

__all__ = [
    "MAVEN_CENTRAL_URL",
    "ArtifactMetadata",
    "RegistryClient",
    "Repository",
    "artifact_path",
    "artifact_url",
]
