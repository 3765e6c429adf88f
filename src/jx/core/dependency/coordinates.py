"""Coordinates, scopes, exclusions and version ordering.

This module provides the foundational value types for declaring artifacts
and the edges between them.

Version ordering follows Maven conventions closely enough for conflict
resolution: numeric components compare numerically, well-known qualifiers
(``alpha``, ``beta``, ``milestone``, ``rc``, ``SNAPSHOT``, ``sp``) have a
fixed precedence around the release, trailing zeros are insignificant, and
unknown qualifiers sort after known ones. Versions that compare equal under
those rules (``1.0`` and ``1.0.0``) fall back to plain string comparison so
the order is total and every tie-break is reproducible.

References
----------
.. [Maven] Apache Maven. "ComparableVersion" and "Introduction to the
   Dependency Mechanism." https://maven.apache.org/
"""

from __future__ import annotations

import enum
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from jx.exceptions import ConfigError


# ---------------------------------------------------------------------------
# Version comparison utilities
# ---------------------------------------------------------------------------

_TOKEN_RE = re.compile(r"\d+|[A-Za-z]+")

_QUALIFIER_RANKS: dict[str, int] = {
    "alpha": 0,
    "beta": 1,
    "milestone": 2,
    "rc": 3,
    "snapshot": 4,
    "": 5,  # release
    "sp": 6,
}

_QUALIFIER_ALIASES: dict[str, str] = {
    "a": "alpha",
    "b": "beta",
    "m": "milestone",
    "cr": "rc",
    "ga": "",
    "final": "",
    "release": "",
}

# Token categories; a numeric token outranks any qualifier in the same slot.
_KNOWN_QUALIFIER = 1
_UNKNOWN_QUALIFIER = 2
_NUMBER = 3

_RELEASE_MARKER: tuple[int, int, str] = (_KNOWN_QUALIFIER, _QUALIFIER_RANKS[""], "")

DYNAMIC_VERSIONS = frozenset({"*", "LATEST", "RELEASE", "latest", "release"})


def _tokenize(version: str) -> list[tuple[int, int, str]]:
    """Split a version into comparable (category, rank, text) tokens."""
    tokens: list[tuple[int, int, str]] = []
    for raw in _TOKEN_RE.findall(version.strip().lower()):
        if raw.isdigit():
            tokens.append((_NUMBER, int(raw), ""))
            continue
        name = _QUALIFIER_ALIASES.get(raw, raw)
        if name == "":
            continue  # "1.0.Final" == "1.0"
        if name in _QUALIFIER_RANKS:
            tokens.append((_KNOWN_QUALIFIER, _QUALIFIER_RANKS[name], ""))
        else:
            tokens.append((_UNKNOWN_QUALIFIER, 0, name))

    # Zeros directly before a qualifier or the end carry no information.
    trimmed: list[tuple[int, int, str]] = []
    for tok in reversed(tokens):
        boundary = not trimmed or trimmed[-1][0] != _NUMBER
        if tok == (_NUMBER, 0, "") and boundary:
            continue
        trimmed.append(tok)
    trimmed.reverse()
    return trimmed


def version_key(version: str) -> tuple[tuple[tuple[int, int, str], ...], str]:
    """Sort key implementing the total version order (ascending)."""
    tokens = _tokenize(version)
    tokens.append(_RELEASE_MARKER)
    return tuple(tokens), version


def compare_versions(left: str, right: str) -> int:
    """Return -1, 0 or 1 as *left* is lower than, equal to or higher than *right*."""
    lk, rk = version_key(left), version_key(right)
    if lk < rk:
        return -1
    if lk > rk:
        return 1
    return 0


def highest_version(versions: list[str]) -> str:
    """Return the highest version of a non-empty list."""
    return max(versions, key=version_key)


def is_snapshot(version: str) -> bool:
    """True for ``-SNAPSHOT`` development versions."""
    return version.upper().endswith("SNAPSHOT")


def is_dynamic(version: str | None) -> bool:
    """True for versions resolved against the registry listing (``*``, ``LATEST``, ``RELEASE``)."""
    return version is not None and version.strip() in DYNAMIC_VERSIONS


# ---------------------------------------------------------------------------
# Scope
# ---------------------------------------------------------------------------


class Scope(str, enum.Enum):
    """Build phase a dependency applies to.

    Only ``compile`` and ``runtime`` dependencies are expanded
    transitively; ``test`` and ``provided`` end their branch.
    """

    COMPILE = "compile"
    RUNTIME = "runtime"
    TEST = "test"
    PROVIDED = "provided"

    @classmethod
    def parse(cls, value: str | None) -> Scope:
        """Parse a scope name, defaulting to ``compile``."""
        if value is None or value == "":
            return cls.COMPILE
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ConfigError(
                f"Unknown scope {value!r} (expected one of: "
                f"{', '.join(s.value for s in cls)})"
            ) from None

    @property
    def propagates(self) -> bool:
        """Whether children of a dependency in this scope are visited."""
        return self in (Scope.COMPILE, Scope.RUNTIME)

    @property
    def breadth(self) -> int:
        """Rank used when several chains reach one node; broader wins."""
        return _SCOPE_BREADTH[self]

    def child_scope(self, declared: Scope) -> Scope | None:
        """Effective scope of a transitive dependency, or None when not followed.

        A compile parent passes its children through at their declared
        scope; a runtime parent demotes everything to runtime. Transitive
        test and provided dependencies are never followed.
        """
        if not self.propagates or not declared.propagates:
            return None
        if self is Scope.RUNTIME:
            return Scope.RUNTIME
        return declared


_SCOPE_BREADTH: dict[Scope, int] = {
    Scope.TEST: 0,
    Scope.PROVIDED: 1,
    Scope.RUNTIME: 2,
    Scope.COMPILE: 3,
}

PRODUCTION_SCOPES = frozenset({Scope.COMPILE, Scope.RUNTIME})


# ---------------------------------------------------------------------------
# Coordinate & Exclusion
# ---------------------------------------------------------------------------


@dataclass(frozen=True, order=True)
class Coordinate:
    """Artifact identity plus version: ``group:artifact:version[:classifier]``.

    Attributes:
        group: Maven groupId (e.g., "org.slf4j").
        artifact: Maven artifactId (e.g., "slf4j-api").
        version: Version string; empty for transitive dependencies whose
            version comes from a managed-version table.
        classifier: Optional classifier (e.g., "sources", "jdk8").
    """

    group: str
    artifact: str
    version: str = ""
    classifier: str | None = None

    @property
    def identity(self) -> str:
        """Conflict-resolution identity ``group:artifact``."""
        return f"{self.group}:{self.artifact}"

    def with_version(self, version: str) -> Coordinate:
        return Coordinate(self.group, self.artifact, version, self.classifier)

    @property
    def filename(self) -> str:
        """Jar file name in repositories, caches and the lib directory."""
        if self.classifier:
            return f"{self.artifact}-{self.version}-{self.classifier}.jar"
        return f"{self.artifact}-{self.version}.jar"

    def __str__(self) -> str:
        text = f"{self.group}:{self.artifact}"
        if self.version:
            text += f":{self.version}"
        if self.classifier:
            text += f":{self.classifier}"
        return text


def split_identity(identity: str) -> tuple[str, str]:
    """Split ``group:artifact`` into its parts."""
    parts = identity.split(":")
    if len(parts) != 2 or not all(p.strip() for p in parts):
        raise ConfigError(
            f"Invalid artifact identity {identity!r}, expected group:artifact"
        )
    return parts[0].strip(), parts[1].strip()


def parse_coordinate(text: str, *, require_version: bool = False) -> Coordinate:
    """Parse ``group:artifact[:version[:classifier]]``.

    Raises:
        ConfigError: If the text has the wrong number of parts or empty
            components.
    """
    parts = [p.strip() for p in text.strip().split(":")]
    if len(parts) < 2 or len(parts) > 4 or not all(parts):
        raise ConfigError(
            f"Invalid coordinate {text!r}, expected "
            "group:artifact or group:artifact:version[:classifier]"
        )
    if require_version and len(parts) < 3:
        raise ConfigError(f"Coordinate {text!r} has no version")
    group, artifact = parts[0], parts[1]
    version = parts[2] if len(parts) > 2 else ""
    classifier = parts[3] if len(parts) > 3 else None
    return Coordinate(group, artifact, version, classifier)


@dataclass(frozen=True, order=True)
class Exclusion:
    """An excluded ``(group, artifact)``; either part may be ``*``."""

    group: str
    artifact: str

    def matches(self, identity: str) -> bool:
        group, _, artifact = identity.partition(":")
        return self.group in ("*", group) and self.artifact in ("*", artifact)

    def intersect(self, other: Exclusion) -> Exclusion | None:
        """The pattern matching exactly what both match, or None if nothing."""
        group = _meet(self.group, other.group)
        artifact = _meet(self.artifact, other.artifact)
        if group is None or artifact is None:
            return None
        return Exclusion(group, artifact)

    @classmethod
    def parse(cls, text: str) -> Exclusion:
        group, artifact = split_identity(text)
        return cls(group, artifact)

    def __str__(self) -> str:
        return f"{self.group}:{self.artifact}"


def _meet(a: str, b: str) -> str | None:
    if a == "*":
        return b
    if b == "*" or a == b:
        return a
    return None


def is_excluded(identity: str, exclusions: frozenset[Exclusion]) -> bool:
    """True if any exclusion in the set matches *identity*."""
    return any(ex.matches(identity) for ex in exclusions)


def common_exclusions(sets: Iterable[frozenset[Exclusion]]) -> frozenset[Exclusion]:
    """Exclusions matching an identity exactly when every set in *sets* does."""
    result: frozenset[Exclusion] | None = None
    for exclusions in sets:
        if result is None:
            result = exclusions
            continue
        met: set[Exclusion] = set()
        for a in result:
            for b in exclusions:
                both = a.intersect(b)
                if both is not None:
                    met.add(both)
        # Drop patterns another pattern already covers.
        result = frozenset(
            e for e in met if not any(f != e and f.intersect(e) == e for f in met)
        )
    return result or frozenset()


# ---------------------------------------------------------------------------
# Dependency: An edge in the dependency graph
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Dependency:
    """A declared or transitive dependency on a coordinate.

    Represents: "the owner requires ``coordinate`` in ``scope``, without
    the identities in ``exclusions`` anywhere below it."

    Attributes:
        coordinate: Target artifact.
        scope: Build phase the dependency applies to.
        optional: Optional dependencies are not pulled in transitively.
        exclusions: Identities removed from this dependency's subtree.
    """

    coordinate: Coordinate
    scope: Scope = Scope.COMPILE
    optional: bool = False
    exclusions: frozenset[Exclusion] = field(default_factory=frozenset)

    @property
    def identity(self) -> str:
        return self.coordinate.identity

    @property
    def version(self) -> str:
        return self.coordinate.version

    def with_version(self, version: str) -> Dependency:
        return Dependency(
            coordinate=self.coordinate.with_version(version),
            scope=self.scope,
            optional=self.optional,
            exclusions=self.exclusions,
        )

    def fingerprint_record(self) -> dict[str, Any]:
        """Canonical, JSON-serializable form used for declared-set hashing."""
        return {
            "group": self.coordinate.group,
            "artifact": self.coordinate.artifact,
            "version": self.coordinate.version,
            "classifier": self.coordinate.classifier,
            "scope": self.scope.value,
            "optional": self.optional,
            "exclusions": sorted(str(e) for e in self.exclusions),
        }

    def __str__(self) -> str:
        return str(self.coordinate)
