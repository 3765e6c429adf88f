"""Project configuration: reading and editing ``jx.toml``.

The file is read with ``tomllib`` and rewritten with ``tomli_w``. Edits
(``add``/``remove``/``set_version``) operate on the parsed document, so
comments and formatting in a hand-written file are not preserved.

``[dependencies]`` holds compile dependencies directly (keys containing
``:``) and one subtable per other scope::

    [dependencies]
    "org.slf4j:slf4j-api" = "2.0.9"
    [dependencies.test]
    "junit:junit" = "4.13.2"

A value is either a version string or a table accepting ``version``,
``scope`` (top-level table only), ``optional``, ``classifier`` and
``exclusions``.
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import tomli_w

from jx.core.dependency.coordinates import (
    Coordinate,
    Dependency,
    Exclusion,
    Scope,
    split_identity,
)
from jx.core.retry import DEFAULT_ATTEMPTS
from jx.exceptions import ConfigError
from jx.registry.base import MAVEN_CENTRAL_URL, Repository

logger = logging.getLogger(__name__)

CONFIG_FILE = "jx.toml"

_SCOPE_TABLES = tuple(s.value for s in Scope if s is not Scope.COMPILE)
_RECORD_KEYS = frozenset({"version", "scope", "optional", "classifier", "exclusions"})


@dataclass(frozen=True)
class InstallSettings:
    """The ``[install]`` table."""

    lib_dir: str = "lib"
    lock_file: str = "jx-lock.json"
    max_parallel: int = 8
    retries: int = DEFAULT_ATTEMPTS
    link: bool = False


def _parse_record(identity: str, value: Any, scope: Scope, *, allow_scope: bool) -> Dependency:
    group, artifact = split_identity(identity)
    if isinstance(value, str):
        return Dependency(Coordinate(group, artifact, value.strip()), scope=scope)
    if not isinstance(value, dict):
        raise ConfigError(f"Dependency {identity!r} must be a version string or a table")
    unknown = set(value) - _RECORD_KEYS
    if unknown:
        raise ConfigError(f"Dependency {identity!r} has unknown keys: {', '.join(sorted(unknown))}")
    if "scope" in value:
        if not allow_scope:
            raise ConfigError(f"Dependency {identity!r} sets 'scope' inside a scope table")
        scope = Scope.parse(value["scope"])
    exclusions = value.get("exclusions", [])
    if not isinstance(exclusions, list):
        raise ConfigError(f"Exclusions of {identity!r} must be a list")
    return Dependency(
        coordinate=Coordinate(
            group, artifact, str(value.get("version", "")).strip(), value.get("classifier") or None
        ),
        scope=scope,
        optional=bool(value.get("optional", False)),
        exclusions=frozenset(Exclusion.parse(e) for e in exclusions),
    )


@dataclass
class ProjectConfig:
    """Parsed ``jx.toml`` plus the path it came from.

    ``data`` is the raw document; the typed accessors read from it, and
    the editing methods modify it before ``save`` writes it back.
    """

    path: Path
    data: dict[str, Any] = field(default_factory=dict)

    # -- Loading / saving ---------------------------------------------------

    @classmethod
    def load(cls, path: Path) -> ProjectConfig:
        """Read and validate *path*.

        Raises:
            FileNotFoundError: If the file does not exist.
            ConfigError: If it is not valid TOML or has invalid entries.
        """
        path = Path(path)
        with open(path, "rb") as handle:
            try:
                data = tomllib.load(handle)
            except tomllib.TOMLDecodeError as exc:
                raise ConfigError(f"{path}: {exc}") from exc
        config = cls(path=path, data=data)
        config.declared_dependencies()
        config.install_settings()
        return config

    def save(self) -> None:
        self.path.write_text(tomli_w.dumps(self.data), encoding="utf-8")
        logger.debug("Wrote %s", self.path)

    @property
    def root(self) -> Path:
        return self.path.parent

    @property
    def name(self) -> str:
        return str(self.data.get("project", {}).get("name", self.root.name))

    # -- Typed views --------------------------------------------------------

    def declared_dependencies(self) -> list[Dependency]:
        """Declared dependencies sorted by identity.

        Raises:
            ConfigError: On malformed entries or an identity declared twice.
        """
        table = self.data.get("dependencies", {})
        if not isinstance(table, dict):
            raise ConfigError("[dependencies] must be a table")
        found: dict[str, Dependency] = {}

        def record(dep: Dependency) -> None:
            if dep.identity in found:
                raise ConfigError(f"{dep.identity} is declared more than once")
            found[dep.identity] = dep

        for key, value in table.items():
            if key in _SCOPE_TABLES:
                if not isinstance(value, dict):
                    raise ConfigError(f"[dependencies.{key}] must be a table")
                for identity, spec in value.items():
                    record(_parse_record(identity, spec, Scope(key), allow_scope=False))
            elif ":" in key:
                record(_parse_record(key, value, Scope.COMPILE, allow_scope=True))
            else:
                raise ConfigError(f"Unexpected key {key!r} in [dependencies]")
        return [found[k] for k in sorted(found)]

    def managed_versions(self) -> dict[str, str]:
        table = self.data.get("dependency-management", {})
        if not isinstance(table, dict):
            raise ConfigError("[dependency-management] must be a table")
        managed: dict[str, str] = {}
        for identity, version in table.items():
            split_identity(identity)
            if not isinstance(version, str):
                raise ConfigError(f"Managed version of {identity!r} must be a string")
            managed[identity] = version.strip()
        return managed

    def repositories(self) -> list[Repository]:
        """Maven Central (unless overridden) followed by custom repositories."""
        table = self.data.get("repositories", {})
        repos = [Repository("central", table.get("maven_central", MAVEN_CENTRAL_URL))]
        for item in table.get("custom", []):
            if not isinstance(item, dict) or not item.get("url"):
                raise ConfigError("Each [repositories].custom entry needs a 'url'")
            repos.append(
                Repository(
                    name=item.get("name", item["url"]),
                    url=item["url"],
                    username=item.get("username"),
                    password=item.get("password"),
                )
            )
        return repos

    def install_settings(self) -> InstallSettings:
        table = self.data.get("install", {})
        try:
            settings = InstallSettings(
                lib_dir=str(table.get("lib_dir", "lib")),
                lock_file=str(table.get("lock_file", "jx-lock.json")),
                max_parallel=int(table.get("max_parallel", 8)),
                retries=int(table.get("retries", DEFAULT_ATTEMPTS)),
                link=bool(table.get("link", False)),
            )
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid [install] setting: {exc}") from exc
        if settings.max_parallel < 1 or settings.retries < 1:
            raise ConfigError("[install] max_parallel and retries must be at least 1")
        return settings

    @property
    def lock_path(self) -> Path:
        return self.root / self.install_settings().lock_file

    @property
    def lib_path(self) -> Path:
        return self.root / self.install_settings().lib_dir

    # -- Editing ------------------------------------------------------------

    def _locate(self, identity: str) -> tuple[dict[str, Any], str] | None:
        table = self.data.get("dependencies", {})
        if identity in table:
            return table, identity
        for scope in _SCOPE_TABLES:
            sub = table.get(scope, {})
            if isinstance(sub, dict) and identity in sub:
                return sub, identity
        return None

    def add(self, coordinate: Coordinate, scope: Scope = Scope.COMPILE) -> bool:
        """Declare *coordinate* in *scope*, replacing any existing declaration.

        Returns:
            True if an existing declaration was replaced.
        """
        replaced = self.remove(coordinate.identity)
        deps = self.data.setdefault("dependencies", {})
        target = deps if scope is Scope.COMPILE else deps.setdefault(scope.value, {})
        version = coordinate.version or "*"
        if coordinate.classifier:
            target[coordinate.identity] = {"version": version, "classifier": coordinate.classifier}
        else:
            target[coordinate.identity] = version
        return replaced

    def remove(self, identity: str) -> bool:
        """Drop the declaration of *identity*; False when it was not declared."""
        found = self._locate(identity)
        if found is None:
            return False
        table, key = found
        del table[key]
        return True

    def set_version(self, identity: str, version: str) -> None:
        """Rewrite the declared version of *identity*.

        Raises:
            ConfigError: If *identity* is not declared.
        """
        found = self._locate(identity)
        if found is None:
            raise ConfigError(f"{identity} is not a declared dependency")
        table, key = found
        if isinstance(table[key], dict):
            table[key]["version"] = version
        else:
            table[key] = version


def find_config(start: Path) -> Path | None:
    """Nearest ``jx.toml`` in *start* or one of its parents."""
    start = start.resolve()
    for directory in (start, *start.parents):
        candidate = directory / CONFIG_FILE
        if candidate.is_file():
            return candidate
    return None
