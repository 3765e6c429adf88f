"""POM parsing and effective-model merging.

A POM is parsed into a ``PomModel`` holding raw (uninterpolated) values.
``merge_parent`` folds a parent's model into a child's (the child wins)
and ``PomModel.interpolate`` substitutes ``${...}`` properties once the
whole parent chain has been merged, which is when every property a value
may refer to is known.
"""

from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field, replace

from jx.core.dependency.coordinates import Coordinate, Dependency, Exclusion, Scope
from jx.exceptions import ConfigError, ResolutionError

logger = logging.getLogger(__name__)

_PROPERTY_RE = re.compile(r"\$\{([^}]+)\}")
_MAX_INTERPOLATION_ROUNDS = 10

# Dependency <type> values that select a classified jar.
_TYPE_CLASSIFIERS = {"test-jar": "tests", "ejb-client": "client"}


@dataclass(frozen=True)
class PomDependency:
    """A ``<dependency>`` element as written, before interpolation."""

    group: str
    artifact: str
    version: str = ""
    scope: str = ""
    type: str = "jar"
    classifier: str | None = None
    optional: bool = False
    exclusions: tuple[str, ...] = ()

    @property
    def key(self) -> tuple[str, str, str | None, str]:
        return (self.group, self.artifact, self.classifier, self.type)

    @property
    def identity(self) -> str:
        return f"{self.group}:{self.artifact}"

    @property
    def is_bom_import(self) -> bool:
        return self.scope == "import" and self.type == "pom"


@dataclass
class PomModel:
    """The parts of a POM the resolver needs."""

    group: str
    artifact: str
    version: str
    packaging: str = "jar"
    parent: Coordinate | None = None
    properties: dict[str, str] = field(default_factory=dict)
    dependencies: list[PomDependency] = field(default_factory=list)
    managed: list[PomDependency] = field(default_factory=list)

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.group, self.artifact, self.version)

    def _project_properties(self) -> dict[str, str]:
        props = {
            "project.groupId": self.group,
            "project.artifactId": self.artifact,
            "project.version": self.version,
            "pom.groupId": self.group,
            "pom.artifactId": self.artifact,
            "pom.version": self.version,
            "groupId": self.group,
            "version": self.version,
        }
        if self.parent is not None:
            props["project.parent.groupId"] = self.parent.group
            props["project.parent.artifactId"] = self.parent.artifact
            props["project.parent.version"] = self.parent.version
            props["parent.version"] = self.parent.version
        return props

    def resolve(self, value: str) -> str:
        """Substitute ``${name}`` references; unknown names are left as-is."""
        props = {**self.properties, **self._project_properties()}
        for _ in range(_MAX_INTERPOLATION_ROUNDS):
            updated = _PROPERTY_RE.sub(lambda m: props.get(m.group(1), m.group(0)), value)
            if updated == value:
                break
            value = updated
        return value

    def interpolate(self) -> PomModel:
        """Return a copy with every dependency field interpolated."""

        def fix(dep: PomDependency) -> PomDependency:
            return replace(
                dep,
                group=self.resolve(dep.group),
                artifact=self.resolve(dep.artifact),
                version=self.resolve(dep.version),
                scope=self.resolve(dep.scope),
                classifier=self.resolve(dep.classifier) if dep.classifier else None,
                exclusions=tuple(self.resolve(e) for e in dep.exclusions),
            )

        return replace(
            self,
            packaging=self.resolve(self.packaging),
            dependencies=[fix(d) for d in self.dependencies],
            managed=[fix(d) for d in self.managed],
        )

    def managed_versions(self) -> dict[str, str]:
        """Identity -> version from ``dependencyManagement`` (BOM imports excluded)."""
        table: dict[str, str] = {}
        for dep in self.managed:
            if dep.is_bom_import or not dep.version or "${" in dep.version:
                continue
            table.setdefault(dep.identity, dep.version)
        return table

    def bom_imports(self) -> list[Coordinate]:
        return [
            Coordinate(d.group, d.artifact, d.version)
            for d in self.managed
            if d.is_bom_import
        ]


# ---------------------------------------------------------------------------
# XML parsing
# ---------------------------------------------------------------------------


def _strip_namespaces(root: ET.Element) -> None:
    for element in root.iter():
        if isinstance(element.tag, str) and "}" in element.tag:
            element.tag = element.tag.split("}", 1)[1]


def _text(element: ET.Element | None, tag: str, default: str = "") -> str:
    if element is None:
        return default
    child = element.find(tag)
    if child is None or child.text is None:
        return default
    return child.text.strip()


def _parse_dependency(element: ET.Element) -> PomDependency:
    exclusions = tuple(
        f"{_text(ex, 'groupId', '*')}:{_text(ex, 'artifactId', '*')}"
        for ex in element.findall("exclusions/exclusion")
    )
    return PomDependency(
        group=_text(element, "groupId"),
        artifact=_text(element, "artifactId"),
        version=_text(element, "version"),
        scope=_text(element, "scope"),
        type=_text(element, "type", "jar"),
        classifier=_text(element, "classifier") or None,
        optional=_text(element, "optional").lower() == "true",
        exclusions=exclusions,
    )


def parse_pom(text: str | bytes, source: str = "") -> PomModel:
    """Parse POM XML into a raw ``PomModel``.

    ``groupId`` and ``version`` default to the parent's when absent.

    Raises:
        ResolutionError: If the document is not well-formed or lacks an
            ``artifactId``.
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as exc:
        raise ResolutionError(f"Malformed POM {source}: {exc}") from exc
    _strip_namespaces(root)

    parent_el = root.find("parent")
    parent = None
    if parent_el is not None:
        parent = Coordinate(
            _text(parent_el, "groupId"),
            _text(parent_el, "artifactId"),
            _text(parent_el, "version"),
        )

    artifact = _text(root, "artifactId")
    if not artifact:
        raise ResolutionError(f"POM {source} has no artifactId")

    properties: dict[str, str] = {}
    props_el = root.find("properties")
    if props_el is not None:
        for prop in props_el:
            if isinstance(prop.tag, str):
                properties[prop.tag] = (prop.text or "").strip()

    return PomModel(
        group=_text(root, "groupId") or (parent.group if parent else ""),
        artifact=artifact,
        version=_text(root, "version") or (parent.version if parent else ""),
        packaging=_text(root, "packaging", "jar"),
        parent=parent,
        properties=properties,
        dependencies=[_parse_dependency(d) for d in root.findall("dependencies/dependency")],
        managed=[
            _parse_dependency(d)
            for d in root.findall("dependencyManagement/dependencies/dependency")
        ],
    )


# ---------------------------------------------------------------------------
# Inheritance
# ---------------------------------------------------------------------------


def _merge_by_key(
    inherited: list[PomDependency], own: list[PomDependency]
) -> list[PomDependency]:
    keys = {d.key for d in own}
    return [d for d in inherited if d.key not in keys] + list(own)


def merge_parent(child: PomModel, parent: PomModel) -> PomModel:
    """Fold *parent* (already merged with its own ancestors) into *child*.

    Properties, managed entries and dependencies are inherited; the
    child's own declarations win on conflict.
    """
    return replace(
        child,
        properties={**parent.properties, **child.properties},
        dependencies=_merge_by_key(parent.dependencies, child.dependencies),
        managed=_merge_by_key(parent.managed, child.managed),
    )


def to_dependency(dep: PomDependency, owner: str = "") -> Dependency | None:
    """Convert an interpolated ``PomDependency``; None when it is unusable.

    ``system`` scope is not supported and ``import`` is only meaningful in
    ``dependencyManagement``; both are dropped with a warning.
    """
    if dep.scope in ("system", "import"):
        logger.warning("Ignoring %s-scoped dependency %s of %s", dep.scope, dep.identity, owner)
        return None
    try:
        scope = Scope.parse(dep.scope)
    except ConfigError:
        logger.warning("Unknown scope %r on %s of %s; using compile", dep.scope, dep.identity, owner)
        scope = Scope.COMPILE
    classifier = dep.classifier or _TYPE_CLASSIFIERS.get(dep.type)
    return Dependency(
        coordinate=Coordinate(dep.group, dep.artifact, dep.version, classifier),
        scope=scope,
        optional=dep.optional,
        exclusions=frozenset(Exclusion.parse(e) for e in dep.exclusions),
    )


def parse_versions_index(text: str | bytes) -> list[str]:
    """Versions listed in a ``maven-metadata.xml`` document.

    Raises:
        ResolutionError: If the document is not well-formed.
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as exc:
        raise ResolutionError(f"Malformed maven-metadata.xml: {exc}") from exc
    _strip_namespaces(root)
    return [
        v.text.strip()
        for v in root.findall("versioning/versions/version")
        if v.text and v.text.strip()
    ]
