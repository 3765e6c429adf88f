"""Lock file operations --- deserialization, validation, and diffing.

This module extends the ``LockFile`` class (defined in ``lockfile.py``) with
classmethods and instance methods for:

- **Deserialization:** ``from_dict``, ``from_json``, ``read`` (disk).
- **Validation:** internal consistency checks (children, checksums, counts).
- **Diffing:** structured comparison of two lock files.

These are attached to the ``LockFile`` class at import time (in
``__init__.py``) to keep each source file focused while presenting a
single unified API to callers.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from jx.core.dependency.coordinates import Coordinate, Scope
from jx.core.lockfile.models import LockEntry, LockfileMetadata, is_valid_checksum
from jx.exceptions import ConfigError, LockfileError

_REQUIRED_FIELDS = ("group", "artifact", "version", "scope")


def _from_dict(cls: type, data: dict[str, Any]) -> Any:
    """Deserialize a lock file from a dict (parsed JSON).

    Accepts the dict format produced by ``to_dict()``. Optional fields
    fall back to their defaults.

    Raises:
        LockfileError: If the structure is not a lock file or an entry
            lacks a required field or has an unknown scope.
    """
    if not isinstance(data, dict) or not isinstance(data.get("entries", []), list):
        raise LockfileError("Lock file is not a JSON object with an 'entries' list")

    lf = cls(fingerprint=str(data.get("fingerprint", "")))
    for raw in data.get("entries", []):
        if not isinstance(raw, dict):
            raise LockfileError(f"Malformed lock entry: {raw!r}")
        missing = [name for name in _REQUIRED_FIELDS if not raw.get(name)]
        if missing:
            raise LockfileError(
                f"Lock entry {raw.get('group', '?')}:{raw.get('artifact', '?')} "
                f"is missing {', '.join(missing)}"
            )
        try:
            scope = Scope.parse(raw["scope"])
        except ConfigError as exc:
            raise LockfileError(str(exc)) from exc
        entry = LockEntry(
            coordinate=Coordinate(
                group=raw["group"],
                artifact=raw["artifact"],
                version=raw["version"],
                classifier=raw.get("classifier") or None,
            ),
            scope=scope,
            checksum=raw.get("checksum") or "",
            source=raw.get("source", ""),
            depth=int(raw.get("depth", 0)),
            packaging=raw.get("packaging") or "jar",
            dependencies=sorted(raw.get("dependencies", [])),
        )
        lf.add_entry(entry, root=bool(raw.get("root", entry.depth == 0)))

    meta = data.get("metadata", {})
    lf._metadata = LockfileMetadata(
        total_entries=meta.get("total_entries", len(lf)),
        resolution_strategy=meta.get("resolution_strategy", "nearest-wins"),
    )
    return lf


def _from_json(cls: type, json_str: str) -> Any:
    """Deserialize from a JSON string.

    Raises:
        LockfileError: If the string is not valid JSON or not a lock file.
    """
    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as exc:
        raise LockfileError(f"Lock file is not valid JSON: {exc}") from exc
    return cls.from_dict(data)


def _read(cls: type, path: Path) -> Any:
    """Read a lock file from disk.

    Raises:
        FileNotFoundError: If the file does not exist.
        LockfileError: If the file is corrupt.
    """
    text = path.read_text(encoding="utf-8")
    try:
        return cls.from_json(text)
    except LockfileError as exc:
        raise LockfileError(f"{path}: {exc.message}") from exc


def _validate(self: Any) -> list[str]:
    """Validate the lock file for internal consistency.

    Performs the following checks:

    1. **Child completeness:** every child identity an entry references
       must itself be an entry.
    2. **Checksum format:** every checksum must be ``algo:hex`` with a
       digest of the right length. An empty checksum means "not yet
       downloaded"; ``pom`` entries never carry one.
    3. **Metadata consistency:** ``total_entries`` must match the actual
       number of entries.
    4. **Roots present:** at least one declared root when non-empty.
    5. **Acyclicity:** no entry may reach itself through child edges.

    Returns:
        List of validation error messages. Empty means the lock is valid.
    """
    errors: list[str] = []

    for entry in self.entries:
        for child in entry.dependencies:
            if self.get_entry(child) is None:
                errors.append(
                    f"Entry {entry.identity!r} depends on {child!r} which is "
                    f"not in the lock file"
                )

    for entry in self.entries:
        if entry.checksum and not is_valid_checksum(entry.checksum):
            errors.append(
                f"Entry {entry.identity!r} has invalid checksum: {entry.checksum!r}"
            )
        elif entry.checksum and not entry.has_artifact:
            errors.append(f"Entry {entry.identity!r} has pom packaging but a checksum")

    if self.metadata.total_entries != len(self):
        errors.append(
            f"Metadata total_entries ({self.metadata.total_entries}) "
            f"does not match actual count ({len(self)})"
        )

    if len(self) and not self.roots:
        errors.append("Lock file has entries but no declared roots")

    for cycle in self.to_graph().detect_cycles():
        errors.append(f"Dependency cycle: {' -> '.join(cycle)}")

    return errors


def _diff(self: Any, other: Any) -> dict[str, Any]:
    """Compare two lock files and return differences.

    - **added**: identities present in ``other`` but not in ``self``.
    - **removed**: identities present in ``self`` but not in ``other``.
    - **changed**: identities present in both whose version, scope or
      checksum differ.

    Args:
        other: The lock file to compare against (typically the newer one).

    Returns:
        Dict with keys 'added', 'removed', 'changed'.
    """
    mine = set(self.identities)
    theirs = set(other.identities)

    changes: list[dict[str, Any]] = []
    for identity in sorted(mine & theirs):
        old = self.get_entry(identity)
        new = other.get_entry(identity)
        for field_name, old_value, new_value in (
            ("version", old.coordinate.version, new.coordinate.version),
            ("scope", old.scope.value, new.scope.value),
            ("checksum", old.checksum, new.checksum),
        ):
            if old_value != new_value:
                changes.append({
                    "identity": identity,
                    "field": field_name,
                    "old": old_value,
                    "new": new_value,
                })

    return {
        "added": sorted(theirs - mine),
        "removed": sorted(mine - theirs),
        "changed": changes,
    }
