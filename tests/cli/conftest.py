"""Shared fixtures for CLI tests.

Every command talks to ``FakeRegistry`` instead of the network, and the
artifact cache lives in a temporary directory.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner
from fakes import FakeRegistry, dep

from jx.cli.output import console
from jx.core.dependency import Scope


@pytest.fixture(autouse=True)
def _loud_console(monkeypatch: pytest.MonkeyPatch) -> None:
    """``--quiet`` mutates the shared console; restore it after each test."""
    monkeypatch.setattr(console, "quiet", False)


@pytest.fixture
def runner() -> CliRunner:
    """Create a Click CliRunner for invoking commands."""
    return CliRunner()


@pytest.fixture
def registry(monkeypatch: pytest.MonkeyPatch, cache_root: Path) -> FakeRegistry:
    """A FakeRegistry serving the ``project_dir`` dependencies to every command."""
    reg = FakeRegistry(
        {
            "org.example:app-core:1.0": [
                dep("org.slf4j:slf4j-api:2.0.9"),
                dep("com.google.guava:guava:32.1.2-jre", Scope.RUNTIME),
            ],
            "org.slf4j:slf4j-api:2.0.9": [],
            "com.google.guava:guava:32.1.2-jre": [],
            "junit:junit:4.13.2": [],
        },
        versions={
            "org.example:app-core": ["1.0", "1.1", "2.0-SNAPSHOT"],
            "junit:junit": ["4.12", "4.13.2"],
            "org.slf4j:slf4j-api": ["1.7.36", "2.0.9"],
        },
    )
    monkeypatch.setattr("jx.cli.context.make_registry", lambda config: reg)
    return reg


@pytest.fixture
def in_project(project_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run the command from inside ``project_dir``."""
    monkeypatch.chdir(project_dir)
    return project_dir
