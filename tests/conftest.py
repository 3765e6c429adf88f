"""Shared fixtures for jx tests."""

import pathlib

import pytest

from jx.core.cache import ArtifactCache

BASIC_CONFIG = """\
[project]
name = "demo"
version = "1.0.0"

[dependencies]
"org.example:app-core" = "1.0"

[dependencies.test]
"junit:junit" = "4.13.2"
"""


@pytest.fixture
def cache_root(tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch) -> pathlib.Path:
    """Point ``$JX_CACHE_DIR`` at a fresh temporary directory."""
    root = tmp_path / "cache"
    monkeypatch.setenv("JX_CACHE_DIR", str(root))
    return root


@pytest.fixture
def cache(cache_root: pathlib.Path) -> ArtifactCache:
    return ArtifactCache(cache_root)


@pytest.fixture
def project_dir(tmp_path: pathlib.Path) -> pathlib.Path:
    """A project directory containing a minimal jx.toml."""
    project = tmp_path / "demo"
    project.mkdir()
    (project / "jx.toml").write_text(BASIC_CONFIG)
    return project
