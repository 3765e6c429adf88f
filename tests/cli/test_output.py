"""Tests for CLI output formatting helpers.

Verifies:
    - Scope style mapping.
    - File size formatting.
    - Error, tree and report printers produce the expected text.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from fakes import dep

from jx.cli.output import (
    format_file_size,
    print_dependency_tree,
    print_error,
    print_install_report,
    scope_style,
)
from jx.core.dependency import Coordinate, DependencyNode, ResolvedGraph, Scope
from jx.core.install import InstallReport
from jx.exceptions import NotFoundError, ResolutionError


class TestScopeStyles:
    @pytest.mark.parametrize(
        "scope, style",
        [
            (Scope.COMPILE, "green"),
            (Scope.RUNTIME, "cyan"),
            (Scope.PROVIDED, "yellow"),
            (Scope.TEST, "magenta"),
        ],
    )
    def test_mapping(self, scope: Scope, style: str) -> None:
        assert scope_style(scope) == style


class TestFileSize:
    @pytest.mark.parametrize(
        "size, text",
        [(0, "0 B"), (512, "512 B"), (1536, "1.5 KB"), (3 * 1024 * 1024, "3.0 MB")],
    )
    def test_format(self, size: int, text: str) -> None:
        assert format_file_size(size) == text


class TestPrintError:
    def test_message_and_chain(self, capsys: pytest.CaptureFixture[str]) -> None:
        print_error(NotFoundError("g:c:1 not found", chain=["g:a:1", "g:b:1", "g:c:1"]))
        err = capsys.readouterr().err
        assert "Error: g:c:1 not found" in err
        assert "via g:a:1 -> g:b:1 -> g:c:1" in err

    def test_every_conflicting_chain_is_listed(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        exc = ResolutionError(
            "No version of g:x",
            chain=["g:a:1", "g:x"],
            chains=[["g:a:1", "g:x"], ["g:b:1", "g:x"]],
        )
        print_error(exc)
        err = capsys.readouterr().err
        assert "via g:a:1 -> g:x" in err
        assert "via g:b:1 -> g:x" in err


class TestPrinters:
    def test_tree_marks_repeats(self, capsys: pytest.CaptureFixture[str]) -> None:
        g = ResolvedGraph()
        for text, depth, root in (("g:a:1", 0, True), ("g:b:1", 0, True), ("g:c:1", 1, False)):
            group, artifact, version = text.split(":")
            g.add_node(
                DependencyNode(Coordinate(group, artifact, version), Scope.COMPILE, depth, [(dep(text),)]),
                root=root,
            )
        g.add_edge("g:a", dep("g:c:1"))
        g.add_edge("g:b", dep("g:c:1"))
        print_dependency_tree(g, "demo", transitive=True)
        out = capsys.readouterr().out
        assert out.count("g:c:1") == 2
        assert "(*)" in out

    def test_install_report(self, capsys: pytest.CaptureFixture[str]) -> None:
        report = InstallReport(
            resolved=True, lock_written=True, total=3, downloaded=2, cached=1,
            materialized=[Path("a.jar"), Path("b.jar"), Path("c.jar")],
            pruned=[Path("old.jar")],
        )
        print_install_report(report, 1.25)
        out = capsys.readouterr().out
        assert "3 dependencies" in out
        assert "2 downloaded" in out
        assert "1 removed" in out
        assert "lock file updated" in out

    def test_install_report_lists_lock_changes(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        report = InstallReport(
            resolved=True, lock_written=True, total=2,
            added=["g:new"],
            removed=["g:gone"],
            changed=[
                {"identity": "g:log", "field": "version", "old": "1.0", "new": "1.1"},
                {"identity": "g:jar", "field": "checksum", "old": "", "new": "sha256:ab"},
            ],
        )
        print_install_report(report, 0.5)
        out = capsys.readouterr().out
        assert "+ g:new" in out
        assert "- g:gone" in out
        assert "~ g:log version 1.0 -> 1.1" in out
        assert "~ g:jar checksum" in out
        assert "sha256:ab" not in out
