"""Tests for ``jx install``."""

from __future__ import annotations

from pathlib import Path

from click.testing import CliRunner
from fakes import FakeRegistry

from jx.cli.main import cli
from jx.exceptions import NotFoundError


class TestInstallCommand:
    def test_install_succeeds(
        self, runner: CliRunner, registry: FakeRegistry, in_project: Path
    ) -> None:
        result = runner.invoke(cli, ["install"])
        assert result.exit_code == 0, result.output
        assert "4 dependencies" in result.output
        assert (in_project / "jx-lock.json").is_file()
        assert (in_project / "lib" / "app-core-1.0.jar").is_file()
        assert registry.closed

    def test_install_with_file_option(
        self, runner: CliRunner, registry: FakeRegistry, project_dir: Path
    ) -> None:
        result = runner.invoke(cli, ["install", "--file", str(project_dir / "jx.toml")])
        assert result.exit_code == 0, result.output
        assert (project_dir / "lib" / "slf4j-api-2.0.9.jar").is_file()

    def test_production_flag(
        self, runner: CliRunner, registry: FakeRegistry, in_project: Path
    ) -> None:
        result = runner.invoke(cli, ["install", "--production"])
        assert result.exit_code == 0, result.output
        assert not (in_project / "lib" / "junit-4.13.2.jar").exists()

    def test_second_install_reports_cache(
        self, runner: CliRunner, registry: FakeRegistry, in_project: Path
    ) -> None:
        runner.invoke(cli, ["install"])
        result = runner.invoke(cli, ["install"])
        assert result.exit_code == 0
        assert "4 from cache" in result.output
        assert "re-resolved" not in result.output

    def test_missing_config_exits_2(
        self, runner: CliRunner, registry: FakeRegistry, tmp_path: Path, monkeypatch
    ) -> None:
        empty = tmp_path / "empty"
        empty.mkdir()
        monkeypatch.chdir(empty)
        result = runner.invoke(cli, ["install"])
        assert result.exit_code == 2
        assert "jx.toml not found" in result.output

    def test_not_found_exits_1_with_chain(
        self, runner: CliRunner, registry: FakeRegistry, in_project: Path
    ) -> None:
        registry.metadata_failures["org.slf4j:slf4j-api:2.0.9"] = NotFoundError(
            "org.slf4j:slf4j-api:2.0.9 not found in any repository"
        )
        result = runner.invoke(cli, ["install"])
        assert result.exit_code == 1
        assert "Error:" in result.output
        assert "via org.example:app-core:1.0" in result.output
        assert not (in_project / "jx-lock.json").exists()

    def test_quiet_suppresses_summary(
        self, runner: CliRunner, registry: FakeRegistry, in_project: Path
    ) -> None:
        result = runner.invoke(cli, ["--quiet", "install"])
        assert result.exit_code == 0, result.output
        assert "dependencies" not in result.output
        assert (in_project / "lib" / "app-core-1.0.jar").is_file()

    def test_quiet_still_reports_errors(
        self, runner: CliRunner, registry: FakeRegistry, in_project: Path
    ) -> None:
        registry.metadata_failures["org.slf4j:slf4j-api:2.0.9"] = NotFoundError(
            "org.slf4j:slf4j-api:2.0.9 not found in any repository"
        )
        result = runner.invoke(cli, ["-q", "install"])
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_verbose_overrides_quiet(
        self, runner: CliRunner, registry: FakeRegistry, in_project: Path
    ) -> None:
        result = runner.invoke(cli, ["-q", "-v", "install"])
        assert result.exit_code == 0, result.output
        assert "4 dependencies" in result.output

    def test_invalid_config_exits_1(
        self, runner: CliRunner, registry: FakeRegistry, in_project: Path
    ) -> None:
        (in_project / "jx.toml").write_text('[dependencies]\n"broken" = "1"\n')
        result = runner.invoke(cli, ["install"])
        assert result.exit_code == 1
        assert "Unexpected key" in result.output

    def test_timeout_exits_1_without_lock(
        self, runner: CliRunner, registry: FakeRegistry, in_project: Path
    ) -> None:
        registry.delays["org.example:app-core:1.0"] = 5.0
        result = runner.invoke(cli, ["install", "--timeout", "0.1"])
        assert result.exit_code == 1
        assert "timed out" in result.output
        assert not (in_project / "jx-lock.json").exists()

    def test_invalid_timeout_is_usage_error(
        self, runner: CliRunner, registry: FakeRegistry, in_project: Path
    ) -> None:
        result = runner.invoke(cli, ["install", "--timeout", "0"])
        assert result.exit_code == 2


class TestMainGroup:
    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "jx" in result.output

    def test_help_lists_commands(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for name in ("install", "add", "remove", "update", "tree", "cache"):
            assert name in result.output

    def test_verbose_flag(
        self, runner: CliRunner, registry: FakeRegistry, in_project: Path
    ) -> None:
        result = runner.invoke(cli, ["-v", "install"])
        assert result.exit_code == 0, result.output
