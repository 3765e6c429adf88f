"""``jx install`` — Resolve, lock, download and materialize dependencies.

Reads ``jx.toml``, re-resolves when ``jx-lock.json`` is absent, stale or
``--force`` is given, downloads every selected artifact into the shared
cache, commits the lock and copies the jars into the lib directory.

Exit Codes:
    0 — Dependencies installed.
    1 — Resolution, download or lock failure (lock left untouched).
    2 — No ``jx.toml`` found.
"""

from __future__ import annotations

import time

import click

from jx.cli.context import load_config, run_with_registry
from jx.cli.output import print_install_report
from jx.core.cache import ArtifactCache
from jx.core.install import Installer
from jx.registry.base import RegistryClient


@click.command("install")
@click.option("--file", "-f", "file", type=click.Path(dir_okay=False), default=None,
              help="Path to jx.toml (default: nearest in current directory or parents).")
@click.option("--production", is_flag=True, help="Skip test and provided dependencies.")
@click.option("--force", is_flag=True, help="Re-resolve even when the lock file is current.")
@click.option("--timeout", type=click.FloatRange(min=0, min_open=True), default=None,
              help="Abort the whole install after this many seconds.")
def install_command(file: str | None, production: bool, force: bool, timeout: float | None) -> None:
    """Install the project's dependencies into the lib directory.

    Exit code 0 on success, 1 on failure, 2 if no jx.toml is found.
    """
    config = load_config(file)
    started = time.monotonic()

    async def _install(registry: RegistryClient):
        installer = Installer(config, registry, cache=ArtifactCache())
        return await installer.install(force=force, production=production)

    report = run_with_registry(config, _install, timeout=timeout)
    print_install_report(report, time.monotonic() - started)
