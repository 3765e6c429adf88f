"""Shared plumbing for jx subcommands: config lookup, registry and error exits.

Exit Codes:
    0 — Success.
    1 — Any jx error (resolution, cycle, integrity, not found, network...).
    2 — Usage error or no ``jx.toml`` found.
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TypeVar

import click

from jx.cli.output import print_error
from jx.config import CONFIG_FILE, ProjectConfig, find_config
from jx.core.retry import RetryPolicy
from jx.exceptions import JxError
from jx.registry.base import RegistryClient
from jx.registry.maven import MavenRegistryClient

T = TypeVar("T")


def load_config(file: str | None) -> ProjectConfig:
    """Load ``--file`` or the nearest ``jx.toml``; exit 2 when there is none."""
    path = Path(file) if file else find_config(Path.cwd())
    if path is None or not path.is_file():
        click.echo(
            f"Error: {file or CONFIG_FILE} not found (run inside a jx project or pass --file).",
            err=True,
        )
        sys.exit(2)
    try:
        return ProjectConfig.load(path)
    except JxError as exc:
        print_error(exc)
        sys.exit(1)


def make_registry(config: ProjectConfig) -> RegistryClient:
    """Registry client for *config*'s repositories."""
    settings = config.install_settings()
    return MavenRegistryClient(
        config.repositories(),
        policy=RetryPolicy(attempts=settings.retries),
    )


def run_with_registry(
    config: ProjectConfig,
    operation: Callable[[RegistryClient], Awaitable[T]],
    *,
    timeout: float | None = None,
) -> T:
    """Run *operation* against a fresh registry client; exit 1 on failure.

    The client is closed afterwards whatever the outcome.
    """

    async def _main() -> T:
        async with make_registry(config) as registry:
            if timeout is None:
                return await operation(registry)
            return await asyncio.wait_for(operation(registry), timeout)

    try:
        return asyncio.run(_main())
    except JxError as exc:
        print_error(exc)
        sys.exit(1)
    except asyncio.TimeoutError:
        click.echo(f"Error: timed out after {timeout:g}s; nothing was committed.", err=True)
        sys.exit(1)
