"""``jx cache`` — Inspect or empty the machine-wide artifact cache."""

from __future__ import annotations

import click

from jx.cli.output import console, print_cache_info
from jx.core.cache import ArtifactCache


@click.group("cache")
def cache_group() -> None:
    """Manage the artifact cache (``$JX_CACHE_DIR`` or ~/.jx/cache)."""


@cache_group.command("info")
def cache_info_command() -> None:
    """Show the cache location, artifact count and size."""
    cache = ArtifactCache()
    entries = list(cache.entries())
    print_cache_info(str(cache.root), len(entries), sum(e.size for e in entries))


@cache_group.command("clean")
@click.confirmation_option(prompt="Remove every cached artifact?")
def cache_clean_command() -> None:
    """Remove every cached artifact."""
    removed = ArtifactCache().clear()
    console.print(f"Removed [bold]{removed}[/bold] cached artifacts")
