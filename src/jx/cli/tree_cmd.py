"""``jx tree`` — Show the resolved dependency graph.

Uses the lock file when it is current and resolves against the registry
otherwise. Nothing is written to disk.
"""

from __future__ import annotations

import click

from jx.cli.context import load_config, run_with_registry
from jx.cli.output import print_dependency_tree
from jx.core.install import Installer
from jx.registry.base import RegistryClient


@click.command("tree")
@click.option("--transitive", "-t", is_flag=True, help="Include transitive dependencies.")
@click.option("--file", "-f", "file", type=click.Path(dir_okay=False), default=None,
              help="Path to jx.toml (default: nearest in current directory or parents).")
def tree_command(transitive: bool, file: str | None) -> None:
    """Print the project's dependencies as a tree."""
    config = load_config(file)

    async def _graph(registry: RegistryClient):
        return await Installer(config, registry).locked_graph()

    graph = run_with_registry(config, _graph)
    print_dependency_tree(graph, config.name, transitive=transitive)
