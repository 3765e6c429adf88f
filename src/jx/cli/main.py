"""jx CLI — Dependency management for Java projects.

Entry point for the ``jx`` command-line tool. Registers all subcommands
under a single Click group.

Commands:
    install — Resolve, lock, download and copy dependencies into lib/.
    add     — Declare a dependency in jx.toml.
    remove  — Drop a declared dependency.
    update  — Move declared versions to ``*`` or the newest release.
    tree    — Show the resolved dependency tree.
    cache   — Inspect or empty the artifact cache.

Usage::

    jx install
    jx install --production --timeout 300
    jx add org.slf4j:slf4j-api:2.0.9
    jx tree --transitive
    jx cache info
"""

from __future__ import annotations

import logging

import click
from rich.logging import RichHandler

from jx import __version__
from jx.cli.cache_cmd import cache_group
from jx.cli.deps_cmd import add_command, remove_command, update_command
from jx.cli.install_cmd import install_command
from jx.cli.output import console, err_console
from jx.cli.tree_cmd import tree_command


def _configure_logging(verbose: bool, quiet: bool) -> None:
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=verbose, rich_tracebacks=verbose)],
        force=True,
    )
    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(logging.INFO if verbose else logging.WARNING)


@click.group()
@click.version_option(version=__version__, prog_name="jx")
@click.option("--verbose", "-v", is_flag=True, help="Log resolution and download details.")
@click.option("--quiet", "-q", is_flag=True, help="Print errors only; --verbose takes precedence.")
def cli(verbose: bool, quiet: bool) -> None:
    """jx: fast, reproducible dependency installs for Java projects.

    Resolves Maven dependencies breadth-first (nearest version wins),
    records the result in jx-lock.json, and installs verified jars from a
    shared cache.
    """
    _configure_logging(verbose, quiet)
    console.quiet = quiet and not verbose


# Register all subcommands
cli.add_command(install_command)
cli.add_command(add_command)
cli.add_command(remove_command)
cli.add_command(update_command)
cli.add_command(tree_command)
cli.add_command(cache_group)
