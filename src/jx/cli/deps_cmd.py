"""``jx add`` / ``jx remove`` / ``jx update`` — Edit declared dependencies.

These commands only rewrite ``jx.toml``; run ``jx install`` afterwards to
resolve and download. ``update --latest`` is the one that talks to the
registry, to find the newest release to pin.

Usage::

    jx add org.slf4j:slf4j-api:2.0.9
    jx add junit:junit:4.13.2 --scope test
    jx remove junit:junit
    jx update                       # every version becomes "*"
    jx update org.slf4j:slf4j-api --latest
"""

from __future__ import annotations

import sys

import click

from jx.cli.context import load_config, run_with_registry
from jx.cli.output import console, print_error, print_outdated
from jx.core.dependency import Scope, parse_coordinate
from jx.core.install import Installer
from jx.exceptions import JxError
from jx.registry.base import RegistryClient

_FILE_OPTION = click.option(
    "--file", "-f", "file", type=click.Path(dir_okay=False), default=None,
    help="Path to jx.toml (default: nearest in current directory or parents).",
)


@click.command("add")
@click.argument("coordinate")
@click.option("--scope", "-s", type=click.Choice([s.value for s in Scope]), default="compile",
              show_default=True, help="Dependency scope.")
@_FILE_OPTION
def add_command(coordinate: str, scope: str, file: str | None) -> None:
    """Declare COORDINATE (group:artifact[:version[:classifier]]).

    Without a version the dependency tracks the newest release (``*``).
    """
    config = load_config(file)
    try:
        coord = parse_coordinate(coordinate)
    except JxError as exc:
        print_error(exc)
        sys.exit(2)
    replaced = config.add(coord, Scope(scope))
    config.save()
    verb = "Updated" if replaced else "Added"
    console.print(f"{verb} [bold]{coord.identity}[/bold] {coord.version or '*'} ({scope})")
    console.print("[dim]Run 'jx install' to install it.[/dim]")


@click.command("remove")
@click.argument("coordinate")
@_FILE_OPTION
def remove_command(coordinate: str, file: str | None) -> None:
    """Drop the declaration of COORDINATE (group:artifact)."""
    config = load_config(file)
    try:
        identity = parse_coordinate(coordinate).identity
    except JxError as exc:
        print_error(exc)
        sys.exit(2)
    if not config.remove(identity):
        click.echo(f"Error: {identity} is not a declared dependency.", err=True)
        sys.exit(1)
    config.save()
    console.print(f"Removed [bold]{identity}[/bold]")


@click.command("update")
@click.argument("coordinate", required=False)
@click.option("--latest", is_flag=True, help="Pin to the newest release instead of '*'.")
@_FILE_OPTION
def update_command(coordinate: str | None, latest: bool, file: str | None) -> None:
    """Move COORDINATE (or every declared dependency) to a newer version.

    Without --latest the declared version becomes ``*`` and is resolved
    at the next install; with --latest it is pinned to the newest release.
    """
    config = load_config(file)
    declared = {d.identity for d in config.declared_dependencies()}
    if coordinate is None:
        targets = sorted(declared)
    else:
        try:
            identity = parse_coordinate(coordinate).identity
        except JxError as exc:
            print_error(exc)
            sys.exit(2)
        if identity not in declared:
            click.echo(f"Error: {identity} is not a declared dependency.", err=True)
            sys.exit(1)
        targets = [identity]

    if not latest:
        for identity in targets:
            config.set_version(identity, "*")
        config.save()
        console.print(f"Set {len(targets)} dependencies to [bold]*[/bold]")
        return

    async def _outdated(registry: RegistryClient):
        return await Installer(config, registry).outdated(targets)

    items = run_with_registry(config, _outdated)
    for item in items:
        config.set_version(item.identity, item.latest)
    config.save()
    print_outdated(items)
