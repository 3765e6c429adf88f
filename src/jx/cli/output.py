"""Rich output formatting helpers for the jx CLI.

Provides consistent terminal output for install summaries, dependency
trees, outdated reports, cache statistics and errors.

Scope Color Mapping:
    compile = green, runtime = cyan, provided = yellow, test = magenta
"""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from jx.core.dependency import DependencyNode, ResolvedGraph, Scope
from jx.core.install import InstallReport, Outdated
from jx.exceptions import JxError

_SCOPE_STYLES: dict[Scope, str] = {
    Scope.COMPILE: "green",
    Scope.RUNTIME: "cyan",
    Scope.PROVIDED: "yellow",
    Scope.TEST: "magenta",
}

console = Console()
err_console = Console(stderr=True)


def scope_style(scope: Scope) -> str:
    """Return the Rich style string for a dependency scope."""
    return _SCOPE_STYLES.get(scope, "white")


def format_file_size(size: int) -> str:
    """Human-readable size: ``512 B``, ``1.5 KB``, ``2.0 MB``..."""
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024 or unit == "GB":
            return f"{int(value)} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} GB"  # pragma: no cover


def print_error(exc: JxError) -> None:
    """Print an error and, when known, the chain of coordinates behind it."""
    err_console.print(Text(f"Error: {exc.message}", style="bold red"))
    if exc.chain:
        err_console.print(Text("  via " + " -> ".join(exc.chain), style="red"))
    chains = getattr(exc, "chains", ())
    for chain in chains[1:]:
        err_console.print(Text("  via " + " -> ".join(chain), style="red"))


def _format_change(change: dict[str, str]) -> str:
    line = f"\n  [yellow]~ {change['identity']}[/yellow] {change['field']}"
    if change["field"] != "checksum":
        line += f" {change['old'] or '-'} -> {change['new'] or '-'}"
    return line


def print_install_report(report: InstallReport, elapsed: float) -> None:
    """Print the summary panel after ``jx install``."""
    lines = [
        f"[bold]{report.total}[/bold] dependencies",
        f"[green]{report.downloaded} downloaded[/green]",
        f"{report.cached} from cache",
        f"{len(report.materialized)} in lib/",
    ]
    if report.pruned:
        lines.append(f"[yellow]{len(report.pruned)} removed[/yellow]")
    body = " | ".join(lines)
    if report.resolved:
        body += "\n[dim]Dependencies re-resolved; lock file updated.[/dim]"
        body += "".join(f"\n  [green]+ {identity}[/green]" for identity in report.added)
        body += "".join(f"\n  [red]- {identity}[/red]" for identity in report.removed)
        body += "".join(_format_change(change) for change in report.changed)
    elif report.lock_written:
        body += "\n[dim]Checksums recorded in lock file.[/dim]"
    console.print(Panel(body, title=f"Installed in {elapsed:.2f}s", expand=False))


def _node_label(node: DependencyNode, repeated: bool) -> Text:
    label = Text.assemble(
        (str(node.coordinate), "bold" if node.depth == 0 else ""),
        " ",
        (f"[{node.scope.value}]", scope_style(node.scope)),
    )
    if repeated:
        label.append(" (*)", style="dim")
    return label


def print_dependency_tree(graph: ResolvedGraph, title: str, *, transitive: bool) -> None:
    """Render the resolved graph as a tree; repeated subtrees are marked ``(*)``."""
    if not len(graph):
        console.print("[dim]No dependencies declared.[/dim]")
        return
    tree = Tree(Text(title, style="bold"))
    branches: list[Tree] = [tree]
    for level, node, repeated in graph.walk(transitive=transitive):
        del branches[level + 1:]
        branch = branches[level].add(_node_label(node, repeated))
        branches.append(branch)
    console.print(tree)
    if transitive:
        console.print("[dim](*) already listed above[/dim]")


def print_outdated(items: list[Outdated]) -> None:
    table = Table(title="Dependency Versions", show_header=True, header_style="bold")
    table.add_column("Dependency", style="bold")
    table.add_column("Current")
    table.add_column("Latest")
    for item in items:
        latest = Text(item.latest, style="yellow" if item.is_outdated else "green")
        table.add_row(item.identity, item.current or "-", latest)
    console.print(table)


def print_cache_info(root: str, count: int, size: int) -> None:
    table = Table(show_header=False, box=None)
    table.add_column("Key", style="bold")
    table.add_column("Value")
    table.add_row("Location", root)
    table.add_row("Artifacts", str(count))
    table.add_row("Size", format_file_size(size))
    console.print(Panel(table, title="Artifact Cache", expand=False))
