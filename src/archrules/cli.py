"""archrules CLI entry point."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click

from archrules import __version__

if TYPE_CHECKING:
    from archrules.catalog.catalog import TypeCatalog


@click.group()
@click.version_option(version=__version__, prog_name="archrules")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Minimal output (errors only).")
@click.pass_context
def main(ctx: click.Context, *, verbose: bool, quiet: bool) -> None:
    """archrules - architecture conformance rules over type metadata."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _load_catalog_or_exit(project: Path | None, catalog: Path | None) -> TypeCatalog:
    """Resolve and load the snapshot, exiting with code 2 on failure."""
    from archrules.catalog.loader import load_catalog
    from archrules.config import load_config
    from archrules.errors import ArchRulesError

    project_root = project or Path.cwd()
    try:
        catalog_path = catalog or load_config(project_root).catalog_path
        return load_catalog(catalog_path)
    except ArchRulesError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)


@main.command()
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["text", "json", "porcelain", "rich"]),
    default=None,
    help="Output format (default: config value, else text on a TTY and porcelain otherwise).",
)
@click.option("--strict", is_flag=True, help="Also exit 1 when a warn-severity rule fails.")
@click.option("--workers", type=click.IntRange(min=1), default=None, help="Evaluation threads.")
@click.option(
    "--catalog",
    type=click.Path(path_type=Path),
    default=None,
    help="Type snapshot file (YAML or JSON).",
)
@click.option("--rules", type=click.Path(path_type=Path), default=None, help="Rules file.")
@click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Project root (default: current directory).",
)
def check(
    *,
    fmt: str | None,
    strict: bool,
    workers: int | None,
    catalog: Path | None,
    rules: Path | None,
    project: Path | None,
) -> None:
    """Evaluate architecture rules against a type snapshot.

    Exit codes: 0 = all rules passed (or only warn rules failed without
    --strict), 1 = an error rule failed (or any rule with --strict),
    2 = configuration, snapshot, or rule-definition error.
    """
    from archrules.checker import CheckError
    from archrules.checker import check as run_check
    from archrules.config import load_config
    from archrules.errors import ConfigError
    from archrules.reporting.reporter import render, render_rich

    project_root = project or Path.cwd()

    try:
        report = run_check(project_root, catalog_path=catalog, rules_path=rules, workers=workers)
        configured_fmt = load_config(project_root).output_format
    except (CheckError, ConfigError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    # Resolve output format: explicit flag > config > TTY detection.
    if fmt is None:
        fmt = configured_fmt or ("text" if sys.stdout.isatty() else "porcelain")

    if fmt == "rich":
        from rich.console import Console

        render_rich(report, Console())
    else:
        output = render(report, fmt)
        if output:
            click.echo(output)

    if report.has_errors or (strict and report.has_warnings):
        sys.exit(1)


@main.command("types")
@click.option("--namespace", "namespace", default=None, help="Only types in this namespace.")
@click.option("--catalog", type=click.Path(path_type=Path), default=None)
@click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
)
def types_cmd(*, namespace: str | None, catalog: Path | None, project: Path | None) -> None:
    """List the types of the snapshot in declaration order."""
    type_catalog = _load_catalog_or_exit(project, catalog)
    selected = (
        type_catalog.types_in_namespace(namespace) if namespace else type_catalog.all_types()
    )
    for t in selected:
        flags = [t.kind]
        if not t.is_public:
            flags.append(t.visibility)
        if t.is_generic_definition:
            flags.append(f"generic/{t.arity}")
        click.echo(f"{t.full_name}  ({', '.join(flags)})")


@main.command("deps")
@click.argument("type_name")
@click.option("--catalog", type=click.Path(path_type=Path), default=None)
@click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
)
def deps_cmd(*, type_name: str, catalog: Path | None, project: Path | None) -> None:
    """Show the dependency edges of TYPE_NAME."""
    from rich.console import Console
    from rich.table import Table

    from archrules.engine.dependencies import graph_for

    type_catalog = _load_catalog_or_exit(project, catalog)
    descriptor = type_catalog.lookup(type_name)
    if descriptor is None:
        click.echo(f"Error: type '{type_name}' is not in the snapshot", err=True)
        sys.exit(1)

    edges = graph_for(type_catalog).edges_from(descriptor.full_name)
    console = Console()
    if not edges:
        console.print(f"{descriptor.full_name} has no dependencies.")
        return

    table = Table(title=f"Dependencies of {descriptor.full_name}")
    table.add_column("Target")
    table.add_column("Kind")
    table.add_column("Namespace")
    table.add_column("Scope")
    for edge in edges:
        scope = "[dim]external[/dim]" if edge.external else "catalog"
        table.add_row(edge.target, edge.kind, edge.target_namespace, scope)
    console.print(table)


@main.command("cycles")
@click.option("--max-depth", type=click.IntRange(min=1), default=10, show_default=True)
@click.option("--catalog", type=click.Path(path_type=Path), default=None)
@click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
)
def cycles_cmd(*, max_depth: int, catalog: Path | None, project: Path | None) -> None:
    """List dependency cycles among snapshot types."""
    from archrules.engine.dependencies import graph_for

    type_catalog = _load_catalog_or_exit(project, catalog)
    cycles = graph_for(type_catalog).find_cycles(max_depth)
    if not cycles:
        click.echo("No dependency cycles found.")
        return
    for cycle in cycles:
        click.echo(" → ".join([*cycle, cycle[0]]))
    click.echo(f"{len(cycles)} cycle(s) found")
