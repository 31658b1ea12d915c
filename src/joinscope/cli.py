"""
Command-line interface for joinscope.

Provides analyze, validate and init-config commands.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import click
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from joinscope import __version__
from joinscope.config import ConfigError
from joinscope.models import AnalysisResult, LoadStrategy

console = Console()


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with Rich handler."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


@click.group()
@click.version_option(version=__version__, prog_name="joinscope")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
def cli(verbose: bool) -> None:
    """
    joinscope - Join relationship analysis for schema graphs

    Classify associations, detect cycles, configure joins per database
    adapter and validate parameterized join declarations.
    """
    setup_logging(verbose)


@cli.command()
@click.argument("schema_file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--entity",
    type=str,
    default=None,
    help="Analyze a single entity (default: all entities)",
)
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Configuration file (default: .joinscope.yml if present)",
)
@click.option(
    "--adapter",
    type=str,
    default=None,
    help="Database adapter (postgres, mysql, sqlite)",
)
@click.option(
    "--adapter_version",
    type=str,
    default=None,
    help="Database version used for version-gated join support",
)
@click.option(
    "--join_depth",
    type=int,
    default=None,
    help="Maximum cycle search depth",
)
@click.option(
    "--strategy",
    type=click.Choice([s.value for s in LoadStrategy]),
    default=None,
    help="Join loading strategy",
)
@click.option(
    "--include_junction_edges/--no_junction_edges",
    default=None,
    help="Route many-to-many edges through junction entities during cycle search",
)
@click.option(
    "--output",
    type=click.Path(path_type=Path),
    default=None,
    help="Write the analysis and emitter join config to a YAML file",
)
def analyze(
    schema_file: Path,
    entity: Optional[str],
    config_file: Optional[Path],
    adapter: Optional[str],
    adapter_version: Optional[str],
    join_depth: Optional[int],
    strategy: Optional[str],
    include_junction_edges: Optional[bool],
    output: Optional[Path],
) -> None:
    """
    Analyze join relationships of a schema export.

    Examples:

        # Analyze every entity of an introspection export
        joinscope analyze schema.yml

        # One entity, MySQL 8.0, saving the join config
        joinscope analyze schema.yml --entity orders \\
            --adapter mysql --adapter_version 8.0 --output joins.yml
    """
    from joinscope.analysis import JoinAnalyzer
    from joinscope.config import load_config, merge_with_cli
    from joinscope.metadata import SchemaLoadError, load_schema

    console.print("[bold blue]joinscope - Join Analysis[/bold blue]")
    console.print(f"Schema: {schema_file}")

    try:
        config = merge_with_cli(
            load_config(config_file),
            adapter=adapter,
            adapter_version=adapter_version,
            join_depth=join_depth,
            join_strategy=strategy,
            include_junction_edges=include_junction_edges,
        )
        graph = load_schema(schema_file)
    except (ConfigError, SchemaLoadError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)

    console.print(f"Adapter: {config.adapter} {config.adapter_version or ''}".rstrip())
    console.print(f"Entities: {len(graph.entities)}")

    analyzer = JoinAnalyzer(graph, config)
    if entity:
        if graph.get_entity(entity) is None:
            known = ", ".join(graph.entity_names) or "none"
            console.print(f"[red]Error: Entity '{escape(entity)}' not found. Known entities: {known}[/red]")
            sys.exit(1)
        results = {entity: analyzer.analyze(entity)}
    else:
        results = analyzer.analyze_all()

    for result in results.values():
        _print_result(result)

    if output:
        data = {
            name: {
                "analysis": result.to_dict(),
                "join_config": analyzer.generate_join_config(result),
            }
            for name, result in results.items()
        }
        output.parent.mkdir(parents=True, exist_ok=True)
        with open(output, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)
        console.print(f"\n[green]Saved analysis to: {output}[/green]")

    total_warnings = sum(len(r.warnings) for r in results.values())
    console.print(f"\n[green]Analysis complete![/green] {len(results)} entities, {total_warnings} warnings")


def _print_result(result: AnalysisResult) -> None:
    console.print(f"\n[bold]{escape(result.entity)}[/bold]")

    if result.joins:
        joins_table = Table(title=f"Joins of {result.entity}")
        joins_table.add_column("Name", style="cyan")
        joins_table.add_column("Type", style="magenta")
        joins_table.add_column("Target", style="green")
        joins_table.add_column("On", style="yellow")
        joins_table.add_column("Strategy")
        joins_table.add_column("Through")

        for name, config in result.joins.items():
            joins_table.add_row(
                name,
                config.kind.value,
                config.target,
                ", ".join(f"{left} = {right}" for left, right in config.conditions),
                config.strategy.value,
                " -> ".join(config.through or []),
            )
        console.print(joins_table)
    else:
        console.print("[dim]No joins[/dim]")

    if result.hierarchies:
        hierarchy_table = Table(title="Hierarchies")
        hierarchy_table.add_column("Association", style="cyan")
        hierarchy_table.add_column("Pattern", style="magenta")
        hierarchy_table.add_column("Traversal", style="green")
        hierarchy_table.add_column("Fields")
        for hierarchy in result.hierarchies:
            hierarchy_table.add_row(
                hierarchy.association,
                hierarchy.pattern.value,
                hierarchy.traversal.value,
                ", ".join(f"{role}={name}" for role, name in hierarchy.fields.items()),
            )
        console.print(hierarchy_table)

    for dimension in result.dimensions:
        console.print(f"[cyan]Dimension candidate:[/cyan] {dimension.kind} ({escape(dimension.table)})")

    if result.junction_tables:
        console.print(f"Junction tables: {', '.join(result.junction_tables)}")

    for warning in result.warnings:
        console.print(f"[yellow]Warning: {escape(warning)}[/yellow]")
    for suggestion in result.suggestions:
        console.print(f"[blue]Suggestion: {escape(suggestion)}[/blue]")


@cli.command()
@click.argument("files", nargs=-1, type=click.Path(path_type=Path))
@click.option(
    "--test_references",
    type=str,
    default=None,
    help="Comma-separated field references to parse",
)
def validate(files: Tuple[Path, ...], test_references: Optional[str]) -> None:
    """
    Validate parameterized join declarations in Python domain files.

    Examples:

        # Validate domain files
        joinscope validate domains/products.py domains/orders.py

        # Test field reference parsing
        joinscope validate --test_references "products:electronics:true.name,discounts:seasonal.amount"
    """
    if not files and not test_references:
        raise click.UsageError("Provide domain files and/or --test_references")

    failed = False
    if test_references:
        failed |= not _test_references(test_references)
    if files:
        failed |= not _validate_files(list(files))

    if failed:
        sys.exit(1)


def _test_references(references: str) -> bool:
    from joinscope.parameterized import ReferenceKind, ReferenceParser

    console.print("[bold blue]Testing parameterized field reference parsing...[/bold blue]\n")
    parser = ReferenceParser()
    all_valid = True

    for source in [r.strip() for r in references.split(",") if r.strip()]:
        console.print(f"Testing: {escape(repr(source))}")
        result = parser.parse(source)
        if result.is_valid:
            parsed = result.reference
            console.print("  [green]Valid syntax[/green]")
            console.print(f"  Parsed: join={parsed.join}, field={parsed.field}, kind={parsed.kind.value}")
            if parsed.kind == ReferenceKind.PARAMETERIZED:
                console.print(f"  Parameters: {escape(', '.join(repr(p) for p in parsed.parameters))}")
        else:
            all_valid = False
            console.print(
                f"  [red]Invalid syntax ({result.error.code.value}): {escape(result.error.message)}[/red]"
            )
        console.print("")

    return all_valid


def _validate_files(files: List[Path]) -> bool:
    from joinscope.parameterized import ParameterizedJoinsValidator

    console.print("[bold blue]Validating domain files...[/bold blue]\n")
    validator = ParameterizedJoinsValidator()
    summary: Dict[str, str] = {}

    for path in files:
        console.print(f"[bold]{escape(str(path))}[/bold]")
        try:
            content = path.read_text()
        except OSError as e:
            console.print(f"  [red]Failed to read file: {escape(str(e))}[/red]")
            summary[str(path)] = "unreadable"
            continue

        report = validator.validate_domain_content(content)
        if not report.joins_found:
            console.print("  [dim]No joins configuration found[/dim]")
            summary[str(path)] = "no joins"
            continue

        if report.checks.syntax_valid:
            console.print("  [green]Valid syntax[/green]")
        count = len(report.parameterized_joins)
        console.print(f"  Found {count} parameterized join(s)")
        for join_path in report.parameterized_joins:
            console.print(f"    - {escape(join_path)}")

        if report.is_valid:
            console.print("  [green]All validation checks passed[/green]")
            summary[str(path)] = "valid"
        else:
            for category, passed in report.checks.to_dict().items():
                if category != "issues" and not passed:
                    console.print(f"  [red]{category}: failed[/red]")
            for issue in report.checks.issues:
                console.print(f"  [yellow]- {escape(issue)}[/yellow]")
            summary[str(path)] = f"{len(report.checks.issues)} issue(s)"

    summary_table = Table(title="Validation Summary")
    summary_table.add_column("File", style="cyan")
    summary_table.add_column("Result", style="green")
    for name, outcome in summary.items():
        summary_table.add_row(name, outcome)
    console.print(summary_table)

    return all(outcome in ("valid", "no joins") for outcome in summary.values())


@cli.command("init-config")
@click.option(
    "--path",
    type=click.Path(path_type=Path),
    default=Path(".joinscope.yml"),
    help="Where to write the configuration template",
)
@click.option("--force", is_flag=True, help="Overwrite an existing file")
def init_config(path: Path, force: bool) -> None:
    """Write a commented default configuration file."""
    from joinscope.config import write_template

    try:
        written = write_template(path, overwrite=force)
    except ConfigError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)
    console.print(f"[green]Wrote configuration template to: {written}[/green]")


if __name__ == "__main__":
    cli()
