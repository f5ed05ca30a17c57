"""CLI command for the project stage."""

from __future__ import annotations

from pathlib import Path
import sys

import click
from pydantic import ValidationError
from rich.table import Table
import yaml

from graphproj.helpers.console import console, truncate


def load_source(source_path: str):
    """Load a source graph document, turning load errors into CLI errors."""
    from graphproj.commands.project.diagnostics import SourceGraphError
    from graphproj.commands.project.loader import load_program

    try:
        return load_program(Path(source_path))
    except SourceGraphError as e:
        raise click.ClickException(str(e)) from e
    except (ValidationError, yaml.YAMLError) as e:
        raise click.ClickException(f"Invalid source graph document:\n{e}") from e


@click.command()
@click.argument("source_path", type=click.Path(exists=True, dir_okay=False))
@click.option("-o", "--output", required=True, help="Output directory for the .graphql files")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="YAML file with an `options` section",
)
@click.option(
    "--omit-unreachable-types/--keep-unreachable-types",
    default=None,
    help="Drop types that no operation reaches",
)
@click.option(
    "--output-file",
    default=None,
    help="Output file name pattern; {schema-name} is replaced by the schema name",
)
@click.option(
    "--strict/--no-strict",
    default=None,
    help="Report unsupported types as errors instead of warnings",
)
def project(
    source_path: str,
    output: str,
    config_path: str | None,
    omit_unreachable_types: bool | None,
    output_file: str | None,
    strict: bool | None,
) -> None:
    """Project a source type graph to GraphQL SDL, one file per schema."""
    from graphproj.commands.project.options import load_options_file
    from graphproj.commands.project.pipeline import project_program

    console.print(f"[bold]Loading source graph:[/bold] {source_path}")
    program = load_source(source_path)

    options = program.options
    if config_path:
        try:
            options = load_options_file(Path(config_path), base=options)
        except (ValidationError, yaml.YAMLError) as e:
            raise click.ClickException(f"Invalid config file:\n{e}") from e
    options = options.merged(
        omit_unreachable_types=omit_unreachable_types,
        output_file=output_file,
        strict=strict,
    )

    def on_progress(msg: str) -> None:
        console.print(f"  {msg}")

    result = project_program(program, options, on_progress=on_progress)

    output_dir = Path(output)
    output_dir.mkdir(parents=True, exist_ok=True)
    for schema in result.schemas:
        if schema.sdl is None:
            console.print(f"[yellow]No output for schema '{schema.name}'[/yellow]")
            continue
        out_path = output_dir / options.output_filename(schema.name)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        with open(out_path, "w") as f:
            f.write(schema.sdl)
        console.print(f"[green]GraphQL schema written to {out_path}[/green]")

    print_diagnostics(result.schemas)
    if result.has_errors:
        sys.exit(1)


def print_diagnostics(schemas) -> None:
    """Print the diagnostics of every schema as one table."""
    rows = [(s.name, d) for s in schemas for d in s.diagnostics]
    if not rows:
        return

    table = Table(title="Diagnostics")
    table.add_column("Schema", style="cyan")
    table.add_column("Severity")
    table.add_column("Code")
    table.add_column("Target")
    table.add_column("Message")
    for schema_name, diagnostic in rows:
        color = "red" if diagnostic.severity == "error" else "yellow"
        table.add_row(
            schema_name,
            f"[{color}]{diagnostic.severity}[/{color}]",
            diagnostic.code,
            diagnostic.target or "",
            truncate(diagnostic.message, 100),
        )
    console.print(table)
