"""CLI command for inspecting how a source graph is classified."""

from __future__ import annotations

import click
from rich.table import Table

from graphproj.helpers.console import console, truncate


@click.command()
@click.argument("source_path", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--omit-unreachable-types/--keep-unreachable-types",
    default=None,
    help="Drop types that no operation reaches",
)
def inspect(source_path: str, omit_unreachable_types: bool | None) -> None:
    """Show the GraphQL declarations each schema of a source graph produces."""
    from graphproj.commands.project.cmd import load_source, print_diagnostics
    from graphproj.commands.project.pipeline import project_program

    program = load_source(source_path)
    options = program.options.merged(omit_unreachable_types=omit_unreachable_types)
    result = project_program(program, options)

    for schema in result.schemas:
        console.print(f"[bold]Schema: {schema.name}[/bold]")
        classified = schema.classified
        if classified is None:
            console.print("  [red]Projection failed[/red]")
            continue

        table = Table(title=f"Declarations ({schema.name})")
        table.add_column("Bucket", style="cyan")
        table.add_column("Count", justify="right")
        table.add_column("Names")
        buckets = [
            ("Scalar variants", [v.graphql_name for v in classified.scalar_variants]),
            ("Scalars", [s.name for s in classified.scalars]),
            ("Enums", [e.name for e in classified.enums]),
            ("Unions", [u.name for u in classified.unions]),
            ("Interfaces", [m.name for m in classified.interfaces]),
            ("Output types", [m.name for m in classified.output_models]),
            ("Input types", [m.name for m in classified.input_models]),
            ("Queries", [o.name for o in classified.queries]),
            ("Mutations", [o.name for o in classified.mutations]),
            ("Subscriptions", [o.name for o in classified.subscriptions]),
        ]
        for label, names in buckets:
            table.add_row(label, str(len(names)), truncate(", ".join(names), 80))
        console.print(table)
        console.print()

    print_diagnostics(result.schemas)
