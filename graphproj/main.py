"""CLI entry point for graphproj."""

from __future__ import annotations

import click

from graphproj.commands.inspect.cmd import inspect
from graphproj.commands.project.cmd import project


@click.group()
@click.version_option(version="0.1.0", prog_name="graphproj")
def cli():
    """Project source type graphs to GraphQL schemas."""


cli.add_command(project)
cli.add_command(inspect)


if __name__ == "__main__":
    cli()
