"""Step: Validate the assembled SDL with graphql-core.

Violations are reported as diagnostics; they never abort the projection.
"""

from __future__ import annotations

from graphql import build_ast_schema, parse as gql_parse, validate_schema
from graphql.error import GraphQLError, GraphQLSyntaxError

from graphproj.commands.project.diagnostics import GRAPHQL_VALIDATION, Diagnostic
from graphproj.commands.project.steps.base import MechanicalStep


class ValidateSchemaStep(MechanicalStep[str, list[Diagnostic]]):
    """Parse and validate an SDL document."""

    name = "validate_schema"

    def _execute(self, input: str) -> list[Diagnostic]:
        return validate_sdl(input)


def validate_sdl(sdl: str) -> list[Diagnostic]:
    try:
        document = gql_parse(sdl)
    except GraphQLSyntaxError as e:
        return [_diagnostic(e.message)]

    try:
        schema = build_ast_schema(document)
    except (GraphQLError, TypeError) as e:
        # SDL validation errors arrive joined by blank lines.
        return [_diagnostic(line) for line in str(e).split("\n\n") if line.strip()]

    return [_diagnostic(error.message) for error in validate_schema(schema)]


def _diagnostic(message: str) -> Diagnostic:
    return Diagnostic(code=GRAPHQL_VALIDATION, message=message, severity="error")
