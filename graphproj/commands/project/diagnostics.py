"""Diagnostics and errors raised while projecting a schema.

Recoverable conditions are recorded as Diagnostic entries and processing
continues with a fallback value. Fatal conditions raise a ProjectionError
subclass, which aborts the projection of one schema only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

Severity = Literal["warning", "error"]

# Diagnostic codes
UNSUPPORTED_TYPE = "unsupported-type"
UNSUPPORTED_SCALAR = "unsupported-scalar"
UNKNOWN_SCALAR_ENCODING = "unknown-scalar-encoding"
UNRECOGNIZED_UNION = "unrecognized-union"
NAME_COLLISION = "name-collision"
EMPTY_SCHEMA = "empty-schema"
GRAPHQL_VALIDATION = "graphql-validation"
INVALID_STEP_OUTPUT = "invalid-step-output"


@dataclass
class Diagnostic:
    code: str
    message: str
    severity: Severity = "error"
    target: str | None = None  # name of the offending type, when known


@dataclass
class DiagnosticCollector:
    """Collects diagnostics for a single projection run."""

    diagnostics: list[Diagnostic] = field(default_factory=lambda: list[Diagnostic]())

    def add(
        self,
        code: str,
        message: str,
        severity: Severity = "error",
        target: str | None = None,
    ) -> Diagnostic:
        diagnostic = Diagnostic(code=code, message=message, severity=severity, target=target)
        self.diagnostics.append(diagnostic)
        return diagnostic

    def warn(self, code: str, message: str, target: str | None = None) -> Diagnostic:
        return self.add(code, message, severity="warning", target=target)

    @property
    def has_errors(self) -> bool:
        return any(d.severity == "error" for d in self.diagnostics)

    def by_code(self, code: str) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.code == code]


class ProjectionError(Exception):
    """Base class for errors that abort the projection of a schema."""

    code: str = "projection-error"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.details: dict[str, Any] = details or {}


class NameCollisionError(ProjectionError):
    """Two distinct source types project onto the same GraphQL name."""

    code = NAME_COLLISION

    def __init__(self, name: str, scope: str = "schema"):
        super().__init__(
            f"Name collision: '{name}' is already declared in {scope}.",
            {"name": name, "scope": scope},
        )
        self.name = name


class SourceGraphError(ProjectionError):
    """The source document cannot be turned into a type graph."""

    code = "source-graph"
