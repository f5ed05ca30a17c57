"""Orchestrator for the projection pipeline.

Runs the steps once per schema of a program. Every schema gets its own
ProjectionRun, so mutated types never leak from one schema into another.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from graphproj.commands.project.diagnostics import (
    EMPTY_SCHEMA,
    INVALID_STEP_OUTPUT,
    Diagnostic,
    DiagnosticCollector,
    ProjectionError,
)
from graphproj.commands.project.loader import SourceProgram
from graphproj.commands.project.metadata import MetadataProvider
from graphproj.commands.project.options import ProjectionOptions
from graphproj.commands.project.steps import StepValidationError
from graphproj.commands.project.steps.assemble import AssembleStep
from graphproj.commands.project.steps.classify import ClassifyTypesStep
from graphproj.commands.project.steps.engine import MutationEngine, ProjectionRun
from graphproj.commands.project.steps.mutate_types import MutateTypesStep
from graphproj.commands.project.steps.resolve import TypeResolver
from graphproj.commands.project.steps.types import ClassifiedTypes, ModelVariants, Namespace
from graphproj.commands.project.steps.usage import ResolveUsageStep
from graphproj.commands.project.steps.validate import ValidateSchemaStep

DEFAULT_SCHEMA_NAME = "schema"


@dataclass
class SchemaResult:
    """Outcome of projecting one schema. ``sdl`` is None when nothing is emitted."""

    name: str
    sdl: str | None = None
    classified: ClassifiedTypes | None = None
    diagnostics: list[Diagnostic] = field(default_factory=lambda: list[Diagnostic]())

    @property
    def has_errors(self) -> bool:
        return any(d.severity == "error" for d in self.diagnostics)


@dataclass
class ProjectionResult:
    schemas: list[SchemaResult] = field(default_factory=lambda: list[SchemaResult]())

    @property
    def has_errors(self) -> bool:
        return any(s.has_errors for s in self.schemas)


def list_schemas(program: SourceProgram) -> list[tuple[str, Namespace]]:
    """Namespaces marked as schemas, or the root namespace when none is marked."""
    schemas: list[tuple[str, Namespace]] = []
    for namespace in program.root.walk():
        name = program.metadata.get_schema_name(namespace)
        if name:
            schemas.append((name, namespace))
    if not schemas:
        schemas.append((DEFAULT_SCHEMA_NAME, program.root))
    return schemas


def project_program(
    program: SourceProgram,
    options: ProjectionOptions | None = None,
    on_progress: Callable[[str], None] | None = None,
) -> ProjectionResult:
    """Project every schema of *program* to GraphQL SDL."""

    def progress(msg: str) -> None:
        if on_progress:
            on_progress(msg)

    options = options or program.options
    result = ProjectionResult()
    for name, namespace in list_schemas(program):
        progress(f"Projecting schema '{name}'...")
        schema = project_schema(namespace, program.metadata, options, name, on_progress)
        result.schemas.append(schema)
    return result


def project_schema(
    namespace: Namespace,
    metadata: MetadataProvider,
    options: ProjectionOptions | None = None,
    name: str = DEFAULT_SCHEMA_NAME,
    on_progress: Callable[[str], None] | None = None,
) -> SchemaResult:
    """Project one schema namespace. Fatal errors abort this schema only."""

    def progress(msg: str) -> None:
        if on_progress:
            on_progress(msg)

    diagnostics = DiagnosticCollector()
    run = ProjectionRun(namespace, metadata, options, diagnostics)
    result = SchemaResult(name=name, diagnostics=diagnostics.diagnostics)

    try:
        # Step 1: Usage flags
        usage = ResolveUsageStep(run.usage, run.options.omit_unreachable_types).run(namespace)
        progress(f"  Reached {len(usage.used_types())} types from operations")

        # Step 2: Mutation
        engine = MutationEngine(run)
        mutated = MutateTypesStep(engine).run(namespace)

        # Step 3: Classification
        classified = ClassifyTypesStep(engine).run(mutated)
        result.classified = classified
        progress(
            f"  {len(classified.output_models)} output types, "
            f"{len(classified.input_models)} input types, "
            f"{len(classified.enums)} enums, {len(classified.unions)} unions"
        )

        # Step 4: Rendering, resolving every field on the way
        resolver = TypeResolver(
            ModelVariants.from_classified(classified),
            run.union_name,
            diagnostics,
            strict=run.options.strict,
        )
        sdl = AssembleStep(resolver, metadata).run(classified)
    except ProjectionError as e:
        diagnostics.add(e.code, str(e), target=e.details.get("name"))
        return result
    except StepValidationError as e:
        diagnostics.add(INVALID_STEP_OUTPUT, str(e), target=e.details.get("name"))
        return result

    if not sdl.strip():
        diagnostics.add(EMPTY_SCHEMA, f"Schema '{name}' produced no output.", target=name)
        return result

    # Step 5: Validation
    diagnostics.diagnostics.extend(ValidateSchemaStep().run(sdl))
    result.sdl = sdl
    return result
