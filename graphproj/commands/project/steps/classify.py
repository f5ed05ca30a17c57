"""Step: Bucket mutated types by the GraphQL declaration they become."""

from __future__ import annotations

from graphproj.commands.project.steps.base import MechanicalStep, StepValidationError
from graphproj.commands.project.steps.engine import MutationEngine
from graphproj.commands.project.steps.types import (
    ClassifiedTypes,
    Model,
    MutatedTypes,
    MutationContext,
    OperationKind,
)


class ClassifyTypesStep(MechanicalStep[MutatedTypes, ClassifiedTypes]):
    """Classify mutated models and operations.

    Usage and interface marking are looked up on the original model, through
    the reverse map recorded while mutating. A model that no operation uses
    is classified as an output model.
    """

    name = "classify_types"

    def __init__(self, engine: MutationEngine):
        self.engine = engine

    def _execute(self, input: MutatedTypes) -> ClassifiedTypes:
        run = self.engine.run
        omit = run.options.omit_unreachable_types
        classified = ClassifiedTypes(
            enums=[e for e in input.enums if not (omit and run.usage.is_unreachable(e))],
            scalars=list(input.scalars),
            scalar_variants=list(input.scalar_variants),
            unions=list(input.unions),
        )

        declared = set(input.models)
        for node in self.engine.nodes(Model.kind):
            model = node.mutated_type
            if not isinstance(model, Model) or model not in declared:
                continue
            original = run.original_of(model)
            if omit and run.usage.is_unreachable(original):
                continue
            if node.context is MutationContext.INPUT:
                classified.input_models.append(model)
            elif run.metadata.is_interface_marked(original):
                classified.interfaces.append(model)
            else:
                classified.output_models.append(model)

        classified.output_models.extend(input.wrapper_models)

        buckets = {
            OperationKind.QUERY: classified.queries,
            OperationKind.MUTATION: classified.mutations,
            OperationKind.SUBSCRIPTION: classified.subscriptions,
        }
        for operation in input.operations:
            kind = run.metadata.get_operation_kind(operation)
            if kind is not None:
                buckets[kind].append(operation)
        return classified

    def _validate_output(self, output: ClassifiedTypes) -> None:
        input_names = {m.name for m in output.input_models}
        for model in [*output.interfaces, *output.output_models]:
            if model.name in input_names:
                raise StepValidationError(
                    f"Model '{model.name}' classified as both input and output under one name",
                    {"name": model.name},
                )
