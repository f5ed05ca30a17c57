"""Step: Mutate every type of a schema namespace into its GraphQL projections."""

from __future__ import annotations

from graphproj.commands.project.diagnostics import UNKNOWN_SCALAR_ENCODING
from graphproj.commands.project.steps.base import MechanicalStep, StepValidationError
from graphproj.commands.project.steps.engine import MutationEngine
from graphproj.commands.project.steps.resolve import field_encoding, return_encoding
from graphproj.commands.project.steps.scalars import get_scalar_mapping, has_encoding_mapping
from graphproj.commands.project.steps.types import (
    Enum,
    Intrinsic,
    Model,
    MutatedTypes,
    MutationContext,
    Namespace,
    Operation,
    Scalar,
    ScalarVariant,
    TypeNode,
    Union,
    is_declarable_model,
    is_nullable_union,
    unwrap_type,
)


class MutateTypesStep(MechanicalStep[Namespace, MutatedTypes]):
    """Project declared and referenced types through the mutation engine."""

    name = "mutate_types"

    def __init__(self, engine: MutationEngine):
        self.engine = engine

    def _execute(self, input: Namespace) -> MutatedTypes:
        engine = self.engine
        usage = engine.run.usage
        omit = engine.run.options.omit_unreachable_types

        def skip(type_: TypeNode) -> bool:
            return omit and usage.is_unreachable(type_)

        for ns in input.walk():
            for model in ns.models.values():
                if skip(model):
                    continue
                if usage.is_split(model):
                    engine.mutate(model, MutationContext.OUTPUT)
                    engine.mutate(model, MutationContext.INPUT)
                else:
                    engine.mutate(model)
            for type_ in [*ns.enums.values(), *ns.scalars.values(), *ns.unions.values()]:
                if not skip(type_):
                    engine.mutate(type_)

        operations: list[Operation] = []
        for operation in input.all_operations():
            mutated = engine.mutate(operation)
            assert isinstance(mutated, Operation)
            operations.append(mutated)

        result = MutatedTypes(operations=operations)
        for node in engine.nodes():
            mutated = node.mutated_type
            if isinstance(mutated, Model) and is_declarable_model(mutated):
                result.models.append(mutated)
            elif isinstance(mutated, Enum):
                result.enums.append(mutated)
            elif isinstance(mutated, Scalar) and not mutated.builtin:
                if all(s.name != mutated.name for s in result.scalars):
                    result.scalars.append(mutated)
            elif isinstance(mutated, Union) and not is_nullable_union(mutated):
                result.unions.append(mutated)
        result.wrapper_models = list(engine.run.wrapper_models)
        result.scalar_variants = self._collect_scalar_variants(result)
        return result

    def _collect_scalar_variants(self, result: MutatedTypes) -> list[ScalarVariant]:
        run = self.engine.run
        metadata = run.metadata
        variants: dict[str, ScalarVariant] = {}

        # (type, encoding, target) of every reference the renderer emits.
        references: list[tuple[TypeNode | None, str | None, str]] = []
        operations = list(result.operations)
        for model in [*result.models, *result.wrapper_models]:
            for prop in model.properties.values():
                references.append((prop.type, field_encoding(metadata, prop), prop.name))
            operations.extend(model.operation_fields)
        for operation in operations:
            for param in operation.parameters.values():
                references.append((param.type, field_encoding(metadata, param), param.name))
            references.append(
                (operation.return_type, return_encoding(metadata, operation), operation.name)
            )

        for type_, encoding, target in references:
            if type_ is None:
                continue
            base = unwrap_type(type_)
            if isinstance(base, Intrinsic) and base.name == "unknown":
                mapping = get_scalar_mapping(base)
                assert mapping is not None
                variants.setdefault(
                    mapping.graphql_name, ScalarVariant(base, "", mapping.graphql_name)
                )
                continue
            if not isinstance(base, Scalar) or not encoding:
                continue
            if not has_encoding_mapping(base, encoding):
                run.diagnostics.warn(
                    UNKNOWN_SCALAR_ENCODING,
                    f"Encoding '{encoding}' is not supported for scalar '{base.original.name}'.",
                    target=target,
                )
                continue
            mapping = get_scalar_mapping(base, encoding)
            assert mapping is not None
            variants.setdefault(
                mapping.graphql_name,
                ScalarVariant(base.original, encoding, mapping.graphql_name, mapping.specification_url),
            )
        return list(variants.values())

    def _validate_output(self, output: MutatedTypes) -> None:
        for model in output.models:
            if model.name and model.name[0].isdigit():
                raise StepValidationError(
                    f"Model name '{model.name}' is not a valid GraphQL name",
                    {"name": model.name},
                )
