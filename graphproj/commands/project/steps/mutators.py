"""Per-kind mutation rules.

Each mutator is a strategy object looked up by source kind. The engine asks
it for the cache context of a request (``context_key``), the empty shell to
cache (``create_shell``), fills the shell (``populate``) and, for types
declared at schema level, which owner claims the projected name
(``name_owner``).
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from graphproj.commands.project.diagnostics import UNSUPPORTED_SCALAR, NameCollisionError
from graphproj.commands.project.steps.scalars import FALLBACK_SCALAR, get_scalar_mapping
from graphproj.commands.project.steps.types import (
    Enum,
    EnumMember,
    Indexer,
    Intrinsic,
    Model,
    ModelProperty,
    MutationContext,
    Operation,
    Scalar,
    TypeNode,
    Union,
    UnionVariant,
    UsageFlags,
    is_declarable_model,
    is_null,
    is_nullable_union,
    is_scalar_like,
)
from graphproj.commands.project.steps.unions import flatten_union_variants, wrapper_model_name
from graphproj.helpers.naming import numeric_enum_name, sanitize_name

if TYPE_CHECKING:
    from graphproj.commands.project.steps.engine import MutationEngine, MutationNode

INPUT_SUFFIX = "Input"

_NAME_START_RE = re.compile(r"^[_a-zA-Z]")


class Mutator:
    """Default rule: a context-insensitive copy with no members."""

    def context_key(
        self, engine: MutationEngine, source: TypeNode, context: MutationContext
    ) -> MutationContext:
        return MutationContext.NONE

    def create_shell(self, source: TypeNode) -> TypeNode:
        return type(source)(name=source.name, source=source.original)

    def populate(self, engine: MutationEngine, node: MutationNode) -> None:
        pass

    def declares_name(self, node: MutationNode) -> bool:
        return False

    def name_owner(self, node: MutationNode) -> object | None:
        if not self.declares_name(node):
            return None
        return (node.source.original.id, node.context)


def _rename(node: MutationNode) -> None:
    def rename(mutated: TypeNode) -> None:
        mutated.name = sanitize_name(mutated.name)

    node.when_mutated(rename)


class ModelMutator(Mutator):
    def context_key(
        self, engine: MutationEngine, source: TypeNode, context: MutationContext
    ) -> MutationContext:
        assert isinstance(source, Model)
        if source.indexer is not None:
            # Arrays and records take the context of the position they appear in.
            return context
        usage = engine.run.usage.get_usage(source)
        if UsageFlags.INPUT in usage and UsageFlags.OUTPUT in usage:
            return context if context is not MutationContext.NONE else MutationContext.OUTPUT
        if usage == UsageFlags.INPUT:
            return MutationContext.INPUT
        return MutationContext.OUTPUT

    def create_shell(self, source: TypeNode) -> TypeNode:
        assert isinstance(source, Model)
        return Model(name=source.name, source=source.original, synthetic=source.synthetic)

    def populate(self, engine: MutationEngine, node: MutationNode) -> None:
        source = node.source
        model = node.mutated_type
        assert isinstance(source, Model) and isinstance(model, Model)
        run = engine.run
        run.record_original(model, source.original)

        if source.indexer is not None:
            model.indexer = Indexer(
                key=source.indexer.key,
                value=engine.mutate(source.indexer.value, node.context),
            )
            return

        is_input_variant = node.context is MutationContext.INPUT and run.usage.is_split(source)

        def rename(mutated: TypeNode) -> None:
            mutated.name = sanitize_name(mutated.name)
            if is_input_variant:
                mutated.name += INPUT_SUFFIX

        node.when_mutated(rename)

        for prop in source.properties.values():
            mutated_prop = engine.mutate(prop, node.context)
            assert isinstance(mutated_prop, ModelProperty)
            mutated_prop.model = model
            if mutated_prop.name in model.properties:
                raise NameCollisionError(mutated_prop.name, scope=f"model '{source.name}'")
            model.properties[mutated_prop.name] = mutated_prop

        if node.context is MutationContext.INPUT:
            return
        for operation in run.metadata.get_extra_operation_fields(source):
            mutated_op = engine.mutate(operation)
            assert isinstance(mutated_op, Operation)
            if mutated_op.name in model.properties or any(
                op.name == mutated_op.name for op in model.operation_fields
            ):
                raise NameCollisionError(mutated_op.name, scope=f"model '{source.name}'")
            model.operation_fields.append(mutated_op)

    def declares_name(self, node: MutationNode) -> bool:
        assert isinstance(node.source, Model)
        return is_declarable_model(node.source)


class ModelPropertyMutator(Mutator):
    def context_key(
        self, engine: MutationEngine, source: TypeNode, context: MutationContext
    ) -> MutationContext:
        return context

    def create_shell(self, source: TypeNode) -> TypeNode:
        assert isinstance(source, ModelProperty)
        return ModelProperty(name=source.name, source=source.original, optional=source.optional)

    def populate(self, engine: MutationEngine, node: MutationNode) -> None:
        source = node.source
        prop = node.mutated_type
        assert isinstance(source, ModelProperty) and isinstance(prop, ModelProperty)
        _rename(node)
        if source.type is not None:
            prop.type = engine.mutate(source.type, node.context)


class EnumMutator(Mutator):
    def create_shell(self, source: TypeNode) -> TypeNode:
        return Enum(name=source.name, source=source.original)

    def populate(self, engine: MutationEngine, node: MutationNode) -> None:
        source = node.source
        enum = node.mutated_type
        assert isinstance(source, Enum) and isinstance(enum, Enum)
        _rename(node)
        for member in source.members.values():
            mutated_member = engine.mutate(member)
            if mutated_member.name in enum.members:
                raise NameCollisionError(mutated_member.name, scope=f"enum '{source.name}'")
            enum.members[mutated_member.name] = mutated_member  # type: ignore[assignment]

    def declares_name(self, node: MutationNode) -> bool:
        return True


class EnumMemberMutator(Mutator):
    def create_shell(self, source: TypeNode) -> TypeNode:
        assert isinstance(source, EnumMember)
        return EnumMember(name=source.name, source=source.original, value=source.value)

    def populate(self, engine: MutationEngine, node: MutationNode) -> None:
        member = node.mutated_type
        assert isinstance(member, EnumMember)
        value = member.value
        if (
            isinstance(value, (int, float))
            and not isinstance(value, bool)
            and not _NAME_START_RE.match(member.name)
        ):
            # Numeric member names such as "0.25" or "-1" are spelled out.
            member.name = numeric_enum_name(value)
            return
        _rename(node)


class ScalarMutator(Mutator):
    def create_shell(self, source: TypeNode) -> TypeNode:
        assert isinstance(source, Scalar)
        return Scalar(name=source.name, source=source.original, std=source.std, base=source.base)

    def populate(self, engine: MutationEngine, node: MutationNode) -> None:
        source = node.source
        scalar = node.mutated_type
        assert isinstance(source, Scalar) and isinstance(scalar, Scalar)
        run = engine.run

        if not source.std:
            _rename(node)
            scalar.specification_url = run.metadata.get_scalar_specification_url(source)
            return

        mapping = get_scalar_mapping(source)
        if mapping is None:
            run.diagnostics.warn(
                UNSUPPORTED_SCALAR,
                f"Scalar '{source.name}' has no GraphQL mapping; using {FALLBACK_SCALAR}.",
                target=source.name,
            )
            scalar.name = FALLBACK_SCALAR
            scalar.builtin = True
            return
        scalar.name = mapping.graphql_name
        scalar.builtin = mapping.is_builtin
        scalar.specification_url = mapping.specification_url

    def declares_name(self, node: MutationNode) -> bool:
        scalar = node.mutated_type
        assert isinstance(scalar, Scalar)
        return not scalar.builtin

    def name_owner(self, node: MutationNode) -> object | None:
        scalar = node.mutated_type
        assert isinstance(scalar, Scalar)
        if scalar.builtin:
            return None
        if not scalar.std:
            return super().name_owner(node)
        # Several standard scalars share one GraphQL scalar.
        return f"scalar:{scalar.name}"


class UnionMutator(Mutator):
    def context_key(
        self, engine: MutationEngine, source: TypeNode, context: MutationContext
    ) -> MutationContext:
        if is_nullable_union(source):
            return context
        return MutationContext.NONE

    def create_shell(self, source: TypeNode) -> TypeNode:
        assert isinstance(source, Union)
        return Union(name=source.name, source=source.original, origin=source.origin)

    def populate(self, engine: MutationEngine, node: MutationNode) -> None:
        source = node.source
        union = node.mutated_type
        assert isinstance(source, Union) and isinstance(union, Union)

        if is_nullable_union(source):
            # Unwrapped at each use site, never declared.
            for key, variant in source.variants.items():
                union.variants[key] = engine.mutate(variant, node.context)  # type: ignore[assignment]
            return

        run = engine.run
        union_name = sanitize_name(run.union_name(source))

        def rename(mutated: TypeNode) -> None:
            mutated.name = union_name

        node.when_mutated(rename)

        seen_types: set[TypeNode] = set()
        for variant in flatten_union_variants(source):
            variant_type = variant.type
            if variant_type is None or is_null(variant_type) or variant_type in seen_types:
                continue
            seen_types.add(variant_type)

            if is_scalar_like(variant_type):
                wrapper = self._wrapper_model(engine, union_name, variant)
                mutated_variant = UnionVariant(
                    name=variant.name, source=variant.original, type=wrapper
                )
            else:
                mutated_variant = engine.mutate(variant, MutationContext.OUTPUT)  # type: ignore[assignment]

            key = mutated_variant.name or str(len(union.variants))
            while key in union.variants:
                key += "_"
            union.variants[key] = mutated_variant

    def _wrapper_model(
        self, engine: MutationEngine, union_name: str, variant: UnionVariant
    ) -> Model:
        assert variant.type is not None
        variant_name = variant.name or variant.type.name
        wrapper = Model(name=wrapper_model_name(union_name, variant_name), synthetic=True)
        wrapper.properties["value"] = ModelProperty(
            name="value",
            type=engine.mutate(variant.type, MutationContext.OUTPUT),
            optional=False,
            model=wrapper,
        )
        engine.run.names.claim(wrapper.name, wrapper)
        engine.run.wrapper_models.append(wrapper)
        return wrapper

    def declares_name(self, node: MutationNode) -> bool:
        return not is_nullable_union(node.source)


class UnionVariantMutator(Mutator):
    def context_key(
        self, engine: MutationEngine, source: TypeNode, context: MutationContext
    ) -> MutationContext:
        return context

    def create_shell(self, source: TypeNode) -> TypeNode:
        return UnionVariant(name=source.name, source=source.original)

    def populate(self, engine: MutationEngine, node: MutationNode) -> None:
        source = node.source
        variant = node.mutated_type
        assert isinstance(source, UnionVariant) and isinstance(variant, UnionVariant)
        if source.type is not None:
            variant.type = engine.mutate(source.type, node.context)


class OperationMutator(Mutator):
    """Parameters are mutated as input properties, the return type as output."""

    def create_shell(self, source: TypeNode) -> TypeNode:
        return Operation(name=source.name, source=source.original)

    def populate(self, engine: MutationEngine, node: MutationNode) -> None:
        source = node.source
        operation = node.mutated_type
        assert isinstance(source, Operation) and isinstance(operation, Operation)
        _rename(node)
        for param in source.parameters.values():
            mutated_param = engine.mutate(param, MutationContext.INPUT)
            assert isinstance(mutated_param, ModelProperty)
            if mutated_param.name in operation.parameters:
                raise NameCollisionError(mutated_param.name, scope=f"operation '{source.name}'")
            operation.parameters[mutated_param.name] = mutated_param
        if source.return_type is not None:
            operation.return_type = engine.mutate(source.return_type, MutationContext.OUTPUT)


class IntrinsicMutator(Mutator):
    """``null``, ``unknown``, ``void`` and ``never`` project onto themselves."""

    def create_shell(self, source: TypeNode) -> TypeNode:
        return source


DEFAULT_MUTATOR = Mutator()

MUTATORS: dict[str, Mutator] = {
    Model.kind: ModelMutator(),
    ModelProperty.kind: ModelPropertyMutator(),
    Enum.kind: EnumMutator(),
    EnumMember.kind: EnumMemberMutator(),
    Scalar.kind: ScalarMutator(),
    Union.kind: UnionMutator(),
    UnionVariant.kind: UnionVariantMutator(),
    Operation.kind: OperationMutator(),
    Intrinsic.kind: IntrinsicMutator(),
}
