"""Per-field GraphQL type shape.

Output and input fields follow different non-null rules: an output field is
non-null unless optional, an input field is always non-null unless its type
is an explicit ``T | null`` union. Optional input fields may be omitted but
must not be null.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from typing import TYPE_CHECKING

from graphproj.commands.project.diagnostics import UNSUPPORTED_TYPE, DiagnosticCollector
from graphproj.commands.project.steps.mutators import INPUT_SUFFIX
from graphproj.commands.project.steps.scalars import FALLBACK_SCALAR, get_scalar_mapping
from graphproj.commands.project.steps.types import (
    Enum,
    Intrinsic,
    Model,
    ModelVariants,
    MutationContext,
    Scalar,
    TypeNode,
    TypeShape,
    Union,
    is_nullable_union,
    nullable_union_type,
    unwrap_type,
)
from graphproj.helpers.naming import sanitize_name

if TYPE_CHECKING:
    from graphproj.commands.project.metadata import MetadataProvider


class TypeResolver:
    """Resolves the GraphQL shape of a field or argument type."""

    def __init__(
        self,
        variants: ModelVariants,
        union_namer: Callable[[TypeNode], str],
        diagnostics: DiagnosticCollector | None = None,
        strict: bool = False,
    ):
        self.variants = variants
        self.union_namer = union_namer
        self.diagnostics = diagnostics or DiagnosticCollector()
        self.strict = strict

    def resolve(
        self,
        type_: TypeNode,
        is_optional: bool,
        context: MutationContext,
        encoding: str | None = None,
    ) -> TypeShape:
        # `T | null` wins over the field's own optionality.
        inner = nullable_union_type(type_)
        if inner is not None:
            shape = self.resolve(inner, True, context, encoding)
            return replace(shape, is_non_null=False)

        if isinstance(type_, Model) and type_.is_array:
            assert type_.indexer is not None
            element = type_.indexer.value
            item = self.resolve(element, False, context, encoding)
            return TypeShape(
                base_name=item.base_name,
                is_list=True,
                is_non_null=_is_non_null(is_optional, context),
                item_non_null=not is_nullable_union(element),
            )

        return TypeShape(
            base_name=self.base_name(type_, context, encoding),
            is_non_null=_is_non_null(is_optional, context),
        )

    def base_name(
        self, type_: TypeNode, context: MutationContext, encoding: str | None = None
    ) -> str:
        original = type_.original

        if isinstance(original, Scalar) or (
            isinstance(original, Intrinsic) and original.name == "unknown"
        ):
            mapping = get_scalar_mapping(original, encoding)
            if mapping is not None:
                return mapping.graphql_name
            if isinstance(original, Scalar) and not original.std:
                return sanitize_name(original.name)
            # Unmapped standard scalars were reported when mutated.
            return FALLBACK_SCALAR

        if isinstance(original, Model) and original.indexer is None:
            name = sanitize_name(original.name)
            if (
                context is MutationContext.INPUT
                and name in self.variants.input_models
                and name in self.variants.output_models
            ):
                return name + INPUT_SUFFIX
            return name

        if isinstance(original, Enum):
            return sanitize_name(original.name)

        if isinstance(original, Union):
            return sanitize_name(self.union_namer(original))

        return self._unsupported(original)

    def _unsupported(self, type_: TypeNode) -> str:
        if isinstance(type_, Model) and type_.is_record:
            description = "Record types"
        else:
            description = f"{type_.kind} '{type_.name}'"
        self.diagnostics.add(
            UNSUPPORTED_TYPE,
            f"{description} cannot be represented in GraphQL; using {FALLBACK_SCALAR}.",
            severity="error" if self.strict else "warning",
            target=type_.name or None,
        )
        return FALLBACK_SCALAR


def _is_non_null(is_optional: bool, context: MutationContext) -> bool:
    if context is MutationContext.INPUT:
        return True
    return not is_optional


def field_encoding(metadata: MetadataProvider, member: TypeNode) -> str | None:
    """Encoding hint of a property or parameter, falling back to its scalar's own hint."""
    hint = metadata.get_encoding_hint(member)
    if hint:
        return hint
    type_ = getattr(member, "type", None)
    if type_ is None:
        return None
    base = unwrap_type(type_)
    if isinstance(base, Scalar):
        return metadata.get_encoding_hint(base)
    return None


def return_encoding(metadata: MetadataProvider, operation: TypeNode) -> str | None:
    """Encoding hint of an operation's result, falling back to its scalar's own hint."""
    hint = metadata.get_encoding_hint(operation)
    if hint:
        return hint
    return_type = getattr(operation, "return_type", None)
    if return_type is None:
        return None
    base = unwrap_type(return_type)
    if isinstance(base, Scalar):
        return metadata.get_encoding_hint(base)
    return None
