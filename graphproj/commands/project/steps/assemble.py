"""Step: Assemble a GraphQL SDL string from the classified types."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from graphproj.commands.project.steps.base import MechanicalStep, StepValidationError
from graphproj.commands.project.steps.resolve import TypeResolver, field_encoding, return_encoding
from graphproj.commands.project.steps.scalars import get_scalar_mapping
from graphproj.commands.project.steps.types import (
    ClassifiedTypes,
    Enum,
    Intrinsic,
    Model,
    ModelProperty,
    MutationContext,
    Operation,
    Scalar,
    ScalarVariant,
    TypeShape,
    Union,
)

if TYPE_CHECKING:
    from graphproj.commands.project.metadata import MetadataProvider

PLACEHOLDER_QUERY_DESCRIPTION = (
    "Placeholder field. No query operations were defined in the source schema."
)


class AssembleStep(MechanicalStep[ClassifiedTypes, str]):
    """Generate a GraphQL SDL string from classified types."""

    name = "assemble"

    def __init__(self, resolver: TypeResolver, metadata: MetadataProvider):
        self.resolver = resolver
        self.metadata = metadata

    def _execute(self, input: ClassifiedTypes) -> str:
        return build_sdl(input, self.resolver, self.metadata)

    def _validate_output(self, output: str) -> None:
        if output and not output.endswith("\n\n"):
            raise StepValidationError("SDL must end with a single blank line")


def build_sdl(
    classified: ClassifiedTypes, resolver: TypeResolver, metadata: MetadataProvider
) -> str:
    """Build a complete GraphQL SDL string from classified types."""
    renderer = _Renderer(resolver, metadata)
    parts: list[str] = []

    variant_names: set[str] = set()
    for variant in classified.scalar_variants:
        variant_names.add(variant.graphql_name)
        parts.append(renderer.scalar_variant(variant))

    for scalar in classified.scalars:
        if scalar.name in variant_names:
            continue
        parts.append(renderer.scalar(scalar))

    for enum in classified.enums:
        parts.append(renderer.enum(enum))

    for union in classified.unions:
        parts.append(renderer.union(union))

    interface_names = {m.name for m in classified.interfaces}
    for model in classified.interfaces:
        parts.append(renderer.object_type(model, "interface", interface_names))

    for model in classified.output_models:
        parts.append(renderer.object_type(model, "type", interface_names))

    for model in classified.input_models:
        parts.append(renderer.input_type(model))

    if classified.queries:
        parts.append(renderer.root_type("Query", classified.queries))
    else:
        parts.append(
            "\n".join(
                [
                    "type Query {",
                    f'  """{PLACEHOLDER_QUERY_DESCRIPTION}"""',
                    "  _: Boolean",
                    "}",
                ]
            )
        )
    if classified.mutations:
        parts.append(renderer.root_type("Mutation", classified.mutations))
    if classified.subscriptions:
        parts.append(renderer.root_type("Subscription", classified.subscriptions))

    sdl = "\n\n".join(parts)
    return sdl.rstrip() + "\n\n" if sdl.strip() else ""


class _Renderer:
    def __init__(self, resolver: TypeResolver, metadata: MetadataProvider):
        self.resolver = resolver
        self.metadata = metadata

    def scalar_variant(self, variant: ScalarVariant) -> str:
        mapping = get_scalar_mapping(variant.source_scalar, variant.encoding or None)
        description = mapping.description if mapping else None
        return _with_description(
            description, _scalar_decl(variant.graphql_name, variant.specification_url)
        )

    def scalar(self, scalar: Scalar) -> str:
        description = self.metadata.get_doc_comment(scalar)
        if description is None:
            mapping = get_scalar_mapping(scalar)
            description = mapping.description if mapping else None
        return _with_description(
            description, _scalar_decl(scalar.name, scalar.specification_url)
        )

    def enum(self, enum: Enum) -> str:
        lines = [f"enum {enum.name} {{"]
        for member in enum.members.values():
            lines.extend(
                _indent(
                    _with_description(
                        self.metadata.get_doc_comment(member),
                        member.name + _deprecated(self.metadata.get_deprecation(member)),
                    )
                )
            )
        lines.append("}")
        return _with_description(self.metadata.get_doc_comment(enum), "\n".join(lines))

    def union(self, union: Union) -> str:
        members: list[str] = []
        for variant in union.variants.values():
            if variant.type is None:
                continue
            name = self.resolver.base_name(variant.type, MutationContext.OUTPUT)
            if name not in members:
                members.append(name)
        return _with_description(
            self.metadata.get_doc_comment(union),
            f"union {union.name} = {' | '.join(members)}",
        )

    def object_type(self, model: Model, keyword: str, interface_names: set[str]) -> str:
        decl = f"{keyword} {model.name}"
        implements = [
            name
            for name in (
                self.resolver.base_name(iface, MutationContext.OUTPUT)
                for iface in self.metadata.get_composed_interfaces(model)
            )
            if name in interface_names and name != model.name
        ]
        if implements:
            decl += f" implements {' & '.join(implements)}"

        lines = [f"{decl} {{"]
        for prop in model.properties.values():
            lines.extend(_indent(self.field(prop, MutationContext.OUTPUT)))
        for operation in model.operation_fields:
            lines.extend(_indent(self.operation_field(operation)))
        lines.append("}")
        return _with_description(self.metadata.get_doc_comment(model), "\n".join(lines))

    def input_type(self, model: Model) -> str:
        lines = [f"input {model.name} {{"]
        for prop in model.properties.values():
            lines.extend(_indent(self.field(prop, MutationContext.INPUT)))
        lines.append("}")
        return _with_description(self.metadata.get_doc_comment(model), "\n".join(lines))

    def root_type(self, name: str, operations: list[Operation]) -> str:
        lines = [f"type {name} {{"]
        for operation in operations:
            lines.extend(_indent(self.operation_field(operation)))
        lines.append("}")
        return "\n".join(lines)

    def field(self, prop: ModelProperty, context: MutationContext) -> str:
        assert prop.type is not None
        shape = self.resolver.resolve(
            prop.type, prop.optional, context, field_encoding(self.metadata, prop)
        )
        line = f"{prop.name}: {_format_type(shape)}"
        if context is MutationContext.OUTPUT:
            line += _deprecated(self.metadata.get_deprecation(prop))
        return _with_description(self.metadata.get_doc_comment(prop), line)

    def operation_field(self, operation: Operation) -> str:
        line = operation.name
        if operation.parameters:
            args: list[str] = []
            for param in operation.parameters.values():
                assert param.type is not None
                shape = self.resolver.resolve(
                    param.type,
                    param.optional,
                    MutationContext.INPUT,
                    field_encoding(self.metadata, param),
                )
                args.append(f"{param.name}: {_format_type(shape)}")
            line += f"({', '.join(args)})"

        return_type = operation.return_type
        if return_type is None or (
            isinstance(return_type, Intrinsic) and return_type.name == "void"
        ):
            line += ": Boolean"
        else:
            shape = self.resolver.resolve(
                return_type,
                False,
                MutationContext.OUTPUT,
                return_encoding(self.metadata, operation),
            )
            line += f": {_format_type(shape)}"
        line += _deprecated(self.metadata.get_deprecation(operation))
        return _with_description(self.metadata.get_doc_comment(operation), line)


def _scalar_decl(name: str, specification_url: str | None) -> str:
    decl = f"scalar {name}"
    if specification_url:
        decl += f" @specifiedBy(url: {json.dumps(specification_url)})"
    return decl


def _format_type(shape: TypeShape) -> str:
    """Format a GraphQL type reference.

    - list -> [Type] with ``!`` on items when they are non-null
    - ``!`` on the reference itself when non-null
    """
    type_str = shape.base_name
    if shape.is_list:
        inner = f"{type_str}!" if shape.item_non_null else type_str
        type_str = f"[{inner}]"
    if shape.is_non_null:
        type_str += "!"
    return type_str


def _deprecated(reason: str | None) -> str:
    if reason is None:
        return ""
    return f" @deprecated(reason: {json.dumps(reason)})"


def _with_description(description: str | None, text: str) -> str:
    if not description:
        return text
    return f'"""{_escape_description(description)}"""\n{text}'


def _indent(text: str) -> list[str]:
    return [f"  {line}" for line in text.split("\n")]


def _escape_description(text: str) -> str:
    """Escape a description string for use in triple-quoted SDL strings."""
    return text.replace('"""', '\\"""')
