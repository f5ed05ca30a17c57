"""Union naming and flattening."""

from __future__ import annotations

from graphproj.commands.project.diagnostics import UNRECOGNIZED_UNION, DiagnosticCollector
from graphproj.commands.project.steps.types import TypeNode, Union, UnionVariant
from graphproj.helpers.naming import to_type_name

UNKNOWN_UNION_NAME = "UnknownUnion"


def derive_union_name(
    union: Union,
    diagnostics: DiagnosticCollector | None = None,
    placeholder: str = UNKNOWN_UNION_NAME,
) -> str:
    """Name a union, deriving one for anonymous unions from where they were written.

    - named union: its own name
    - ``op getBaz(): Foo | Bar``: ``GetBazUnion``
    - ``model Foo { bar: Bar | Baz }``: ``FooBarUnion``
    - ``alias Baz = Foo | Bar``: ``Baz``
    - anything else: *placeholder*, reported as unrecognized
    """
    if union.name:
        return union.name

    origin = union.origin
    if origin is not None:
        if origin.kind == "return" and origin.operation:
            return f"{to_type_name(origin.operation)}Union"
        if origin.kind == "property" and origin.property:
            return f"{origin.model}{to_type_name(origin.property)}Union"
        if origin.kind == "alias" and origin.alias:
            return origin.alias

    if diagnostics is not None:
        diagnostics.add(
            UNRECOGNIZED_UNION,
            "Unable to determine a GraphQL name for an anonymous union; "
            f"using '{placeholder}'.",
        )
    return placeholder


def flatten_union_variants(
    union: Union, seen: set[TypeNode] | None = None
) -> list[UnionVariant]:
    """Collect the variants of *union*, replacing nested unions by their own variants.

    Each union is visited at most once, so unions referring to each other
    terminate.
    """
    if seen is None:
        seen = set()
    if union in seen:
        return []
    seen.add(union)

    flattened: list[UnionVariant] = []
    for variant in union.variants.values():
        if isinstance(variant.type, Union):
            flattened.extend(flatten_union_variants(variant.type, seen))
        else:
            flattened.append(variant)
    return flattened


def wrapper_model_name(union_name: str, variant_name: str) -> str:
    return to_type_name(union_name) + to_type_name(variant_name) + "UnionVariant"
