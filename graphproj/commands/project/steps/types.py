"""Type graph and projection types passed between pipeline steps.

Three layers of types:
1. Source graph: TypeNode subclasses built by the loader (originals)
2. Projection keys: MutationContext and UsageFlags
3. Projection output: the classified buckets and per-field shapes
"""

from __future__ import annotations

from dataclasses import dataclass, field
import enum
import itertools
from typing import ClassVar

from graphproj.helpers.naming import sanitize_name

_ids = itertools.count(1)


def _next_id() -> int:
    return next(_ids)


# -- Source graph -------------------------------------------------------------


@dataclass(eq=False)
class TypeNode:
    """Base of every node in the type graph.

    Nodes compare and hash by identity. Mutated copies point back at their
    original through ``source``.
    """

    kind: ClassVar[str] = "Type"

    name: str = ""
    source: TypeNode | None = field(default=None, repr=False)
    id: int = field(default_factory=_next_id, repr=False)

    @property
    def original(self) -> TypeNode:
        return self.source if self.source is not None else self


@dataclass(eq=False)
class Indexer:
    """Element type of an array (key "integer") or record (key "string")."""

    key: str
    value: TypeNode


@dataclass(eq=False)
class ModelProperty(TypeNode):
    kind: ClassVar[str] = "ModelProperty"

    type: TypeNode | None = None
    optional: bool = False
    model: Model | None = field(default=None, repr=False)


@dataclass(eq=False)
class Model(TypeNode):
    kind: ClassVar[str] = "Model"

    properties: dict[str, ModelProperty] = field(
        default_factory=lambda: dict[str, ModelProperty]()
    )
    indexer: Indexer | None = None
    synthetic: bool = False  # wrapper models created during union mutation
    # Operations exposed as arguments-taking fields of an output type.
    operation_fields: list[Operation] = field(default_factory=lambda: list[Operation]())

    @property
    def is_array(self) -> bool:
        return self.indexer is not None and self.indexer.key == "integer"

    @property
    def is_record(self) -> bool:
        return self.indexer is not None and self.indexer.key == "string"


@dataclass(eq=False)
class EnumMember(TypeNode):
    kind: ClassVar[str] = "EnumMember"

    value: str | int | float | None = None


@dataclass(eq=False)
class Enum(TypeNode):
    kind: ClassVar[str] = "Enum"

    members: dict[str, EnumMember] = field(default_factory=lambda: dict[str, EnumMember]())


@dataclass(eq=False)
class Scalar(TypeNode):
    kind: ClassVar[str] = "Scalar"

    std: bool = False  # declared by the standard library
    base: Scalar | None = field(default=None, repr=False)  # `extends`
    builtin: bool = False  # projection is a GraphQL built-in scalar
    specification_url: str | None = None


@dataclass(eq=False)
class Intrinsic(TypeNode):
    """``null``, ``unknown``, ``void`` or ``never``."""

    kind: ClassVar[str] = "Intrinsic"


@dataclass(eq=False)
class UnionVariant(TypeNode):
    kind: ClassVar[str] = "UnionVariant"

    type: TypeNode | None = None


@dataclass
class UnionOrigin:
    """Where an anonymous union was written, used to derive its name."""

    kind: str  # "return", "property" or "alias"
    operation: str = ""
    model: str = ""
    property: str = ""
    alias: str = ""


@dataclass(eq=False)
class Union(TypeNode):
    kind: ClassVar[str] = "Union"

    variants: dict[str, UnionVariant] = field(default_factory=lambda: dict[str, UnionVariant]())
    origin: UnionOrigin | None = None


@dataclass(eq=False)
class Operation(TypeNode):
    kind: ClassVar[str] = "Operation"

    parameters: dict[str, ModelProperty] = field(
        default_factory=lambda: dict[str, ModelProperty]()
    )
    return_type: TypeNode | None = None


@dataclass(eq=False)
class Interface(TypeNode):
    """A named group of operations (not a GraphQL interface)."""

    kind: ClassVar[str] = "Interface"

    operations: dict[str, Operation] = field(default_factory=lambda: dict[str, Operation]())


@dataclass(eq=False)
class Namespace(TypeNode):
    kind: ClassVar[str] = "Namespace"

    models: dict[str, Model] = field(default_factory=lambda: dict[str, Model]())
    enums: dict[str, Enum] = field(default_factory=lambda: dict[str, Enum]())
    scalars: dict[str, Scalar] = field(default_factory=lambda: dict[str, Scalar]())
    unions: dict[str, Union] = field(default_factory=lambda: dict[str, Union]())
    operations: dict[str, Operation] = field(default_factory=lambda: dict[str, Operation]())
    interfaces: dict[str, Interface] = field(default_factory=lambda: dict[str, Interface]())
    namespaces: dict[str, Namespace] = field(default_factory=lambda: dict[str, Namespace]())
    parent: Namespace | None = field(default=None, repr=False)

    def all_operations(self) -> list[Operation]:
        """Operations of this namespace tree: sub-namespaces, interfaces, then own."""
        ops: list[Operation] = []
        for sub in self.namespaces.values():
            ops.extend(sub.all_operations())
        for iface in self.interfaces.values():
            ops.extend(iface.operations.values())
        ops.extend(self.operations.values())
        return ops

    def walk(self) -> list[Namespace]:
        """This namespace followed by every nested namespace, depth first."""
        result = [self]
        for sub in self.namespaces.values():
            result.extend(sub.walk())
        return result


def is_nullable_union(union: TypeNode) -> bool:
    return nullable_union_type(union) is not None


def nullable_union_type(union: TypeNode) -> TypeNode | None:
    """Return ``T`` if *union* is exactly ``T | null``, otherwise None."""
    if not isinstance(union, Union) or len(union.variants) != 2:
        return None
    variants = list(union.variants.values())
    null_variant = next((v for v in variants if is_null(v.type)), None)
    if null_variant is None:
        return None
    return next(v.type for v in variants if v is not null_variant)


def is_null(type_: TypeNode | None) -> bool:
    return isinstance(type_, Intrinsic) and type_.name == "null"


def is_scalar_like(type_: TypeNode | None) -> bool:
    return isinstance(type_, (Scalar, Intrinsic))


def is_declarable_model(model: Model) -> bool:
    """True for models emitted as object/input types (not arrays or records)."""
    return model.indexer is None


def unwrap_type(type_: TypeNode) -> TypeNode:
    """Strip ``T | null`` and array wrappers down to the element type."""
    while True:
        inner = nullable_union_type(type_)
        if inner is not None:
            type_ = inner
        elif isinstance(type_, Model) and type_.is_array:
            assert type_.indexer is not None
            type_ = type_.indexer.value
        else:
            return type_


# -- Projection keys ----------------------------------------------------------


class MutationContext(str, enum.Enum):
    """Which projection of a source type is being produced."""

    NONE = "none"
    INPUT = "input"
    OUTPUT = "output"


class UsageFlags(enum.Flag):
    NONE = 0
    INPUT = enum.auto()
    OUTPUT = enum.auto()


class OperationKind(str, enum.Enum):
    QUERY = "query"
    MUTATION = "mutation"
    SUBSCRIPTION = "subscription"


# -- Projection output --------------------------------------------------------


@dataclass
class ScalarVariant:
    """An encoded scalar emitted under its own name (bytes + base64url -> BytesUrl)."""

    source_scalar: TypeNode
    encoding: str
    graphql_name: str
    specification_url: str | None = None


@dataclass
class MutatedTypes:
    """Everything the mutation step produced for one schema."""

    models: list[Model] = field(default_factory=lambda: list[Model]())
    enums: list[Enum] = field(default_factory=lambda: list[Enum]())
    scalars: list[Scalar] = field(default_factory=lambda: list[Scalar]())
    unions: list[Union] = field(default_factory=lambda: list[Union]())
    operations: list[Operation] = field(default_factory=lambda: list[Operation]())
    wrapper_models: list[Model] = field(default_factory=lambda: list[Model]())
    scalar_variants: list[ScalarVariant] = field(default_factory=lambda: list[ScalarVariant]())


@dataclass
class ClassifiedTypes:
    """Mutated types bucketed by the GraphQL declaration they become."""

    interfaces: list[Model] = field(default_factory=lambda: list[Model]())
    output_models: list[Model] = field(default_factory=lambda: list[Model]())
    input_models: list[Model] = field(default_factory=lambda: list[Model]())
    enums: list[Enum] = field(default_factory=lambda: list[Enum]())
    scalars: list[Scalar] = field(default_factory=lambda: list[Scalar]())
    scalar_variants: list[ScalarVariant] = field(default_factory=lambda: list[ScalarVariant]())
    unions: list[Union] = field(default_factory=lambda: list[Union]())
    queries: list[Operation] = field(default_factory=lambda: list[Operation]())
    mutations: list[Operation] = field(default_factory=lambda: list[Operation]())
    subscriptions: list[Operation] = field(default_factory=lambda: list[Operation]())


@dataclass
class ModelVariants:
    """Output/input model lookups keyed by sanitized original name."""

    output_models: dict[str, Model] = field(default_factory=lambda: dict[str, Model]())
    input_models: dict[str, Model] = field(default_factory=lambda: dict[str, Model]())

    @classmethod
    def from_classified(cls, classified: ClassifiedTypes) -> ModelVariants:
        variants = cls()
        for model in [*classified.interfaces, *classified.output_models]:
            variants.output_models[sanitize_name(model.original.name)] = model
        for model in classified.input_models:
            variants.input_models[sanitize_name(model.original.name)] = model
        return variants


@dataclass(frozen=True)
class TypeShape:
    """GraphQL shape of one field or argument."""

    base_name: str
    is_list: bool = False
    is_non_null: bool = False
    item_non_null: bool = False  # only meaningful when is_list
