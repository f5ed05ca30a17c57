"""Load a source graph document into an in-memory type graph.

Loading happens in two phases: every named declaration of every namespace
is created first, then type expressions are resolved against them. Cyclic
references therefore need no special handling.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
import json
from pathlib import Path
import re
from typing import Any, cast

import yaml

from graphproj.commands.project.diagnostics import SourceGraphError
from graphproj.commands.project.metadata import StaticMetadata
from graphproj.commands.project.options import ProjectionOptions
from graphproj.commands.project.steps.types import (
    Enum,
    EnumMember,
    Indexer,
    Interface,
    Intrinsic,
    Model,
    ModelProperty,
    Namespace,
    Operation,
    OperationKind,
    Scalar,
    TypeNode,
    Union,
    UnionOrigin,
    UnionVariant,
)
from graphproj.formats.source_graph import (
    EnumDef,
    EnumMemberDef,
    ModelDef,
    NamespaceDef,
    OperationDef,
    PropertyDef,
    ScalarDef,
    SourceGraphDocument,
    TypeExpr,
    UnionDef,
)

# Standard library scalars and the scalar each one extends.
STD_SCALARS: dict[str, str | None] = {
    "string": None,
    "boolean": None,
    "bytes": None,
    "numeric": None,
    "integer": "numeric",
    "float": "numeric",
    "decimal": "numeric",
    "decimal128": "decimal",
    "int64": "integer",
    "int32": "int64",
    "int16": "int32",
    "int8": "int16",
    "safeint": "int64",
    "uint64": "integer",
    "uint32": "uint64",
    "uint16": "uint32",
    "uint8": "uint16",
    "float64": "float",
    "float32": "float64",
    "plainDate": None,
    "plainTime": None,
    "utcDateTime": None,
    "offsetDateTime": None,
    "duration": None,
    "url": None,
    "unixTimestamp32": "utcDateTime",
}

INTRINSICS = ("null", "unknown", "void", "never")

_TOKEN_RE = re.compile(r"\s*(?:(\[\])|([|()<>])|([A-Za-z_][\w.]*))")
_PUNCTUATION = frozenset({"|", "(", ")", "<", ">", "[]"})


@dataclass
class SourceProgram:
    """A loaded document: root namespace, decorator metadata and options."""

    root: Namespace
    metadata: StaticMetadata
    options: ProjectionOptions = field(default_factory=ProjectionOptions)
    name: str = ""


def load_program(path: Path) -> SourceProgram:
    """Read a YAML or JSON source graph document from *path*."""
    text = path.read_text()
    if path.suffix == ".json":
        data = json.loads(text)
    else:
        data = yaml.safe_load(text)
    if not isinstance(data, dict):
        raise SourceGraphError(f"{path}: expected a mapping at the top level")
    document = SourceGraphDocument.model_validate(data)
    return build_program(document, default_name=path.stem)


def build_program(document: SourceGraphDocument, default_name: str = "") -> SourceProgram:
    """Build the type graph described by a validated document."""
    loader = _Loader()
    root = loader.load(document)
    options = document.options.to_options() if document.options else ProjectionOptions()
    return SourceProgram(
        root=root,
        metadata=loader.metadata,
        options=options,
        name=document.name or default_name,
    )


class _Loader:
    def __init__(self) -> None:
        self.metadata = StaticMetadata()
        self.std = Namespace(name="std")
        self.intrinsics = {name: Intrinsic(name=name) for name in INTRINSICS}
        for name in STD_SCALARS:
            self.std.scalars[name] = Scalar(name=name, std=True)
        for name, base in STD_SCALARS.items():
            if base is not None:
                self.std.scalars[name].base = self.std.scalars[base]
        self._definitions: list[tuple[Namespace, NamespaceDef]] = []
        self._aliases: dict[tuple[int, str], TypeExpr] = {}
        self._resolving_aliases: set[tuple[int, str]] = set()
        self._alias_types: dict[tuple[int, str], TypeNode] = {}

    def load(self, document: SourceGraphDocument) -> Namespace:
        root = Namespace(name=document.name)
        self._declare(root, document.namespace)
        for namespace, definition in self._definitions:
            self._resolve(namespace, definition)
        for namespace, definition in self._definitions:
            self._compose(namespace, definition)
        return root

    # -- Phase 1: declarations ------------------------------------------------

    def _declare(self, namespace: Namespace, definition: NamespaceDef) -> None:
        self._definitions.append((namespace, definition))
        self._set_docs(namespace, definition.doc, definition.deprecated)
        if definition.schema_name:
            schema_name = (
                namespace.name if definition.schema_name is True else str(definition.schema_name)
            )
            self.metadata.schemas[namespace] = schema_name or "schema"

        for name, model_def in definition.models.items():
            self._check_unique(namespace, name)
            model = Model(name=name)
            namespace.models[name] = model
            self._set_docs(model, model_def.doc, model_def.deprecated)
            if model_def.interface:
                self.metadata.interfaces.add(model)
            if model_def.error:
                self.metadata.error_models.add(model)

        for name, enum_def in definition.enums.items():
            self._check_unique(namespace, name)
            namespace.enums[name] = self._build_enum(name, enum_def)

        for name, scalar_def in definition.scalars.items():
            self._check_unique(namespace, name)
            scalar = Scalar(name=name)
            namespace.scalars[name] = scalar
            self._set_docs(scalar, scalar_def.doc, scalar_def.deprecated)
            if scalar_def.specified_by:
                self.metadata.specification_urls[scalar] = scalar_def.specified_by
            if scalar_def.encode:
                self.metadata.encodings[scalar] = scalar_def.encode

        for name, union_def in definition.unions.items():
            self._check_unique(namespace, name)
            union = Union(name=name)
            namespace.unions[name] = union
            if isinstance(union_def, UnionDef):
                self._set_docs(union, union_def.doc, union_def.deprecated)

        for name, expr in definition.aliases.items():
            self._check_unique(namespace, name)
            self._aliases[(namespace.id, name)] = expr

        for name, iface_def in definition.interfaces.items():
            iface = Interface(name=name)
            namespace.interfaces[name] = iface
            for op_name in iface_def.operations:
                iface.operations[op_name] = Operation(name=op_name)

        for name in definition.operations:
            namespace.operations[name] = Operation(name=name)

        for name, sub_def in definition.namespaces.items():
            sub = Namespace(name=name, parent=namespace)
            namespace.namespaces[name] = sub
            self._declare(sub, sub_def)

    def _build_enum(self, name: str, enum_def: EnumDef | list[str | int | float]) -> Enum:
        enum = Enum(name=name)
        if isinstance(enum_def, list):
            enum_def = EnumDef(members=enum_def)
        self._set_docs(enum, enum_def.doc, enum_def.deprecated)

        if isinstance(enum_def.members, list):
            for value in enum_def.members:
                member_name = str(value)
                enum.members[member_name] = EnumMember(
                    name=member_name, value=None if isinstance(value, str) else value
                )
            return enum

        for member_name, entry in enum_def.members.items():
            if isinstance(entry, EnumMemberDef):
                member = EnumMember(name=member_name, value=entry.value)
                self._set_docs(member, entry.doc, entry.deprecated)
            else:
                member = EnumMember(name=member_name, value=entry)
            enum.members[member_name] = member
        return enum

    def _check_unique(self, namespace: Namespace, name: str) -> None:
        if (
            name in namespace.models
            or name in namespace.enums
            or name in namespace.scalars
            or name in namespace.unions
            or (namespace.id, name) in self._aliases
        ):
            raise SourceGraphError(
                f"Duplicate declaration '{name}' in namespace '{namespace.name}'",
                {"name": name},
            )

    def _set_docs(self, node: TypeNode, doc: str | None, deprecated: str | None) -> None:
        if doc:
            self.metadata.docs[node] = doc
        if deprecated is not None:
            self.metadata.deprecations[node] = deprecated

    # -- Phase 2: references --------------------------------------------------

    def _resolve(self, namespace: Namespace, definition: NamespaceDef) -> None:
        for name, model_def in definition.models.items():
            self._resolve_model(namespace, namespace.models[name], model_def)

        for name, scalar_def in definition.scalars.items():
            self._resolve_scalar(namespace, namespace.scalars[name], scalar_def)

        for name, union_def in definition.unions.items():
            union = namespace.unions[name]
            variants = union_def.variants if isinstance(union_def, UnionDef) else union_def
            self._fill_union(namespace, union, variants, UnionOrigin(kind="alias", alias=name))

        for iface_name, iface_def in definition.interfaces.items():
            iface = namespace.interfaces[iface_name]
            for op_name, op_def in iface_def.operations.items():
                self._resolve_operation(
                    namespace, iface.operations[op_name], op_def, default_kind=iface_def.kind
                )

        for name, op_def in definition.operations.items():
            self._resolve_operation(namespace, namespace.operations[name], op_def)

    def _resolve_model(self, namespace: Namespace, model: Model, model_def: ModelDef) -> None:
        for raw_name, entry in model_def.properties.items():
            prop = self._build_property(namespace, raw_name, entry, model)
            model.properties[prop.name] = prop

        extra_fields: list[Operation] = []
        for op_name, op_def in model_def.operation_fields.items():
            operation = Operation(name=op_name)
            self._resolve_operation(namespace, operation, op_def)
            extra_fields.append(operation)
        if extra_fields:
            self.metadata.operation_fields[model] = extra_fields

    def _resolve_scalar(self, namespace: Namespace, scalar: Scalar, scalar_def: ScalarDef) -> None:
        if scalar_def.extends is None:
            return
        base = self._resolve_expr(namespace, scalar_def.extends, UnionOrigin(kind="alias"))
        if not isinstance(base, Scalar):
            raise SourceGraphError(
                f"Scalar '{scalar.name}' can only extend a scalar, not '{scalar_def.extends}'",
                {"name": scalar.name},
            )
        scalar.base = base

    def _resolve_operation(
        self,
        namespace: Namespace,
        operation: Operation,
        op_def: OperationDef,
        default_kind: str | None = None,
    ) -> None:
        self._set_docs(operation, op_def.doc, op_def.deprecated)
        kind = op_def.kind or default_kind
        if kind is not None:
            self.metadata.operation_kinds[operation] = OperationKind(kind)
        if op_def.encode:
            self.metadata.encodings[operation] = op_def.encode

        for raw_name, entry in op_def.parameters.items():
            param = self._build_property(namespace, raw_name, entry, None)
            operation.parameters[param.name] = param

        if op_def.returns is not None:
            operation.return_type = self._resolve_expr(
                namespace,
                op_def.returns,
                UnionOrigin(kind="return", operation=operation.name),
            )

    def _build_property(
        self,
        namespace: Namespace,
        raw_name: str,
        entry: PropertyDef | TypeExpr,
        model: Model | None,
    ) -> ModelProperty:
        # `name?: T` is shorthand for an optional property.
        name = raw_name.rstrip("?")
        optional = raw_name.endswith("?")
        if not isinstance(entry, PropertyDef):
            entry = PropertyDef(type=entry)
        origin = UnionOrigin(
            kind="property", model=model.name if model else "", property=name
        )
        prop = ModelProperty(
            name=name,
            type=self._resolve_expr(namespace, entry.type, origin),
            optional=optional or entry.optional,
            model=model,
        )
        self._set_docs(prop, entry.doc, entry.deprecated)
        if entry.encode:
            self.metadata.encodings[prop] = entry.encode
        return prop

    def _fill_union(
        self,
        namespace: Namespace,
        union: Union,
        variants: list[TypeExpr] | dict[str, TypeExpr],
        origin: UnionOrigin,
    ) -> None:
        items: list[tuple[str | None, TypeExpr]]
        if isinstance(variants, dict):
            items = [(k, v) for k, v in variants.items()]
        else:
            items = [(None, v) for v in variants]
        for variant_name, expr in items:
            variant_type = self._resolve_expr(namespace, expr, origin)
            self._add_variant(union, variant_name, variant_type)

    def _add_variant(self, union: Union, name: str | None, type_: TypeNode) -> None:
        key = name or type_.name or str(len(union.variants))
        while key in union.variants:
            key += "_"
        union.variants[key] = UnionVariant(name=key, type=type_)

    # -- Phase 3: composition ---------------------------------------------------

    def _compose(self, namespace: Namespace, definition: NamespaceDef) -> None:
        for name, model_def in definition.models.items():
            model = namespace.models[name]
            composed: list[Model] = []
            for ref in model_def.compose:
                iface = self._resolve_expr(namespace, ref, UnionOrigin(kind="alias"))
                if not isinstance(iface, Model):
                    raise SourceGraphError(
                        f"Model '{name}' can only compose models, not '{ref}'", {"name": name}
                    )
                composed.append(iface)
                # Interface fields are part of the implementing type.
                for prop_name, prop in iface.properties.items():
                    if prop_name not in model.properties:
                        model.properties[prop_name] = ModelProperty(
                            name=prop_name, type=prop.type, optional=prop.optional, model=model
                        )
            if composed:
                self.metadata.compositions[model] = composed

    # -- Type expressions -------------------------------------------------------

    def _resolve_expr(self, namespace: Namespace, expr: TypeExpr, origin: UnionOrigin) -> TypeNode:
        if isinstance(expr, dict):
            return self._resolve_mapping(namespace, cast(dict[str, Any], expr), origin)
        parser = _ExprParser(expr, lambda ref: self._lookup(namespace, ref, expr), origin)
        variants = parser.parse()
        return self._to_type(variants, origin)

    def _resolve_mapping(
        self, namespace: Namespace, expr: dict[str, Any], origin: UnionOrigin
    ) -> TypeNode:
        if len(expr) != 1:
            raise SourceGraphError(f"Malformed type expression: {expr!r}")
        key, value = next(iter(expr.items()))
        if key == "array":
            return _array(self._resolve_expr(namespace, value, origin))
        if key == "record":
            return _record(self._resolve_expr(namespace, value, origin))
        if key == "union":
            union = Union(origin=origin)
            self._fill_union(namespace, union, value, origin)
            return union
        raise SourceGraphError(f"Malformed type expression: {expr!r}")

    def _to_type(self, variants: list[TypeNode], origin: UnionOrigin) -> TypeNode:
        if len(variants) == 1:
            return variants[0]
        union = Union(origin=origin)
        for variant_type in variants:
            self._add_variant(union, None, variant_type)
        return union

    def _lookup(self, namespace: Namespace, ref: str, expr: str) -> TypeNode:
        if ref in self.intrinsics:
            return self.intrinsics[ref]

        *path, name = ref.split(".")
        scope: Namespace | None = namespace
        while scope is not None:
            found = self._find(scope, path, name)
            if found is None and path and path[0] == scope.name:
                found = self._find(scope, path[1:], name)
            if found is not None:
                return found
            scope = scope.parent
        if not path and name in self.std.scalars:
            return self.std.scalars[name]
        raise SourceGraphError(
            f"Unknown type '{ref}' in type expression '{expr}'", {"name": ref}
        )

    def _find(self, scope: Namespace, path: list[str], name: str) -> TypeNode | None:
        for part in path:
            if part not in scope.namespaces:
                return None
            scope = scope.namespaces[part]
        for table in (scope.models, scope.enums, scope.scalars, scope.unions):
            if name in table:
                return table[name]
        key = (scope.id, name)
        if key not in self._aliases:
            return None
        # Every reference to an alias shares one resolved type.
        if key not in self._alias_types:
            if key in self._resolving_aliases:
                raise SourceGraphError(f"Alias '{name}' refers to itself", {"name": name})
            self._resolving_aliases.add(key)
            try:
                self._alias_types[key] = self._resolve_expr(
                    scope, self._aliases[key], UnionOrigin(kind="alias", alias=name)
                )
            finally:
                self._resolving_aliases.discard(key)
        return self._alias_types[key]


def _array(element: TypeNode) -> Model:
    return Model(name="Array", indexer=Indexer(key="integer", value=element))


def _record(element: TypeNode) -> Model:
    return Model(name="Record", indexer=Indexer(key="string", value=element))


class _ExprParser:
    """Recursive-descent parser for string type expressions.

    expr    := postfix ("|" postfix)*
    postfix := primary "[]"*
    primary := NAME | "Record" "<" expr ">" | "(" expr ")"
    """

    def __init__(
        self, text: str, lookup: Callable[[str], TypeNode], origin: UnionOrigin
    ):
        self.text = text
        self.lookup = lookup
        self.origin = origin
        self.tokens = self._tokenize(text)
        self.pos = 0

    def _tokenize(self, text: str) -> list[str]:
        tokens: list[str] = []
        pos = 0
        text = text.rstrip()
        while pos < len(text):
            match = _TOKEN_RE.match(text, pos)
            if match is None or match.end() == pos:
                raise SourceGraphError(f"Malformed type expression: '{text}'")
            tokens.append(next(g for g in match.groups() if g))
            pos = match.end()
        if not tokens:
            raise SourceGraphError("Empty type expression")
        return tokens

    def parse(self) -> list[TypeNode]:
        variants = self._union()
        if self.pos != len(self.tokens):
            raise SourceGraphError(f"Malformed type expression: '{self.text}'")
        return variants

    def _peek(self) -> str | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _expect(self, token: str) -> None:
        if self._peek() != token:
            raise SourceGraphError(f"Expected '{token}' in type expression '{self.text}'")
        self.pos += 1

    def _union(self) -> list[TypeNode]:
        variants = [self._postfix()]
        while self._peek() == "|":
            self.pos += 1
            variants.append(self._postfix())
        return variants

    def _postfix(self) -> TypeNode:
        type_ = self._primary()
        while self._peek() == "[]":
            self.pos += 1
            type_ = _array(type_)
        return type_

    def _primary(self) -> TypeNode:
        token = self._peek()
        if token is None:
            raise SourceGraphError(f"Unexpected end of type expression '{self.text}'")
        self.pos += 1
        if token == "(":
            inner = self._union()
            self._expect(")")
            return self._group(inner)
        if token == "Record" and self._peek() == "<":
            self.pos += 1
            inner = self._union()
            self._expect(">")
            return _record(self._group(inner))
        if token in _PUNCTUATION:
            raise SourceGraphError(f"Unexpected '{token}' in type expression '{self.text}'")
        return self.lookup(token)

    def _group(self, variants: list[TypeNode]) -> TypeNode:
        if len(variants) == 1:
            return variants[0]
        union = Union(origin=self.origin)
        for variant_type in variants:
            key = variant_type.name or str(len(union.variants))
            while key in union.variants:
                key += "_"
            union.variants[key] = UnionVariant(name=key, type=variant_type)
        return union
