"""Decorator metadata lookups.

Every lookup is keyed by the *original* (pre-mutation) node, since mutated
copies are created per projection run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from graphproj.commands.project.steps.types import (
    Model,
    Namespace,
    Operation,
    OperationKind,
    Scalar,
    TypeNode,
)


class MetadataProvider(Protocol):
    def is_interface_marked(self, model: TypeNode) -> bool: ...

    def is_error_model(self, model: TypeNode) -> bool: ...

    def get_operation_kind(self, operation: TypeNode) -> OperationKind | None: ...

    def get_composed_interfaces(self, model: TypeNode) -> list[Model]: ...

    def get_extra_operation_fields(self, model: TypeNode) -> list[Operation]: ...

    def get_doc_comment(self, type_: TypeNode) -> str | None: ...

    def get_deprecation(self, type_: TypeNode) -> str | None: ...

    def get_scalar_specification_url(self, scalar: TypeNode) -> str | None: ...

    def get_encoding_hint(self, target: TypeNode) -> str | None: ...

    def get_schema_name(self, namespace: Namespace) -> str | None: ...


@dataclass
class StaticMetadata:
    """Metadata provider backed by plain dictionaries, filled by the loader."""

    interfaces: set[TypeNode] = field(default_factory=lambda: set[TypeNode]())
    error_models: set[TypeNode] = field(default_factory=lambda: set[TypeNode]())
    operation_kinds: dict[TypeNode, OperationKind] = field(
        default_factory=lambda: dict[TypeNode, OperationKind]()
    )
    compositions: dict[TypeNode, list[Model]] = field(
        default_factory=lambda: dict[TypeNode, list[Model]]()
    )
    operation_fields: dict[TypeNode, list[Operation]] = field(
        default_factory=lambda: dict[TypeNode, list[Operation]]()
    )
    docs: dict[TypeNode, str] = field(default_factory=lambda: dict[TypeNode, str]())
    deprecations: dict[TypeNode, str] = field(default_factory=lambda: dict[TypeNode, str]())
    specification_urls: dict[TypeNode, str] = field(default_factory=lambda: dict[TypeNode, str]())
    encodings: dict[TypeNode, str] = field(default_factory=lambda: dict[TypeNode, str]())
    schemas: dict[TypeNode, str] = field(default_factory=lambda: dict[TypeNode, str]())

    def is_interface_marked(self, model: TypeNode) -> bool:
        return model.original in self.interfaces

    def is_error_model(self, model: TypeNode) -> bool:
        return model.original in self.error_models

    def get_operation_kind(self, operation: TypeNode) -> OperationKind | None:
        return self.operation_kinds.get(operation.original)

    def get_composed_interfaces(self, model: TypeNode) -> list[Model]:
        return self.compositions.get(model.original, [])

    def get_extra_operation_fields(self, model: TypeNode) -> list[Operation]:
        return self.operation_fields.get(model.original, [])

    def get_doc_comment(self, type_: TypeNode) -> str | None:
        return self.docs.get(type_.original)

    def get_deprecation(self, type_: TypeNode) -> str | None:
        return self.deprecations.get(type_.original)

    def get_scalar_specification_url(self, scalar: TypeNode) -> str | None:
        if not isinstance(scalar.original, Scalar):
            return None
        return self.specification_urls.get(scalar.original)

    def get_encoding_hint(self, target: TypeNode) -> str | None:
        return self.encodings.get(target.original)

    def get_schema_name(self, namespace: Namespace) -> str | None:
        return self.schemas.get(namespace)
