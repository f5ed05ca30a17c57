"""Input/output reachability of named types.

Every operation of the schema namespace (nested namespaces and interfaces
included) is walked. Types reachable from a parameter are tagged INPUT; types
reachable from a return type are tagged OUTPUT. Error-model variants of a
union return type are ignored, since errors are not part of the GraphQL
result type.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from graphproj.commands.project.steps.base import MechanicalStep
from graphproj.commands.project.steps.types import (
    Enum,
    Model,
    Namespace,
    Operation,
    Scalar,
    TypeNode,
    Union,
    UsageFlags,
)

if TYPE_CHECKING:
    from graphproj.commands.project.metadata import MetadataProvider


class UsageResolver:
    """Computes UsageFlags for every named type of one namespace tree.

    The memo tables belong to a single projection run.
    """

    def __init__(self, metadata: MetadataProvider):
        self.metadata = metadata
        self._usage: dict[TypeNode, UsageFlags] = {}
        self._declared: set[TypeNode] = set()
        self._walked_operations: set[TypeNode] = set()
        self.omit_unreachable = False

    def resolve(self, namespace: Namespace, omit_unreachable: bool = False) -> UsageResolver:
        self._usage.clear()
        self._declared.clear()
        self._walked_operations.clear()
        self.omit_unreachable = omit_unreachable

        if not omit_unreachable:
            for ns in namespace.walk():
                for declared in [
                    *ns.models.values(),
                    *ns.enums.values(),
                    *ns.scalars.values(),
                    *ns.unions.values(),
                ]:
                    self._declared.add(declared)

        for operation in namespace.all_operations():
            self._walk_operation(operation)
        return self

    def get_usage(self, type_: TypeNode) -> UsageFlags:
        return self._usage.get(type_.original, UsageFlags.NONE)

    def is_unreachable(self, type_: TypeNode) -> bool:
        """True when no operation reaches the type and it is not kept by declaration."""
        original = type_.original
        if self.get_usage(original) != UsageFlags.NONE:
            return False
        return original not in self._declared

    def is_split(self, type_: TypeNode) -> bool:
        usage = self.get_usage(type_)
        return UsageFlags.INPUT in usage and UsageFlags.OUTPUT in usage

    def used_types(self) -> dict[TypeNode, UsageFlags]:
        return dict(self._usage)

    def _walk_operation(self, operation: Operation) -> None:
        if operation in self._walked_operations:
            return
        self._walked_operations.add(operation)

        for parameter in operation.parameters.values():
            if parameter.type is not None:
                self._mark(parameter.type, UsageFlags.INPUT, set())

        return_type = operation.return_type
        if return_type is None:
            return
        if isinstance(return_type, Union):
            for variant in return_type.variants.values():
                if variant.type is None or self.metadata.is_error_model(variant.type):
                    continue
                self._mark(variant.type, UsageFlags.OUTPUT, set())
        else:
            self._mark(return_type, UsageFlags.OUTPUT, set())

    def _mark(self, type_: TypeNode, flag: UsageFlags, visited: set[TypeNode]) -> None:
        if type_ in visited:
            return
        visited.add(type_)

        if isinstance(type_, (Model, Enum, Scalar, Union)):
            self._usage[type_] = self._usage.get(type_, UsageFlags.NONE) | flag

        if isinstance(type_, Model):
            if type_.indexer is not None:
                self._mark(type_.indexer.value, flag, visited)
            for prop in type_.properties.values():
                if prop.type is not None:
                    self._mark(prop.type, flag, visited)
            if flag == UsageFlags.OUTPUT:
                for operation in self.metadata.get_extra_operation_fields(type_):
                    self._walk_operation(operation)
        elif isinstance(type_, Union):
            for variant in type_.variants.values():
                if variant.type is not None:
                    self._mark(variant.type, flag, visited)
        elif isinstance(type_, Scalar) and type_.base is not None:
            self._mark(type_.base, flag, visited)


class ResolveUsageStep(MechanicalStep[Namespace, UsageResolver]):
    """Compute usage flags for a schema namespace."""

    name = "resolve_usage"

    def __init__(self, resolver: UsageResolver, omit_unreachable: bool = False):
        self.resolver = resolver
        self.omit_unreachable = omit_unreachable

    def _execute(self, input: Namespace) -> UsageResolver:
        return self.resolver.resolve(input, self.omit_unreachable)
