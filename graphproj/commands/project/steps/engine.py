"""Memoized, cycle-safe mutation engine.

Every source type is projected at most once per ``(type, context)`` key. The
node for a key is cached as an empty *shell* before its members are mutated,
so a type that (directly or through others) refers back to itself receives
the shell instead of recursing forever. Callbacks registered with
``when_mutated`` run in registration order once the node is populated.
"""

from __future__ import annotations

from collections.abc import Callable
import enum
from typing import TYPE_CHECKING

from graphproj.commands.project.diagnostics import DiagnosticCollector, NameCollisionError
from graphproj.commands.project.options import ProjectionOptions
from graphproj.commands.project.steps.types import (
    Model,
    MutationContext,
    Namespace,
    TypeNode,
)
from graphproj.commands.project.steps.usage import UsageResolver

if TYPE_CHECKING:
    from graphproj.commands.project.metadata import MetadataProvider
    from graphproj.commands.project.steps.mutators import Mutator

MutationCallback = Callable[[TypeNode], None]


class NodeState(enum.Enum):
    CREATED = "created"
    POPULATING = "populating"
    FINALIZED = "finalized"


class MutationNode:
    """Wraps a source type and its (possibly still incomplete) projection."""

    def __init__(self, source: TypeNode, context: MutationContext, mutated_type: TypeNode):
        self.source = source
        self.context = context
        self.mutated_type = mutated_type
        self.state = NodeState.CREATED
        self._callbacks: list[MutationCallback] = []

    def __repr__(self) -> str:
        return (
            f"MutationNode({self.source.kind} {self.source.name!r}, "
            f"{self.context.value}, {self.state.value})"
        )

    @property
    def is_mutated(self) -> bool:
        return self.state is NodeState.FINALIZED

    def when_mutated(self, callback: MutationCallback) -> None:
        """Run *callback* once the node is finalized (immediately if it already is)."""
        if self.state is NodeState.FINALIZED:
            callback(self.mutated_type)
            return
        self._callbacks.append(callback)

    def mutate(self, populate: MutationCallback | None = None) -> TypeNode:
        """Populate the shell once; later calls are no-ops."""
        if self.state is not NodeState.CREATED:
            return self.mutated_type
        self.state = NodeState.POPULATING
        if populate is not None:
            populate(self.mutated_type)
        # Callbacks may register further callbacks while draining.
        while self._callbacks:
            self._callbacks.pop(0)(self.mutated_type)
        self.state = NodeState.FINALIZED
        return self.mutated_type


class NameRegistry:
    """GraphQL names declared so far in one schema, with their owners."""

    def __init__(self) -> None:
        self._owners: dict[str, object] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._owners

    def claim(self, name: str, owner: object) -> None:
        """Declare *name* for *owner*; a different owner already holding it is fatal."""
        existing = self._owners.setdefault(name, owner)
        if existing != owner:
            raise NameCollisionError(name)


class ProjectionRun:
    """State owned by the projection of exactly one schema.

    Holds the mutation cache, the usage resolver's memo table, the name
    registry and diagnostics. A new run is created for every schema so no
    projected identity leaks between schemas.
    """

    def __init__(
        self,
        namespace: Namespace,
        metadata: MetadataProvider,
        options: ProjectionOptions | None = None,
        diagnostics: DiagnosticCollector | None = None,
    ):
        self.namespace = namespace
        self.metadata = metadata
        self.options = options or ProjectionOptions()
        self.diagnostics = diagnostics or DiagnosticCollector()
        self.usage = UsageResolver(metadata)
        self.cache: dict[tuple[int, MutationContext], MutationNode] = {}
        self.names = NameRegistry()
        self.wrapper_models: list[Model] = []
        self._originals: dict[TypeNode, TypeNode] = {}
        self._union_names: dict[TypeNode, str] = {}
        self._unknown_unions = 0

    def record_original(self, mutated: TypeNode, original: TypeNode) -> None:
        self._originals[mutated] = original

    def original_of(self, mutated: TypeNode) -> TypeNode:
        return self._originals.get(mutated, mutated.original)

    def union_name(self, union: TypeNode) -> str:
        """GraphQL name of a union, memoized so diagnostics are reported once.

        Unrecognized unions are numbered from the second one on:
        ``UnknownUnion``, ``UnknownUnion2``, ...
        """
        from graphproj.commands.project.steps.unions import UNKNOWN_UNION_NAME, derive_union_name

        original = union.original
        if original not in self._union_names:
            placeholder = UNKNOWN_UNION_NAME
            if self._unknown_unions:
                placeholder += str(self._unknown_unions + 1)
            name = derive_union_name(original, self.diagnostics, placeholder)
            if name == placeholder and not original.name:
                self._unknown_unions += 1
            self._union_names[original] = name
        return self._union_names[original]


class MutationEngine:
    """Dispatches mutation requests to per-kind mutators and caches the results."""

    def __init__(self, run: ProjectionRun, mutators: dict[str, Mutator] | None = None):
        from graphproj.commands.project.steps.mutators import DEFAULT_MUTATOR, MUTATORS

        self.run = run
        self.mutators = mutators if mutators is not None else MUTATORS
        self._default = DEFAULT_MUTATOR

    def mutator_for(self, source: TypeNode) -> Mutator:
        return self.mutators.get(source.kind, self._default)

    def mutate(
        self, source: TypeNode, context: MutationContext = MutationContext.NONE
    ) -> TypeNode:
        """Return the projection of *source* under *context*, creating it once."""
        return self.mutation_node(source, context).mutated_type

    def mutation_node(
        self, source: TypeNode, context: MutationContext = MutationContext.NONE
    ) -> MutationNode:
        mutator = self.mutator_for(source)
        key_context = mutator.context_key(self, source, context)
        key = (source.id, key_context)
        node = self.run.cache.get(key)
        if node is not None:
            return node

        # Cache the shell before populating it; recursive requests get the shell.
        node = MutationNode(source, key_context, mutator.create_shell(source))
        self.run.cache[key] = node

        def populate(_: TypeNode) -> None:
            mutator.populate(self, node)
            owner = mutator.name_owner(node)
            if owner is not None:
                node.when_mutated(lambda t: self.run.names.claim(t.name, owner))

        node.mutate(populate)
        return node

    def get_node(
        self, source: TypeNode, context: MutationContext = MutationContext.NONE
    ) -> MutationNode | None:
        """Cached node for *source* under *context*, without creating one."""
        key_context = self.mutator_for(source).context_key(self, source, context)
        return self.run.cache.get((source.id, key_context))

    def nodes(self, kind: str | None = None) -> list[MutationNode]:
        """Cached nodes in creation order, optionally restricted to one kind."""
        return [n for n in self.run.cache.values() if kind is None or n.source.kind == kind]
