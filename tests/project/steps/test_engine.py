"""Tests for the memoized mutation engine."""

import pytest

from builders import add_props, array, make_engine, metadata_for, model, namespace, operation, std
from graphproj.commands.project.diagnostics import NameCollisionError
from graphproj.commands.project.steps.engine import MutationNode, NameRegistry, NodeState
from graphproj.commands.project.steps.types import Model, MutationContext


class TestMutationNode:
    def test_populate_then_callbacks_in_order(self):
        source = model("Book")
        node = MutationNode(source, MutationContext.NONE, Model(name="Book", source=source))
        calls: list[str] = []
        states: list[NodeState] = []

        node.when_mutated(lambda t: calls.append("first"))
        node.when_mutated(lambda t: calls.append("second"))

        def populate(_):
            states.append(node.state)
            calls.append("populate")

        node.mutate(populate)

        assert calls == ["populate", "first", "second"]
        assert states == [NodeState.POPULATING]
        assert node.state is NodeState.FINALIZED
        assert node.is_mutated

    def test_mutate_runs_once(self):
        source = model("Book")
        node = MutationNode(source, MutationContext.NONE, Model(name="Book", source=source))
        calls: list[str] = []
        first = node.mutate(lambda t: calls.append("populate"))
        second = node.mutate(lambda t: calls.append("again"))
        assert calls == ["populate"]
        assert first is second

    def test_late_callback_runs_immediately(self):
        source = model("Book")
        node = MutationNode(source, MutationContext.NONE, Model(name="Book", source=source))
        node.mutate()
        seen: list[str] = []
        node.when_mutated(lambda t: seen.append(t.name))
        assert seen == ["Book"]

    def test_callback_registered_while_draining_runs(self):
        source = model("Book")
        node = MutationNode(source, MutationContext.NONE, Model(name="Book", source=source))
        calls: list[str] = []

        def outer(_):
            calls.append("outer")
            node.when_mutated(lambda t: calls.append("inner"))

        node.when_mutated(outer)
        node.mutate()
        assert calls == ["outer", "inner"]


class TestNameRegistry:
    def test_same_owner_may_claim_twice(self):
        names = NameRegistry()
        names.claim("Book", "owner")
        names.claim("Book", "owner")
        assert "Book" in names

    def test_different_owner_collides(self):
        names = NameRegistry()
        names.claim("Book", "a")
        with pytest.raises(NameCollisionError, match="'Book'"):
            names.claim("Book", "b")


class TestMemoization:
    def test_same_request_same_projection(self, string, int32):
        book = model("Book", title=string, pages=int32)
        engine = make_engine(namespace(models=[book]))

        first = engine.mutate(book)
        assert engine.mutate(book) is first
        # An unused model projects as output, so both requests share one node.
        assert engine.mutate(book, MutationContext.OUTPUT) is first
        assert len(engine.nodes(Model.kind)) == 1

    def test_members_are_projected(self, string, int32):
        book = model("Book", title=string, pages=(int32, True))
        engine = make_engine(namespace(models=[book]))

        mutated = engine.mutate(book)
        assert isinstance(mutated, Model)
        assert mutated is not book
        assert mutated.original is book
        assert list(mutated.properties) == ["title", "pages"]
        pages = mutated.properties["pages"]
        assert pages.optional
        assert pages.model is mutated
        assert pages.type is not None and pages.type.name == "Int"
        assert engine.run.original_of(mutated) is book

    def test_source_graph_untouched(self, string):
        book = model("Book-Item", title=string)
        engine = make_engine(namespace(models=[book]))
        engine.mutate(book)
        assert book.name == "Book-Item"
        assert book.properties["title"].type is string

    def test_get_node_does_not_create(self, string):
        book = model("Book", title=string)
        engine = make_engine(namespace(models=[book]))
        assert engine.get_node(book) is None
        engine.mutate(book)
        node = engine.get_node(book)
        assert node is not None and node.is_mutated


class TestCycles:
    def test_self_reference(self):
        node = model("Node")
        add_props(node, next=(node, True))
        engine = make_engine(namespace(models=[node]))

        mutated = engine.mutate(node)
        assert isinstance(mutated, Model)
        assert mutated.properties["next"].type is mutated

    def test_self_reference_through_array(self):
        node = model("TreeNode")
        add_props(node, children=array(node))
        engine = make_engine(namespace(models=[node]))

        mutated = engine.mutate(node)
        children = mutated.properties["children"].type
        assert isinstance(children, Model) and children.indexer is not None
        assert children.indexer.value is mutated

    def test_mutual_reference(self):
        a = model("A")
        b = model("B")
        add_props(a, b=b)
        add_props(b, a=a)
        engine = make_engine(namespace(models=[a, b]))

        mutated_a = engine.mutate(a)
        mutated_b = mutated_a.properties["b"].type
        assert isinstance(mutated_b, Model)
        assert mutated_b.properties["a"].type is mutated_a
        assert engine.mutate(b) is mutated_b
        assert len(engine.nodes(Model.kind)) == 2


class TestSplitModels:
    def _library(self, string):
        author = model("Author", name=string)
        book = model("Book", title=string, author=author)
        get_book = operation("getBook", returns=book, id=string)
        create_book = operation("createBook", returns=book, book=book)
        ns = namespace(models=[author, book], operations=[get_book, create_book])
        engine = make_engine(ns, metadata_for(queries=[get_book], mutations=[create_book]))
        return engine, author, book

    def test_input_and_output_are_distinct(self, string):
        engine, _, book = self._library(string)
        output = engine.mutate(book, MutationContext.OUTPUT)
        input_ = engine.mutate(book, MutationContext.INPUT)

        assert output is not input_
        assert output.name == "Book"
        assert input_.name == "BookInput"
        # A contextless request resolves to the output projection.
        assert engine.mutate(book) is output

    def test_nested_models_follow_context(self, string):
        engine, author, book = self._library(string)
        output = engine.mutate(book, MutationContext.OUTPUT)
        input_ = engine.mutate(book, MutationContext.INPUT)

        assert output.properties["author"].type is engine.mutate(author, MutationContext.OUTPUT)
        assert input_.properties["author"].type is engine.mutate(author, MutationContext.INPUT)
        assert input_.properties["author"].type.name == "AuthorInput"

    def test_projections_share_no_members(self, string):
        engine, _, book = self._library(string)
        output = engine.mutate(book, MutationContext.OUTPUT)
        input_ = engine.mutate(book, MutationContext.INPUT)

        assert output.properties["title"] is not input_.properties["title"]
        input_.properties.pop("title")
        input_.name = "Changed"
        assert "title" in output.properties
        assert output.name == "Book"

    def test_input_only_model_keeps_its_name(self, string):
        book = model("Book", title=string)
        create_book = operation("createBook", book=book)
        engine = make_engine(namespace(models=[book], operations=[create_book]))

        mutated = engine.mutate(book)
        assert mutated.name == "Book"
        assert engine.get_node(book).context is MutationContext.INPUT


class TestNameCollisions:
    def test_sanitized_names_collide(self, string):
        first = model("Foo-Bar", a=string)
        second = model("Foo_Bar", b=string)
        engine = make_engine(namespace(models=[first, second]))

        assert engine.mutate(first).name == "Foo_Bar"
        with pytest.raises(NameCollisionError, match="Foo_Bar"):
            engine.mutate(second)

    def test_input_suffix_collides_with_declared_model(self, string):
        book = model("Book", title=string)
        book_input = model("BookInput", title=string)
        get_book = operation("getBook", returns=book)
        add_book = operation("addBook", book=book)
        engine = make_engine(namespace(models=[book, book_input], operations=[get_book, add_book]))

        engine.mutate(book, MutationContext.INPUT)
        with pytest.raises(NameCollisionError, match="BookInput"):
            engine.mutate(book_input)

    def test_property_names_collide(self, string):
        clash = model("Clash", **{"a-b": string, "a_b": string})
        engine = make_engine(namespace(models=[clash]))
        with pytest.raises(NameCollisionError, match="model 'Clash'"):
            engine.mutate(clash)

    def test_standard_scalars_sharing_a_name_do_not_collide(self):
        decimal = std("decimal")
        decimal128 = std("decimal128")
        engine = make_engine(namespace(scalars=[decimal, decimal128]))

        assert engine.mutate(decimal).name == "BigDecimal"
        assert engine.mutate(decimal128).name == "BigDecimal"
        assert "BigDecimal" in engine.run.names
