"""Tests for loading source graph documents into a type graph."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from graphproj.commands.project.diagnostics import SourceGraphError
from graphproj.commands.project.loader import SourceProgram, build_program, load_program
from graphproj.commands.project.steps.types import (
    Intrinsic,
    Model,
    OperationKind,
    Scalar,
    Union,
    is_nullable_union,
    nullable_union_type,
)
from graphproj.formats.source_graph import SourceGraphDocument


def build(namespace: dict[str, Any], name: str = "Library", **extra: Any) -> SourceProgram:
    document = SourceGraphDocument.model_validate({"name": name, "namespace": namespace, **extra})
    return build_program(document)


class TestModels:
    def test_properties(self, library_document) -> None:
        program = build_program(SourceGraphDocument.model_validate(library_document))
        book = program.root.models["Book"]

        assert program.name == "Library"
        assert list(book.properties) == ["title", "pages", "tags"]
        assert not book.properties["title"].optional
        assert book.properties["pages"].optional
        assert book.properties["pages"].model is book
        assert program.metadata.docs[book] == "A book in the library"

        tags = book.properties["tags"].type
        assert isinstance(tags, Model) and tags.is_array
        assert isinstance(tags.indexer.value, Scalar)
        assert tags.indexer.value.name == "string"

    def test_full_property_definition(self) -> None:
        program = build(
            {
                "models": {
                    "Book": {
                        "properties": {
                            "cover": {
                                "type": "bytes",
                                "optional": True,
                                "encode": "base64url",
                                "doc": "Cover image",
                                "deprecated": "Use coverUrl",
                            }
                        }
                    }
                }
            }
        )
        cover = program.root.models["Book"].properties["cover"]
        assert cover.optional
        assert program.metadata.encodings[cover] == "base64url"
        assert program.metadata.docs[cover] == "Cover image"
        assert program.metadata.deprecations[cover] == "Use coverUrl"

    def test_forward_and_cyclic_references(self) -> None:
        program = build(
            {
                "models": {
                    "Author": {"properties": {"books": "Book[]"}},
                    "Book": {"properties": {"author": "Author", "sequel?": "Book"}},
                }
            }
        )
        author = program.root.models["Author"]
        book = program.root.models["Book"]
        assert author.properties["books"].type.indexer.value is book
        assert book.properties["author"].type is author
        assert book.properties["sequel"].type is book

    def test_markers_and_composition(self) -> None:
        program = build(
            {
                "models": {
                    "Named": {"interface": True, "properties": {"name": "string"}},
                    "Person": {"compose": ["Named"], "properties": {"age": "int32"}},
                    "NotFound": {"error": True},
                }
            }
        )
        named = program.root.models["Named"]
        person = program.root.models["Person"]
        metadata = program.metadata

        assert named in metadata.interfaces
        assert program.root.models["NotFound"] in metadata.error_models
        assert metadata.compositions[person] == [named]
        assert list(person.properties) == ["age", "name"]
        assert person.properties["name"].model is person

    def test_operation_fields(self) -> None:
        program = build(
            {
                "models": {
                    "Post": {"properties": {"title": "string"}},
                    "User": {
                        "properties": {"name": "string"},
                        "operation-fields": {
                            "posts": {"parameters": {"limit?": "int32"}, "returns": "Post[]"}
                        },
                    },
                }
            }
        )
        user = program.root.models["User"]
        [posts] = program.metadata.operation_fields[user]
        assert posts.name == "posts"
        assert posts.parameters["limit"].optional
        assert posts.return_type.indexer.value is program.root.models["Post"]


class TestTypeExpressions:
    def _property_type(self, expr: Any, **declarations: Any):
        namespace = {
            "models": {
                "Cat": {},
                "Dog": {},
                "Owner": {"properties": {"pet": expr}},
            },
            **declarations,
        }
        program = build(namespace)
        return program, program.root.models["Owner"].properties["pet"].type

    def test_nullable(self) -> None:
        program, type_ = self._property_type("Cat | null")
        assert is_nullable_union(type_)
        assert nullable_union_type(type_) is program.root.models["Cat"]

    def test_anonymous_union_origin(self) -> None:
        program, type_ = self._property_type("Cat | Dog")
        assert isinstance(type_, Union)
        assert type_.name == ""
        assert list(type_.variants) == ["Cat", "Dog"]
        assert type_.origin.kind == "property"
        assert type_.origin.model == "Owner"
        assert type_.origin.property == "pet"

    def test_grouped_array(self) -> None:
        _, type_ = self._property_type("(Cat | Dog)[]")
        assert isinstance(type_, Model) and type_.is_array
        assert isinstance(type_.indexer.value, Union)

    def test_record(self) -> None:
        _, type_ = self._property_type("Record<int32>")
        assert isinstance(type_, Model) and type_.is_record
        assert type_.indexer.value.name == "int32"

    @pytest.mark.parametrize(
        ("expr", "check"),
        [
            ({"array": "Cat"}, lambda t: isinstance(t, Model) and t.is_array),
            ({"record": "string"}, lambda t: isinstance(t, Model) and t.is_record),
            ({"union": ["Cat", "Dog"]}, lambda t: isinstance(t, Union) and len(t.variants) == 2),
        ],
    )
    def test_mapping_forms(self, expr, check) -> None:
        _, type_ = self._property_type(expr)
        assert check(type_)

    def test_intrinsics(self) -> None:
        _, type_ = self._property_type("unknown")
        assert isinstance(type_, Intrinsic) and type_.name == "unknown"

    def test_standard_scalar_chain(self) -> None:
        _, type_ = self._property_type("int32")
        assert isinstance(type_, Scalar) and type_.std
        assert type_.base.name == "int64"
        assert type_.base.base.name == "integer"

    def test_shared_alias(self) -> None:
        program = build(
            {
                "models": {
                    "Book": {},
                    "Shelf": {"properties": {"first": "MaybeBook", "last": "MaybeBook"}},
                },
                "aliases": {"MaybeBook": "Book | null"},
            }
        )
        shelf = program.root.models["Shelf"]
        first = shelf.properties["first"].type
        assert first is shelf.properties["last"].type
        assert is_nullable_union(first)
        assert first.origin.alias == "MaybeBook"

    def test_self_referencing_alias(self) -> None:
        with pytest.raises(SourceGraphError, match="refers to itself"):
            build(
                {
                    "models": {"Shelf": {"properties": {"loop": "Loop"}}},
                    "aliases": {"Loop": "Loop[]"},
                }
            )

    def test_unknown_type(self) -> None:
        with pytest.raises(SourceGraphError, match="Unknown type 'Writer'"):
            self._property_type("Writer")

    @pytest.mark.parametrize("expr", ["Cat |", "Cat[", "(Cat | Dog", "Record<Cat"])
    def test_malformed(self, expr: str) -> None:
        with pytest.raises(SourceGraphError):
            self._property_type(expr)

    @pytest.mark.parametrize("expr", ["Cat | >", "Cat | )", "Cat | []", "|"])
    def test_misplaced_punctuation(self, expr: str) -> None:
        with pytest.raises(SourceGraphError, match="Unexpected"):
            self._property_type(expr)


class TestDeclarations:
    def test_named_unions(self) -> None:
        program = build(
            {
                "models": {"Cat": {}, "Dog": {}},
                "unions": {
                    "Pet": {"variants": {"cat": "Cat", "dog": "Dog"}, "doc": "A pet"},
                    "Animal": ["Cat", "Dog"],
                },
            }
        )
        pet = program.root.unions["Pet"]
        assert list(pet.variants) == ["cat", "dog"]
        assert pet.variants["cat"].type is program.root.models["Cat"]
        assert program.metadata.docs[pet] == "A pet"
        assert list(program.root.unions["Animal"].variants) == ["Cat", "Dog"]

    def test_enums(self) -> None:
        program = build(
            {
                "enums": {
                    "Color": ["red", "green"],
                    "Level": [0, 0.25, -1],
                    "Size": {
                        "members": {
                            "small": {"value": 1, "doc": "Small"},
                            "large": 2,
                            "plain": None,
                        }
                    },
                }
            }
        )
        enums = program.root.enums
        assert list(enums["Color"].members) == ["red", "green"]
        assert enums["Color"].members["red"].value is None
        assert [m.value for m in enums["Level"].members.values()] == [0, 0.25, -1]
        size = enums["Size"].members
        assert size["small"].value == 1
        assert program.metadata.docs[size["small"]] == "Small"
        assert size["large"].value == 2
        assert size["plain"].value is None

    def test_custom_scalar(self) -> None:
        program = build(
            {
                "scalars": {
                    "Email": {
                        "extends": "string",
                        "specified-by": "https://example.com/email",
                        "doc": "An email address",
                    }
                }
            }
        )
        email = program.root.scalars["Email"]
        assert not email.std
        assert email.base.name == "string" and email.base.std
        assert program.metadata.specification_urls[email] == "https://example.com/email"
        assert program.metadata.docs[email] == "An email address"

    def test_scalar_must_extend_scalar(self) -> None:
        with pytest.raises(SourceGraphError, match="can only extend a scalar"):
            build({"models": {"Book": {}}, "scalars": {"Bad": {"extends": "Book"}}})

    def test_duplicate_declaration(self) -> None:
        with pytest.raises(SourceGraphError, match="Duplicate declaration 'Book'"):
            build({"models": {"Book": {}}, "enums": {"Book": ["a"]}})

    def test_operations(self, library_document) -> None:
        program = build_program(SourceGraphDocument.model_validate(library_document))
        operations = program.root.operations
        kinds = program.metadata.operation_kinds

        assert kinds[operations["getBook"]] is OperationKind.QUERY
        assert kinds[operations["addBook"]] is OperationKind.MUTATION
        get_book = operations["getBook"]
        assert get_book.parameters["id"].type.name == "string"
        assert get_book.return_type.origin.operation == "getBook"

    def test_interface_default_kind(self) -> None:
        program = build(
            {
                "models": {"Book": {}},
                "interfaces": {
                    "Books": {
                        "kind": "query",
                        "operations": {
                            "listBooks": {"returns": "Book[]"},
                            "addBook": {"kind": "mutation", "parameters": {"book": "Book"}},
                        },
                    }
                },
            }
        )
        books = program.root.interfaces["Books"]
        kinds = program.metadata.operation_kinds
        assert kinds[books.operations["listBooks"]] is OperationKind.QUERY
        assert kinds[books.operations["addBook"]] is OperationKind.MUTATION
        assert books.operations["listBooks"] in program.root.all_operations()


class TestNamespaces:
    def test_qualified_references(self) -> None:
        program = build(
            {
                "models": {"Shared": {}},
                "namespaces": {
                    "Catalog": {"models": {"Book": {}}},
                    "Store": {
                        "models": {
                            "Order": {
                                "properties": {
                                    "book": "Catalog.Book",
                                    "again": "Library.Catalog.Book",
                                    "shared": "Shared",
                                }
                            }
                        }
                    },
                },
            }
        )
        book = program.root.namespaces["Catalog"].models["Book"]
        store = program.root.namespaces["Store"]
        order = store.models["Order"]

        assert store.parent is program.root
        assert order.properties["book"].type is book
        assert order.properties["again"].type is book
        assert order.properties["shared"].type is program.root.models["Shared"]

    def test_schema_marking(self) -> None:
        program = build(
            {
                "namespaces": {
                    "Public": {"schema": True},
                    "Admin": {"schema": "admin-api"},
                    "Internal": {},
                }
            }
        )
        namespaces = program.root.namespaces
        schemas = program.metadata.schemas
        assert schemas[namespaces["Public"]] == "Public"
        assert schemas[namespaces["Admin"]] == "admin-api"
        assert namespaces["Internal"] not in schemas


class TestLoadProgram:
    def test_yaml(self, library_document, write_source) -> None:
        program = load_program(write_source(library_document))
        assert program.name == "Library"
        assert "Book" in program.root.models

    def test_json_name_defaults_to_file_stem(self, library_document, tmp_path: Path) -> None:
        del library_document["name"]
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps(library_document))
        program = load_program(path)
        assert program.name == "catalog"

    def test_options_section(self, library_document, write_source) -> None:
        library_document["options"] = {"omit-unreachable-types": True}
        program = load_program(write_source(library_document))
        assert program.options.omit_unreachable_types

    def test_top_level_must_be_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(SourceGraphError, match="expected a mapping"):
            load_program(path)
