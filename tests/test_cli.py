"""Tests for the CLI commands."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from click.testing import CliRunner
import yaml

from graphproj.main import cli


def _invoke(*args: str):
    runner = CliRunner()
    return runner.invoke(cli, list(args))


class TestProjectCommand:
    def test_project_basic(self, library_document, write_source, tmp_path: Path) -> None:
        source = write_source(library_document)
        out_dir = tmp_path / "out"

        result = _invoke("project", str(source), "-o", str(out_dir))

        assert result.exit_code == 0, result.output
        assert "GraphQL schema written" in result.output
        sdl = (out_dir / "schema.graphql").read_text()
        assert '"""A book in the library"""\ntype Book {' in sdl
        assert "  pages: Int\n" in sdl
        assert "  tags: [String!]!\n" in sdl
        assert "input BookInput {" in sdl
        assert "getBook(id: String!): Book\n" in sdl
        assert "addBook(book: BookInput!): Book!\n" in sdl
        assert sdl.endswith("}\n\n")

    def test_output_file_pattern(self, library_document, write_source, tmp_path: Path) -> None:
        source = write_source(library_document)
        out_dir = tmp_path / "out"

        result = _invoke(
            "project", str(source), "-o", str(out_dir), "--output-file", "api-{schema-name}.graphql"
        )

        assert result.exit_code == 0, result.output
        assert (out_dir / "api-schema.graphql").exists()

    def test_one_file_per_schema(self, write_source, tmp_path: Path) -> None:
        document: dict[str, Any] = {
            "name": "Library",
            "namespace": {
                "models": {"Book": {"properties": {"title": "string"}}},
                "namespaces": {
                    "Public": {
                        "schema": "public",
                        "operations": {"getBook": {"kind": "query", "returns": "Book"}},
                    },
                    "Admin": {
                        "schema": "admin",
                        "operations": {
                            "importBook": {"kind": "mutation", "parameters": {"book": "Book"}}
                        },
                    },
                },
            },
        }
        source = write_source(document)
        out_dir = tmp_path / "out"

        result = _invoke("project", str(source), "-o", str(out_dir))

        assert result.exit_code == 0, result.output
        assert "type Book {" in (out_dir / "public.graphql").read_text()
        assert "input Book {" in (out_dir / "admin.graphql").read_text()

    def test_config_file(self, library_document, write_source, tmp_path: Path) -> None:
        source = write_source(library_document)
        config = tmp_path / "graphproj.yaml"
        config.write_text(yaml.safe_dump({"options": {"output-file": "from-config.graphql"}}))
        out_dir = tmp_path / "out"

        result = _invoke("project", str(source), "-o", str(out_dir), "--config", str(config))

        assert result.exit_code == 0, result.output
        assert (out_dir / "from-config.graphql").exists()

    def test_flags_override_config(self, library_document, write_source, tmp_path: Path) -> None:
        source = write_source(library_document)
        config = tmp_path / "graphproj.yaml"
        config.write_text(yaml.safe_dump({"options": {"output-file": "from-config.graphql"}}))
        out_dir = tmp_path / "out"

        result = _invoke(
            "project",
            str(source),
            "-o",
            str(out_dir),
            "--config",
            str(config),
            "--output-file",
            "from-flag.graphql",
        )

        assert result.exit_code == 0, result.output
        assert (out_dir / "from-flag.graphql").exists()
        assert not (out_dir / "from-config.graphql").exists()

    def test_config_layers_over_document_options(
        self, library_document, write_source, tmp_path: Path
    ) -> None:
        library_document["namespace"]["models"]["Orphan"] = {"properties": {"id": "string"}}
        library_document["options"] = {"omit-unreachable-types": True}
        source = write_source(library_document)
        config = tmp_path / "graphproj.yaml"
        config.write_text(yaml.safe_dump({"options": {"output-file": "from-config.graphql"}}))
        out_dir = tmp_path / "out"

        result = _invoke("project", str(source), "-o", str(out_dir), "--config", str(config))

        assert result.exit_code == 0, result.output
        assert "type Orphan" not in (out_dir / "from-config.graphql").read_text()

    def test_malformed_config_file(self, library_document, write_source, tmp_path: Path) -> None:
        source = write_source(library_document)
        config = tmp_path / "graphproj.yaml"
        config.write_text("options: [unclosed\n")

        result = _invoke(
            "project", str(source), "-o", str(tmp_path / "out"), "--config", str(config)
        )

        assert result.exit_code == 1
        assert "Invalid config file" in result.output

    def test_malformed_yaml_document(self, tmp_path: Path) -> None:
        source = tmp_path / "broken.yaml"
        source.write_text("namespace: {models: [unclosed\n")

        result = _invoke("project", str(source), "-o", str(tmp_path / "out"))

        assert result.exit_code == 1
        assert "Invalid source graph document" in result.output

    def test_omit_unreachable_types(self, library_document, write_source, tmp_path: Path) -> None:
        library_document["namespace"]["models"]["Orphan"] = {"properties": {"id": "string"}}
        source = write_source(library_document)

        kept = tmp_path / "kept"
        omitted = tmp_path / "omitted"
        assert _invoke("project", str(source), "-o", str(kept)).exit_code == 0
        result = _invoke("project", str(source), "-o", str(omitted), "--omit-unreachable-types")

        assert result.exit_code == 0, result.output
        assert "type Orphan" in (kept / "schema.graphql").read_text()
        assert "type Orphan" not in (omitted / "schema.graphql").read_text()

    def test_invalid_document(self, write_source, tmp_path: Path) -> None:
        source = write_source({"namespace": {"models": {"Book": {"fields": {}}}}})

        result = _invoke("project", str(source), "-o", str(tmp_path / "out"))

        assert result.exit_code != 0
        assert "Invalid source graph document" in result.output

    def test_unknown_type_reference(self, write_source, tmp_path: Path) -> None:
        source = write_source(
            {"namespace": {"models": {"Book": {"properties": {"author": "Writer"}}}}}
        )

        result = _invoke("project", str(source), "-o", str(tmp_path / "out"))

        assert result.exit_code != 0
        assert "Unknown type 'Writer'" in result.output

    def test_name_collision_fails(self, write_source, tmp_path: Path) -> None:
        source = write_source({"namespace": {"models": {"Foo-Bar": {}, "Foo_Bar": {}}}})
        out_dir = tmp_path / "out"

        result = _invoke("project", str(source), "-o", str(out_dir))

        assert result.exit_code == 1
        assert "No output for schema 'schema'" in result.output
        assert not (out_dir / "schema.graphql").exists()

    def test_strict_mode(self, write_source, tmp_path: Path) -> None:
        source = write_source(
            {"namespace": {"models": {"Book": {"properties": {"extra": "Record<string>"}}}}}
        )

        lenient = _invoke("project", str(source), "-o", str(tmp_path / "lenient"))
        strict = _invoke("project", str(source), "-o", str(tmp_path / "strict"), "--strict")

        assert lenient.exit_code == 0, lenient.output
        assert "Diagnostics" in lenient.output
        assert strict.exit_code == 1
        assert (tmp_path / "strict" / "schema.graphql").exists()


class TestInspectCommand:
    def test_inspect_summary(self, library_document, write_source) -> None:
        source = write_source(library_document)

        result = _invoke("inspect", str(source))

        assert result.exit_code == 0, result.output
        assert "Schema: schema" in result.output
        assert "Output types" in result.output
        assert "BookInput" in result.output
        assert "getBook" in result.output

    def test_inspect_failed_projection(self, write_source) -> None:
        source = write_source({"namespace": {"models": {"Foo-Bar": {}, "Foo_Bar": {}}}})

        result = _invoke("inspect", str(source))

        assert result.exit_code == 0
        assert "Projection failed" in result.output


class TestVersion:
    def test_version(self) -> None:
        result = _invoke("--version")
        assert result.exit_code == 0
        assert "0.1.0" in result.output
