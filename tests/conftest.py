"""Shared test fixtures for graphproj tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
import yaml

from builders import std


@pytest.fixture
def string():
    return std("string")


@pytest.fixture
def int32():
    return std("int32")


@pytest.fixture
def float32():
    return std("float32")


@pytest.fixture
def library_document() -> dict[str, Any]:
    return {
        "name": "Library",
        "namespace": {
            "models": {
                "Book": {
                    "doc": "A book in the library",
                    "properties": {
                        "title": "string",
                        "pages?": "int32",
                        "tags": "string[]",
                    },
                },
            },
            "operations": {
                "getBook": {
                    "kind": "query",
                    "parameters": {"id": "string"},
                    "returns": "Book | null",
                },
                "addBook": {
                    "kind": "mutation",
                    "parameters": {"book": "Book"},
                    "returns": "Book",
                },
            },
        },
    }


@pytest.fixture
def write_source(tmp_path: Path):
    """Write a document as YAML and return its path."""

    def _write(document: dict[str, Any], name: str = "library.yaml") -> Path:
        path = tmp_path / name
        path.write_text(yaml.safe_dump(document, sort_keys=False))
        return path

    return _write
