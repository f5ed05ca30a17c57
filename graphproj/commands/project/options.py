"""Projection options and their validated file representation."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
import yaml

DEFAULT_OUTPUT_FILE = "{schema-name}.graphql"


@dataclass
class ProjectionOptions:
    omit_unreachable_types: bool = False
    output_file: str = DEFAULT_OUTPUT_FILE
    strict: bool = False  # unsupported types are errors instead of warnings

    def output_filename(self, schema_name: str) -> str:
        return self.output_file.replace("{schema-name}", schema_name)

    def merged(self, **overrides: Any) -> ProjectionOptions:
        """Copy with every override that is not None applied."""
        values = {
            "omit_unreachable_types": self.omit_unreachable_types,
            "output_file": self.output_file,
            "strict": self.strict,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return ProjectionOptions(**values)


class ProjectionOptionsModel(BaseModel):
    """``options`` section of a config file or source document."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    omit_unreachable_types: bool = Field(default=False, alias="omit-unreachable-types")
    output_file: str = Field(default=DEFAULT_OUTPUT_FILE, alias="output-file")
    strict: bool = False

    def to_options(self) -> ProjectionOptions:
        return ProjectionOptions(
            omit_unreachable_types=self.omit_unreachable_types,
            output_file=self.output_file,
            strict=self.strict,
        )


def load_options_file(path: Path, base: ProjectionOptions | None = None) -> ProjectionOptions:
    """Read projection options from a YAML config file (key ``options``).

    Keys present in the file override *base*; the others keep its values.
    """
    data = yaml.safe_load(path.read_text()) or {}
    section = data.get("options", {}) if isinstance(data, dict) else {}
    model = ProjectionOptionsModel.model_validate(section or {})
    return (base or ProjectionOptions()).merged(**model.model_dump(include=model.model_fields_set))
