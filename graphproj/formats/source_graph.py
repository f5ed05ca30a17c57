"""Pydantic models for the source graph document format (.yaml / .json).

A document describes one root namespace. Type references are written as
type expressions: a name (``Book``, ``Library.Book``, ``string``), an array
(``Book[]``), a record (``Record<string>``), a union (``Cat | Dog | null``),
or the equivalent mappings ``{array: T}``, ``{record: T}``, ``{union: [...]}``.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from graphproj.commands.project.options import ProjectionOptionsModel

TypeExpr = str | dict[str, Any]
OperationKindName = Literal["query", "mutation", "subscription"]


class _Definition(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    doc: str | None = None
    deprecated: str | None = None


class PropertyDef(_Definition):
    type: TypeExpr
    optional: bool = False
    encode: str | None = None


# A full property definition, or just its type expression.
PropertyEntry = Annotated[PropertyDef | TypeExpr, Field(union_mode="left_to_right")]


class OperationDef(_Definition):
    kind: OperationKindName | None = None
    parameters: dict[str, PropertyEntry] = Field(default_factory=dict)
    returns: TypeExpr | None = None
    encode: str | None = None


class ModelDef(_Definition):
    properties: dict[str, PropertyEntry] = Field(default_factory=dict)
    interface: bool = False
    error: bool = False
    compose: list[str] = Field(default_factory=list)
    operation_fields: dict[str, OperationDef] = Field(
        default_factory=dict, alias="operation-fields"
    )


class EnumMemberDef(_Definition):
    value: str | int | float | None = None


EnumMemberEntry = Annotated[
    EnumMemberDef | str | int | float | None, Field(union_mode="left_to_right")
]


class EnumDef(_Definition):
    members: list[str | int | float] | dict[str, EnumMemberEntry] = Field(default_factory=list)


class ScalarDef(_Definition):
    extends: str | None = None
    specified_by: str | None = Field(default=None, alias="specified-by")
    encode: str | None = None


class UnionDef(_Definition):
    variants: list[TypeExpr] | dict[str, TypeExpr] = Field(default_factory=list)


class InterfaceDef(_Definition):
    kind: OperationKindName | None = None  # default kind of its operations
    operations: dict[str, OperationDef] = Field(default_factory=dict)


class NamespaceDef(_Definition):
    schema_name: str | bool | None = Field(default=None, alias="schema")
    models: dict[str, ModelDef] = Field(default_factory=dict)
    enums: dict[str, EnumDef | list[str | int | float]] = Field(default_factory=dict)
    scalars: dict[str, ScalarDef] = Field(default_factory=dict)
    unions: dict[str, UnionDef | list[TypeExpr]] = Field(default_factory=dict)
    aliases: dict[str, TypeExpr] = Field(default_factory=dict)
    operations: dict[str, OperationDef] = Field(default_factory=dict)
    interfaces: dict[str, InterfaceDef] = Field(default_factory=dict)
    namespaces: dict[str, NamespaceDef] = Field(default_factory=dict)


class SourceGraphDocument(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    format_version: str = Field(default="1.0.0", alias="format-version")
    name: str = ""
    options: ProjectionOptionsModel | None = None
    namespace: NamespaceDef = Field(default_factory=NamespaceDef)
