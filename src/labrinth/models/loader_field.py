"""Reference data of the dynamic version metadata schema.

Field definitions and enum vocabularies are rows, not code: admins add
them at runtime and validation dispatches on ``LoaderField.field_type``.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, SQLModel


class LoaderFieldType(StrEnum):
    """Closed set of value kinds; the ``array_`` prefix is orthogonal to the element kind."""

    integer = "integer"
    text = "text"
    boolean = "boolean"
    enum = "enum"
    array_integer = "array_integer"
    array_text = "array_text"
    array_boolean = "array_boolean"
    array_enum = "array_enum"

    @property
    def is_array(self) -> bool:
        return self.value.startswith("array_")

    @property
    def element(self) -> LoaderFieldType:
        return LoaderFieldType(self.value.removeprefix("array_"))

    @property
    def is_enum(self) -> bool:
        return self.element is LoaderFieldType.enum


class LoaderFieldEnum(SQLModel, table=True):
    __tablename__ = "loader_field_enums"
    __table_args__ = (UniqueConstraint("game_id", "enum_name", name="unique_enum_per_game"),)

    id: int | None = Field(default=None, primary_key=True)
    game_id: int = Field(foreign_key="games.id", index=True)
    enum_name: str = Field(max_length=64)
    ordering: int | None = None
    hidable: bool = False


class LoaderFieldEnumValue(SQLModel, table=True):
    __tablename__ = "loader_field_enum_values"
    __table_args__ = (UniqueConstraint("enum_id", "value", name="unique_variant_per_enum"),)

    id: int | None = Field(default=None, primary_key=True)
    enum_id: int = Field(foreign_key="loader_field_enums.id", index=True)
    value: str = Field(max_length=64)
    ordering: int | None = None
    created: datetime = Field(default_factory=lambda: datetime.now(UTC))
    # schema varies per enum, e.g. game versions carry {"type": ..., "major": ...}
    value_metadata: dict[str, Any] | None = Field(
        default=None, sa_column=Column("metadata", JSON, nullable=True)
    )
    deprecated: bool = False


class LoaderField(SQLModel, table=True):
    __tablename__ = "loader_fields"

    id: int | None = Field(default=None, primary_key=True)
    field: str = Field(index=True, unique=True, max_length=64)
    field_type: LoaderFieldType
    enum_type: int | None = Field(default=None, foreign_key="loader_field_enums.id")
    optional: bool = True
    # int: value bounds; text: length bounds; arrays: item count bounds
    min_val: int | None = None
    max_val: int | None = None
    unique_items: bool = False


class LoaderFieldLoader(SQLModel, table=True):
    __tablename__ = "loader_fields_loaders"

    loader_id: int = Field(foreign_key="loaders.id", primary_key=True)
    loader_field_id: int = Field(foreign_key="loader_fields.id", primary_key=True)
