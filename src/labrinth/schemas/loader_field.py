from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from labrinth.models.loader_field import LoaderFieldType


class GameCreate(BaseModel):
    name: str = Field(min_length=1, max_length=64)


class GameOut(BaseModel):
    id: int
    name: str


class LoaderCreate(BaseModel):
    name: str = Field(min_length=1, max_length=64)
    games: list[str]
    project_types: list[str] = []
    icon: str = ""
    hidable: bool = False


class LoaderOut(BaseModel):
    icon: str
    name: str
    hidable: bool
    supported_project_types: list[str]
    supported_games: list[str]


class LoaderFieldCreate(BaseModel):
    field: str = Field(min_length=1, max_length=64)
    field_type: LoaderFieldType
    enum_type: int | None = None
    optional: bool = True
    min_val: int | None = None
    max_val: int | None = None
    unique_items: bool = False
    loaders: list[str] = []


class LoaderFieldOut(BaseModel):
    id: int
    field: str
    field_type: LoaderFieldType
    enum_type: int | None
    optional: bool
    min_val: int | None
    max_val: int | None
    unique_items: bool
    loaders: list[str] = []


class LoaderAssociation(BaseModel):
    loaders: list[str]


class EnumCreate(BaseModel):
    game: str
    enum_name: str = Field(min_length=1, max_length=64)
    ordering: int | None = None
    hidable: bool = False


class EnumOut(BaseModel):
    id: int
    game_id: int
    enum_name: str
    ordering: int | None
    hidable: bool


class EnumValueCreate(BaseModel):
    value: str = Field(min_length=1, max_length=64)
    ordering: int | None = None
    metadata: dict[str, Any] | None = None
    created: datetime | None = None


class EnumValueUpdate(BaseModel):
    ordering: int | None = None
    metadata: dict[str, Any] | None = None
    deprecated: bool | None = None


class EnumValueOut(BaseModel):
    id: int
    enum_id: int
    value: str
    ordering: int | None
    created: datetime
    metadata: dict[str, Any] | None
    deprecated: bool


class GameVersionOut(BaseModel):
    version: str
    version_type: str
    date: datetime
    major: bool
