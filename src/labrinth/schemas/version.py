from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from labrinth.models.version import LegacySideType


class ProjectCreate(BaseModel):
    slug: str = Field(min_length=3, max_length=64)
    name: str
    summary: str = ""
    game: str = "minecraft-java"


class ProjectOut(BaseModel):
    id: int
    slug: str
    name: str
    summary: str
    game: str
    published: datetime
    updated: datetime
    versions: list[int] = []


class VersionFileIn(BaseModel):
    filename: str
    url: str
    size: int = 0
    sha1: str = ""
    primary: bool = False


class VersionFileOut(VersionFileIn):
    id: int


class VersionCreate(BaseModel):
    project_id: int
    name: str
    version_number: str
    changelog: str = ""
    version_type: str = "release"
    status: str = "listed"
    featured: bool = False
    ordering: int | None = None
    loaders: list[str]
    files: list[VersionFileIn] = []
    fields: dict[str, Any] = {}


class VersionUpdate(BaseModel):
    name: str | None = None
    version_number: str | None = None
    changelog: str | None = None
    version_type: str | None = None
    status: str | None = None
    featured: bool | None = None
    ordering: int | None = None
    loaders: list[str] | None = None
    fields: dict[str, Any] | None = None


class VersionOut(BaseModel):
    id: int
    project_id: int
    name: str
    version_number: str
    changelog: str
    version_type: str
    status: str
    featured: bool
    ordering: int | None
    date_published: datetime
    loaders: list[str]
    project_types: list[str]
    games: list[str]
    files: list[VersionFileOut]
    fields: dict[str, Any]


# --- v2 (legacy) shapes ---


class LegacyVersionCreate(BaseModel):
    project_id: int
    name: str
    version_number: str
    changelog: str = ""
    version_type: str = "release"
    status: str = "listed"
    featured: bool = False
    loaders: list[str]
    game_versions: list[str] = []
    client_side: LegacySideType | None = None
    server_side: LegacySideType | None = None
    files: list[VersionFileIn] = []


class LegacyVersionUpdate(BaseModel):
    name: str | None = None
    version_number: str | None = None
    changelog: str | None = None
    version_type: str | None = None
    status: str | None = None
    featured: bool | None = None
    loaders: list[str] | None = None
    game_versions: list[str] | None = None
    client_side: LegacySideType | None = None
    server_side: LegacySideType | None = None


class LegacyVersionOut(BaseModel):
    id: int
    project_id: int
    name: str
    version_number: str
    changelog: str
    version_type: str
    status: str
    featured: bool
    date_published: datetime
    files: list[VersionFileOut]
    game_versions: list[str]
    loaders: list[str]
    client_side: LegacySideType
    server_side: LegacySideType


class LegacyProjectOut(BaseModel):
    id: int
    slug: str
    title: str
    description: str
    project_type: str
    published: datetime
    updated: datetime
    versions: list[int]
    game_versions: list[str]
    loaders: list[str]
    client_side: LegacySideType
    server_side: LegacySideType
