from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from sqlalchemy import CheckConstraint
from sqlmodel import Field, Relationship, SQLModel


class LegacySideType(StrEnum):
    """Side support as reported by the v2 API."""

    required = "required"
    optional = "optional"
    unsupported = "unsupported"
    unknown = "unknown"

    @classmethod
    def from_string(cls, value: Any) -> "LegacySideType":
        try:
            return cls(value)
        except ValueError:
            return cls.unknown


class Project(SQLModel, table=True):
    __tablename__ = "projects"

    id: int | None = Field(default=None, primary_key=True)
    game_id: int = Field(foreign_key="games.id", index=True)
    slug: str = Field(index=True, unique=True, max_length=64)
    name: str
    summary: str = ""
    published: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated: datetime = Field(default_factory=lambda: datetime.now(UTC))

    versions: list["Version"] = Relationship(back_populates="project")


class Version(SQLModel, table=True):
    __tablename__ = "versions"

    id: int | None = Field(default=None, primary_key=True)
    project_id: int = Field(foreign_key="projects.id", index=True)
    name: str
    version_number: str
    changelog: str = ""
    version_type: str = "release"
    status: str = "listed"
    featured: bool = False
    ordering: int | None = None
    date_published: datetime = Field(default_factory=lambda: datetime.now(UTC))

    project: Project | None = Relationship(back_populates="versions")
    files: list["VersionFile"] = Relationship(back_populates="version", cascade_delete=True)


class VersionLoader(SQLModel, table=True):
    __tablename__ = "loaders_versions"

    version_id: int = Field(foreign_key="versions.id", primary_key=True)
    loader_id: int = Field(foreign_key="loaders.id", primary_key=True)


class VersionFile(SQLModel, table=True):
    __tablename__ = "files"

    id: int | None = Field(default=None, primary_key=True)
    version_id: int = Field(foreign_key="versions.id", index=True)
    filename: str
    url: str
    size: int = 0
    sha1: str = ""
    primary: bool = False

    version: Version | None = Relationship(back_populates="files")


class VersionField(SQLModel, table=True):
    """One stored value of a loader field; arrays are several rows per (version, field)."""

    __tablename__ = "version_fields"
    __table_args__ = (
        CheckConstraint(
            "(CASE WHEN int_value IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN enum_value IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN string_value IS NULL THEN 0 ELSE 1 END) = 1",
            name="exactly_one_value",
        ),
    )

    id: int | None = Field(default=None, primary_key=True)
    version_id: int = Field(foreign_key="versions.id", index=True)
    field_id: int = Field(foreign_key="loader_fields.id", index=True)
    int_value: int | None = None
    enum_value: int | None = Field(default=None, foreign_key="loader_field_enum_values.id")
    string_value: str | None = None
