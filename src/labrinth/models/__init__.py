from labrinth.models.game import Game
from labrinth.models.loader import Loader, LoaderProjectTypeGame, ProjectType
from labrinth.models.loader_field import (
    LoaderField,
    LoaderFieldEnum,
    LoaderFieldEnumValue,
    LoaderFieldLoader,
    LoaderFieldType,
)
from labrinth.models.version import (
    LegacySideType,
    Project,
    Version,
    VersionField,
    VersionFile,
    VersionLoader,
)

__all__ = [
    "Game",
    "LegacySideType",
    "Loader",
    "LoaderField",
    "LoaderFieldEnum",
    "LoaderFieldEnumValue",
    "LoaderFieldLoader",
    "LoaderFieldType",
    "LoaderProjectTypeGame",
    "Project",
    "ProjectType",
    "Version",
    "VersionField",
    "VersionFile",
    "VersionLoader",
]
