from typing import TypedDict

from labrinth.models.loader_field import LoaderFieldType

DEFAULT_GAMES = ["minecraft-java", "minecraft-bedrock"]

MOD_LOADERS = ["fabric", "forge", "neoforge", "quilt"]


class LoaderEntry(TypedDict):
    games: list[str]
    project_types: list[str]
    icon: str
    hidable: bool


LOADER_REGISTRY: dict[str, LoaderEntry] = {
    **{
        name: {
            "games": ["minecraft-java"],
            "project_types": ["mod"],
            "icon": "",
            "hidable": False,
        }
        for name in MOD_LOADERS
    },
    "datapack": {
        "games": ["minecraft-java"],
        "project_types": ["datapack", "mod"],
        "icon": "",
        "hidable": False,
    },
    "mrpack": {
        "games": ["minecraft-java"],
        "project_types": ["modpack"],
        "icon": "",
        "hidable": True,
    },
    "minecraft": {
        "games": ["minecraft-java"],
        "project_types": ["resourcepack"],
        "icon": "",
        "hidable": True,
    },
}

# (value, type, major, created)
GAME_VERSIONS: list[tuple[str, str, bool, str]] = [
    ("1.19.4", "release", False, "2023-03-14T12:00:00"),
    ("1.20", "release", True, "2023-06-07T12:00:00"),
    ("1.20.1", "release", False, "2023-06-12T12:00:00"),
    ("1.20.2", "release", False, "2023-09-21T12:00:00"),
    ("23w45a", "snapshot", False, "2023-11-08T12:00:00"),
    ("1.20.3", "release", False, "2023-12-05T12:00:00"),
    ("1.20.4", "release", False, "2023-12-07T12:00:00"),
]

SIDE_TYPES = ["required", "optional", "unsupported", "unknown"]


class FieldEntry(TypedDict):
    field_type: LoaderFieldType
    enum: str | None
    optional: bool
    min_val: int | None
    loaders: list[str]


FIELD_REGISTRY: dict[str, FieldEntry] = {
    "game_versions": {
        "field_type": LoaderFieldType.array_enum,
        "enum": "game_versions",
        "optional": False,
        "min_val": 1,
        "loaders": [*LOADER_REGISTRY],
    },
    "client_side": {
        "field_type": LoaderFieldType.enum,
        "enum": "side_types",
        "optional": True,
        "min_val": None,
        "loaders": [*MOD_LOADERS, "mrpack"],
    },
    "server_side": {
        "field_type": LoaderFieldType.enum,
        "enum": "side_types",
        "optional": True,
        "min_val": None,
        "loaders": [*MOD_LOADERS, "mrpack"],
    },
    "mrpack_loaders": {
        "field_type": LoaderFieldType.array_enum,
        "enum": "mrpack_loaders",
        "optional": True,
        "min_val": None,
        "loaders": ["mrpack"],
    },
}
