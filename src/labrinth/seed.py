"""Default reference data: games, loaders, enums and the standard loader fields.

Seeding is idempotent and only ever adds missing rows, so admin edits to
existing ones survive restarts.
"""

import logging
from datetime import UTC, datetime

from sqlmodel import Session, select

from labrinth import database
from labrinth.constants import (
    DEFAULT_GAMES,
    FIELD_REGISTRY,
    GAME_VERSIONS,
    LOADER_REGISTRY,
    MOD_LOADERS,
    SIDE_TYPES,
)
from labrinth.models.loader import Loader
from labrinth.services.enum_registry import add_value, get_or_create_enum, values_by_enum
from labrinth.services.loader_field_schema import (
    associate_loaders,
    create_loader,
    get_loader_ids,
    get_or_create_field,
    get_or_create_game,
)

logger = logging.getLogger(__name__)


def seed_defaults(session: Session) -> None:
    games = {name: get_or_create_game(session, name) for name in DEFAULT_GAMES}
    java = games["minecraft-java"]

    for name, entry in LOADER_REGISTRY.items():
        if session.exec(select(Loader).where(Loader.loader == name)).first():
            continue
        create_loader(
            session,
            name,
            game_names=entry["games"],
            project_types=entry["project_types"],
            icon=entry["icon"],
            hidable=entry["hidable"],
            commit=False,
        )

    enums = {
        "game_versions": get_or_create_enum(session, java.id, "game_versions", hidable=True),  # type: ignore[arg-type]
        "side_types": get_or_create_enum(session, java.id, "side_types"),  # type: ignore[arg-type]
        "mrpack_loaders": get_or_create_enum(session, java.id, "mrpack_loaders"),  # type: ignore[arg-type]
    }
    present = values_by_enum(session, [e.id for e in enums.values()])  # type: ignore[misc]

    def _add_missing(enum_name: str, value: str, **kwargs) -> None:
        enum_id = enums[enum_name].id
        if value not in present[enum_id]:  # type: ignore[index]
            add_value(session, enum_id, value, commit=False, **kwargs)  # type: ignore[arg-type]

    for ordering, (value, version_type, major, created) in enumerate(GAME_VERSIONS):
        _add_missing(
            "game_versions",
            value,
            metadata={"type": version_type, "major": major},
            created=datetime.fromisoformat(created).replace(tzinfo=UTC),
            ordering=ordering,
        )
    for ordering, side in enumerate(SIDE_TYPES):
        _add_missing("side_types", side, ordering=ordering)
    for loader in MOD_LOADERS:
        _add_missing("mrpack_loaders", loader)

    for name, entry in FIELD_REGISTRY.items():
        enum = enums[entry["enum"]] if entry["enum"] else None
        lf = get_or_create_field(
            session,
            name,
            entry["field_type"],
            enum_type=enum.id if enum else None,
            optional=entry["optional"],
            min_val=entry["min_val"],
        )
        associate_loaders(session, lf, get_loader_ids(session, entry["loaders"]), commit=False)

    session.commit()
    logger.info("Seeded default games, loaders and loader fields")


def seed_database() -> None:
    with Session(database.engine) as session:
        seed_defaults(session)
