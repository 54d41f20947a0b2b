"""One-shot migration of pre-dynamic game version and side type storage.

Older databases kept game versions in ``game_versions`` /
``game_versions_versions`` and side support in ``side_types`` plus the
``projects.client_side`` / ``projects.server_side`` columns.  Their data is
copied into enums, loader fields and version fields of the default game,
after which the old tables and columns are dropped.  Running it against a
database without legacy structures is a no-op.
"""

import logging
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import inspect, text
from sqlalchemy.exc import OperationalError
from sqlmodel import Session, select

from labrinth.models.loader import Loader
from labrinth.models.loader_field import LoaderField, LoaderFieldType
from labrinth.models.version import VersionField
from labrinth.services.enum_registry import get_or_create_enum, upsert_value
from labrinth.services.legacy import (
    CLIENT_SIDE_FIELD,
    GAME_VERSIONS_FIELD,
    SERVER_SIDE_FIELD,
    LegacySideType,
)
from labrinth.services.loader_field_schema import (
    associate_loaders,
    get_or_create_field,
    get_or_create_game,
)

logger = logging.getLogger(__name__)

GAME_VERSIONS_ENUM = "game_versions"
SIDE_TYPES_ENUM = "side_types"


def _parse_datetime(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    try:
        parsed = datetime.fromisoformat(str(value))
    except ValueError:
        logger.warning("Unparseable legacy timestamp %r, using now", value)
        return datetime.now(UTC)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def _all_loader_ids(session: Session) -> list[int]:
    return [lid for lid in session.exec(select(Loader.id)).all() if lid is not None]


def _insert_missing(session: Session, field_id: int, pairs: list[tuple[int, int]]) -> int:
    """Insert (version_id, enum_value_id) rows not already stored; returns rows added."""
    existing = set(
        session.exec(
            select(VersionField.version_id, VersionField.enum_value).where(
                VersionField.field_id == field_id
            )
        ).all()
    )
    added = 0
    for version_id, value_id in dict.fromkeys(pairs):
        if (version_id, value_id) in existing:
            continue
        session.add(VersionField(version_id=version_id, field_id=field_id, enum_value=value_id))
        added += 1
    return added


def _ensure_field(
    session: Session, name: str, field_type: LoaderFieldType, enum_id: int, **kwargs: Any
) -> LoaderField:
    lf = get_or_create_field(session, name, field_type, enum_type=enum_id, **kwargs)
    associate_loaders(session, lf, _all_loader_ids(session), commit=False)
    return lf


# ---------------------------------------------------------------------------
# Game versions
# ---------------------------------------------------------------------------


def migrate_legacy_game_versions(session: Session, game_name: str) -> int:
    """Fold ``game_versions`` tables into the ``game_versions`` array_enum field."""
    tables = set(inspect(session.get_bind()).get_table_names())
    if "game_versions" not in tables:
        return 0

    game = get_or_create_game(session, game_name)
    enum = get_or_create_enum(session, game.id, GAME_VERSIONS_ENUM, hidable=True)  # type: ignore[arg-type]

    value_ids: dict[int, int] = {}
    for row in session.execute(
        text("SELECT id, version, type, created, major FROM game_versions ORDER BY created")
    ).mappings():
        value = upsert_value(
            session,
            enum.id,  # type: ignore[arg-type]
            row["version"],
            metadata={"type": row["type"], "major": bool(row["major"])},
            created=_parse_datetime(row["created"]),
            commit=False,
        )
        value_ids[row["id"]] = value.id  # type: ignore[assignment]

    lf = _ensure_field(
        session, GAME_VERSIONS_FIELD, LoaderFieldType.array_enum, enum.id, optional=False, min_val=1  # type: ignore[arg-type]
    )

    pairs: list[tuple[int, int]] = []
    if "game_versions_versions" in tables:
        for row in session.execute(
            text("SELECT game_version_id, joining_version_id FROM game_versions_versions")
        ).mappings():
            value_id = value_ids.get(row["game_version_id"])
            if value_id is not None:
                pairs.append((row["joining_version_id"], value_id))
    added = _insert_missing(session, lf.id, pairs)  # type: ignore[arg-type]

    session.flush()
    if "game_versions_versions" in tables:
        session.execute(text("DROP TABLE game_versions_versions"))
    session.execute(text("DROP TABLE game_versions"))
    session.commit()
    logger.info(
        "Migrated %d legacy game version(s) and %d version link(s)", len(value_ids), added
    )
    return added


# ---------------------------------------------------------------------------
# Side types
# ---------------------------------------------------------------------------


def migrate_legacy_side_types(session: Session, game_name: str) -> int:
    """Fold ``projects.client_side``/``server_side`` into per-version enum fields."""
    bind = session.get_bind()
    inspector = inspect(bind)
    tables = set(inspector.get_table_names())
    if "projects" not in tables:
        return 0
    columns = {c["name"] for c in inspector.get_columns("projects")}
    legacy_columns = [c for c in (CLIENT_SIDE_FIELD, SERVER_SIDE_FIELD) if c in columns]
    if not legacy_columns:
        return 0

    game = get_or_create_game(session, game_name)
    enum = get_or_create_enum(session, game.id, SIDE_TYPES_ENUM)  # type: ignore[arg-type]

    side_names: dict[int, str] = {}
    if "side_types" in tables:
        for row in session.execute(text("SELECT id, name FROM side_types")).mappings():
            side_names[row["id"]] = row["name"]
    value_ids: dict[str, int] = {}
    for side in LegacySideType:
        value = upsert_value(session, enum.id, side.value, commit=False)  # type: ignore[arg-type]
        value_ids[side.value] = value.id  # type: ignore[assignment]
    for name in side_names.values():
        if name not in value_ids:
            value = upsert_value(session, enum.id, name, commit=False)  # type: ignore[arg-type]
            value_ids[name] = value.id  # type: ignore[assignment]

    added = 0
    for column in legacy_columns:
        lf = _ensure_field(session, column, LoaderFieldType.enum, enum.id)  # type: ignore[arg-type]
        pairs: list[tuple[int, int]] = []
        for row in session.execute(
            text(
                f"SELECT v.id AS version_id, p.{column} AS side "
                "FROM versions v JOIN projects p ON p.id = v.project_id "
                f"WHERE p.{column} IS NOT NULL"
            )
        ).mappings():
            # legacy rows hold either a side_types id or the side name itself
            side = side_names.get(row["side"], row["side"])
            value_id = value_ids.get(str(side))
            if value_id is not None:
                pairs.append((row["version_id"], value_id))
        added += _insert_missing(session, lf.id, pairs)  # type: ignore[arg-type]

    session.flush()
    session.commit()

    for column in legacy_columns:
        try:
            session.execute(text(f"ALTER TABLE projects DROP COLUMN {column}"))
            session.commit()
        except OperationalError:
            session.rollback()
            # leave the column in place but emptied so the next run is a no-op
            logger.warning("Could not drop projects.%s, clearing it instead", column)
            session.execute(text(f"UPDATE projects SET {column} = NULL"))
            session.commit()
    if "side_types" in tables:
        try:
            session.execute(text("DROP TABLE side_types"))
            session.commit()
        except OperationalError:
            session.rollback()
            logger.warning("Could not drop legacy side_types table")

    logger.info("Migrated legacy side types into %d version field row(s)", added)
    return added


def run_legacy_migrations(session: Session, game_name: str) -> None:
    migrate_legacy_game_versions(session, game_name)
    migrate_legacy_side_types(session, game_name)
