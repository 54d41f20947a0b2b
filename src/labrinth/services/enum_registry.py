"""Game-scoped enumerations backing enum and array_enum loader fields.

Value strings are stable identifiers: once created they are never renamed.
Only ordering, metadata and the deprecation flag of a value may change.
Every lookup reads through to the database.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from labrinth.errors import ConflictError, NotFoundError
from labrinth.models.loader_field import LoaderFieldEnum, LoaderFieldEnumValue
from labrinth.models.version import VersionField

logger = logging.getLogger(__name__)

_UNSET: Any = object()


def _is_featured(value: LoaderFieldEnumValue) -> bool:
    metadata = value.value_metadata or {}
    return bool(metadata.get("featured") or metadata.get("major"))


def _matches(value: LoaderFieldEnumValue, filters: Mapping[str, Any]) -> bool:
    metadata = value.value_metadata or {}
    return all(key in metadata and metadata[key] == expected for key, expected in filters.items())


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


def get_enum(session: Session, enum_name: str, game_id: int) -> LoaderFieldEnum:
    """Return the enum named ``enum_name`` for a game, raising NotFoundError if absent."""
    found = session.exec(
        select(LoaderFieldEnum).where(
            LoaderFieldEnum.enum_name == enum_name,
            LoaderFieldEnum.game_id == game_id,
        )
    ).first()
    if found is None:
        raise NotFoundError(f"Enum '{enum_name}' does not exist for game {game_id}")
    return found


def get_enum_by_id(session: Session, enum_id: int) -> LoaderFieldEnum:
    found = session.get(LoaderFieldEnum, enum_id)
    if found is None:
        raise NotFoundError(f"Enum {enum_id} does not exist")
    return found


def get_value(session: Session, value_id: int) -> LoaderFieldEnumValue:
    found = session.get(LoaderFieldEnumValue, value_id)
    if found is None:
        raise NotFoundError(f"Enum value {value_id} does not exist")
    return found


def resolve(session: Session, enum_name: str, game_id: int, value: str) -> int:
    """Return the id of ``value`` within the game's enum ``enum_name``."""
    enum = get_enum(session, enum_name, game_id)
    found = session.exec(
        select(LoaderFieldEnumValue).where(
            LoaderFieldEnumValue.enum_id == enum.id,
            LoaderFieldEnumValue.value == value,
        )
    ).first()
    if found is None or found.id is None:
        raise NotFoundError(f"'{value}' is not a value of enum '{enum_name}'")
    return found.id


def list_enum_values(
    session: Session,
    enum: LoaderFieldEnum,
    *,
    include_hidden: bool = False,
    filters: Mapping[str, Any] | None = None,
) -> list[LoaderFieldEnumValue]:
    """Return the values of ``enum`` in display order.

    Deprecated values, and for hidable enums values without a truthy
    ``featured``/``major`` metadata key, are left out unless
    ``include_hidden`` is set.  ``filters`` keeps values whose metadata
    has every given key with an equal value.
    """
    values = session.exec(
        select(LoaderFieldEnumValue)
        .where(LoaderFieldEnumValue.enum_id == enum.id)
        .order_by(
            LoaderFieldEnumValue.ordering.is_(None),  # type: ignore[union-attr]
            LoaderFieldEnumValue.ordering,
            LoaderFieldEnumValue.id,
        )
    ).all()

    result: list[LoaderFieldEnumValue] = []
    for value in values:
        if not include_hidden:
            if value.deprecated:
                continue
            if enum.hidable and not _is_featured(value):
                continue
        if filters and not _matches(value, filters):
            continue
        result.append(value)
    return result


def list_values(
    session: Session,
    enum_name: str,
    game_id: int,
    *,
    include_hidden: bool = False,
    filters: Mapping[str, Any] | None = None,
) -> list[LoaderFieldEnumValue]:
    enum = get_enum(session, enum_name, game_id)
    return list_enum_values(session, enum, include_hidden=include_hidden, filters=filters)


def values_by_enum(
    session: Session, enum_ids: Iterable[int]
) -> dict[int, dict[str, LoaderFieldEnumValue]]:
    """Load every value of the given enums in one query, keyed by enum id then value string."""
    ids = set(enum_ids)
    result: dict[int, dict[str, LoaderFieldEnumValue]] = {enum_id: {} for enum_id in ids}
    if not ids:
        return result
    rows = session.exec(
        select(LoaderFieldEnumValue).where(LoaderFieldEnumValue.enum_id.in_(ids))  # type: ignore[attr-defined]
    ).all()
    for row in rows:
        result[row.enum_id][row.value] = row
    return result


# ---------------------------------------------------------------------------
# Mutators (admin)
# ---------------------------------------------------------------------------


def _commit_or_conflict(session: Session, message: str, *, commit: bool) -> None:
    try:
        if commit:
            session.commit()
        else:
            session.flush()
    except IntegrityError as e:
        session.rollback()
        raise ConflictError(message) from e


def create_enum(
    session: Session,
    game_id: int,
    enum_name: str,
    *,
    ordering: int | None = None,
    hidable: bool = False,
    commit: bool = True,
) -> LoaderFieldEnum:
    existing = session.exec(
        select(LoaderFieldEnum).where(
            LoaderFieldEnum.game_id == game_id, LoaderFieldEnum.enum_name == enum_name
        )
    ).first()
    if existing:
        raise ConflictError(f"Enum '{enum_name}' already exists for game {game_id}")

    enum = LoaderFieldEnum(game_id=game_id, enum_name=enum_name, ordering=ordering, hidable=hidable)
    session.add(enum)
    _commit_or_conflict(session, f"Enum '{enum_name}' already exists", commit=commit)
    if commit:
        session.refresh(enum)
    logger.info("Created enum %s for game %d", enum_name, game_id)
    return enum


def get_or_create_enum(
    session: Session, game_id: int, enum_name: str, *, hidable: bool = False
) -> LoaderFieldEnum:
    """Idempotent variant used by seeding and migrations; never commits."""
    existing = session.exec(
        select(LoaderFieldEnum).where(
            LoaderFieldEnum.game_id == game_id, LoaderFieldEnum.enum_name == enum_name
        )
    ).first()
    if existing:
        return existing
    return create_enum(session, game_id, enum_name, hidable=hidable, commit=False)


def add_value(
    session: Session,
    enum_id: int,
    value: str,
    *,
    ordering: int | None = None,
    metadata: dict[str, Any] | None = None,
    created: datetime | None = None,
    commit: bool = True,
) -> LoaderFieldEnumValue:
    get_enum_by_id(session, enum_id)
    existing = session.exec(
        select(LoaderFieldEnumValue).where(
            LoaderFieldEnumValue.enum_id == enum_id, LoaderFieldEnumValue.value == value
        )
    ).first()
    if existing:
        raise ConflictError(f"Value '{value}' already exists in enum {enum_id}")

    row = LoaderFieldEnumValue(
        enum_id=enum_id, value=value, ordering=ordering, value_metadata=metadata
    )
    if created is not None:
        row.created = created
    session.add(row)
    _commit_or_conflict(session, f"Value '{value}' already exists in enum {enum_id}", commit=commit)
    if commit:
        session.refresh(row)
    return row


def upsert_value(
    session: Session,
    enum_id: int,
    value: str,
    *,
    metadata: dict[str, Any] | None = None,
    created: datetime | None = None,
    ordering: int | None = None,
    commit: bool = True,
) -> LoaderFieldEnumValue:
    """Insert ``value`` or update the metadata/created/ordering of an existing one.

    Unspecified attributes keep their stored values, so game versions can be
    partially updated.
    """
    existing = session.exec(
        select(LoaderFieldEnumValue).where(
            LoaderFieldEnumValue.enum_id == enum_id, LoaderFieldEnumValue.value == value
        )
    ).first()
    if existing is None:
        return add_value(
            session,
            enum_id,
            value,
            ordering=ordering,
            metadata=metadata,
            created=created,
            commit=commit,
        )

    if metadata is not None:
        existing.value_metadata = metadata
    if created is not None:
        existing.created = created
    if ordering is not None:
        existing.ordering = ordering
    session.add(existing)
    if commit:
        session.commit()
        session.refresh(existing)
    else:
        session.flush()
    return existing


def update_value(
    session: Session,
    value_id: int,
    *,
    ordering: int | None = _UNSET,
    metadata: dict[str, Any] | None = _UNSET,
    deprecated: bool | None = None,
) -> LoaderFieldEnumValue:
    """Update the mutable attributes of an enum value. The value string is immutable."""
    row = get_value(session, value_id)
    if ordering is not _UNSET:
        row.ordering = ordering
    if metadata is not _UNSET:
        row.value_metadata = metadata
    if deprecated is not None:
        row.deprecated = deprecated
    session.add(row)
    session.commit()
    session.refresh(row)
    return row


def delete_value(session: Session, value_id: int) -> None:
    """Delete an enum value that no version field references."""
    row = get_value(session, value_id)
    name = row.value
    in_use = session.exec(select(VersionField.id).where(VersionField.enum_value == value_id)).first()
    if in_use is not None:
        raise ConflictError(
            f"Enum value '{name}' is referenced by version fields and cannot be deleted"
        )
    session.delete(row)
    _commit_or_conflict(session, f"Enum value '{name}' is still referenced", commit=True)
    logger.info("Deleted enum value %s (%d)", name, value_id)
