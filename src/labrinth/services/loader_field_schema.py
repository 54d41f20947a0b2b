"""Loader field schema: which field definitions apply to which loaders.

A field applies to a version when it is associated with ANY of the
version's loaders.  Games, loaders and their project types are managed
here too, since loader identity is what the schema hangs off.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable
from dataclasses import dataclass, field

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from labrinth.errors import ConflictError, FieldIssue, FieldValidationError, NotFoundError
from labrinth.models.game import Game
from labrinth.models.loader import Loader, LoaderProjectTypeGame, ProjectType
from labrinth.models.loader_field import (
    LoaderField,
    LoaderFieldEnum,
    LoaderFieldLoader,
    LoaderFieldType,
)
from labrinth.models.version import VersionLoader

logger = logging.getLogger(__name__)


@dataclass
class LoaderInfo:
    id: int
    loader: str
    icon: str
    hidable: bool
    supported_project_types: list[str] = field(default_factory=list)
    supported_games: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Games
# ---------------------------------------------------------------------------


def get_game(session: Session, name: str) -> Game:
    game = session.exec(select(Game).where(Game.name == name)).first()
    if game is None:
        raise NotFoundError(f"Game '{name}' does not exist")
    return game


def get_or_create_game(session: Session, name: str) -> Game:
    game = session.exec(select(Game).where(Game.name == name)).first()
    if game is None:
        game = Game(name=name)
        session.add(game)
        session.flush()
        logger.info("Created game %s", name)
    return game


def create_game(session: Session, name: str) -> Game:
    if session.exec(select(Game).where(Game.name == name)).first():
        raise ConflictError(f"Game '{name}' already exists")
    game = get_or_create_game(session, name)
    session.commit()
    session.refresh(game)
    return game


# ---------------------------------------------------------------------------
# Loaders
# ---------------------------------------------------------------------------


def get_loader(session: Session, name: str) -> Loader:
    loader = session.exec(select(Loader).where(Loader.loader == name)).first()
    if loader is None:
        raise NotFoundError(f"Loader '{name}' does not exist")
    return loader


def get_loader_ids(session: Session, names: Iterable[str]) -> list[int]:
    """Resolve loader names to ids, preserving order; unknown names raise NotFoundError."""
    wanted = list(dict.fromkeys(names))
    if not wanted:
        return []
    rows = session.exec(select(Loader).where(Loader.loader.in_(wanted))).all()  # type: ignore[attr-defined]
    by_name = {r.loader: r.id for r in rows}
    missing = [n for n in wanted if n not in by_name]
    if missing:
        raise NotFoundError(f"Unknown loader(s): {', '.join(map(str, missing))}")
    return [by_name[n] for n in wanted]  # type: ignore[misc]


def _get_or_create_project_type(session: Session, name: str) -> ProjectType:
    pt = session.exec(select(ProjectType).where(ProjectType.name == name)).first()
    if pt is None:
        pt = ProjectType(name=name)
        session.add(pt)
        session.flush()
    return pt


def create_loader(
    session: Session,
    name: str,
    *,
    game_names: Collection[str],
    project_types: Collection[str] = (),
    icon: str = "",
    hidable: bool = False,
    commit: bool = True,
) -> Loader:
    """Create a loader supporting ``project_types`` on every game in ``game_names``."""
    if session.exec(select(Loader).where(Loader.loader == name)).first():
        raise ConflictError(f"Loader '{name}' already exists")

    games = [get_game(session, g) for g in game_names]
    loader = Loader(loader=name, icon=icon, hidable=hidable)
    session.add(loader)
    session.flush()

    for pt_name in project_types:
        pt = _get_or_create_project_type(session, pt_name)
        for game in games:
            session.add(
                LoaderProjectTypeGame(
                    loader_id=loader.id,  # type: ignore[arg-type]
                    project_type_id=pt.id,  # type: ignore[arg-type]
                    game_id=game.id,  # type: ignore[arg-type]
                )
            )

    try:
        if commit:
            session.commit()
            session.refresh(loader)
        else:
            session.flush()
    except IntegrityError as e:
        session.rollback()
        raise ConflictError(f"Loader '{name}' already exists") from e
    logger.info("Created loader %s", name)
    return loader


def list_loaders(session: Session, game_id: int | None = None) -> list[LoaderInfo]:
    """All loaders with their supported project types and games, sorted by name."""
    stmt = (
        select(Loader, ProjectType.name, Game.name, Game.id)
        .outerjoin(LoaderProjectTypeGame, LoaderProjectTypeGame.loader_id == Loader.id)
        .outerjoin(ProjectType, ProjectType.id == LoaderProjectTypeGame.project_type_id)
        .outerjoin(Game, Game.id == LoaderProjectTypeGame.game_id)
    )
    infos: dict[int, LoaderInfo] = {}
    games_seen: dict[int, set[int]] = {}
    for loader, pt_name, game_name, gid in session.exec(stmt).all():
        info = infos.get(loader.id)
        if info is None:
            info = LoaderInfo(
                id=loader.id, loader=loader.loader, icon=loader.icon, hidable=loader.hidable
            )
            infos[loader.id] = info
            games_seen[loader.id] = set()
        if pt_name and pt_name not in info.supported_project_types:
            info.supported_project_types.append(pt_name)
        if game_name and game_name not in info.supported_games:
            info.supported_games.append(game_name)
        if gid is not None:
            games_seen[loader.id].add(gid)

    result = list(infos.values())
    if game_id is not None:
        result = [i for i in result if game_id in games_seen[i.id]]
    for info in result:
        info.supported_project_types.sort()
        info.supported_games.sort()
    result.sort(key=lambda i: i.loader.lower())
    return result


def delete_loader(session: Session, name: str) -> None:
    """Delete a loader that no version or field association depends on."""
    loader = get_loader(session, name)
    if session.exec(select(VersionLoader).where(VersionLoader.loader_id == loader.id)).first():
        raise ConflictError(f"Loader '{name}' is used by versions and cannot be deleted")
    if session.exec(
        select(LoaderFieldLoader).where(LoaderFieldLoader.loader_id == loader.id)
    ).first():
        raise ConflictError(f"Loader '{name}' still has loader fields associated")

    session.exec(delete(LoaderProjectTypeGame).where(LoaderProjectTypeGame.loader_id == loader.id))  # type: ignore[call-overload]
    session.delete(loader)
    session.commit()
    logger.info("Deleted loader %s", name)


# ---------------------------------------------------------------------------
# Field definitions
# ---------------------------------------------------------------------------


def get_field(session: Session, name: str) -> LoaderField:
    found = session.exec(select(LoaderField).where(LoaderField.field == name)).first()
    if found is None:
        raise NotFoundError(f"Loader field '{name}' does not exist")
    return found


def get_fields_by_name(session: Session, names: Iterable[str]) -> dict[str, LoaderField]:
    wanted = set(names)
    if not wanted:
        return {}
    rows = session.exec(select(LoaderField).where(LoaderField.field.in_(wanted))).all()  # type: ignore[attr-defined]
    return {r.field: r for r in rows}


def list_fields(session: Session) -> list[LoaderField]:
    return list(session.exec(select(LoaderField).order_by(LoaderField.field)).all())


def _check_definition(
    session: Session,
    field_type: LoaderFieldType,
    enum_type: int | None,
    min_val: int | None,
    max_val: int | None,
) -> None:
    issues: list[FieldIssue] = []
    if field_type.is_enum:
        if enum_type is None:
            issues.append(FieldIssue("enum_type", f"is required for {field_type} fields"))
        elif session.get(LoaderFieldEnum, enum_type) is None:
            raise NotFoundError(f"Enum {enum_type} does not exist")
    elif enum_type is not None:
        issues.append(FieldIssue("enum_type", f"is not allowed for {field_type} fields"))
    if min_val is not None and max_val is not None and min_val > max_val:
        issues.append(FieldIssue("min_val", f"{min_val} is greater than max_val {max_val}"))
    if issues:
        raise FieldValidationError(issues)


def create_field(
    session: Session,
    name: str,
    field_type: LoaderFieldType,
    *,
    enum_type: int | None = None,
    optional: bool = True,
    min_val: int | None = None,
    max_val: int | None = None,
    unique_items: bool = False,
    loader_ids: Iterable[int] = (),
    commit: bool = True,
) -> LoaderField:
    """Create a globally unique field definition, optionally associated with loaders.

    Two concurrent creations of the same name are settled by the unique
    constraint: the second one fails with ConflictError.
    """
    if session.exec(select(LoaderField).where(LoaderField.field == name)).first():
        raise ConflictError(f"Loader field '{name}' already exists")
    _check_definition(session, field_type, enum_type, min_val, max_val)

    lf = LoaderField(
        field=name,
        field_type=field_type,
        enum_type=enum_type,
        optional=optional,
        min_val=min_val,
        max_val=max_val,
        unique_items=unique_items,
    )
    session.add(lf)
    try:
        session.flush()
        for loader_id in dict.fromkeys(loader_ids):
            session.add(LoaderFieldLoader(loader_id=loader_id, loader_field_id=lf.id))  # type: ignore[arg-type]
        if commit:
            session.commit()
            session.refresh(lf)
        else:
            session.flush()
    except IntegrityError as e:
        session.rollback()
        raise ConflictError(f"Loader field '{name}' already exists") from e
    logger.info("Created loader field %s (%s)", name, field_type)
    return lf


def get_or_create_field(
    session: Session,
    name: str,
    field_type: LoaderFieldType,
    **kwargs,
) -> LoaderField:
    """Idempotent variant used by seeding and migrations; never commits."""
    existing = session.exec(select(LoaderField).where(LoaderField.field == name)).first()
    if existing:
        return existing
    return create_field(session, name, field_type, commit=False, **kwargs)


def associate_loaders(
    session: Session, lf: LoaderField, loader_ids: Iterable[int], *, commit: bool = True
) -> None:
    """Associate ``lf`` with loaders; existing associations are left as they are."""
    existing = set(
        session.exec(
            select(LoaderFieldLoader.loader_id).where(LoaderFieldLoader.loader_field_id == lf.id)
        ).all()
    )
    for loader_id in dict.fromkeys(loader_ids):
        if loader_id not in existing:
            session.add(LoaderFieldLoader(loader_id=loader_id, loader_field_id=lf.id))  # type: ignore[arg-type]
    if commit:
        session.commit()
    else:
        session.flush()


def dissociate_loader(session: Session, lf: LoaderField, loader_id: int) -> None:
    link = session.get(LoaderFieldLoader, (loader_id, lf.id))
    if link is None:
        raise NotFoundError(f"Loader field '{lf.field}' is not associated with loader {loader_id}")
    session.delete(link)
    session.commit()


def loaders_for_field(session: Session, field_id: int) -> list[str]:
    rows = session.exec(
        select(Loader.loader)
        .join(LoaderFieldLoader, LoaderFieldLoader.loader_id == Loader.id)
        .where(LoaderFieldLoader.loader_field_id == field_id)
        .order_by(Loader.loader)
    ).all()
    return list(rows)


# ---------------------------------------------------------------------------
# Applicability
# ---------------------------------------------------------------------------


def applicable_fields(session: Session, loader_ids: Iterable[int]) -> list[LoaderField]:
    """Union of the fields associated with any of ``loader_ids``, one entry per field."""
    ids = set(loader_ids)
    if not ids:
        return []
    rows = session.exec(
        select(LoaderField)
        .join(LoaderFieldLoader, LoaderFieldLoader.loader_field_id == LoaderField.id)
        .where(LoaderFieldLoader.loader_id.in_(ids))  # type: ignore[attr-defined]
        .distinct()
        .order_by(LoaderField.field)
    ).all()
    return list(rows)


def required_fields(session: Session, loader_ids: Iterable[int]) -> list[LoaderField]:
    return [f for f in applicable_fields(session, loader_ids) if not f.optional]
