"""Project and version operations used by the route handlers.

Version writes validate the whole submitted field set first, then write the
version row, its loaders and its fields in one transaction.  Nothing is
written when validation fails.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import delete, exists
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from labrinth.errors import ConflictError, FieldIssue, FieldValidationError, NotFoundError, StorageError
from labrinth.models.game import Game
from labrinth.models.loader import Loader, LoaderProjectTypeGame, ProjectType
from labrinth.models.version import Project, Version, VersionField, VersionFile, VersionLoader
from labrinth.schemas.version import (
    ProjectCreate,
    ProjectOut,
    VersionCreate,
    VersionFileOut,
    VersionOut,
    VersionUpdate,
)
from labrinth.services.facets import field_filters
from labrinth.services.loader_field_schema import applicable_fields, get_game, get_loader_ids
from labrinth.services.version_field_store import (
    get_fields,
    get_fields_bulk,
    set_fields,
    validate_fields,
)

logger = logging.getLogger(__name__)

_NULLABLE_VERSION_ATTRS = frozenset({"ordering"})


def _commit(session: Session) -> None:
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        raise ConflictError("The change conflicts with existing data") from e
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception("Commit failed")
        raise StorageError("Failed to save changes") from e


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


def get_project(session: Session, project_id: int) -> Project:
    project = session.get(Project, project_id)
    if project is None:
        raise NotFoundError(f"Project {project_id} does not exist")
    return project


def project_to_out(project: Project, session: Session) -> ProjectOut:
    game = session.get(Game, project.game_id)
    version_ids = session.exec(
        select(Version.id).where(Version.project_id == project.id).order_by(Version.id)
    ).all()
    return ProjectOut(
        id=project.id,  # type: ignore[arg-type]
        slug=project.slug,
        name=project.name,
        summary=project.summary,
        game=game.name if game else "",
        published=project.published,
        updated=project.updated,
        versions=list(version_ids),  # type: ignore[arg-type]
    )


def create_project(session: Session, data: ProjectCreate) -> ProjectOut:
    if session.exec(select(Project).where(Project.slug == data.slug)).first():
        raise ConflictError(f"Slug '{data.slug}' is already taken")
    game = get_game(session, data.game)
    project = Project(
        game_id=game.id,  # type: ignore[arg-type]
        slug=data.slug,
        name=data.name,
        summary=data.summary,
    )
    session.add(project)
    _commit(session)
    session.refresh(project)
    logger.info("Created project %s (%d)", project.slug, project.id)
    return project_to_out(project, session)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


def get_versions(session: Session, version_ids: Sequence[int]) -> list[VersionOut]:
    """Versions in the order of ``version_ids``; unknown ids are skipped."""
    ids = list(dict.fromkeys(version_ids))
    if not ids:
        return []

    versions = {
        v.id: v
        for v in session.exec(select(Version).where(Version.id.in_(ids))).all()  # type: ignore[union-attr]
    }

    loaders: dict[int, list[str]] = defaultdict(list)
    for vid, name in session.exec(
        select(VersionLoader.version_id, Loader.loader)
        .join(Loader, Loader.id == VersionLoader.loader_id)
        .where(VersionLoader.version_id.in_(ids))  # type: ignore[attr-defined]
        .order_by(Loader.loader)
    ).all():
        loaders[vid].append(name)

    project_types: dict[int, set[str]] = defaultdict(set)
    games: dict[int, set[str]] = defaultdict(set)
    for vid, pt_name, game_name in session.exec(
        select(VersionLoader.version_id, ProjectType.name, Game.name)
        .join(
            LoaderProjectTypeGame,
            LoaderProjectTypeGame.loader_id == VersionLoader.loader_id,
        )
        .join(ProjectType, ProjectType.id == LoaderProjectTypeGame.project_type_id)
        .join(Game, Game.id == LoaderProjectTypeGame.game_id)
        .where(VersionLoader.version_id.in_(ids))  # type: ignore[attr-defined]
    ).all():
        project_types[vid].add(pt_name)
        games[vid].add(game_name)

    files: dict[int, list[VersionFileOut]] = defaultdict(list)
    for f in session.exec(
        select(VersionFile).where(VersionFile.version_id.in_(ids)).order_by(VersionFile.id)  # type: ignore[attr-defined]
    ).all():
        files[f.version_id].append(
            VersionFileOut(
                id=f.id,  # type: ignore[arg-type]
                filename=f.filename,
                url=f.url,
                size=f.size,
                sha1=f.sha1,
                primary=f.primary,
            )
        )

    fields = get_fields_bulk(session, versions.keys())  # type: ignore[arg-type]

    result: list[VersionOut] = []
    for vid in ids:
        v = versions.get(vid)
        if v is None:
            continue
        result.append(
            VersionOut(
                id=vid,
                project_id=v.project_id,
                name=v.name,
                version_number=v.version_number,
                changelog=v.changelog,
                version_type=v.version_type,
                status=v.status,
                featured=v.featured,
                ordering=v.ordering,
                date_published=v.date_published,
                loaders=loaders.get(vid, []),
                project_types=sorted(project_types.get(vid, set())),
                games=sorted(games.get(vid, set())),
                files=files.get(vid, []),
                fields=fields.get(vid, {}),
            )
        )
    return result


def get_version(session: Session, version_id: int) -> VersionOut:
    found = get_versions(session, [version_id])
    if not found:
        raise NotFoundError(f"Version {version_id} does not exist")
    return found[0]


def list_project_versions(
    session: Session,
    project_id: int,
    *,
    loaders: Iterable[str] | None = None,
    fields: Mapping[str, Sequence[Any]] | None = None,
) -> list[VersionOut]:
    """A project's versions, newest first, filtered by loaders and field values."""
    get_project(session, project_id)
    stmt = select(Version.id).where(Version.project_id == project_id)

    loader_names = list(loaders or [])
    if loader_names:
        loader_ids = get_loader_ids(session, loader_names)
        stmt = stmt.where(
            exists(
                select(VersionLoader.version_id).where(
                    VersionLoader.version_id == Version.id,
                    VersionLoader.loader_id.in_(loader_ids),  # type: ignore[attr-defined]
                )
            )
        )
    for predicate in field_filters(session, fields or {}):
        stmt = stmt.where(predicate)

    stmt = stmt.order_by(Version.date_published.desc(), Version.id.desc())  # type: ignore[attr-defined, union-attr]
    return get_versions(session, list(session.exec(stmt).all()))  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


def _resolve_loaders(session: Session, names: list[str], game_id: int) -> list[int]:
    if not names:
        raise FieldValidationError([FieldIssue("loaders", "must contain at least one loader")])
    loader_ids = get_loader_ids(session, names)
    supported = set(
        session.exec(
            select(LoaderProjectTypeGame.loader_id).where(
                LoaderProjectTypeGame.loader_id.in_(loader_ids),  # type: ignore[attr-defined]
                LoaderProjectTypeGame.game_id == game_id,
            )
        ).all()
    )
    unsupported = [n for n, lid in zip(names, loader_ids, strict=False) if lid not in supported]
    if unsupported:
        raise FieldValidationError(
            [FieldIssue("loaders", f"not available for this game: {', '.join(unsupported)}")]
        )
    return loader_ids


def _replace_loaders(session: Session, version_id: int, loader_ids: Iterable[int]) -> None:
    session.exec(delete(VersionLoader).where(VersionLoader.version_id == version_id))  # type: ignore[call-overload]
    for loader_id in loader_ids:
        session.add(VersionLoader(version_id=version_id, loader_id=loader_id))


def create_version(session: Session, data: VersionCreate) -> VersionOut:
    project = get_project(session, data.project_id)
    loader_ids = _resolve_loaders(session, list(dict.fromkeys(data.loaders)), project.game_id)
    validated = validate_fields(session, loader_ids, data.fields)

    version = Version(
        project_id=project.id,  # type: ignore[arg-type]
        name=data.name,
        version_number=data.version_number,
        changelog=data.changelog,
        version_type=data.version_type,
        status=data.status,
        featured=data.featured,
        ordering=data.ordering,
    )
    session.add(version)
    try:
        session.flush()
    except SQLAlchemyError as e:
        session.rollback()
        raise StorageError("Failed to create version") from e

    _replace_loaders(session, version.id, loader_ids)  # type: ignore[arg-type]
    for f in data.files:
        session.add(VersionFile(version_id=version.id, **f.model_dump()))  # type: ignore[arg-type]
    set_fields(session, version.id, validated, commit=False)  # type: ignore[arg-type]
    project.updated = datetime.now(UTC)
    session.add(project)
    _commit(session)

    logger.info(
        "Created version %s (%d) for project %d with %d field(s)",
        data.version_number,
        version.id,
        project.id,
        len(validated),
    )
    return get_version(session, version.id)  # type: ignore[arg-type]


def update_version(session: Session, version_id: int, data: VersionUpdate) -> VersionOut:
    """Patch a version.  Fields merge into the stored set; loaders, when given, replace."""
    version = session.get(Version, version_id)
    if version is None:
        raise NotFoundError(f"Version {version_id} does not exist")
    project = get_project(session, version.project_id)

    if data.loaders is not None:
        loader_ids = _resolve_loaders(session, list(dict.fromkeys(data.loaders)), project.game_id)
    else:
        loader_ids = list(
            session.exec(
                select(VersionLoader.loader_id).where(VersionLoader.version_id == version_id)
            ).all()
        )

    validated = []
    if data.fields is not None or data.loaders is not None:
        stored = get_fields(session, version_id)
        validated = validate_fields(session, loader_ids, data.fields or {}, existing=stored.keys())

    changes = data.model_dump(exclude_unset=True, exclude={"loaders", "fields"})
    for attr, value in changes.items():
        if value is None and attr not in _NULLABLE_VERSION_ATTRS:
            continue
        setattr(version, attr, value)
    session.add(version)

    if data.loaders is not None:
        _replace_loaders(session, version_id, loader_ids)
        # drop values of fields the new loader set no longer carries
        keep = [f.id for f in applicable_fields(session, loader_ids)]
        session.exec(
            delete(VersionField).where(
                VersionField.version_id == version_id,
                VersionField.field_id.not_in(keep),  # type: ignore[attr-defined]
            )
        )  # type: ignore[call-overload]
    set_fields(session, version_id, validated, commit=False)
    project.updated = datetime.now(UTC)
    session.add(project)
    _commit(session)

    logger.info("Updated version %d (%d field(s) touched)", version_id, len(validated))
    return get_version(session, version_id)
