"""Projection of dynamic version fields into facets and filter predicates.

Only enum and array_enum fields become facet axes; every other kind stays in
per-version detail responses.  Facet terms are plain value strings,
deduplicated across a project's versions.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime
from typing import Any

from pydantic import BaseModel
from sqlalchemy import ColumnElement, and_, exists
from sqlmodel import Session, select

from labrinth.errors import FieldIssue, FieldValidationError
from labrinth.models.game import Game
from labrinth.models.loader import Loader, LoaderProjectTypeGame, ProjectType
from labrinth.models.loader_field import LoaderField, LoaderFieldEnumValue, LoaderFieldType
from labrinth.models.version import Project, Version, VersionField, VersionLoader
from labrinth.services.field_types import INT_MAX, INT_MIN
from labrinth.services.loader_field_schema import get_field, get_fields_by_name
from labrinth.services.version_field_store import get_fields_bulk

logger = logging.getLogger(__name__)

SEARCHABLE_STATUSES = ("listed", "archived")


class SearchDocument(BaseModel):
    project_id: int
    slug: str
    name: str
    summary: str
    game: str
    loaders: list[str]
    project_types: list[str]
    version_ids: list[int]
    facets: dict[str, list[str]]
    date_modified: datetime


def facet_terms(
    version_fields: Iterable[Mapping[str, Any]],
    definitions: Mapping[str, LoaderField],
) -> dict[str, list[str]]:
    """Fold per-version field values into ``facet name -> distinct terms``.

    Terms keep first-seen order.  A field missing from a version adds nothing.
    """
    facets: dict[str, dict[str, None]] = {}
    for fields in version_fields:
        for name, value in fields.items():
            lf = definitions.get(name)
            if lf is None or not lf.field_type.is_enum or value is None:
                continue
            terms = value if isinstance(value, list) else [value]
            facets.setdefault(name, {}).update(dict.fromkeys(terms))
    return {name: list(terms) for name, terms in facets.items() if terms}


def _project_loaders(session: Session, version_ids: Sequence[int]) -> list[str]:
    if not version_ids:
        return []
    rows = session.exec(
        select(Loader.loader)
        .join(VersionLoader, VersionLoader.loader_id == Loader.id)
        .where(VersionLoader.version_id.in_(version_ids))  # type: ignore[attr-defined]
        .distinct()
        .order_by(Loader.loader)
    ).all()
    return list(rows)


def _project_types(session: Session, version_ids: Sequence[int], game_id: int) -> list[str]:
    if not version_ids:
        return []
    rows = session.exec(
        select(ProjectType.name)
        .join(LoaderProjectTypeGame, LoaderProjectTypeGame.project_type_id == ProjectType.id)
        .join(VersionLoader, VersionLoader.loader_id == LoaderProjectTypeGame.loader_id)
        .where(
            VersionLoader.version_id.in_(version_ids),  # type: ignore[attr-defined]
            LoaderProjectTypeGame.game_id == game_id,
        )
        .distinct()
        .order_by(ProjectType.name)
    ).all()
    return list(rows)


def build_search_document(session: Session, project: Project) -> SearchDocument:
    """Denormalised search document for a project, from its searchable versions."""
    versions = session.exec(
        select(Version)
        .where(
            Version.project_id == project.id,
            Version.status.in_(SEARCHABLE_STATUSES),  # type: ignore[attr-defined]
        )
        .order_by(Version.date_published, Version.id)
    ).all()
    version_ids = [v.id for v in versions if v.id is not None]

    fields_by_version = get_fields_bulk(session, version_ids)
    ordered = [fields_by_version[vid] for vid in version_ids]
    names = {name for fields in ordered for name in fields}
    facets = facet_terms(ordered, get_fields_by_name(session, names))

    game = session.get(Game, project.game_id)
    return SearchDocument(
        project_id=project.id,  # type: ignore[arg-type]
        slug=project.slug,
        name=project.name,
        summary=project.summary,
        game=game.name if game else "",
        loaders=_project_loaders(session, version_ids),
        project_types=_project_types(session, version_ids, project.game_id),
        version_ids=version_ids,
        facets=facets,
        date_modified=project.updated,
    )


# ---------------------------------------------------------------------------
# Server-side predicates
# ---------------------------------------------------------------------------


def field_predicate(lf: LoaderField, values: Sequence[Any]) -> ColumnElement[bool]:
    """Versions having at least one stored value of ``lf`` among ``values``."""
    element = lf.field_type.element
    base = and_(VersionField.version_id == Version.id, VersionField.field_id == lf.id)

    if element is LoaderFieldType.enum:
        return exists(
            select(VersionField.id)
            .join(LoaderFieldEnumValue, LoaderFieldEnumValue.id == VersionField.enum_value)
            .where(base, LoaderFieldEnumValue.value.in_([str(v) for v in values]))  # type: ignore[attr-defined]
        )
    if element is LoaderFieldType.boolean:
        ints = [1 if v in (True, 1, "true") else 0 for v in values]
        return exists(select(VersionField.id).where(base, VersionField.int_value.in_(ints)))  # type: ignore[union-attr]
    if element is LoaderFieldType.integer:
        ints = [int(v) for v in values]
        if any(not INT_MIN <= i <= INT_MAX for i in ints):
            raise ValueError("integer filter value out of range")
        return exists(select(VersionField.id).where(base, VersionField.int_value.in_(ints)))  # type: ignore[union-attr]
    return exists(
        select(VersionField.id).where(base, VersionField.string_value.in_([str(v) for v in values]))  # type: ignore[union-attr]
    )


def field_filters(
    session: Session, filters: Mapping[str, Sequence[Any]]
) -> list[ColumnElement[bool]]:
    """Predicates for ``field -> accepted values``: OR within a field, AND across fields."""
    predicates: list[ColumnElement[bool]] = []
    for name, values in filters.items():
        lf = get_field(session, name)
        if not values:
            continue
        try:
            predicates.append(field_predicate(lf, list(values)))
        except (TypeError, ValueError) as e:
            raise FieldValidationError([FieldIssue(name, "has an invalid filter value")]) from e
    return predicates
