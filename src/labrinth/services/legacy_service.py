"""v2 project and version operations expressed through the dynamic field model."""

import logging

from sqlmodel import Session

from labrinth.config import settings
from labrinth.schemas.version import (
    LegacyProjectOut,
    LegacyVersionCreate,
    LegacyVersionOut,
    LegacyVersionUpdate,
    VersionCreate,
    VersionOut,
    VersionUpdate,
)
from labrinth.services.legacy import (
    MRPACK_LOADER,
    MRPACK_LOADERS_FIELD,
    LegacySideType,
    fields_from_legacy,
    legacy_fields,
    legacy_project_fields,
    legacy_project_type,
)
from labrinth.services.loader_field_schema import applicable_fields, get_loader_ids
from labrinth.services.version_service import (
    create_version,
    get_project,
    get_version,
    list_project_versions,
    update_version,
)

logger = logging.getLogger(__name__)


def default_side() -> LegacySideType:
    return LegacySideType.from_string(settings.legacy_side_default)


def legacy_version_out(version: VersionOut, side_default: LegacySideType) -> LegacyVersionOut:
    lf = legacy_fields(version.fields, version.loaders, side_default)
    return LegacyVersionOut(
        id=version.id,
        project_id=version.project_id,
        name=version.name,
        version_number=version.version_number,
        changelog=version.changelog,
        version_type=version.version_type,
        status=version.status,
        featured=version.featured,
        date_published=version.date_published,
        files=version.files,
        game_versions=lf.game_versions,
        loaders=lf.loaders,
        client_side=lf.client_side,
        server_side=lf.server_side,
    )


def get_legacy_version(session: Session, version_id: int) -> LegacyVersionOut:
    return legacy_version_out(get_version(session, version_id), default_side())


def get_legacy_project(session: Session, project_id: int) -> LegacyProjectOut:
    project = get_project(session, project_id)
    versions = list_project_versions(session, project_id)
    aggregated = legacy_project_fields(
        ((v.fields, v.loaders) for v in versions), default_side()
    )
    project_types = {pt for v in versions for pt in v.project_types}
    return LegacyProjectOut(
        id=project.id,  # type: ignore[arg-type]
        slug=project.slug,
        title=project.name,
        description=project.summary,
        project_type=legacy_project_type(project_types),
        published=project.published,
        updated=project.updated,
        versions=sorted(v.id for v in versions),
        game_versions=aggregated.game_versions,
        loaders=aggregated.loaders,
        client_side=aggregated.client_side,
        server_side=aggregated.server_side,
    )


def _is_modpack(session: Session, project_id: int) -> bool:
    return any(MRPACK_LOADER in v.loaders for v in list_project_versions(session, project_id))


def _modpack_loaders(loaders: list[str], payload: dict) -> list[str]:
    """v2 clients send a modpack's mod loaders as its loaders; v3 wants mrpack plus a field."""
    if MRPACK_LOADER in loaders:
        return loaders
    payload[MRPACK_LOADERS_FIELD] = list(loaders)
    return [MRPACK_LOADER]


def _applicable_names(session: Session, loaders: list[str]) -> set[str]:
    return {f.field for f in applicable_fields(session, get_loader_ids(session, loaders))}


def create_legacy_version(session: Session, data: LegacyVersionCreate) -> LegacyVersionOut:
    payload: dict = {}
    loaders = list(data.loaders)
    if _is_modpack(session, data.project_id):
        loaders = _modpack_loaders(loaders, payload)
    payload.update(
        fields_from_legacy(
            game_versions=data.game_versions,
            client_side=data.client_side,
            server_side=data.server_side,
            applicable=_applicable_names(session, loaders),
        )
    )

    created = create_version(
        session,
        VersionCreate(
            project_id=data.project_id,
            name=data.name,
            version_number=data.version_number,
            changelog=data.changelog,
            version_type=data.version_type,
            status=data.status,
            featured=data.featured,
            loaders=loaders,
            files=data.files,
            fields=payload,
        ),
    )
    return legacy_version_out(created, default_side())


def update_legacy_version(
    session: Session, version_id: int, data: LegacyVersionUpdate
) -> LegacyVersionOut:
    current = get_version(session, version_id)
    payload: dict = {}
    loaders = current.loaders
    if data.loaders is not None:
        loaders = list(data.loaders)
        if MRPACK_LOADER in current.loaders:
            loaders = _modpack_loaders(loaders, payload)

    payload.update(
        fields_from_legacy(
            game_versions=data.game_versions,
            client_side=data.client_side,
            server_side=data.server_side,
            applicable=_applicable_names(session, loaders),
        )
    )
    changes = data.model_dump(
        exclude_unset=True,
        exclude={"loaders", "game_versions", "client_side", "server_side"},
    )
    updated = update_version(
        session,
        version_id,
        VersionUpdate(
            **changes,
            loaders=loaders if data.loaders is not None else None,
            fields=payload or None,
        ),
    )
    logger.debug("Applied legacy update to version %d", version_id)
    return legacy_version_out(updated, default_side())
