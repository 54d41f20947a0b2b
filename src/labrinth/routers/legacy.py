"""v2 endpoints: fixed game_versions / loaders / side attributes over dynamic fields."""

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlmodel import Session

from labrinth.database import get_session
from labrinth.models.loader_field import LoaderField
from labrinth.schemas.loader_field import GameVersionOut
from labrinth.schemas.version import (
    LegacyProjectOut,
    LegacyVersionCreate,
    LegacyVersionOut,
    LegacyVersionUpdate,
)
from labrinth.services.enum_registry import get_enum_by_id, list_enum_values
from labrinth.services.legacy import CLIENT_SIDE_FIELD, GAME_VERSIONS_FIELD
from labrinth.services.legacy_service import (
    create_legacy_version,
    get_legacy_project,
    get_legacy_version,
    update_legacy_version,
)
from labrinth.services.loader_field_schema import get_field
from labrinth.services.search_projection import sync_project

router = APIRouter(prefix="/v2", tags=["legacy"])


def _field_enum(session: Session, name: str):
    lf: LoaderField = get_field(session, name)
    return get_enum_by_id(session, lf.enum_type)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Tags
# ---------------------------------------------------------------------------


@router.get("/tag/game_version", response_model=list[GameVersionOut])
def list_game_versions(
    type: str | None = None,
    major: bool | None = None,
    session: Session = Depends(get_session),
) -> list[GameVersionOut]:
    filters: dict = {}
    if type is not None:
        filters["type"] = type
    if major is not None:
        filters["major"] = major
    enum = _field_enum(session, GAME_VERSIONS_FIELD)
    values = list_enum_values(session, enum, include_hidden=True, filters=filters)
    result = [
        GameVersionOut(
            version=v.value,
            version_type=(v.value_metadata or {}).get("type", ""),
            date=v.created,
            major=bool((v.value_metadata or {}).get("major", False)),
        )
        for v in values
    ]
    result.sort(key=lambda gv: gv.date, reverse=True)
    return result


@router.get("/tag/side_type", response_model=list[str])
def list_side_types(session: Session = Depends(get_session)) -> list[str]:
    enum = _field_enum(session, CLIENT_SIDE_FIELD)
    return [v.value for v in list_enum_values(session, enum, include_hidden=True)]


# ---------------------------------------------------------------------------
# Projects and versions
# ---------------------------------------------------------------------------


@router.get("/project/{project_id}", response_model=LegacyProjectOut)
def read_legacy_project(
    project_id: int, session: Session = Depends(get_session)
) -> LegacyProjectOut:
    return get_legacy_project(session, project_id)


@router.post("/version", response_model=LegacyVersionOut, status_code=201)
def add_legacy_version(
    data: LegacyVersionCreate,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
) -> LegacyVersionOut:
    version = create_legacy_version(session, data)
    background_tasks.add_task(sync_project, version.project_id)
    return version


@router.get("/version/{version_id}", response_model=LegacyVersionOut)
def read_legacy_version(
    version_id: int, session: Session = Depends(get_session)
) -> LegacyVersionOut:
    return get_legacy_version(session, version_id)


@router.patch("/version/{version_id}", response_model=LegacyVersionOut)
def patch_legacy_version(
    version_id: int,
    data: LegacyVersionUpdate,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
) -> LegacyVersionOut:
    version = update_legacy_version(session, version_id, data)
    background_tasks.add_task(sync_project, version.project_id)
    return version
