"""v3 version endpoints with dynamic loader fields."""

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlmodel import Session

from labrinth.database import get_session
from labrinth.routers.deps import parse_json_list
from labrinth.schemas.version import VersionCreate, VersionOut, VersionUpdate
from labrinth.services.search_projection import sync_project
from labrinth.services.version_service import create_version, get_version, get_versions, update_version

router = APIRouter(prefix="/v3", tags=["versions"])


@router.post("/version", response_model=VersionOut, status_code=201)
def add_version(
    data: VersionCreate,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
) -> VersionOut:
    version = create_version(session, data)
    background_tasks.add_task(sync_project, version.project_id)
    return version


@router.get("/version/{version_id}", response_model=VersionOut)
def read_version(version_id: int, session: Session = Depends(get_session)) -> VersionOut:
    return get_version(session, version_id)


@router.patch("/version/{version_id}", response_model=VersionOut)
def patch_version(
    version_id: int,
    data: VersionUpdate,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
) -> VersionOut:
    version = update_version(session, version_id, data)
    background_tasks.add_task(sync_project, version.project_id)
    return version


@router.get("/versions", response_model=list[VersionOut])
def read_versions(
    ids: str = Query(description="JSON array of version ids"),
    session: Session = Depends(get_session),
) -> list[VersionOut]:
    return get_versions(session, parse_json_list("ids", ids, int, "integers") or [])
