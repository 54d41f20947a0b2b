"""v3 project endpoints."""

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from labrinth.database import get_session
from labrinth.routers.deps import parse_field_filters, parse_json_list
from labrinth.schemas.version import ProjectCreate, ProjectOut, VersionOut
from labrinth.services.facets import SearchDocument, build_search_document
from labrinth.services.version_service import (
    create_project,
    get_project,
    list_project_versions,
    project_to_out,
)

router = APIRouter(prefix="/v3/project", tags=["projects"])


@router.post("", response_model=ProjectOut, status_code=201)
def add_project(data: ProjectCreate, session: Session = Depends(get_session)) -> ProjectOut:
    return create_project(session, data)


@router.get("/{project_id}", response_model=ProjectOut)
def read_project(project_id: int, session: Session = Depends(get_session)) -> ProjectOut:
    return project_to_out(get_project(session, project_id), session)


@router.get("/{project_id}/version", response_model=list[VersionOut])
def read_project_versions(
    project_id: int,
    loaders: str | None = Query(default=None, description='JSON array, e.g. ["fabric"]'),
    fields: str | None = Query(
        default=None, description='JSON object, e.g. {"game_versions": ["1.20.1"]}'
    ),
    session: Session = Depends(get_session),
) -> list[VersionOut]:
    """Versions of a project, newest first, filtered by loaders and loader field values."""
    return list_project_versions(
        session,
        project_id,
        loaders=parse_json_list("loaders", loaders, str, "strings"),
        fields=parse_field_filters(fields),
    )


@router.get("/{project_id}/search_document", response_model=SearchDocument)
def read_search_document(
    project_id: int, session: Session = Depends(get_session)
) -> SearchDocument:
    return build_search_document(session, get_project(session, project_id))
