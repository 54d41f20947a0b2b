"""Tag listings: loaders and the values of enum loader fields."""

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from labrinth.database import get_session
from labrinth.errors import FieldIssue, FieldValidationError
from labrinth.routers.deps import parse_json_param
from labrinth.schemas.loader_field import EnumValueOut, LoaderOut
from labrinth.services.enum_registry import get_enum_by_id, list_enum_values
from labrinth.services.loader_field_schema import get_field, get_game, list_loaders

router = APIRouter(prefix="/v3", tags=["tags"])


@router.get("/tag/loader", response_model=list[LoaderOut])
def list_loader_tags(
    game: str | None = None,
    session: Session = Depends(get_session),
) -> list[LoaderOut]:
    game_id = get_game(session, game).id if game else None
    return [
        LoaderOut(
            icon=info.icon,
            name=info.loader,
            hidable=info.hidable,
            supported_project_types=info.supported_project_types,
            supported_games=info.supported_games,
        )
        for info in list_loaders(session, game_id)
    ]


@router.get("/loader_field", response_model=list[EnumValueOut])
def list_loader_field_values(
    loader_field: str,
    filters: str | None = Query(default=None, description="JSON object of metadata filters"),
    include_hidden: bool = False,
    session: Session = Depends(get_session),
) -> list[EnumValueOut]:
    """Possible values of an enum loader field, in display order."""
    lf = get_field(session, loader_field)
    if lf.enum_type is None:
        raise FieldValidationError([FieldIssue("loader_field", "is not an enum field")])
    enum = get_enum_by_id(session, lf.enum_type)
    metadata_filters = parse_json_param("filters", filters, dict)
    values = list_enum_values(
        session, enum, include_hidden=include_hidden, filters=metadata_filters
    )
    return [
        EnumValueOut(
            id=v.id,  # type: ignore[arg-type]
            enum_id=v.enum_id,
            value=v.value,
            ordering=v.ordering,
            created=v.created,
            metadata=v.value_metadata,
            deprecated=v.deprecated,
        )
        for v in values
    ]
