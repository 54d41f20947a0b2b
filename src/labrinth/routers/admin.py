"""Admin mutators for games, loaders, loader fields and enums."""

from fastapi import APIRouter, Depends, Response
from sqlmodel import Session

from labrinth.database import get_session
from labrinth.models.loader_field import LoaderField, LoaderFieldEnumValue
from labrinth.schemas.loader_field import (
    EnumCreate,
    EnumOut,
    EnumValueCreate,
    EnumValueOut,
    EnumValueUpdate,
    GameCreate,
    GameOut,
    LoaderAssociation,
    LoaderCreate,
    LoaderFieldCreate,
    LoaderFieldOut,
    LoaderOut,
)
from labrinth.services import enum_registry
from labrinth.services.loader_field_schema import (
    associate_loaders,
    create_field,
    create_game,
    create_loader,
    delete_loader,
    dissociate_loader,
    get_field,
    get_game,
    get_loader,
    get_loader_ids,
    loaders_for_field,
)

router = APIRouter(prefix="/v3/admin", tags=["admin"])


def _field_out(lf: LoaderField, session: Session) -> LoaderFieldOut:
    return LoaderFieldOut(
        id=lf.id,  # type: ignore[arg-type]
        field=lf.field,
        field_type=lf.field_type,
        enum_type=lf.enum_type,
        optional=lf.optional,
        min_val=lf.min_val,
        max_val=lf.max_val,
        unique_items=lf.unique_items,
        loaders=loaders_for_field(session, lf.id),  # type: ignore[arg-type]
    )


def _value_out(v: LoaderFieldEnumValue) -> EnumValueOut:
    return EnumValueOut(
        id=v.id,  # type: ignore[arg-type]
        enum_id=v.enum_id,
        value=v.value,
        ordering=v.ordering,
        created=v.created,
        metadata=v.value_metadata,
        deprecated=v.deprecated,
    )


# ---------------------------------------------------------------------------
# Games and loaders
# ---------------------------------------------------------------------------


@router.post("/game", response_model=GameOut, status_code=201)
def add_game(data: GameCreate, session: Session = Depends(get_session)) -> GameOut:
    game = create_game(session, data.name)
    return GameOut(id=game.id, name=game.name)  # type: ignore[arg-type]


@router.post("/loader", response_model=LoaderOut, status_code=201)
def add_loader(data: LoaderCreate, session: Session = Depends(get_session)) -> LoaderOut:
    loader = create_loader(
        session,
        data.name,
        game_names=data.games,
        project_types=data.project_types,
        icon=data.icon,
        hidable=data.hidable,
    )
    return LoaderOut(
        icon=loader.icon,
        name=loader.loader,
        hidable=loader.hidable,
        supported_project_types=sorted(set(data.project_types)),
        supported_games=sorted(set(data.games)) if data.project_types else [],
    )


@router.delete("/loader/{name}", status_code=204)
def remove_loader(name: str, session: Session = Depends(get_session)) -> Response:
    delete_loader(session, name)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Loader fields
# ---------------------------------------------------------------------------


@router.post("/loader_field", response_model=LoaderFieldOut, status_code=201)
def add_loader_field(
    data: LoaderFieldCreate, session: Session = Depends(get_session)
) -> LoaderFieldOut:
    lf = create_field(
        session,
        data.field,
        data.field_type,
        enum_type=data.enum_type,
        optional=data.optional,
        min_val=data.min_val,
        max_val=data.max_val,
        unique_items=data.unique_items,
        loader_ids=get_loader_ids(session, data.loaders),
    )
    return _field_out(lf, session)


@router.post("/loader_field/{name}/loaders", response_model=LoaderFieldOut)
def add_field_loaders(
    name: str, data: LoaderAssociation, session: Session = Depends(get_session)
) -> LoaderFieldOut:
    lf = get_field(session, name)
    associate_loaders(session, lf, get_loader_ids(session, data.loaders))
    return _field_out(lf, session)


@router.delete("/loader_field/{name}/loaders/{loader}", response_model=LoaderFieldOut)
def remove_field_loader(
    name: str, loader: str, session: Session = Depends(get_session)
) -> LoaderFieldOut:
    lf = get_field(session, name)
    dissociate_loader(session, lf, get_loader(session, loader).id)  # type: ignore[arg-type]
    return _field_out(lf, session)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


@router.post("/enum", response_model=EnumOut, status_code=201)
def add_enum(data: EnumCreate, session: Session = Depends(get_session)) -> EnumOut:
    game = get_game(session, data.game)
    enum = enum_registry.create_enum(
        session,
        game.id,  # type: ignore[arg-type]
        data.enum_name,
        ordering=data.ordering,
        hidable=data.hidable,
    )
    return EnumOut(
        id=enum.id,  # type: ignore[arg-type]
        game_id=enum.game_id,
        enum_name=enum.enum_name,
        ordering=enum.ordering,
        hidable=enum.hidable,
    )


@router.post("/enum/{enum_id}/value", response_model=EnumValueOut, status_code=201)
def add_enum_value(
    enum_id: int, data: EnumValueCreate, session: Session = Depends(get_session)
) -> EnumValueOut:
    value = enum_registry.add_value(
        session,
        enum_id,
        data.value,
        ordering=data.ordering,
        metadata=data.metadata,
        created=data.created,
    )
    return _value_out(value)


@router.patch("/enum_value/{value_id}", response_model=EnumValueOut)
def patch_enum_value(
    value_id: int, data: EnumValueUpdate, session: Session = Depends(get_session)
) -> EnumValueOut:
    value = enum_registry.update_value(
        session, value_id, **data.model_dump(exclude_unset=True)
    )
    return _value_out(value)


@router.delete("/enum_value/{value_id}", status_code=204)
def remove_enum_value(value_id: int, session: Session = Depends(get_session)) -> Response:
    enum_registry.delete_value(session, value_id)
    return Response(status_code=204)
