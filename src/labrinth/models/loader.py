from sqlmodel import Field, SQLModel


class ProjectType(SQLModel, table=True):
    __tablename__ = "project_types"

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True, max_length=64)


class Loader(SQLModel, table=True):
    __tablename__ = "loaders"

    id: int | None = Field(default=None, primary_key=True)
    loader: str = Field(index=True, unique=True, max_length=64)
    icon: str = ""
    hidable: bool = False


class LoaderProjectTypeGame(SQLModel, table=True):
    """Which project types a loader supports, per game."""

    __tablename__ = "loaders_project_types_games"

    loader_id: int = Field(foreign_key="loaders.id", primary_key=True)
    project_type_id: int = Field(foreign_key="project_types.id", primary_key=True)
    game_id: int = Field(foreign_key="games.id", primary_key=True)
