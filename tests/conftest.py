from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

import labrinth.models  # noqa: F401  registers all tables
from labrinth.database import enable_sqlite_foreign_keys, get_session
from labrinth.main import app
from labrinth.models.version import Project, Version
from labrinth.schemas.version import VersionCreate
from labrinth.seed import seed_defaults
from labrinth.services.loader_field_schema import get_game
from labrinth.services.version_service import create_version


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(eng)
    SQLModel.metadata.create_all(eng)
    return eng


@pytest.fixture
def session(engine, monkeypatch):
    monkeypatch.setattr("labrinth.database.engine", engine)
    with Session(engine) as sess:
        yield sess


@pytest.fixture
def seeded(session):
    seed_defaults(session)
    return session


@pytest.fixture
def client(engine, monkeypatch):
    monkeypatch.setattr("labrinth.database.engine", engine)
    monkeypatch.setattr("labrinth.config.settings.search_url", "")

    def _override_session() -> Generator[Session, None, None]:
        with Session(engine) as sess:
            yield sess

    app.dependency_overrides[get_session] = _override_session
    with TestClient(app, raise_server_exceptions=False) as tc:
        yield tc
    app.dependency_overrides.clear()


@pytest.fixture
def make_project(seeded):
    def _make(slug: str = "sodium", name: str = "Sodium") -> Project:
        game = get_game(seeded, "minecraft-java")
        project = Project(game_id=game.id, slug=slug, name=name, summary="A mod")
        seeded.add(project)
        seeded.commit()
        seeded.refresh(project)
        return project

    return _make


@pytest.fixture
def make_version(seeded):
    def _make(
        project: Project,
        loaders: list[str] | None = None,
        fields: dict | None = None,
        version_number: str = "1.0.0",
        status: str = "listed",
    ) -> Version:
        out = create_version(
            seeded,
            VersionCreate(
                project_id=project.id,
                name=version_number,
                version_number=version_number,
                status=status,
                loaders=loaders or ["fabric"],
                fields=fields if fields is not None else {"game_versions": ["1.20.1"]},
            ),
        )
        return seeded.get(Version, out.id)

    return _make
