import logging
from collections.abc import Generator

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine, text

from labrinth.config import settings

logger = logging.getLogger(__name__)


def _make_engine(url: str) -> Engine:
    if not url.startswith("sqlite"):
        return create_engine(url, echo=False, pool_pre_ping=True)

    if url.startswith("sqlite:///"):
        settings.data_dir.mkdir(parents=True, exist_ok=True)
    eng = create_engine(
        url,
        echo=False,
        connect_args={"timeout": 30, "check_same_thread": False},
    )
    enable_sqlite_foreign_keys(eng)
    return eng


def enable_sqlite_foreign_keys(eng: Engine) -> None:
    """Enforce FK constraints on every new SQLite connection (off by default)."""

    @event.listens_for(eng, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.close()


engine = _make_engine(settings.database_url)


def _migrate_legacy_columns() -> None:
    """Fold pre-dynamic game version / side type columns into loader fields."""
    from labrinth.services.legacy_migration import run_legacy_migrations

    with Session(engine) as session:
        run_legacy_migrations(session, settings.default_game)


def create_db_and_tables() -> None:
    SQLModel.metadata.create_all(engine)
    if engine.dialect.name == "sqlite":
        with engine.connect() as conn:
            conn.execute(text("PRAGMA journal_mode=WAL"))
            conn.commit()

    _migrate_legacy_columns()


def get_session() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session
