import asyncio
import contextlib
import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import labrinth.models  # noqa: F401  registers all tables
from labrinth.config import settings
from labrinth.database import create_db_and_tables
from labrinth.errors import FieldValidationError, LabrinthError, StorageError
from labrinth.routers import api_router
from labrinth.seed import seed_database
from labrinth.services.search_projection import run_retry_loop


def _configure_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )
    for name in ("httpx", "httpcore", "uvicorn.access"):
        logging.getLogger(name).setLevel(logging.WARNING)


_configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    create_db_and_tables()
    if settings.seed_defaults:
        seed_database()
    retry_task: asyncio.Task | None = None
    if settings.search_url:
        retry_task = asyncio.create_task(run_retry_loop(settings.search_retry_interval))
    logger.info("Application started")
    yield
    logger.info("Shutting down...")
    if retry_task is not None:
        retry_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await retry_task
    try:
        from labrinth.database import engine

        engine.dispose()
        logger.info("Database engine disposed")
    except Exception:
        logger.exception("Failed to dispose database engine")
    logger.info("Shutdown complete")


app = FastAPI(
    title="Labrinth",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(LabrinthError)
async def labrinth_error_handler(_request: Request, exc: LabrinthError) -> JSONResponse:
    body: dict = {"error": exc.error, "description": exc.description}
    if isinstance(exc, FieldValidationError):
        body["fields"] = [{"field": i.field, "reason": i.reason} for i in exc.issues]
    elif isinstance(exc, StorageError):
        logger.error("Storage error: %s", exc.description)
        body["description"] = "A storage error occurred, please retry"
    return JSONResponse(status_code=exc.status_code, content=body)


app.include_router(api_router)


@app.get("/")
async def root() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}
