"""Push project search documents to the external search index.

Projection runs after a version write has committed; it never rolls the
write back.  Projects whose push failed are remembered and retried by the
periodic task started from the application lifespan.
"""

import asyncio
import logging
from types import TracebackType
from typing import Any, Self

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from labrinth import database
from labrinth.config import settings
from labrinth.errors import ProjectionError
from labrinth.models.version import Project
from labrinth.services.facets import SearchDocument, build_search_document

logger = logging.getLogger(__name__)

_pending: set[int] = set()


class SearchIndexClient:
    """Minimal client for a Meilisearch-style documents API."""

    def __init__(self, base_url: str, api_key: str = "", index: str = "projects") -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._index = index
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> Self:
        headers = {"Accept": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=headers,
            timeout=settings.search_timeout,
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._client:
            await self._client.aclose()

    @property
    def client(self) -> httpx.AsyncClient:
        if not self._client:
            raise RuntimeError("SearchIndexClient not entered as context manager")
        return self._client

    async def _send(self, method: str, path: str, **kwargs: Any) -> None:
        try:
            resp = await self.client.request(method, path, **kwargs)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise ProjectionError(f"Search index request failed: {e}") from e

    async def push_document(self, document: SearchDocument) -> None:
        await self._send(
            "POST",
            f"/indexes/{self._index}/documents",
            params={"primaryKey": "project_id"},
            json=[document.model_dump(mode="json")],
        )

    async def delete_document(self, project_id: int) -> None:
        await self._send("DELETE", f"/indexes/{self._index}/documents/{project_id}")


def pending_projects() -> set[int]:
    return set(_pending)


def _load_document(project_id: int) -> SearchDocument | None:
    with Session(database.engine) as session:
        project = session.get(Project, project_id)
        if project is None:
            return None
        return build_search_document(session, project)


async def sync_project(project_id: int) -> bool:
    """Rebuild and push a project's search document.

    Returns False when the push failed; the project is then queued for the
    retry loop.  Does nothing when no search index is configured.
    """
    if not settings.search_url:
        return True

    try:
        document = await asyncio.to_thread(_load_document, project_id)
    except SQLAlchemyError:
        logger.warning(
            "Could not build search document for project %d, will retry", project_id, exc_info=True
        )
        _pending.add(project_id)
        return False

    try:
        async with SearchIndexClient(
            settings.search_url, settings.search_api_key, settings.search_index
        ) as index:
            if document is None:
                await index.delete_document(project_id)
            else:
                await index.push_document(document)
    except ProjectionError:
        logger.warning("Search projection failed for project %d, will retry", project_id)
        _pending.add(project_id)
        return False

    _pending.discard(project_id)
    logger.debug("Projected project %d to search index", project_id)
    return True


async def retry_pending() -> int:
    """Retry every queued project once; returns how many are still pending."""
    for project_id in sorted(_pending):
        await sync_project(project_id)
    return len(_pending)


async def run_retry_loop(interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        if _pending:
            remaining = await retry_pending()
            logger.info("Search projection retry done, %d project(s) pending", remaining)
