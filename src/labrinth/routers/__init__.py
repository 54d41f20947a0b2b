from fastapi import APIRouter

from labrinth.routers.admin import router as admin_router
from labrinth.routers.legacy import router as legacy_router
from labrinth.routers.projects import router as projects_router
from labrinth.routers.tags import router as tags_router
from labrinth.routers.versions import router as versions_router

api_router = APIRouter()
api_router.include_router(tags_router)
api_router.include_router(admin_router)
api_router.include_router(projects_router)
api_router.include_router(versions_router)
api_router.include_router(legacy_router)
