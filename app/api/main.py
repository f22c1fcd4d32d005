from fastapi import APIRouter

from .endpoints.admin import router as admin_router
from .endpoints.events import router as events_router
from .endpoints.health import router as health_router
from .endpoints.matching import router as matching_router

api_router = APIRouter()


@api_router.get("/")
async def root():
    return {"message": "StudyBuddy matching API is running"}


api_router.include_router(health_router)
api_router.include_router(matching_router)
api_router.include_router(events_router)
api_router.include_router(admin_router)
