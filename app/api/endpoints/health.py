from fastapi import APIRouter

from app.services.events import event_dispatcher
from app.services.redis_service import redis_service

router = APIRouter(tags=["health"])


@router.get("/health", summary="Simple readiness check")
async def health_check() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/metrics", summary="Runtime metrics (lightweight)")
async def metrics() -> dict:
    """Return lightweight runtime metrics for the recalculation pipeline."""
    return {
        "redis": "ok" if await redis_service.ping() else "unavailable",
        "event_workers_running": event_dispatcher.running,
        "events_pending": event_dispatcher.pending,
    }
