from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from app.api.main import api_router
from app.services.events import event_dispatcher
from app.services.reconciler import reconciliation_sweep
from app.services.redis_service import redis_service

from .config import settings
from .version import __version__


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifespan events (startup/shutdown).
    """
    event_dispatcher.start()
    reconciliation_sweep.start()
    yield
    await reconciliation_sweep.stop()
    # Give already-queued recalculations a bounded chance to finish
    await event_dispatcher.drain()
    await event_dispatcher.stop()
    try:
        await redis_service.close()
    except Exception as exc:
        logger.warning(f"Failed to close Redis client: {exc}")


app = FastAPI(
    title=settings.APP_NAME,
    description="Role-profile aggregation and study-group recommendations",
    version=__version__,
    lifespan=lifespan,
    docs_url=None if settings.APP_ENV != "development" else "/docs",
    redoc_url=None if settings.APP_ENV != "development" else "/redoc",
)

app.include_router(api_router)
