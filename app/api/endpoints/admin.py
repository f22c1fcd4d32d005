from fastapi import APIRouter
from loguru import logger

from app.services.aggregation import aggregation_service

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/groups/{group_id}/recalculate")
async def recalculate_group(group_id: str) -> dict[str, str]:
    """Recompute one group's profile now, outside the event flow."""
    outcome = await aggregation_service.recalculate(group_id)
    logger.info(f"Manual recalculation of group {group_id}: {outcome.value}")
    return {"group_id": group_id, "outcome": outcome.value}


@router.post("/reconcile")
async def reconcile_groups() -> dict[str, int]:
    """Recompute every group profile."""
    summary = await aggregation_service.reconcile_all()
    return dict(summary)
