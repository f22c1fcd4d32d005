from fastapi import APIRouter, HTTPException, Query
from loguru import logger

from app.models.recommendation import Recommendation
from app.services.profile_store import ProfileStoreError
from app.services.recommendation.engine import recommendation_engine

router = APIRouter(prefix="/students", tags=["matching"])


@router.get("/{student_id}/recommendations", response_model=list[Recommendation])
async def get_recommendations(
    student_id: str,
    group_ids: list[str] = Query(default=[], description="Candidate group ids"),
    limit: int | None = Query(default=None, ge=1, le=100),
) -> list[Recommendation]:
    """
    Rank the given candidate groups for a student.

    An empty list means the student has not completed enough of the role
    assessment; callers fall back to non-role-based suggestions.
    """
    try:
        return await recommendation_engine.recommend(student_id, group_ids, limit=limit)
    except ProfileStoreError as e:
        logger.error(f"Recommendations for student {student_id} unavailable: {e}")
        raise HTTPException(status_code=503, detail="Group profiles are temporarily unavailable.")


@router.get("/{student_id}/groups/{group_id}/score", response_model=Recommendation)
async def get_group_score(student_id: str, group_id: str) -> Recommendation:
    try:
        match = await recommendation_engine.score_group(student_id, group_id)
    except ProfileStoreError as e:
        logger.error(f"Score of group {group_id} for student {student_id} unavailable: {e}")
        raise HTTPException(status_code=503, detail="Group profiles are temporarily unavailable.")
    if match is None:
        raise HTTPException(status_code=404, detail="No usable profile for this student or group.")
    return match
