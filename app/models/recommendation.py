from enum import Enum

from pydantic import BaseModel, Field

from app.models.roles import Role


class Recommendation(BaseModel):
    """A candidate group ranked for one student. Never persisted."""

    group_id: str
    group_name: str
    match_percentage: int = Field(ge=0, le=100)
    match_reason: str
    member_count: int = 0
    raw_score: float = 0.0
    top_roles: list[Role] = Field(default_factory=list, description="Roles that drove the score")
    is_member: bool = False


class RecalculationOutcome(str, Enum):
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"
    FAILED = "failed"
