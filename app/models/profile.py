from datetime import datetime, timezone
from enum import Enum
from typing import Annotated

from pydantic import AfterValidator, BaseModel, Field

from app.models.roles import ALL_ROLES, Role
from app.services.profile.constants import DOMINANT_ROLE_TIEBREAK


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _clamp_scores(scores: dict[Role, float]) -> dict[Role, float]:
    return {Role(role): max(0.0, min(1.0, float(score or 0.0))) for role, score in scores.items()}


RoleScores = Annotated[dict[Role, float], AfterValidator(_clamp_scores)]


class ProfileStatus(str, Enum):
    """Completion state of a student's role assessment."""

    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    SKIPPED = "SKIPPED"


class StudentProfile(BaseModel):
    """
    Role vector of a single student.

    Each role is scored independently in [0, 1]; the vector does not need to
    sum to one. Missing roles read as 0.0.
    """

    student_id: str
    scores: RoleScores = Field(default_factory=dict, description="Role → score in [0, 1]")
    status: ProfileStatus = ProfileStatus.NOT_STARTED
    reliability: float | None = Field(default=None, ge=0.0, le=1.0)
    total_questions: int | None = None
    answered_questions: int | None = None
    updated_at: datetime = Field(default_factory=_utcnow)

    def model_post_init(self, __context) -> None:
        if self.reliability is None:
            self.reliability = self.derive_reliability()

    def derive_reliability(self) -> float:
        """Share of the assessment that backs the scores."""
        if self.status == ProfileStatus.COMPLETED:
            return 1.0
        if (
            self.status == ProfileStatus.IN_PROGRESS
            and self.total_questions
            and self.answered_questions is not None
        ):
            return max(0.0, min(1.0, self.answered_questions / self.total_questions))
        return 0.0

    def score(self, role: Role) -> float:
        return self.scores.get(role, 0.0)

    def is_usable(self, min_reliability: float) -> bool:
        if self.status == ProfileStatus.COMPLETED:
            return True
        if self.status == ProfileStatus.IN_PROGRESS:
            return (self.reliability or 0.0) >= min_reliability
        return False

    def dominant_role(self) -> Role:
        dominant = DOMINANT_ROLE_TIEBREAK
        best = self.score(dominant)
        for role in ALL_ROLES:
            if self.score(role) > best:
                best = self.score(role)
                dominant = role
        return dominant


class GroupProfile(BaseModel):
    """
    Aggregate role vector of a group, derived from its usable members.

    This is a cache: it is recomputed from member profiles and overwritten,
    never patched.
    """

    group_id: str
    averages: RoleScores = Field(default_factory=dict, description="Role → mean member score")
    member_count: int = Field(default=0, ge=0, description="Members that contributed to the averages")
    variance: float = Field(default=0.0, ge=0.0, description="Mean per-role variance across members")
    recalculated_at: datetime = Field(default_factory=_utcnow)

    @classmethod
    def neutral(cls, group_id: str, value: float, recalculated_at: datetime | None = None) -> "GroupProfile":
        """Profile of a group that has no usable members yet."""
        return cls(
            group_id=group_id,
            averages={role: value for role in ALL_ROLES},
            member_count=0,
            variance=0.0,
            recalculated_at=recalculated_at or _utcnow(),
        )

    def average(self, role: Role) -> float:
        return self.averages.get(role, 0.0)

    def same_composition(self, other: "GroupProfile | None") -> bool:
        """True when both profiles describe the same aggregate, ignoring the timestamp."""
        if other is None:
            return False
        return (
            self.group_id == other.group_id
            and self.member_count == other.member_count
            and self.variance == other.variance
            and all(self.average(role) == other.average(role) for role in ALL_ROLES)
        )
