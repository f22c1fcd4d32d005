from pydantic import BaseModel, Field

from app.models.profile import GroupProfile, StudentProfile
from app.models.roles import ALL_ROLES, Role
from app.services.profile.constants import (
    CONTRIBUTION_EPSILON,
    MATCH_REASON_MAX_ROLES,
    ROLE_IMPORTANCE,
    ROLE_TARGET_MIX,
)


class GapFillBreakdown(BaseModel):
    raw_score: float
    deficits: dict[Role, float] = Field(default_factory=dict)
    contributions: dict[Role, float] = Field(default_factory=dict)

    def top_roles(self, limit: int = MATCH_REASON_MAX_ROLES) -> list[Role]:
        """Roles with the largest positive contribution, ties in role order."""
        ranked = sorted(
            (r for r in ALL_ROLES if self.contributions.get(r, 0.0) > CONTRIBUTION_EPSILON),
            key=lambda r: self.contributions[r],
            reverse=True,
        )
        return ranked[:limit]


class GapFillingScoring:
    """
    Scores how much of a group's role deficit a student can close.

    For every role the group's deficit is how far its average sits below the
    target mix. The student fills at most that deficit; strength beyond the
    gap earns nothing.
    """

    @staticmethod
    def deficit(role: Role, group: GroupProfile) -> float:
        return max(0.0, ROLE_TARGET_MIX[role] - group.average(role))

    @staticmethod
    def breakdown(student: StudentProfile, group: GroupProfile) -> GapFillBreakdown:
        deficits = {}
        contributions = {}
        raw = 0.0
        for role in ALL_ROLES:
            deficits[role] = GapFillingScoring.deficit(role, group)
            contributions[role] = min(deficits[role], student.score(role))
            raw += ROLE_IMPORTANCE[role] * contributions[role]
        return GapFillBreakdown(raw_score=raw, deficits=deficits, contributions=contributions)

    @staticmethod
    def score(student: StudentProfile, group: GroupProfile) -> float:
        return GapFillingScoring.breakdown(student, group).raw_score

    @staticmethod
    def max_raw_score() -> float:
        """Upper bound of the raw score: a student filling every gap of an empty-scored group."""
        return sum(ROLE_IMPORTANCE[role] * ROLE_TARGET_MIX[role] for role in ALL_ROLES)
