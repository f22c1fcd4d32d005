from collections.abc import Iterable

from loguru import logger

from app.core.config import settings
from app.core.constants import MEMBER_REASON, NEW_GROUP_REASON, NO_GAP_REASON
from app.models.profile import GroupProfile, StudentProfile
from app.models.recommendation import Recommendation
from app.models.roles import Role
from app.services.directory import MembershipDirectory, RedisMembershipDirectory
from app.services.profile_store import GroupProfileStore, StudentProfileStore
from app.services.recommendation.calibration import calibrate
from app.services.recommendation.scoring import GapFillBreakdown, GapFillingScoring


def build_match_reason(top_roles: list[Role], member_count: int) -> str:
    if member_count == 0:
        return NEW_GROUP_REASON
    if not top_roles:
        return NO_GAP_REASON
    names = " and ".join(role.display_name for role in top_roles)
    return f"You are strong in {names}, which this group currently lacks."


class RecommendationEngine:
    """
    Ranks candidate groups for a student by how well the student fills their role gaps.

    Reads whatever group profiles are cached right now and never waits for a
    recalculation. Candidate discovery is the caller's job.
    """

    def __init__(
        self,
        directory: MembershipDirectory | None = None,
        student_profiles: StudentProfileStore | None = None,
        group_profiles: GroupProfileStore | None = None,
        min_reliability: float | None = None,
        neutral_score: float | None = None,
        limit: int | None = None,
    ):
        self.directory = directory or RedisMembershipDirectory()
        self.student_profiles = student_profiles or StudentProfileStore()
        self.group_profiles = group_profiles or GroupProfileStore()
        self.min_reliability = settings.MIN_PROFILE_RELIABILITY if min_reliability is None else min_reliability
        self.neutral_score = settings.NEUTRAL_ROLE_SCORE if neutral_score is None else neutral_score
        self.limit = settings.RECOMMENDATION_LIMIT if limit is None else limit

    async def _usable_profile(self, student_id: str) -> StudentProfile | None:
        profile = await self.student_profiles.get(student_id)
        if profile is None or not profile.is_usable(self.min_reliability):
            status = profile.status.value if profile else "missing"
            logger.info(f"Student {student_id} has no usable role profile ({status}), no recommendations")
            return None
        return profile

    def _rank_one(
        self, student: StudentProfile, group_id: str, group_name: str, group: GroupProfile | None
    ) -> Recommendation:
        if group is None:
            group = GroupProfile.neutral(group_id, self.neutral_score)
        bd: GapFillBreakdown = GapFillingScoring.breakdown(student, group)
        top_roles = bd.top_roles()
        return Recommendation(
            group_id=group_id,
            group_name=group_name,
            match_percentage=calibrate(bd.raw_score),
            match_reason=build_match_reason(top_roles, group.member_count),
            member_count=group.member_count,
            raw_score=round(bd.raw_score, 6),
            top_roles=top_roles,
        )

    async def recommend(
        self, student_id: str, candidate_group_ids: Iterable[str], limit: int | None = None
    ) -> list[Recommendation]:
        """
        Rank candidate groups for a student.

        Args:
            student_id: Student asking for recommendations
            candidate_group_ids: Groups the caller considers eligible
            limit: Maximum results, defaults to RECOMMENDATION_LIMIT

        Returns:
            Recommendations sorted by match percentage (desc) then group id,
            or an empty list if the student has no usable profile

        Raises:
            ProfileStoreError: if profile or group data cannot be loaded
        """
        limit = self.limit if limit is None else limit
        student = await self._usable_profile(student_id)
        if student is None:
            return []

        candidates = list(dict.fromkeys(candidate_group_ids))
        joined = set(await self.directory.list_student_groups(student_id))
        if joined.intersection(candidates):
            logger.debug(f"Dropping {len(joined.intersection(candidates))} already-joined groups from candidates")
            candidates = [gid for gid in candidates if gid not in joined]
        if not candidates:
            return []

        names = await self.directory.get_group_names(candidates)
        profiles = await self.group_profiles.get_many(candidates)

        ranked = [
            self._rank_one(student, gid, names[gid], profiles.get(gid)) for gid in candidates if gid in names
        ]
        ranked.sort(key=lambda r: (-r.match_percentage, r.group_id))

        logger.info(f"Scored {len(ranked)} of {len(candidates)} candidate groups for student {student_id}")
        return ranked[:limit]

    async def score_group(self, student_id: str, group_id: str) -> Recommendation | None:
        """
        Match score of one group for a student, None if either side is unavailable.

        A group the student already belongs to is reported as a full match
        instead of being scored as a candidate.
        """
        student = await self._usable_profile(student_id)
        if student is None:
            return None
        names = await self.directory.get_group_names([group_id])
        if group_id not in names:
            return None
        group = await self.group_profiles.get(group_id)
        if group_id in await self.directory.list_student_groups(student_id):
            return Recommendation(
                group_id=group_id,
                group_name=names[group_id],
                match_percentage=100,
                match_reason=MEMBER_REASON,
                member_count=group.member_count if group else 0,
                is_member=True,
            )
        return self._rank_one(student, group_id, names[group_id], group)


recommendation_engine = RecommendationEngine()
