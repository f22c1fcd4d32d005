import asyncio
import statistics
from collections import Counter
from datetime import datetime, timezone

from loguru import logger

from app.core.config import settings
from app.models.profile import GroupProfile, StudentProfile
from app.models.recommendation import RecalculationOutcome
from app.models.roles import ALL_ROLES
from app.services.directory import MembershipDirectory, RedisMembershipDirectory
from app.services.locks import KeyedLocks
from app.services.profile_store import GroupProfileStore, ProfileStoreError, StudentProfileStore

RECONCILE_CONCURRENCY = 8


def aggregate_profiles(
    group_id: str,
    profiles: list[StudentProfile],
    neutral_score: float,
    now: datetime | None = None,
) -> GroupProfile:
    """
    Build a group profile from the usable profiles of its members.

    Averages are exact means (statistics.mean works on exact fractions), so
    members sharing one vector produce exactly that vector regardless of order.
    """
    now = now or datetime.now(timezone.utc)
    if not profiles:
        return GroupProfile.neutral(group_id, neutral_score, recalculated_at=now)

    averages = {}
    variances = []
    for role in ALL_ROLES:
        values = [p.score(role) for p in profiles]
        averages[role] = statistics.mean(values)
        variances.append(statistics.pvariance(values) if len(values) > 1 else 0.0)

    return GroupProfile(
        group_id=group_id,
        averages=averages,
        member_count=len(profiles),
        variance=statistics.mean(variances),
        recalculated_at=now,
    )


class ProfileAggregationService:
    """
    Keeps each group's cached profile in line with its current members.

    Recalculation always starts from current membership and profiles, never
    from event payloads. Runs for one group are serialised; runs for
    different groups proceed concurrently. Failures are logged and swallowed:
    the cache heals on the next event or reconciliation sweep.
    """

    def __init__(
        self,
        directory: MembershipDirectory | None = None,
        student_profiles: StudentProfileStore | None = None,
        group_profiles: GroupProfileStore | None = None,
        min_reliability: float | None = None,
        neutral_score: float | None = None,
    ):
        self.directory = directory or RedisMembershipDirectory()
        self.student_profiles = student_profiles or StudentProfileStore()
        self.group_profiles = group_profiles or GroupProfileStore()
        self.min_reliability = settings.MIN_PROFILE_RELIABILITY if min_reliability is None else min_reliability
        self.neutral_score = settings.NEUTRAL_ROLE_SCORE if neutral_score is None else neutral_score
        self._locks = KeyedLocks()

    def is_recalculating(self, group_id: str) -> bool:
        return self._locks.locked(group_id)

    async def recalculate(self, group_id: str) -> RecalculationOutcome:
        """
        Recompute and store the profile of one group.

        Returns SKIPPED when the group no longer exists, UNCHANGED when the
        stored profile already matches, FAILED on any storage error.
        """
        async with self._locks.hold(group_id):
            try:
                return await self._recalculate_locked(group_id)
            except ProfileStoreError as e:
                logger.warning(f"Recalculation of group {group_id} failed, will retry later: {e}")
                return RecalculationOutcome.FAILED
            except Exception as e:
                logger.exception(f"Unexpected error recalculating group {group_id}: {e}")
                return RecalculationOutcome.FAILED

    async def _recalculate_locked(self, group_id: str) -> RecalculationOutcome:
        if not await self.directory.group_exists(group_id):
            if await self.group_profiles.delete(group_id):
                logger.info(f"Group {group_id} no longer exists, dropped its stale profile")
            else:
                logger.info(f"Group {group_id} no longer exists, skipping recalculation")
            return RecalculationOutcome.SKIPPED

        members = await self.directory.list_group_members(group_id)
        profiles = await self.student_profiles.get_many(members)
        usable = [
            profiles[sid] for sid in members if sid in profiles and profiles[sid].is_usable(self.min_reliability)
        ]

        fresh = aggregate_profiles(group_id, usable, self.neutral_score)
        current = await self.group_profiles.get(group_id)
        if fresh.same_composition(current):
            logger.debug(f"Profile of group {group_id} already up to date")
            return RecalculationOutcome.UNCHANGED

        await self.group_profiles.set(fresh)
        logger.info(
            f"Recalculated profile for group {group_id}: {fresh.member_count}/{len(members)} usable members, "
            f"variance {fresh.variance:.4f}"
        )
        return RecalculationOutcome.UPDATED

    async def recalculate_for_student(self, student_id: str) -> dict[str, RecalculationOutcome]:
        """Recalculate every group the student belongs to right now."""
        try:
            group_ids = await self.directory.list_student_groups(student_id)
        except ProfileStoreError as e:
            logger.warning(f"Could not list groups of student {student_id}: {e}")
            return {}

        if not group_ids:
            logger.debug(f"Student {student_id} is in no groups, nothing to recalculate")
            return {}

        outcomes = await asyncio.gather(*(self.recalculate(gid) for gid in group_ids))
        logger.info(f"Recalculated {len(group_ids)} groups after profile update of student {student_id}")
        return dict(zip(group_ids, outcomes))

    async def initialize_group(self, group_id: str) -> RecalculationOutcome:
        """Create the first profile of a new group from its founding members."""
        outcome = await self.recalculate(group_id)
        logger.info(f"Initial profile for group {group_id}: {outcome.value}")
        return outcome

    async def remove_group(self, group_id: str) -> bool:
        """Drop the cached profile of a deleted group."""
        async with self._locks.hold(group_id):
            try:
                removed = await self.group_profiles.delete(group_id)
            except ProfileStoreError as e:
                logger.warning(f"Failed to drop profile of deleted group {group_id}: {e}")
                return False
        if removed:
            logger.info(f"Dropped profile of deleted group {group_id}")
        return removed

    async def reconcile_all(self) -> Counter:
        """
        Recalculate every known group and drop profiles of deleted groups.

        Walks the directory's groups plus every cached profile, so a profile
        whose deletion event was lost is still visited and removed.
        """
        try:
            group_ids = sorted(
                set(await self.directory.list_group_ids()) | set(await self.group_profiles.list_group_ids())
            )
        except ProfileStoreError as e:
            logger.warning(f"Reconciliation aborted, could not list groups: {e}")
            return Counter()

        sem = asyncio.Semaphore(RECONCILE_CONCURRENCY)

        async def _one(gid: str) -> RecalculationOutcome:
            async with sem:
                return await self.recalculate(gid)

        outcomes = await asyncio.gather(*(_one(gid) for gid in group_ids))
        summary = Counter(o.value for o in outcomes)
        logger.info(f"Reconciled {len(group_ids)} group profiles: {dict(summary)}")
        return summary


aggregation_service = ProfileAggregationService()
