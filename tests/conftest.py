"""Shared fixtures for the matching engine test suite."""

import fakeredis
import pytest

from app.models.profile import ProfileStatus, StudentProfile
from app.models.roles import ALL_ROLES, Role
from app.services.aggregation import ProfileAggregationService
from app.services.directory import RedisMembershipDirectory
from app.services.profile_store import GroupProfileStore, StudentProfileStore
from app.services.recommendation.engine import RecommendationEngine
from app.services.redis_service import RedisService


# ── Redis ────────────────────────────────────────────────────────────────


@pytest.fixture
def fake_redis():
    """Fresh, isolated fake Redis per test (decode_responses=True like production)."""
    return fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture
def redis_svc(fake_redis):
    return RedisService(client=fake_redis)


# ── Stores & services ────────────────────────────────────────────────────


@pytest.fixture
def directory(redis_svc):
    return RedisMembershipDirectory(redis_svc)


@pytest.fixture
def student_store(redis_svc):
    return StudentProfileStore(redis_svc)


@pytest.fixture
def group_store(redis_svc):
    return GroupProfileStore(redis_svc)


@pytest.fixture
def aggregation(directory, student_store, group_store):
    return ProfileAggregationService(
        directory=directory,
        student_profiles=student_store,
        group_profiles=group_store,
        min_reliability=0.25,
        neutral_score=0.5,
    )


@pytest.fixture
def engine(directory, student_store, group_store):
    return RecommendationEngine(
        directory=directory,
        student_profiles=student_store,
        group_profiles=group_store,
        min_reliability=0.25,
        neutral_score=0.5,
        limit=10,
    )


# ── Profile factories ────────────────────────────────────────────────────


def uniform(value: float) -> dict[Role, float]:
    return {role: value for role in ALL_ROLES}


@pytest.fixture
def make_profile():
    """Factory for StudentProfile with a COMPLETED assessment by default.

    Usage:
        profile = make_profile("s1", {Role.EXPERT: 0.9})
    """

    def _factory(student_id: str, scores: dict[Role, float] | None = None, **overrides):
        defaults = {
            "student_id": student_id,
            "scores": scores if scores is not None else uniform(0.5),
            "status": ProfileStatus.COMPLETED,
        }
        defaults.update(overrides)
        return StudentProfile(**defaults)

    return _factory


@pytest.fixture
def seed(directory, student_store):
    """Register a group with members and their profiles in one call.

    Usage:
        await seed("g1", "Algorithms A", [profile_a, profile_b])
    """

    async def _seed(group_id: str, name: str, profiles: list[StudentProfile] | None = None):
        await directory.register_group(group_id, name)
        for profile in profiles or []:
            await student_store.set(profile)
            await directory.add_member(group_id, profile.student_id)

    return _seed
