"""Tests for ranking candidate groups for a student."""

import pytest
import redis.asyncio as redis

from app.core.constants import MEMBER_REASON, NEW_GROUP_REASON, NO_GAP_REASON
from app.models.profile import GroupProfile, ProfileStatus
from app.models.roles import Role
from app.services.profile_store import ProfileStoreError

from .conftest import uniform


@pytest.fixture
def cache_group(directory, group_store):
    """Register a group and cache its profile directly."""

    async def _cache(group_id: str, averages: dict[Role, float], members: int = 3, name: str | None = None):
        await directory.register_group(group_id, name or f"Group {group_id}")
        await group_store.set(GroupProfile(group_id=group_id, averages=averages, member_count=members))

    return _cache


@pytest.fixture
async def expert(student_store, make_profile):
    profile = make_profile("expert", {Role.EXPERT: 1.0, Role.LEADER: 0.6})
    await student_store.set(profile)
    return profile


class TestRecommend:
    async def test_unknown_student_gets_nothing(self, engine, cache_group):
        await cache_group("g1", uniform(0.1))
        assert await engine.recommend("nobody", ["g1"]) == []

    @pytest.mark.parametrize(
        "overrides",
        [
            {"status": ProfileStatus.NOT_STARTED},
            {"status": ProfileStatus.SKIPPED},
            {"status": ProfileStatus.IN_PROGRESS, "reliability": 0.1},
        ],
    )
    async def test_unusable_profile_gets_nothing(self, engine, cache_group, student_store, make_profile, overrides):
        await student_store.set(make_profile("s1", uniform(0.9), **overrides))
        await cache_group("g1", uniform(0.1))
        assert await engine.recommend("s1", ["g1"]) == []

    async def test_reliable_in_progress_profile_is_ranked(self, engine, cache_group, student_store, make_profile):
        await student_store.set(
            make_profile("s1", uniform(0.9), status=ProfileStatus.IN_PROGRESS, total_questions=20, answered_questions=10)
        )
        await cache_group("g1", uniform(0.1))
        assert [r.group_id for r in await engine.recommend("s1", ["g1"])] == ["g1"]

    async def test_gap_group_beats_balanced_group(self, engine, cache_group, expert):
        await cache_group("balanced", uniform(0.5))
        await cache_group("needs-expert", {**uniform(0.5), Role.EXPERT: 0.2})

        results = await engine.recommend("expert", ["balanced", "needs-expert"])

        assert [r.group_id for r in results] == ["needs-expert", "balanced"]
        top, bottom = results
        assert top.match_percentage > 0
        assert top.top_roles == [Role.EXPERT]
        assert "Expert" in top.match_reason
        assert bottom.match_percentage == 0
        assert bottom.match_reason == NO_GAP_REASON

    async def test_results_sorted_and_in_range(self, engine, cache_group, expert):
        for i, level in enumerate([0.0, 0.1, 0.2, 0.3, 0.4, 0.5]):
            await cache_group(f"g{i}", uniform(level))

        results = await engine.recommend("expert", [f"g{i}" for i in range(6)])

        percentages = [r.match_percentage for r in results]
        assert percentages == sorted(percentages, reverse=True)
        assert all(0 <= p <= 100 for p in percentages)
        assert results[0].group_id == "g0"

    async def test_ties_break_on_group_id(self, engine, cache_group, expert):
        for gid in ("zeta", "alpha", "mid"):
            await cache_group(gid, uniform(0.3))
        results = await engine.recommend("expert", ["zeta", "alpha", "mid"])
        assert [r.group_id for r in results] == ["alpha", "mid", "zeta"]

    async def test_joined_groups_are_excluded(self, engine, cache_group, directory, expert):
        await cache_group("g1", uniform(0.1))
        await cache_group("g2", uniform(0.1))
        await directory.add_member("g1", "expert")

        results = await engine.recommend("expert", ["g1", "g2"])
        assert [r.group_id for r in results] == ["g2"]

    async def test_duplicates_and_unknown_groups_are_dropped(self, engine, cache_group, expert):
        await cache_group("g1", uniform(0.1))
        results = await engine.recommend("expert", ["g1", "g1", "deleted"])
        assert [r.group_id for r in results] == ["g1"]

    async def test_limit(self, engine, cache_group, expert):
        ids = [f"g{i:02d}" for i in range(15)]
        for gid in ids:
            await cache_group(gid, uniform(0.2))

        assert len(await engine.recommend("expert", ids)) == 10
        assert len(await engine.recommend("expert", ids, limit=3)) == 3

    async def test_empty_candidates(self, engine, expert):
        assert await engine.recommend("expert", []) == []

    async def test_group_without_cached_profile_reads_as_new(self, engine, directory, expert):
        await directory.register_group("fresh", "Fresh Group")

        (result,) = await engine.recommend("expert", ["fresh"])
        assert result.group_name == "Fresh Group"
        assert result.member_count == 0
        assert result.match_reason == NEW_GROUP_REASON

    @pytest.mark.parametrize("count", [1, 5, 25])
    async def test_reads_do_not_grow_with_candidates(self, engine, cache_group, fake_redis, expert, monkeypatch, count):
        ids = [f"g{i}" for i in range(count)]
        for gid in ids:
            await cache_group(gid, uniform(0.2))

        calls = {"mget": 0, "hmget": 0, "get": 0}
        for name in calls:
            original = getattr(fake_redis, name)

            def counted(*args, _original=original, _name=name, **kwargs):
                calls[_name] += 1
                return _original(*args, **kwargs)

            monkeypatch.setattr(fake_redis, name, counted)

        results = await engine.recommend("expert", ids)

        assert len(results) == min(count, 10)
        assert calls == {"mget": 1, "hmget": 1, "get": 1}

    async def test_batch_read_failure_propagates(self, engine, cache_group, fake_redis, expert, monkeypatch):
        await cache_group("g1", uniform(0.1))

        async def broken_mget(*args, **kwargs):
            raise redis.ConnectionError("connection refused")

        monkeypatch.setattr(fake_redis, "mget", broken_mget)
        with pytest.raises(ProfileStoreError):
            await engine.recommend("expert", ["g1"])


class TestScoreGroup:
    async def test_scores_single_group(self, engine, cache_group, expert):
        await cache_group("g1", {**uniform(0.5), Role.EXPERT: 0.0})
        result = await engine.score_group("expert", "g1")
        assert result.group_id == "g1"
        assert result.top_roles == [Role.EXPERT]

    async def test_unknown_group(self, engine, expert):
        assert await engine.score_group("expert", "missing") is None

    async def test_unusable_student(self, engine, cache_group):
        await cache_group("g1", uniform(0.1))
        assert await engine.score_group("nobody", "g1") is None

    async def test_member_group_is_not_scored_as_candidate(self, engine, cache_group, directory, expert):
        await cache_group("g1", {**uniform(0.5), Role.EXPERT: 0.0}, members=2)
        await directory.add_member("g1", "expert")

        result = await engine.score_group("expert", "g1")

        assert result.is_member
        assert result.match_percentage == 100
        assert result.match_reason == MEMBER_REASON
        assert result.member_count == 2
        assert result.top_roles == []
