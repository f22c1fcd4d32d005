from collections.abc import Iterable

import redis.asyncio as redis
from loguru import logger
from pydantic import ValidationError

from app.core.constants import GROUP_PROFILE_KEY, STUDENT_PROFILE_KEY
from app.models.profile import GroupProfile, StudentProfile
from app.services.redis_service import RedisService, redis_service


class ProfileStoreError(RuntimeError):
    """Raised when profile data cannot be read from or written to Redis."""


def _unique(ids: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(ids))


class StudentProfileStore:
    """Redis-backed store for student role profiles (read-only for the matching engine)."""

    def __init__(self, redis_svc: RedisService | None = None):
        self._redis = redis_svc or redis_service

    @staticmethod
    def _key(student_id: str) -> str:
        return STUDENT_PROFILE_KEY.format(student_id=student_id)

    @staticmethod
    def _decode(key: str, raw: str | None) -> StudentProfile | None:
        if not raw:
            return None
        try:
            return StudentProfile.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Ignoring undecodable student profile at '{key}': {e}")
            return None

    async def get(self, student_id: str) -> StudentProfile | None:
        key = self._key(student_id)
        try:
            client = await self._redis.get_client()
            raw = await client.get(key)
        except (redis.RedisError, OSError) as exc:
            raise ProfileStoreError(f"Failed to read student profile {student_id}: {exc}") from exc
        return self._decode(key, raw)

    async def get_many(self, student_ids: Iterable[str]) -> dict[str, StudentProfile]:
        """
        Load several profiles with a single MGET.

        Students without a stored profile are absent from the result.
        """
        ids = _unique(student_ids)
        if not ids:
            return {}
        keys = [self._key(sid) for sid in ids]
        try:
            client = await self._redis.get_client()
            values = await client.mget(keys)
        except (redis.RedisError, OSError) as exc:
            raise ProfileStoreError(f"Failed to read {len(ids)} student profiles: {exc}") from exc

        profiles = {}
        for sid, key, raw in zip(ids, keys, values):
            profile = self._decode(key, raw)
            if profile is not None:
                profiles[sid] = profile
        return profiles

    async def set(self, profile: StudentProfile) -> None:
        try:
            client = await self._redis.get_client()
            await client.set(self._key(profile.student_id), profile.model_dump_json())
        except (redis.RedisError, OSError) as exc:
            raise ProfileStoreError(f"Failed to write student profile {profile.student_id}: {exc}") from exc
        logger.debug(f"Stored profile for student {profile.student_id} ({profile.status.value})")

    async def delete(self, student_id: str) -> bool:
        try:
            client = await self._redis.get_client()
            return bool(await client.delete(self._key(student_id)))
        except (redis.RedisError, OSError) as exc:
            raise ProfileStoreError(f"Failed to delete student profile {student_id}: {exc}") from exc


class GroupProfileStore:
    """
    Redis-backed cache of aggregate group profiles.

    Only the aggregation service writes here; everything else reads.
    """

    def __init__(self, redis_svc: RedisService | None = None):
        self._redis = redis_svc or redis_service

    @staticmethod
    def _key(group_id: str) -> str:
        return GROUP_PROFILE_KEY.format(group_id=group_id)

    @staticmethod
    def _decode(key: str, raw: str | None) -> GroupProfile | None:
        if not raw:
            return None
        try:
            return GroupProfile.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Ignoring undecodable group profile at '{key}': {e}")
            return None

    async def get(self, group_id: str) -> GroupProfile | None:
        key = self._key(group_id)
        try:
            client = await self._redis.get_client()
            raw = await client.get(key)
        except (redis.RedisError, OSError) as exc:
            raise ProfileStoreError(f"Failed to read group profile {group_id}: {exc}") from exc
        return self._decode(key, raw)

    async def get_many(self, group_ids: Iterable[str]) -> dict[str, GroupProfile]:
        """
        Load the profiles of all given groups in one round trip.

        Args:
            group_ids: Group ids to load; duplicates are ignored

        Returns:
            Mapping of group id to profile for every group that has one cached

        Raises:
            ProfileStoreError: if the batch read fails
        """
        ids = _unique(group_ids)
        if not ids:
            return {}
        keys = [self._key(gid) for gid in ids]
        try:
            client = await self._redis.get_client()
            values = await client.mget(keys)
        except (redis.RedisError, OSError) as exc:
            raise ProfileStoreError(f"Failed to read {len(ids)} group profiles: {exc}") from exc

        profiles = {}
        for gid, key, raw in zip(ids, keys, values):
            profile = self._decode(key, raw)
            if profile is not None:
                profiles[gid] = profile
        return profiles

    async def set(self, profile: GroupProfile) -> None:
        try:
            client = await self._redis.get_client()
            await client.set(self._key(profile.group_id), profile.model_dump_json())
        except (redis.RedisError, OSError) as exc:
            raise ProfileStoreError(f"Failed to write group profile {profile.group_id}: {exc}") from exc
        logger.debug(f"Cached profile for group {profile.group_id} ({profile.member_count} members)")

    async def delete(self, group_id: str) -> bool:
        try:
            client = await self._redis.get_client()
            return bool(await client.delete(self._key(group_id)))
        except (redis.RedisError, OSError) as exc:
            raise ProfileStoreError(f"Failed to delete group profile {group_id}: {exc}") from exc

    async def list_group_ids(self) -> list[str]:
        """Ids of every group that currently has a cached profile."""
        pattern = self._key("*")
        prefix = pattern[:-1]
        try:
            client = await self._redis.get_client()
            ids = [key[len(prefix) :] async for key in client.scan_iter(match=pattern, count=500)]
        except (redis.RedisError, OSError) as exc:
            raise ProfileStoreError(f"Failed to list cached group profiles: {exc}") from exc
        return sorted(ids)
