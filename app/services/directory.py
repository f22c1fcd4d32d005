from abc import ABC, abstractmethod
from collections.abc import Iterable

import redis.asyncio as redis
from loguru import logger

from app.core.constants import GROUP_MEMBERS_KEY, GROUP_NAMES_KEY, STUDENT_GROUPS_KEY
from app.services.profile_store import ProfileStoreError
from app.services.redis_service import RedisService, redis_service


class MembershipDirectory(ABC):
    """
    Read side of the group-membership service.

    The matching engine only reads membership; joins, leaves and group
    lifecycle belong to the group service, which publishes change events.
    """

    @abstractmethod
    async def group_exists(self, group_id: str) -> bool:
        pass

    @abstractmethod
    async def get_group_names(self, group_ids: Iterable[str]) -> dict[str, str]:
        """
        Return display names for the groups that still exist, in one read.
        """
        pass

    @abstractmethod
    async def list_group_members(self, group_id: str) -> list[str]:
        pass

    @abstractmethod
    async def list_student_groups(self, student_id: str) -> list[str]:
        pass

    @abstractmethod
    async def list_group_ids(self) -> list[str]:
        pass


class RedisMembershipDirectory(MembershipDirectory):
    """Membership read model kept in Redis sets by the group service."""

    def __init__(self, redis_svc: RedisService | None = None):
        self._redis = redis_svc or redis_service

    @staticmethod
    def _members_key(group_id: str) -> str:
        return GROUP_MEMBERS_KEY.format(group_id=group_id)

    @staticmethod
    def _groups_key(student_id: str) -> str:
        return STUDENT_GROUPS_KEY.format(student_id=student_id)

    async def group_exists(self, group_id: str) -> bool:
        try:
            client = await self._redis.get_client()
            return bool(await client.hexists(GROUP_NAMES_KEY, group_id))
        except (redis.RedisError, OSError) as exc:
            raise ProfileStoreError(f"Failed to look up group {group_id}: {exc}") from exc

    async def get_group_names(self, group_ids: Iterable[str]) -> dict[str, str]:
        ids = list(dict.fromkeys(group_ids))
        if not ids:
            return {}
        try:
            client = await self._redis.get_client()
            names = await client.hmget(GROUP_NAMES_KEY, ids)
        except (redis.RedisError, OSError) as exc:
            raise ProfileStoreError(f"Failed to read names of {len(ids)} groups: {exc}") from exc
        return {gid: name for gid, name in zip(ids, names) if name is not None}

    async def list_group_members(self, group_id: str) -> list[str]:
        try:
            client = await self._redis.get_client()
            members = await client.smembers(self._members_key(group_id))
        except (redis.RedisError, OSError) as exc:
            raise ProfileStoreError(f"Failed to list members of group {group_id}: {exc}") from exc
        return sorted(members)

    async def list_student_groups(self, student_id: str) -> list[str]:
        try:
            client = await self._redis.get_client()
            groups = await client.smembers(self._groups_key(student_id))
        except (redis.RedisError, OSError) as exc:
            raise ProfileStoreError(f"Failed to list groups of student {student_id}: {exc}") from exc
        return sorted(groups)

    async def list_group_ids(self) -> list[str]:
        try:
            client = await self._redis.get_client()
            ids = await client.hkeys(GROUP_NAMES_KEY)
        except (redis.RedisError, OSError) as exc:
            raise ProfileStoreError(f"Failed to list groups: {exc}") from exc
        return sorted(ids)

    # Write helpers for the group service and for seeding

    async def register_group(self, group_id: str, name: str) -> None:
        client = await self._redis.get_client()
        await client.hset(GROUP_NAMES_KEY, group_id, name)
        logger.debug(f"Registered group {group_id} ({name})")

    async def unregister_group(self, group_id: str) -> None:
        """Remove a group and every membership pointing at it."""
        client = await self._redis.get_client()
        members = await client.smembers(self._members_key(group_id))
        async with client.pipeline(transaction=True) as pipe:
            pipe.hdel(GROUP_NAMES_KEY, group_id)
            pipe.delete(self._members_key(group_id))
            for student_id in members:
                pipe.srem(self._groups_key(student_id), group_id)
            await pipe.execute()
        logger.debug(f"Unregistered group {group_id} with {len(members)} members")

    async def add_member(self, group_id: str, student_id: str) -> None:
        client = await self._redis.get_client()
        async with client.pipeline(transaction=True) as pipe:
            pipe.sadd(self._members_key(group_id), student_id)
            pipe.sadd(self._groups_key(student_id), group_id)
            await pipe.execute()

    async def remove_member(self, group_id: str, student_id: str) -> None:
        client = await self._redis.get_client()
        async with client.pipeline(transaction=True) as pipe:
            pipe.srem(self._members_key(group_id), student_id)
            pipe.srem(self._groups_key(student_id), group_id)
            await pipe.execute()
