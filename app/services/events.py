import asyncio

from loguru import logger

from app.core.config import settings
from app.models.events import (
    ChangeEvent,
    GroupCreated,
    GroupDeleted,
    MemberJoined,
    MemberLeft,
    ProfileUpdated,
)
from app.services.aggregation import ProfileAggregationService, aggregation_service


class EventDispatcher:
    """
    In-process channel between profile/membership writers and the aggregation service.

    Publishing never blocks and never raises: the group and assessment
    services call it right after committing a change and move on. Worker
    tasks drain the queue and trigger recalculations. Delivery is
    at-least-once with no ordering across events, which is safe because every
    recalculation re-reads current state.
    """

    def __init__(
        self,
        aggregation: ProfileAggregationService,
        workers: int | None = None,
        maxsize: int | None = None,
    ):
        self.aggregation = aggregation
        self.worker_count = max(1, workers or settings.EVENT_WORKERS)
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=settings.EVENT_QUEUE_MAXSIZE if maxsize is None else maxsize)
        self._workers: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return bool(self._workers)

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def publish(self, event: ChangeEvent) -> bool:
        """
        Queue an event for asynchronous handling.

        Returns:
            True if queued, False if the queue was full and the event dropped
        """
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning(f"Event queue full, dropping {event.kind} event; reconciliation will repair")
            return False
        logger.debug(f"Queued {event.kind} event")
        return True

    def publish_member_joined(self, group_id: str, student_id: str) -> bool:
        return self.publish(MemberJoined(group_id=group_id, student_id=student_id))

    def publish_member_left(self, group_id: str, student_id: str) -> bool:
        return self.publish(MemberLeft(group_id=group_id, student_id=student_id))

    def publish_profile_updated(self, student_id: str) -> bool:
        return self.publish(ProfileUpdated(student_id=student_id))

    def publish_group_created(self, group_id: str, creator_id: str | None = None) -> bool:
        return self.publish(GroupCreated(group_id=group_id, creator_id=creator_id))

    def publish_group_deleted(self, group_id: str) -> bool:
        return self.publish(GroupDeleted(group_id=group_id))

    async def handle(self, event: ChangeEvent) -> None:
        """Route one event to the aggregation service."""
        if isinstance(event, (MemberJoined, MemberLeft)):
            await self.aggregation.recalculate(event.group_id)
        elif isinstance(event, ProfileUpdated):
            await self.aggregation.recalculate_for_student(event.student_id)
        elif isinstance(event, GroupCreated):
            await self.aggregation.initialize_group(event.group_id)
        elif isinstance(event, GroupDeleted):
            await self.aggregation.remove_group(event.group_id)
        else:
            logger.warning(f"Ignoring unknown event type {type(event).__name__}")

    async def _worker(self, index: int) -> None:
        logger.debug(f"Event worker {index} started")
        while True:
            event = await self._queue.get()
            try:
                await self.handle(event)
            except Exception as e:
                logger.exception(f"Failed to handle {getattr(event, 'kind', event)} event: {e}")
            finally:
                self._queue.task_done()

    def start(self) -> None:
        if self._workers:
            return
        self._workers = [asyncio.create_task(self._worker(i)) for i in range(self.worker_count)]
        logger.info(f"Event dispatcher started with {self.worker_count} workers")

    async def join(self) -> None:
        """Wait until every queued event has been handled."""
        await self._queue.join()

    async def drain(self, timeout: float | None = None) -> bool:
        """
        Wait for the queue to empty, giving up after `timeout` seconds.

        Returns:
            True if every event was handled, False if some were left behind
        """
        timeout = settings.SHUTDOWN_DRAIN_SECONDS if timeout is None else timeout
        try:
            await asyncio.wait_for(self._queue.join(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(
                f"Abandoning {self.pending} queued events after {timeout}s; reconciliation will repair"
            )
            return False
        return True

    async def stop(self) -> None:
        if not self._workers:
            return
        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        logger.info("Event dispatcher stopped")


event_dispatcher = EventDispatcher(aggregation_service)
