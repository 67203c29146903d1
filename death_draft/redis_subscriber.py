import asyncio
import logging
from typing import Awaitable, Callable, List, Optional
from pydantic import ValidationError
from redis.asyncio import Redis

from death_draft.domain.changes import ChangeFilter
from death_draft.models.dc_models import ChangeEventModel, RealtimeStatus

HEART_BEAT = 15
CHANGE_CHANNEL = "death_draft:changes"

logging.basicConfig(level=logging.INFO)

ChangeHandler = Callable[[ChangeEventModel], Awaitable[None]]
StatusHandler = Callable[[str], None]
MalformedHandler = Callable[[], Awaitable[None]]


async def publish_change(redis: Redis, event: ChangeEventModel, channel: str = CHANGE_CHANNEL):
    """Publish one row change to every subscriber of the change feed.

    Args:
        redis (Redis): Redis connection object.
        event (ChangeEventModel): The committed row change.
        channel (str): Change feed channel name.
    """
    await redis.publish(channel, event.model_dump_json(by_alias=True))


class Subscription:
    """One view's subscription to the change feed."""

    def __init__(
        self,
        name: str,
        filters: List[ChangeFilter],
        handler: ChangeHandler,
        on_status: Optional[StatusHandler] = None,
        on_malformed: Optional[MalformedHandler] = None,
    ):
        self.name = name
        self.filters = filters
        self.handler = handler
        self.on_status = on_status
        self.on_malformed = on_malformed
        self.status: str = RealtimeStatus.connecting.value
        self.task: Optional[asyncio.Task] = None

    def set_status(self, status: RealtimeStatus):
        self.status = status.value
        if self.on_status is not None:
            self.on_status(self.status)

    def wants(self, event: ChangeEventModel) -> bool:
        return any(f.matches(event) for f in self.filters)

    async def deliver(self, raw: str):
        """Decode a feed message and hand it to the handler if it matches.

        A payload that does not decode, or a handler that blows up on it,
        triggers the malformed callback so the view can reload from scratch.
        """
        try:
            event = ChangeEventModel.model_validate_json(raw)
        except ValidationError as e:
            logging.warning(f"Malformed change event on {self.name}: {e}")
            await self._recover()
            return

        if not self.wants(event):
            return
        try:
            await self.handler(event)
        except Exception as e:
            logging.error(f"Change handler for {self.name} failed: {e}")
            await self._recover()

    async def _recover(self):
        if self.on_malformed is not None:
            await self.on_malformed()

    async def close(self):
        if self.task is not None and not self.task.done():
            self.task.cancel()
            await asyncio.gather(self.task, return_exceptions=True)
        self.set_status(RealtimeStatus.closed)


class RedisSubscriber:
    """Redis subscriber class to deliver change-feed events to views."""

    def __init__(self, redis: Redis, channel: str = CHANGE_CHANNEL):
        """Initialize RedisSubscriber with the redis connection and channel name."""
        self.redis: Redis = redis
        self.channel: str = channel

    def subscribe(
        self,
        name: str,
        filters: List[ChangeFilter],
        handler: ChangeHandler,
        on_status: Optional[StatusHandler] = None,
        on_malformed: Optional[MalformedHandler] = None,
    ) -> Subscription:
        """Start listening for changes matching `filters`.

        Args:
            name (str): Subscription name used in logs, e.g. death-draft-board.
            filters (List[ChangeFilter]): Tables, events and row filters of interest.
            handler (ChangeHandler): Called for every matching event.
            on_status (Optional[StatusHandler]): Called on connection status changes.
            on_malformed (Optional[MalformedHandler]): Called when an event cannot be applied.

        Returns:
            Subscription: Handle to close the subscription.
        """
        subscription = Subscription(name, filters, handler, on_status, on_malformed)
        subscription.set_status(RealtimeStatus.connecting)
        subscription.task = asyncio.create_task(self._listen(subscription))
        return subscription

    async def _listen(self, subscription: Subscription):
        pubsub = self.redis.pubsub()
        try:
            try:
                await asyncio.wait_for(pubsub.subscribe(self.channel), timeout=HEART_BEAT)
            except asyncio.TimeoutError:
                logging.error(f"Change feed {subscription.name} timed out while subscribing")
                subscription.set_status(RealtimeStatus.timed_out)
                return
            subscription.set_status(RealtimeStatus.subscribed)
            while True:
                msg = await pubsub.get_message(
                    ignore_subscribe_messages=True, timeout=HEART_BEAT
                )
                if msg and msg["type"] == "message":
                    await subscription.deliver(msg["data"])
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logging.error(f"Change feed {subscription.name} failed: {e}")
            subscription.set_status(RealtimeStatus.channel_error)
        finally:
            logging.info(f"Unsubscribing {subscription.name} from channel")
            try:
                await pubsub.unsubscribe(self.channel)
                await pubsub.aclose()
            except Exception as e:
                logging.warning(f"Failed to close pubsub for {subscription.name}: {e}")
