import asyncio
import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable
from uuid import uuid4

import structlog

from pidea.events.event import Event


logger = structlog.get_logger(__name__)

ALL_EVENTS = "*"

EventHandler = Callable[[Event], Awaitable[None] | None]


class EventFilter:
    def __init__(
        self,
        event_types: list[str] | None = None,
        metadata_filters: dict[str, list[Any]] | None = None,
    ) -> None:
        """
        Initialize event filter.

        Args:
            event_types: List of allowed event types, None means all types
            metadata_filters: Dict of metadata key -> list of allowed values
                             e.g. {"session_id": ["id1", "id2"]}
                             None or empty list for a key means all values allowed
        """
        self.event_types = event_types
        self.metadata_filters = metadata_filters or {}

    def matches(self, event: Event) -> bool:
        if self.event_types is not None and event.event_type not in self.event_types:
            return False

        for key, allowed_values in self.metadata_filters.items():
            if allowed_values:  # Only filter if list is not empty
                event_value = event.metadata.get(key)
                if event_value is not None and str(event_value) not in {str(v) for v in allowed_values}:
                    return False

        return True


class EventStream:
    """Queue-backed consumer of bus events, used by the SSE endpoint"""

    def __init__(self, event_filter: EventFilter | None = None) -> None:
        self.queue: asyncio.Queue[Event] = asyncio.Queue()
        self.stream_id = str(uuid4())
        self.filter = event_filter or EventFilter()

    async def send(self, event: Event) -> None:
        if self.filter.matches(event):
            await self.queue.put(event)

    async def receive(self) -> Event:
        return await self.queue.get()


@dataclass
class _Subscription:
    subscription_id: str
    event_type: str
    handler: EventHandler


class EventBus:
    """In-process publish/subscribe bus shared by steps, IDE manager and analysis queue"""

    def __init__(self) -> None:
        self._subscriptions: list[_Subscription] = []
        self._streams: dict[str, EventStream] = {}
        self._streams_lock = asyncio.Lock()

    def subscribe(self, event_type: str, handler: EventHandler) -> str:
        subscription = _Subscription(
            subscription_id=str(uuid4()),
            event_type=event_type,
            handler=handler,
        )
        self._subscriptions.append(subscription)
        return subscription.subscription_id

    def unsubscribe(self, subscription_id: str) -> bool:
        before = len(self._subscriptions)
        self._subscriptions = [s for s in self._subscriptions if s.subscription_id != subscription_id]
        return len(self._subscriptions) < before

    def subscriber_count(self, event_type: str | None = None) -> int:
        if event_type is None:
            return len(self._subscriptions)
        return sum(1 for s in self._subscriptions if s.event_type in (event_type, ALL_EVENTS))

    async def publish(
        self,
        event_type: str,
        content: Any,
        metadata: dict[str, Any] | None = None,
    ) -> Event:
        event = Event(event_type=event_type, content=content, metadata=metadata or {})
        await self.publish_event(event)
        return event

    async def publish_event(self, event: Event) -> Event:
        """Deliver an event to matching handlers and open streams"""
        for subscription in list(self._subscriptions):
            if subscription.event_type not in (event.event_type, ALL_EVENTS):
                continue
            try:
                result = subscription.handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(
                    "event handler failed",
                    event_type=event.event_type,
                    subscription_id=subscription.subscription_id,
                )

        async with self._streams_lock:
            streams = list(self._streams.values())

        for stream in streams:
            try:
                await stream.send(event)
            except Exception:
                logger.exception("error sending event to stream", stream_id=stream.stream_id)

        return event

    async def open_stream(self, event_filter: EventFilter | None = None) -> EventStream:
        stream = EventStream(event_filter)
        async with self._streams_lock:
            self._streams[stream.stream_id] = stream
        return stream

    async def close_stream(self, stream: EventStream) -> None:
        async with self._streams_lock:
            self._streams.pop(stream.stream_id, None)

    def stream_count(self) -> int:
        return len(self._streams)
