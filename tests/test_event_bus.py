"""Tests for the in-process event bus."""

import pytest

from pidea.events.event import Event
from pidea.services.event_bus import ALL_EVENTS, EventBus, EventFilter


class TestEventFilter:
    """Test type and metadata filtering."""

    def test_no_filters_match_everything(self):
        assert EventFilter().matches(Event(event_type="anything", content=None))

    def test_event_type_filter(self):
        event_filter = EventFilter(event_types=["chat.message.sent"])
        assert event_filter.matches(Event(event_type="chat.message.sent", content=None))
        assert not event_filter.matches(Event(event_type="ide.started", content=None))

    def test_metadata_filter_compares_as_strings(self):
        event_filter = EventFilter(metadata_filters={"port": ["9222"]})
        assert event_filter.matches(Event(event_type="ide.started", content=None, metadata={"port": 9222}))
        assert not event_filter.matches(Event(event_type="ide.started", content=None, metadata={"port": 9232}))

    def test_missing_metadata_key_passes(self):
        event_filter = EventFilter(metadata_filters={"session_id": ["abc"]})
        assert event_filter.matches(Event(event_type="x", content=None, metadata={}))


class TestEventBus:
    """Test subscription, delivery and streams."""

    @pytest.mark.asyncio
    async def test_sync_and_async_handlers_receive_event(self):
        bus = EventBus()
        received = []

        def sync_handler(event):
            received.append(("sync", event.content))

        async def async_handler(event):
            received.append(("async", event.content))

        bus.subscribe("demo", sync_handler)
        bus.subscribe("demo", async_handler)
        await bus.publish("demo", 1)

        assert received == [("sync", 1), ("async", 1)]

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_block_others(self):
        bus = EventBus()
        received = []

        def broken(event):
            raise RuntimeError("boom")

        bus.subscribe("demo", broken)
        bus.subscribe("demo", lambda event: received.append(event.event_type))
        await bus.publish("demo", None)

        assert received == ["demo"]

    @pytest.mark.asyncio
    async def test_wildcard_subscription(self):
        bus = EventBus()
        received = []
        bus.subscribe(ALL_EVENTS, lambda event: received.append(event.event_type))

        await bus.publish("a", None)
        await bus.publish("b", None)

        assert received == ["a", "b"]
        assert bus.subscriber_count("a") == 1

    @pytest.mark.asyncio
    async def test_unsubscribe(self):
        bus = EventBus()
        received = []
        subscription_id = bus.subscribe("demo", lambda event: received.append(event))

        assert bus.unsubscribe(subscription_id)
        assert not bus.unsubscribe(subscription_id)
        await bus.publish("demo", None)

        assert received == []

    @pytest.mark.asyncio
    async def test_stream_receives_matching_events(self):
        bus = EventBus()
        stream = await bus.open_stream(EventFilter(event_types=["keep"]))

        await bus.publish("drop", 1)
        await bus.publish("keep", 2)

        event = await stream.receive()
        assert event.content == 2
        assert stream.queue.empty()

        await bus.close_stream(stream)
        assert bus.stream_count() == 0

    def test_format_sse(self):
        event = Event(event_type="demo", content={"a": 1})
        formatted = event.format_sse()
        assert formatted.startswith("data: ")
        assert formatted.endswith("\n\n")
        assert '"type": "demo"' in formatted
