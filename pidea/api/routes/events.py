from typing import AsyncGenerator

import structlog
from fastapi import APIRouter, Query, Request
from fastapi.responses import StreamingResponse

from pidea.api.dependencies import AuthContextDep, EventBusDep
from pidea.events.event import Event
from pidea.services.event_bus import EventFilter


logger = structlog.get_logger(__name__)

router = APIRouter(
    prefix="/api/events",
    tags=["events"],
)


@router.get("/stream")
async def stream_events(
    request: Request,
    context: AuthContextDep,
    event_bus: EventBusDep,
    event_types: list[str] | None = Query(
        None,
        description="Filter by event types. If not specified, all event types are included.",
    ),
) -> StreamingResponse:
    """
    Stream bus events to the client as Server-Sent Events.

    Query parameters:
    - event_types: List of event types to filter (e.g., ?event_types=type1&event_types=type2)
    - Any other query parameter: Treated as metadata filter (e.g., ?session_id=abc&session_id=def)

    Examples:
    - ?event_types=analysis.completed - Only finished analyses
    - ?project_id=abc123 - Only events about project abc123
    - ?event_types=chat.message.sent&session_id=abc - Messages sent in session abc
    """
    metadata_filters: dict[str, list[str]] = {}
    for key, value in request.query_params.multi_items():
        if key != "event_types":
            metadata_filters.setdefault(key, []).append(value)

    event_filter = EventFilter(
        event_types=event_types,
        metadata_filters=metadata_filters or None,
    )
    stream = await event_bus.open_stream(event_filter)

    async def event_generator() -> AsyncGenerator[str, None]:
        try:
            yield Event(
                event_type="connection.established",
                content={"stream_id": stream.stream_id},
            ).format_sse()

            while True:
                event = await stream.receive()
                yield event.format_sse()
        except Exception:
            logger.exception("sse stream error", stream_id=stream.stream_id)
        finally:
            await event_bus.close_stream(stream)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable buffering in nginx
        },
    )
