from typing import Any
from uuid import uuid4

import structlog

from pidea.events.chat_events import chat_history_retrieved, chat_history_retrieving
from pidea.steps.step_registry import StepContext, StepValidationError


logger = structlog.get_logger(__name__)

DEFAULT_LIMIT = 100
MAX_LIMIT = 1000

config = {
    "name": "get_chat_history_step",
    "type": "chat",
    "category": "chat",
    "description": "Retrieve chat history with pagination",
    "version": "1.0.0",
    "dependencies": ["chat_session_service", "event_bus"],
    "validation": {
        "required": ["user_id", "session_id"],
        "optional": ["limit", "offset"],
    },
}


def _is_number(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_context(context: StepContext) -> tuple[str, str, int, int]:
    user_id = context.get("user_id")
    if not user_id:
        raise StepValidationError("User ID is required")

    session_id = context.get("session_id")
    if not isinstance(session_id, str) or not session_id.strip():
        raise StepValidationError("Session ID must be a non-empty string")

    limit = context.get("limit")
    if limit is None:
        limit = DEFAULT_LIMIT
    if not _is_number(limit) or not 1 <= limit <= MAX_LIMIT:
        raise StepValidationError(f"Limit must be a number between 1 and {MAX_LIMIT}")

    offset = context.get("offset")
    if offset is None:
        offset = 0
    if not _is_number(offset) or offset < 0:
        raise StepValidationError("Offset must be a non-negative number")

    return user_id, session_id, limit, offset


async def execute(context: StepContext, options: dict[str, Any]) -> dict[str, Any]:
    step_id = f"get_chat_history_step_{uuid4().hex[:12]}"
    user_id, session_id, limit, offset = validate_context(context)

    chat_session_service = context.get_service("chat_session_service")
    event_bus = context.get_service("event_bus")

    await event_bus.publish_event(chat_history_retrieving(step_id, user_id, session_id))

    messages, total = await chat_session_service.get_chat_history(
        session_id, user_id=user_id, limit=limit, offset=offset
    )

    await event_bus.publish_event(chat_history_retrieved(step_id, user_id, session_id, len(messages)))
    logger.info("chat history retrieved", step_id=step_id, session_id=session_id, count=len(messages))

    return {
        "session_id": session_id,
        "messages": [message.to_json() for message in messages],
        "pagination": {
            "limit": limit,
            "offset": offset,
            "total": total,
        },
    }
