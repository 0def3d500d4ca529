from typing import Any

import structlog

from pidea.events.chat_events import chat_message_sent
from pidea.models.chat.models import ChatMessage
from pidea.steps.step_registry import StepContext, StepValidationError


logger = structlog.get_logger(__name__)

config = {
    "name": "send_message_step",
    "type": "chat",
    "category": "chat",
    "description": "Append a user message to a chat session and forward it to the active IDE",
    "version": "1.0.0",
    "dependencies": ["chat_session_service", "ide_manager", "event_bus"],
    "validation": {
        "required": ["session_id", "content"],
        "optional": ["user_id", "type", "metadata"],
    },
}


async def execute(context: StepContext, options: dict[str, Any]) -> dict[str, Any]:
    session_id = context.get("session_id")
    if not isinstance(session_id, str) or not session_id.strip():
        raise StepValidationError("Session ID must be a non-empty string")
    content = context.get("content")
    if not isinstance(content, str) or not content.strip():
        raise StepValidationError("Message content is required")

    chat_session_service = context.get_service("chat_session_service")
    ide_manager = context.get_service("ide_manager")
    event_bus = context.get_service("event_bus")

    try:
        message = ChatMessage(
            content=content,
            sender="user",
            type=context.get("type") or "text",
            metadata=context.get("metadata") or {},
        )
    except ValueError as e:
        raise StepValidationError(str(e)) from e

    message = await chat_session_service.add_message(session_id, message, user_id=context.get("user_id") or "me")

    delivered = False
    if options.get("forward_to_ide", True):
        delivered = await ide_manager.send_message(message.content)
        if not delivered:
            logger.info("no active ide, message stored only", session_id=session_id)

    await event_bus.publish_event(chat_message_sent(session_id, message, delivered))

    return {
        "session_id": session_id,
        "message": message.to_json(),
        "delivered_to_ide": delivered,
        "ide_port": ide_manager.get_active_port() if delivered else None,
    }
