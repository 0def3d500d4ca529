from typing import Any

from pidea.events.chat_events import chat_session_created
from pidea.steps.step_registry import StepContext


config = {
    "name": "create_chat_step",
    "type": "chat",
    "category": "chat",
    "description": "Create a new chat session, optionally bound to a project",
    "version": "1.0.0",
    "dependencies": ["chat_session_service", "event_bus"],
    "validation": {
        "required": [],
        "optional": ["user_id", "title", "project_id", "metadata"],
    },
}


async def execute(context: StepContext, options: dict[str, Any]) -> dict[str, Any]:
    chat_session_service = context.get_service("chat_session_service")
    event_bus = context.get_service("event_bus")

    session = await chat_session_service.create_session(
        user_id=context.get("user_id") or "me",
        title=context.get("title"),
        project_id=context.get("project_id"),
        metadata=context.get("metadata") or {},
    )
    await event_bus.publish_event(chat_session_created(session))

    return {"session": session.to_json()}
