from typing import Any

from pidea.steps.step_registry import StepContext


config = {
    "name": "list_chats_step",
    "type": "chat",
    "category": "chat",
    "description": "List chat sessions, optionally filtered by project",
    "version": "1.0.0",
    "dependencies": ["chat_session_service"],
    "validation": {
        "required": [],
        "optional": ["user_id", "project_id", "include_archived"],
    },
}


async def execute(context: StepContext, options: dict[str, Any]) -> dict[str, Any]:
    chat_session_service = context.get_service("chat_session_service")

    sessions = await chat_session_service.list_sessions(
        user_id=context.get("user_id") or "me",
        project_id=context.get("project_id"),
        include_archived=bool(context.get("include_archived", False)),
    )
    return {
        "sessions": [session.to_json() for session in sessions],
        "total": len(sessions),
    }
