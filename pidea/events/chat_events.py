from pidea.events.event import Event
from pidea.models.chat.models import ChatMessage, ChatSession


chat_session_created_event_type = "chat.session.created"
chat_message_sent_event_type = "chat.message.sent"
chat_history_retrieving_event_type = "chat.history.retrieving"
chat_history_retrieved_event_type = "chat.history.retrieved"


def chat_session_created(session: ChatSession) -> Event:
    return Event(
        event_type=chat_session_created_event_type,
        content={
            "session_id": session.id,
            "project_id": session.project_id,
            "title": session.display_title,
            "created_at": session.created_at.isoformat(),
        },
        metadata={"session_id": session.id},
    )


def chat_message_sent(session_id: str, message: ChatMessage, delivered_to_ide: bool) -> Event:
    return Event(
        event_type=chat_message_sent_event_type,
        content={
            "session_id": session_id,
            "message": message.to_json(),
            "delivered_to_ide": delivered_to_ide,
        },
        metadata={"session_id": session_id},
    )


def chat_history_retrieving(step_id: str, user_id: str, session_id: str) -> Event:
    return Event(
        event_type=chat_history_retrieving_event_type,
        content={
            "step_id": step_id,
            "user_id": user_id,
            "session_id": session_id,
        },
        metadata={"session_id": session_id},
    )


def chat_history_retrieved(step_id: str, user_id: str, session_id: str, message_count: int) -> Event:
    return Event(
        event_type=chat_history_retrieved_event_type,
        content={
            "step_id": step_id,
            "user_id": user_id,
            "session_id": session_id,
            "message_count": message_count,
        },
        metadata={"session_id": session_id},
    )
