from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from pidea.models.chat.responses import ChatMessageResponse, ChatSessionResponse


SENDER_TYPES = ("user", "assistant", "system")
MESSAGE_TYPES = ("text", "code", "file", "command")
SESSION_STATUSES = ("active", "archived")

DEFAULT_TITLE = "New Chat"
TITLE_MAX_LENGTH = 50


def _parse_timestamp(value: str | datetime | None) -> datetime:
    if value is None:
        return datetime.now(timezone.utc)
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class ChatMessage:
    content: str
    sender: str
    type: str = "text"
    id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.content, str):
            raise ValueError("Message content must be a string")
        if not self.content.strip():
            raise ValueError("Message content must not be empty")
        if self.sender not in SENDER_TYPES:
            raise ValueError(f"Invalid sender '{self.sender}'. Valid senders: {', '.join(SENDER_TYPES)}")
        if self.type not in MESSAGE_TYPES:
            raise ValueError(f"Invalid message type '{self.type}'. Valid types: {', '.join(MESSAGE_TYPES)}")

    def is_from_user(self) -> bool:
        return self.sender == "user"

    def is_from_assistant(self) -> bool:
        return self.sender == "assistant"

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "sender": self.sender,
            "type": self.type,
            "timestamp": self.timestamp.isoformat(),
            "metadata": dict(self.metadata),
        }

    @staticmethod
    def from_json(data: dict[str, Any]) -> "ChatMessage":
        return ChatMessage(
            id=data.get("id") or str(uuid4()),
            content=data["content"],
            sender=data["sender"],
            type=data.get("type") or "text",
            timestamp=_parse_timestamp(data.get("timestamp")),
            metadata=dict(data.get("metadata") or {}),
        )

    def to_response(self) -> ChatMessageResponse:
        return ChatMessageResponse(
            id=self.id,
            content=self.content,
            sender=self.sender,
            type=self.type,
            timestamp=self.timestamp,
            metadata=self.metadata,
        )


@dataclass
class ChatSession:
    """A conversation owning an ordered sequence of messages"""
    id: str = field(default_factory=lambda: str(uuid4()))
    user_id: str = "me"
    project_id: str | None = None
    title: str | None = None
    status: str = "active"
    messages: list[ChatMessage] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.status not in SESSION_STATUSES:
            raise ValueError(f"Invalid session status '{self.status}'")
        if self.updated_at is None:
            self.updated_at = self.created_at

    def add_message(self, message: ChatMessage) -> None:
        self.messages.append(message)
        self.updated_at = message.timestamp

    def get_messages(self, limit: int | None = None, offset: int = 0) -> list[ChatMessage]:
        if limit is None:
            return self.messages[offset:]
        return self.messages[offset:offset + limit]

    @property
    def message_count(self) -> int:
        return len(self.messages)

    @property
    def last_message(self) -> ChatMessage | None:
        return self.messages[-1] if self.messages else None

    @property
    def display_title(self) -> str:
        """Explicit title, else derived from the first user message"""
        if self.title:
            return self.title

        first_user_message = next((m for m in self.messages if m.is_from_user()), None)
        if first_user_message is None:
            return DEFAULT_TITLE

        text = " ".join(first_user_message.content.split())
        if len(text) > TITLE_MAX_LENGTH:
            return text[:TITLE_MAX_LENGTH] + "..."
        return text

    def is_active(self) -> bool:
        return self.status == "active"

    def archive(self) -> None:
        self.status = "archived"
        self.updated_at = datetime.now(timezone.utc)

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "projectId": self.project_id,
            "title": self.display_title,
            "status": self.status,
            "messages": [m.to_json() for m in self.messages],
            "messageCount": self.message_count,
            "metadata": dict(self.metadata),
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    @staticmethod
    def from_json(data: dict[str, Any]) -> "ChatSession":
        session = ChatSession(
            id=data.get("id") or str(uuid4()),
            user_id=data.get("userId") or "me",
            project_id=data.get("projectId"),
            title=data.get("title"),
            status=data.get("status") or "active",
            metadata=dict(data.get("metadata") or {}),
            created_at=_parse_timestamp(data.get("createdAt")),
        )
        for message_data in data.get("messages") or []:
            session.add_message(ChatMessage.from_json(message_data))
        if data.get("updatedAt"):
            session.updated_at = _parse_timestamp(data["updatedAt"])
        return session

    def to_response(self) -> ChatSessionResponse:
        return ChatSessionResponse(
            id=self.id,
            project_id=self.project_id,
            title=self.display_title,
            status=self.status,
            message_count=self.message_count,
            metadata=self.metadata,
            created_at=self.created_at,
            updated_at=self.updated_at or self.created_at,
            last_message_at=self.last_message.timestamp if self.last_message else None,
        )
