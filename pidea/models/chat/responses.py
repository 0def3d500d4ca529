from datetime import datetime
from typing import Any

from pydantic import BaseModel


class ChatMessageResponse(BaseModel):
    id: str
    content: str
    sender: str
    type: str
    timestamp: datetime
    metadata: dict[str, Any]


class ChatSessionResponse(BaseModel):
    id: str
    project_id: str | None
    title: str
    status: str
    message_count: int
    metadata: dict[str, Any]
    created_at: datetime
    updated_at: datetime
    last_message_at: datetime | None


class ChatSessionListResponse(BaseModel):
    sessions: list[ChatSessionResponse]
    total: int


class PaginationResponse(BaseModel):
    limit: int
    offset: int
    total: int


class ChatHistoryResponse(BaseModel):
    session_id: str
    messages: list[ChatMessageResponse]
    pagination: PaginationResponse
