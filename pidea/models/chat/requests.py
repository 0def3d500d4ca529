from typing import Any

from pydantic import BaseModel, Field


class CreateChatSessionRequest(BaseModel):
    title: str | None = Field(None, description="Optional explicit title")
    project_id: str | None = Field(None, description="Project the session belongs to")
    metadata: dict[str, Any] = Field(default_factory=dict)


class SendMessageRequest(BaseModel):
    content: str = Field(..., min_length=1, description="Message content")
    type: str = Field("text", description="Message type: text, code, file or command")
    metadata: dict[str, Any] = Field(default_factory=dict)
