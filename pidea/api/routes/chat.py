from fastapi import APIRouter, HTTPException, status

from pidea.api.dependencies import AuthContextDep, ChatSessionServiceDep, StepRegistryDep
from pidea.api.step_results import unwrap_step_result
from pidea.models.chat.models import ChatMessage, ChatSession
from pidea.models.chat.requests import CreateChatSessionRequest, SendMessageRequest
from pidea.models.chat.responses import (
    ChatHistoryResponse,
    ChatMessageResponse,
    ChatSessionListResponse,
    ChatSessionResponse,
    PaginationResponse,
)
from pidea.services.chat_session_service import ChatSessionNotFoundError

router = APIRouter(
    prefix="/api/chat",
    tags=["chat"],
)


@router.get("/sessions", response_model=ChatSessionListResponse)
async def list_sessions(
    context: AuthContextDep,
    step_registry: StepRegistryDep,
    project_id: str | None = None,
    include_archived: bool = False,
) -> ChatSessionListResponse:
    result = unwrap_step_result(
        await step_registry.execute_step(
            "list_chats_step",
            {"user_id": context.user_id, "project_id": project_id, "include_archived": include_archived},
        )
    )
    return ChatSessionListResponse(
        sessions=[ChatSession.from_json(s).to_response() for s in result["sessions"]],
        total=result["total"],
    )


@router.post("/sessions", response_model=ChatSessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session(
    request_body: CreateChatSessionRequest,
    context: AuthContextDep,
    step_registry: StepRegistryDep,
) -> ChatSessionResponse:
    result = unwrap_step_result(
        await step_registry.execute_step(
            "create_chat_step",
            {
                "user_id": context.user_id,
                "title": request_body.title,
                "project_id": request_body.project_id,
                "metadata": request_body.metadata,
            },
        )
    )
    return ChatSession.from_json(result["session"]).to_response()


@router.get("/sessions/{session_id}", response_model=ChatSessionResponse)
async def get_session(
    session_id: str,
    context: AuthContextDep,
    chat_session_service: ChatSessionServiceDep,
) -> ChatSessionResponse:
    session = await chat_session_service.get_session(session_id, context.user_id)
    if session:
        return session.to_response()

    raise HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Chat session not found",
    )


@router.delete("/sessions/{session_id}", response_model=ChatSessionResponse)
async def archive_session(
    session_id: str,
    context: AuthContextDep,
    chat_session_service: ChatSessionServiceDep,
) -> ChatSessionResponse:
    try:
        session = await chat_session_service.archive_session(session_id, context.user_id)
    except ChatSessionNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Chat session not found",
        )
    return session.to_response()


@router.get("/sessions/{session_id}/messages", response_model=ChatHistoryResponse)
async def get_messages(
    session_id: str,
    context: AuthContextDep,
    step_registry: StepRegistryDep,
    limit: int = 100,
    offset: int = 0,
) -> ChatHistoryResponse:
    result = unwrap_step_result(
        await step_registry.execute_step(
            "get_chat_history_step",
            {"user_id": context.user_id, "session_id": session_id, "limit": limit, "offset": offset},
        )
    )
    return ChatHistoryResponse(
        session_id=session_id,
        messages=[ChatMessage.from_json(m).to_response() for m in result["messages"]],
        pagination=PaginationResponse(**result["pagination"]),
    )


@router.post(
    "/sessions/{session_id}/messages",
    response_model=ChatMessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    session_id: str,
    request_body: SendMessageRequest,
    context: AuthContextDep,
    step_registry: StepRegistryDep,
) -> ChatMessageResponse:
    result = unwrap_step_result(
        await step_registry.execute_step(
            "send_message_step",
            {
                "user_id": context.user_id,
                "session_id": session_id,
                "content": request_body.content,
                "type": request_body.type,
                "metadata": request_body.metadata,
            },
        )
    )
    return ChatMessage.from_json(result["message"]).to_response()
