from typing import Any

import structlog

from pidea.db.chat_repo import ChatRepo
from pidea.models.chat.models import ChatMessage, ChatSession


logger = structlog.get_logger(__name__)


class ChatSessionNotFoundError(Exception):
    def __init__(self, session_id: str) -> None:
        super().__init__(f"Chat session {session_id} not found")
        self.session_id = session_id


class ChatSessionService:
    def __init__(self, chat_repo: ChatRepo) -> None:
        self._chat_repo = chat_repo

    async def create_session(
        self,
        user_id: str = "me",
        title: str | None = None,
        project_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> ChatSession:
        session = ChatSession(
            user_id=user_id,
            title=title,
            project_id=project_id,
            metadata=metadata or {},
        )
        self._chat_repo.create_session(session)
        logger.info("chat session created", session_id=session.id, project_id=project_id)
        return session

    async def get_session(self, session_id: str, user_id: str = "me") -> ChatSession | None:
        return self._chat_repo.get_session(session_id, user_id)

    async def list_sessions(
        self,
        user_id: str = "me",
        project_id: str | None = None,
        include_archived: bool = False,
    ) -> list[ChatSession]:
        return self._chat_repo.list_sessions(user_id, project_id, include_archived)

    async def add_message(self, session_id: str, message: ChatMessage, user_id: str = "me") -> ChatMessage:
        session = await self.get_session(session_id, user_id)
        if session is None:
            raise ChatSessionNotFoundError(session_id)
        if not session.is_active():
            raise ValueError(f"Chat session {session_id} is archived")

        return self._chat_repo.add_message(session_id, message)

    async def get_chat_history(
        self,
        session_id: str,
        user_id: str = "me",
        limit: int = 100,
        offset: int = 0,
    ) -> tuple[list[ChatMessage], int]:
        """Return a page of messages and the total message count"""
        session = self._chat_repo.get_session(session_id, user_id)
        if session is None:
            raise ChatSessionNotFoundError(session_id)

        messages = self._chat_repo.get_messages(session_id, limit=limit, offset=offset)
        return messages, self._chat_repo.count_messages(session_id)

    async def archive_session(self, session_id: str, user_id: str = "me") -> ChatSession:
        session = await self.get_session(session_id, user_id)
        if session is None:
            raise ChatSessionNotFoundError(session_id)

        session.archive()
        self._chat_repo.update_session(session_id, status=session.status)
        return session
