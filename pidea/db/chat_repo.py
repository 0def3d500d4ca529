import json
from datetime import datetime, timezone

from pidea.db.database import Database, register_schema_sql
from pidea.models.chat.models import ChatMessage, ChatSession


@register_schema_sql
def _create_chat_sessions_table() -> str:
    return """
        CREATE TABLE IF NOT EXISTS chat_sessions (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL DEFAULT 'me',
            project_id TEXT,
            title TEXT,
            status TEXT NOT NULL DEFAULT 'active',
            metadata TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
    """


@register_schema_sql
def _create_chat_messages_table() -> str:
    return """
        CREATE TABLE IF NOT EXISTS chat_messages (
            id TEXT PRIMARY KEY,
            session_id TEXT NOT NULL,
            sender_type TEXT NOT NULL,
            content TEXT NOT NULL,
            message_type TEXT NOT NULL DEFAULT 'text',
            metadata TEXT,
            timestamp TEXT NOT NULL,
            seq INTEGER NOT NULL,
            FOREIGN KEY (session_id) REFERENCES chat_sessions (id) ON DELETE CASCADE
        )
    """


@register_schema_sql
def _create_chat_messages_session_index() -> str:
    return """
        CREATE INDEX IF NOT EXISTS idx_chat_messages_session_id
        ON chat_messages(session_id, seq)
    """


class ChatRepo:
    """Repository for chat session and message data access"""

    def __init__(self, db: Database) -> None:
        self.db = db

    def create_session(self, session: ChatSession) -> ChatSession:
        self.db.execute_update(
            """
            INSERT INTO chat_sessions
            (id, user_id, project_id, title, status, metadata, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                session.id,
                session.user_id,
                session.project_id,
                session.title,
                session.status,
                json.dumps(session.metadata),
                session.created_at.isoformat(),
                (session.updated_at or session.created_at).isoformat(),
            ),
        )
        for message in session.messages:
            self.add_message(session.id, message)

        return session

    def get_session(self, session_id: str, user_id: str = "me") -> ChatSession | None:
        """Get a session with its messages loaded in order"""
        rows = self.db.execute_query(
            """
            SELECT id, user_id, project_id, title, status, metadata, created_at, updated_at
            FROM chat_sessions
            WHERE id = ? AND user_id = ?
            """,
            (session_id, user_id),
        )
        if not rows:
            return None

        session = self._row_to_session(rows[0])
        for message in self.get_messages(session.id):
            session.messages.append(message)
        return session

    def list_sessions(
        self,
        user_id: str = "me",
        project_id: str | None = None,
        include_archived: bool = False,
    ) -> list[ChatSession]:
        conditions = ["user_id = ?"]
        params: list[str] = [user_id]

        if project_id is not None:
            conditions.append("project_id = ?")
            params.append(project_id)

        if not include_archived:
            conditions.append("status = 'active'")

        rows = self.db.execute_query(
            f"""
            SELECT id, user_id, project_id, title, status, metadata, created_at, updated_at
            FROM chat_sessions
            WHERE {' AND '.join(conditions)}
            ORDER BY updated_at DESC
            """,
            tuple(params),
        )

        sessions = []
        for row in rows:
            session = self._row_to_session(row)
            session.messages.extend(self.get_messages(session.id))
            sessions.append(session)
        return sessions

    def update_session(
        self,
        session_id: str,
        title: str | None = None,
        status: str | None = None,
    ) -> bool:
        updates = []
        params: list[str] = []

        if title is not None:
            updates.append("title = ?")
            params.append(title)

        if status is not None:
            updates.append("status = ?")
            params.append(status)

        if not updates:
            return False

        updates.append("updated_at = ?")
        params.append(datetime.now(timezone.utc).isoformat())
        params.append(session_id)

        return self.db.execute_update(
            f"UPDATE chat_sessions SET {', '.join(updates)} WHERE id = ?",
            tuple(params),
        ) > 0

    def delete_session(self, session_id: str) -> bool:
        counts = self.db.execute_transaction(
            [
                ("DELETE FROM chat_messages WHERE session_id = ?", (session_id,)),
                ("DELETE FROM chat_sessions WHERE id = ?", (session_id,)),
            ]
        )
        return counts[-1] > 0

    def add_message(self, session_id: str, message: ChatMessage) -> ChatMessage:
        """Append a message to a session, keeping insertion order"""
        next_seq = self.db.execute_query(
            "SELECT COALESCE(MAX(seq), -1) + 1 AS next_seq FROM chat_messages WHERE session_id = ?",
            (session_id,),
        )[0]["next_seq"]

        self.db.execute_transaction(
            [
                (
                    """
                    INSERT INTO chat_messages
                    (id, session_id, sender_type, content, message_type, metadata, timestamp, seq)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        message.id,
                        session_id,
                        message.sender,
                        message.content,
                        message.type,
                        json.dumps(message.metadata),
                        message.timestamp.isoformat(),
                        next_seq,
                    ),
                ),
                (
                    "UPDATE chat_sessions SET updated_at = ? WHERE id = ?",
                    (message.timestamp.isoformat(), session_id),
                ),
            ]
        )
        return message

    def get_messages(
        self,
        session_id: str,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[ChatMessage]:
        query = """
            SELECT id, sender_type, content, message_type, metadata, timestamp
            FROM chat_messages
            WHERE session_id = ?
            ORDER BY seq ASC
        """
        params: tuple = (session_id,)
        if limit is not None:
            query += " LIMIT ? OFFSET ?"
            params = (session_id, limit, offset)
        elif offset:
            query += " LIMIT -1 OFFSET ?"
            params = (session_id, offset)

        rows = self.db.execute_query(query, params)
        return [self._row_to_message(row) for row in rows]

    def count_messages(self, session_id: str) -> int:
        rows = self.db.execute_query(
            "SELECT COUNT(*) AS total FROM chat_messages WHERE session_id = ?",
            (session_id,),
        )
        return rows[0]["total"]

    def _row_to_session(self, row: dict) -> ChatSession:
        """Convert a database row to a ChatSession without messages"""
        return ChatSession(
            id=row["id"],
            user_id=row["user_id"],
            project_id=row["project_id"],
            title=row["title"],
            status=row["status"],
            metadata=json.loads(row["metadata"]) if row["metadata"] else {},
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def _row_to_message(self, row: dict) -> ChatMessage:
        return ChatMessage(
            id=row["id"],
            sender=row["sender_type"],
            content=row["content"],
            type=row["message_type"],
            metadata=json.loads(row["metadata"]) if row["metadata"] else {},
            timestamp=datetime.fromisoformat(row["timestamp"]),
        )
