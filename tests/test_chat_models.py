"""Tests for chat session and message models."""

from datetime import datetime, timezone

import pytest

from pidea.models.chat.models import DEFAULT_TITLE, ChatMessage, ChatSession


class TestChatMessage:
    """Test ChatMessage validation and serialization."""

    def test_rejects_blank_content(self):
        with pytest.raises(ValueError, match="must not be empty"):
            ChatMessage(content="   ", sender="user")

    def test_rejects_non_string_content(self):
        with pytest.raises(ValueError, match="must be a string"):
            ChatMessage.from_json({"content": None, "sender": "user"})
        with pytest.raises(ValueError, match="must be a string"):
            ChatMessage(content=42, sender="user")

    def test_rejects_unknown_sender(self):
        with pytest.raises(ValueError, match="Invalid sender"):
            ChatMessage(content="hi", sender="robot")

    def test_rejects_unknown_type(self):
        with pytest.raises(ValueError, match="Invalid message type"):
            ChatMessage(content="hi", sender="user", type="video")

    def test_json_roundtrip_keeps_timestamp(self):
        ts = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)
        message = ChatMessage(content="print(1)", sender="assistant", type="code", timestamp=ts)

        restored = ChatMessage.from_json(message.to_json())

        assert restored.id == message.id
        assert restored.timestamp == ts
        assert restored.type == "code"
        assert restored.is_from_assistant()

    def test_from_json_accepts_z_suffix(self):
        restored = ChatMessage.from_json(
            {"content": "hi", "sender": "user", "timestamp": "2024-05-01T12:30:00Z"}
        )
        assert restored.timestamp.tzinfo is not None
        assert restored.type == "text"


class TestChatSession:
    """Test ChatSession titles, ordering and paging."""

    def test_default_title_without_messages(self):
        assert ChatSession().display_title == DEFAULT_TITLE

    def test_title_from_first_user_message(self):
        session = ChatSession()
        session.add_message(ChatMessage(content="System ready", sender="system"))
        session.add_message(ChatMessage(content="Fix the login bug", sender="user"))

        assert session.display_title == "Fix the login bug"

    def test_long_title_is_truncated(self):
        session = ChatSession()
        session.add_message(ChatMessage(content="x" * 80, sender="user"))

        assert session.display_title == "x" * 50 + "..."

    def test_explicit_title_wins(self):
        session = ChatSession(title="Refactor")
        session.add_message(ChatMessage(content="something else", sender="user"))
        assert session.display_title == "Refactor"

    def test_get_messages_pages_in_order(self):
        session = ChatSession()
        for i in range(5):
            session.add_message(ChatMessage(content=f"m{i}", sender="user"))

        page = session.get_messages(limit=2, offset=1)
        assert [m.content for m in page] == ["m1", "m2"]
        assert session.message_count == 5
        assert session.last_message.content == "m4"

    def test_archive(self):
        session = ChatSession()
        session.archive()
        assert not session.is_active()

    def test_invalid_status(self):
        with pytest.raises(ValueError):
            ChatSession(status="deleted")

    def test_json_roundtrip(self):
        session = ChatSession(project_id="p1", metadata={"k": "v"})
        session.add_message(ChatMessage(content="hello", sender="user"))
        session.add_message(ChatMessage(content="hi there", sender="assistant"))

        restored = ChatSession.from_json(session.to_json())

        assert restored.id == session.id
        assert restored.project_id == "p1"
        assert [m.content for m in restored.messages] == ["hello", "hi there"]
        assert restored.updated_at == session.updated_at
