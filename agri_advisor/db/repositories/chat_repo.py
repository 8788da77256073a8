"""
Repository for chat conversations and messages.

Messages have no ``user_id`` column; a user's messages are reached through
``chat_conversations.user_id``.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Optional

from agri_advisor.db.repositories.base import BaseRepository, to_db_timestamp
from agri_advisor.models.chat import ChatConversation, ChatMessage

logger = logging.getLogger(__name__)

_UPSERT_CONVERSATION = """
INSERT INTO chat_conversations (id, user_id, title, created_at, updated_at)
VALUES (?, ?, ?, ?, ?)
ON CONFLICT(id) DO UPDATE SET
    title      = excluded.title,
    updated_at = excluded.updated_at;
"""

_UPSERT_MESSAGE = """
INSERT INTO chat_messages (id, conversation_id, role, content, created_at)
VALUES (?, ?, ?, ?, ?)
ON CONFLICT(id) DO UPDATE SET
    role       = excluded.role,
    content    = excluded.content,
    created_at = excluded.created_at;
"""


class ChatRepository(BaseRepository):
    """Read/write access to ``chat_conversations`` and ``chat_messages``."""

    # ── Conversations ─────────────────────────────────────────────────────────

    def insert_conversation(self, conversation: ChatConversation) -> str:
        """Insert a conversation and return its id.

        Raises:
            sqlite3.IntegrityError: On a duplicate id or unknown ``user_id``.
        """
        self.execute(
            """
            INSERT INTO chat_conversations (id, user_id, title, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?);
            """,
            _conversation_params(conversation),
        )
        return conversation.id

    def upsert_conversation(self, conversation: ChatConversation) -> str:
        self.execute(_UPSERT_CONVERSATION, _conversation_params(conversation))
        return conversation.id

    def get_conversation(self, conversation_id: str) -> Optional[ChatConversation]:
        row = self.fetchone(
            "SELECT * FROM chat_conversations WHERE id = ?;", (conversation_id,)
        )
        return _row_to_conversation(row) if row else None

    def get_conversations_for_user(self, user_id: str) -> list[ChatConversation]:
        """Fetch a user's conversations, most recently updated first."""
        rows = self.fetchall(
            """
            SELECT * FROM chat_conversations
            WHERE user_id = ?
            ORDER BY COALESCE(updated_at, created_at) DESC, id;
            """,
            (user_id,),
        )
        return [_row_to_conversation(r) for r in rows]

    # ── Messages ──────────────────────────────────────────────────────────────

    def insert_message(self, message: ChatMessage) -> str:
        """Insert a message and return its id.

        Raises:
            sqlite3.IntegrityError: On a duplicate id or unknown ``conversation_id``.
        """
        self.execute(
            """
            INSERT INTO chat_messages (id, conversation_id, role, content, created_at)
            VALUES (?, ?, ?, ?, ?);
            """,
            _message_params(message),
        )
        return message.id

    def upsert_message(self, message: ChatMessage) -> str:
        self.execute(_UPSERT_MESSAGE, _message_params(message))
        return message.id

    def get_messages_for_conversation(self, conversation_id: str) -> list[ChatMessage]:
        """Fetch one conversation's messages in chronological order."""
        rows = self.fetchall(
            """
            SELECT * FROM chat_messages
            WHERE conversation_id = ?
            ORDER BY created_at, id;
            """,
            (conversation_id,),
        )
        return [_row_to_message(r) for r in rows]

    def get_messages_for_user(self, user_id: str) -> list[ChatMessage]:
        """Fetch every message across all of a user's conversations.

        Returned in storage order; callers needing recency order sort
        themselves (the engine does).
        """
        rows = self.fetchall(
            """
            SELECT m.* FROM chat_messages AS m
            JOIN chat_conversations AS c ON c.id = m.conversation_id
            WHERE c.user_id = ?
            ORDER BY m.created_at, m.id;
            """,
            (user_id,),
        )
        return [_row_to_message(r) for r in rows]


# ── Private helpers ────────────────────────────────────────────────────────────

def _conversation_params(c: ChatConversation) -> tuple:
    return (
        c.id,
        c.user_id,
        c.title,
        to_db_timestamp(c.created_at),
        to_db_timestamp(c.updated_at),
    )


def _message_params(m: ChatMessage) -> tuple:
    return (
        m.id,
        m.conversation_id,
        m.role,
        m.content,
        to_db_timestamp(m.created_at),
    )


def _row_to_conversation(row: sqlite3.Row) -> ChatConversation:
    return ChatConversation(
        id=row["id"],
        user_id=row["user_id"],
        title=row["title"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_message(row: sqlite3.Row) -> ChatMessage:
    return ChatMessage(
        id=row["id"],
        conversation_id=row["conversation_id"],
        role=row["role"],
        content=row["content"],
        created_at=row["created_at"],
    )
