"""
Chat conversation and message models.

Messages are produced by the chat/LLM subsystem and are read-only input to
the recommendation engine.  The engine only ever looks at assistant
messages, newest first.

Boundary leniency: a message with an unparseable ``created_at`` is kept
(its timestamp becomes ``None`` and it sorts as the oldest message), and
non-text ``content`` is read as an empty string.  A malformed message must
never abort a recommendation run.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from agri_advisor.taxonomy.recommendation_taxonomy import ChatRole
from agri_advisor.utils.time_utils import parse_timestamp


class ChatConversation(BaseModel):
    """A titled chat thread owned by one user."""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    title: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("title must not be empty.")
        return v.strip()

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def parse_timestamps(cls, v: Any) -> Optional[datetime]:
        return parse_timestamp(v)


class ChatMessage(BaseModel):
    """One message within a conversation.

    Attributes:
        id: Message UUID.
        conversation_id: FK to ``chat_conversations.id``.
        role: ``"user"`` or ``"assistant"``; other values are stored but ignored.
        content: Message text (mixed case, multiple sentences).
        created_at: UTC timestamp, or ``None`` when missing/unparseable.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    conversation_id: str
    role: str
    content: str = ""
    created_at: Optional[datetime] = None

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, v: Any) -> str:
        return str(v).strip().lower() if v is not None else ""

    @field_validator("content", mode="before")
    @classmethod
    def coerce_content(cls, v: Any) -> str:
        return v if isinstance(v, str) else ""

    @field_validator("created_at", mode="before")
    @classmethod
    def parse_created_at(cls, v: Any) -> Optional[datetime]:
        return parse_timestamp(v)

    @property
    def is_assistant(self) -> bool:
        return self.role == ChatRole.ASSISTANT
