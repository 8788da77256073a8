"""
User account model.

``User.id`` is the identifier issued by the external auth provider, so it is
a free-form string rather than a generated UUID.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from agri_advisor.utils.time_utils import parse_timestamp


class User(BaseModel):
    """An advisory-app user who owns conversations, analyses and recommendations.

    Attributes:
        id: Auth-provider user ID (primary key).
        email: Unique contact address.
        name: Display name.
        photo_url: Optional avatar URL.
        created_at: UTC creation time; ``None`` before insertion.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    name: str
    photo_url: Optional[str] = None
    created_at: Optional[datetime] = None

    @field_validator("id", "name")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must not be empty.")
        return v.strip()

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip()
        if "@" not in v:
            raise ValueError(f"email must contain '@', got '{v}'.")
        return v.lower()

    @field_validator("created_at", mode="before")
    @classmethod
    def parse_created_at(cls, v: Any) -> Optional[datetime]:
        return parse_timestamp(v)
