"""
Repository for user accounts.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Optional

from agri_advisor.db.repositories.base import BaseRepository, to_db_timestamp
from agri_advisor.models.user import User

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository):
    """Read/write access to the ``users`` table."""

    def insert(self, user: User) -> str:
        """Insert a new user.

        Args:
            user: The ``User`` to persist. ``created_at`` defaults to now.

        Returns:
            The user's id.

        Raises:
            sqlite3.IntegrityError: If the id or email already exists.
        """
        self.execute(
            """
            INSERT INTO users (id, email, name, photo_url, created_at)
            VALUES (?, ?, ?, ?, COALESCE(?, strftime('%Y-%m-%dT%H:%M:%SZ', 'now')));
            """,
            (
                user.id,
                user.email,
                user.name,
                user.photo_url,
                to_db_timestamp(user.created_at),
            ),
        )
        return user.id

    def upsert(self, user: User) -> str:
        """Insert a user, or update email/name/photo of an existing id.

        The original ``created_at`` of an existing user is kept.
        """
        self.execute(
            """
            INSERT INTO users (id, email, name, photo_url, created_at)
            VALUES (?, ?, ?, ?, COALESCE(?, strftime('%Y-%m-%dT%H:%M:%SZ', 'now')))
            ON CONFLICT(id) DO UPDATE SET
                email     = excluded.email,
                name      = excluded.name,
                photo_url = excluded.photo_url;
            """,
            (
                user.id,
                user.email,
                user.name,
                user.photo_url,
                to_db_timestamp(user.created_at),
            ),
        )
        return user.id

    def get_by_id(self, user_id: str) -> Optional[User]:
        row = self.fetchone("SELECT * FROM users WHERE id = ?;", (user_id,))
        return _row_to_user(row) if row else None

    def get_by_email(self, email: str) -> Optional[User]:
        """Fetch a user by email (case-insensitive; emails are stored lower-cased)."""
        row = self.fetchone(
            "SELECT * FROM users WHERE email = ?;", (email.strip().lower(),)
        )
        return _row_to_user(row) if row else None

    def count(self) -> int:
        return self.count_rows("SELECT COUNT(*) AS n FROM users;")


def _row_to_user(row: sqlite3.Row) -> User:
    return User(
        id=row["id"],
        email=row["email"],
        name=row["name"],
        photo_url=row["photo_url"],
        created_at=row["created_at"],
    )
