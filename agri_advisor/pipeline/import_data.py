"""
ImportStage — load a JSON data bundle into the database.

Bundle format
-------------
A single JSON object with four optional lists, imported in FK order::

    {
      "users":         [{"id", "email", "name", "photo_url"?, "created_at"?}],
      "conversations": [{"id", "user_id", "title", "created_at"?, "updated_at"?}],
      "messages":      [{"id", "conversation_id", "role", "content", "created_at"?}],
      "analyses":      [{"id", "user_id", "type", "data", "created_at"?, "updated_at"?}]
    }

Every record is upserted by id, so re-importing the same bundle is harmless.

Rejected records
----------------
A record that fails model validation (pydantic ``ValidationError``) or
violates a database constraint (unknown user, duplicate email) is skipped
and kept in ``ImportStage.rejected`` with its section and list index.
Each rejection is logged at WARNING.  The run still succeeds; its
``rows_processed`` counts only imported records.

Structural problems with the file itself (missing file, invalid JSON, a
non-object top level, a section that is not a list) fail the run.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from pydantic import BaseModel, ValidationError

from agri_advisor.db.repositories.analysis_repo import AnalysisResultRepository
from agri_advisor.db.repositories.chat_repo import ChatRepository
from agri_advisor.db.repositories.user_repo import UserRepository
from agri_advisor.models.analysis import AnalysisResult
from agri_advisor.models.chat import ChatConversation, ChatMessage
from agri_advisor.models.meta import RunMetadata
from agri_advisor.models.user import User
from agri_advisor.pipeline.base import PipelineStage

logger = logging.getLogger(__name__)

BUNDLE_SECTIONS: tuple[str, ...] = ("users", "conversations", "messages", "analyses")


@dataclass(frozen=True)
class RejectedRecord:
    """A bundle record that was not imported.

    Attributes:
        section: Bundle list the record came from (e.g. ``"analyses"``).
        index:   Position of the record within that list.
        reason:  Validation or constraint error message.
    """

    section: str
    index:   int
    reason:  str


def load_bundle(path: Path) -> dict[str, list[Any]]:
    """Read and structurally check a bundle file.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: If the file is not a JSON object of lists.
    """
    if not path.exists():
        raise FileNotFoundError(f"Import file not found: {path}")

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Import file {path} is not valid JSON: {exc}") from exc

    if not isinstance(raw, dict):
        raise ValueError(f"Import file {path} must contain a JSON object at top level.")

    bundle: dict[str, list[Any]] = {}
    for section in BUNDLE_SECTIONS:
        records = raw.get(section, [])
        if not isinstance(records, list):
            raise ValueError(f"Section '{section}' in {path} must be a list.")
        bundle[section] = records

    unknown = sorted(set(raw) - set(BUNDLE_SECTIONS))
    if unknown:
        logger.warning("Ignoring unknown bundle section(s): %s", ", ".join(unknown))
    return bundle


class ImportStage(PipelineStage):
    """Upsert users, conversations, messages and analyses from a JSON bundle."""

    stage_name = "import"

    def __init__(self, config, db_path: str | None = None) -> None:
        super().__init__(config, db_path)
        self.rejected: list[RejectedRecord] = []

    def _execute(
        self,
        run: RunMetadata,
        source_path: Path | str | None = None,
        **kwargs,
    ) -> int:
        """Import one bundle file.

        Args:
            run:         In-progress RunMetadata (mutable).
            source_path: Bundle JSON file.

        Returns:
            Number of records imported across all sections.
        """
        if source_path is None:
            raise ValueError("ImportStage requires source_path.")

        bundle = load_bundle(Path(source_path))
        self.rejected = []
        imported = 0

        with self._connect() as conn:
            users = UserRepository(conn)
            chats = ChatRepository(conn)
            analyses = AnalysisResultRepository(conn)

            imported += self._import_section(
                "users", bundle["users"], User, users.upsert
            )
            imported += self._import_section(
                "conversations", bundle["conversations"],
                ChatConversation, chats.upsert_conversation,
            )
            imported += self._import_section(
                "messages", bundle["messages"], ChatMessage, chats.upsert_message
            )
            imported += self._import_section(
                "analyses", bundle["analyses"], AnalysisResult, analyses.upsert
            )

        if self.rejected:
            logger.warning(
                "Import from %s: %d record(s) rejected.", source_path, len(self.rejected)
            )
        logger.info("Imported %d record(s) from %s.", imported, source_path)
        return imported

    def _import_section(
        self,
        section: str,
        records: list[Any],
        model:   type[BaseModel],
        write:   Callable[[Any], str],
    ) -> int:
        imported = 0
        for index, record in enumerate(records):
            try:
                write(model.model_validate(record))
            except ValidationError as exc:
                self._reject(section, index, _first_error(exc))
                continue
            except sqlite3.IntegrityError as exc:
                self._reject(section, index, f"constraint violation: {exc}")
                continue
            imported += 1
        return imported

    def _reject(self, section: str, index: int, reason: str) -> None:
        logger.warning("Rejected %s[%d]: %s", section, index, reason)
        self.rejected.append(RejectedRecord(section=section, index=index, reason=reason))


def _first_error(exc: ValidationError) -> str:
    err = exc.errors()[0]
    location = ".".join(str(part) for part in err.get("loc", ())) or "record"
    return f"{location}: {err.get('msg', 'invalid value')}"
