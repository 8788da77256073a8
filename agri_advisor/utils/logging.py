"""
Logging setup for Agri Advisor.

Call ``configure_logging(config)`` once at CLI entry (before any pipeline work).
Library modules only ever do ``logging.getLogger(__name__)``.

Run context
-----------
Pipeline stages wrap their work in ``run_context(run_slug, user_id)``.  While
it is active every record passing through the configured handlers carries
``run_slug`` and ``user_id`` attributes, so interleaved runs for different
users can be told apart in a shared log file::

    2026-03-02T08:00:00Z [INFO] agri_advisor.recommendations.engine (run=3f2a9c1e user=u-1): ...

JSON format (``json_format = true`` under ``[logging]``) emits one object per
line, with the run context as top-level keys when present::

    {"ts": "...", "level": "INFO", "logger": "...", "msg": "...", "run_slug": "...", "user_id": "u-1"}
"""

from __future__ import annotations

import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, TYPE_CHECKING, Iterator, Optional

if TYPE_CHECKING:
    from agri_advisor.config import LoggingConfig

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s%(run_tag)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

_run_slug: ContextVar[Optional[str]] = ContextVar("agri_advisor_run_slug", default=None)
_user_id: ContextVar[Optional[str]] = ContextVar("agri_advisor_user_id", default=None)

# Attributes every LogRecord carries; anything else came in through ``extra=``
# or from the run-context filter.
_STANDARD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime", "run_tag"}


@contextmanager
def run_context(run_slug: str, user_id: Optional[str] = None) -> Iterator[None]:
    """Tag every log record emitted inside the block with a run slug and user."""
    slug_token = _run_slug.set(run_slug)
    user_token = _user_id.set(user_id)
    try:
        yield
    finally:
        _run_slug.reset(slug_token)
        _user_id.reset(user_token)


class RunContextFilter(logging.Filter):
    """Copy the active run context onto each record (never drops records)."""

    def filter(self, record: logging.LogRecord) -> bool:
        slug = _run_slug.get()
        user = _user_id.get()
        record.run_slug = slug
        record.user_id = user
        if slug is None:
            record.run_tag = ""
        elif user is None:
            record.run_tag = f" (run={slug[:8]})"
        else:
            record.run_tag = f" (run={slug[:8]} user={user})"
        return True


class _JsonFormatter(logging.Formatter):
    """One JSON object per line: ``ts``, ``level``, ``logger``, ``msg`` plus extras."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).strftime(
                LOG_DATE_FORMAT
            ),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        for key, val in record.__dict__.items():
            if key in _STANDARD_ATTRS or key.startswith("_"):
                continue
            if key in ("run_slug", "user_id") and val is None:
                continue
            payload[key] = val
        return json.dumps(payload, default=str)


def configure_logging(config: "LoggingConfig", stream: Optional[IO[str]] = None) -> None:
    """Configure the root logger from a ``LoggingConfig`` instance.

    Args:
        config: Logging configuration section from ``AppConfig``.
        stream: Console stream; defaults to ``sys.stdout``.
    """
    level = getattr(logging, config.level.upper(), logging.INFO)

    formatter: logging.Formatter
    if config.json_format:
        formatter = _JsonFormatter()
    else:
        formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    handlers: list[logging.Handler] = [logging.StreamHandler(stream or sys.stdout)]

    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    context_filter = RunContextFilter()
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(context_filter)

    logging.basicConfig(level=level, handlers=handlers, force=True)
