"""JSON-file session ledger."""

from __future__ import annotations

import logging
import os
import secrets
import string
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Protocol

from pydantic import ValidationError

from .models import AgentSession, LedgerData

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits


class SessionLedger(Protocol):
    """Protocol for the session store consumed by the supervisor."""

    def sessions(self) -> list[AgentSession]:
        ...

    def get_session(self, session_id: str) -> AgentSession | None:
        ...

    def find_sessions(self, repo: str, issue_number: int) -> list[AgentSession]:
        ...

    def find_active_session(self, repo: str, issue_number: int) -> AgentSession | None:
        ...

    def upsert_session(self, session: dict[str, Any]) -> AgentSession:
        ...

    def mark_session_exited(self, session_id: str, exit_code: int) -> AgentSession | None:
        ...


@dataclass(slots=True)
class UpsertResult:
    data: LedgerData
    session: AgentSession


def generate_session_id() -> str:
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(6))
    return f"{int(time.time() * 1000)}-{suffix}"


def upsert_session(data: LedgerData, session: dict[str, Any]) -> UpsertResult:
    """Insert or replace a session, matching on id when one is given."""

    fields = dict(session)
    if not fields.get("id"):
        fields["id"] = generate_session_id()
    full = AgentSession.model_validate(fields)

    sessions = list(data.sessions)
    for index, existing in enumerate(sessions):
        if existing.id == full.id:
            sessions[index] = full
            break
    else:
        sessions.append(full)
    return UpsertResult(data=data.model_copy(update={"sessions": sessions}), session=full)


def find_sessions(data: LedgerData, repo: str, issue_number: int) -> list[AgentSession]:
    return [s for s in data.sessions if s.repo == repo and s.issue_number == issue_number]


def find_session(
    data: LedgerData, repo: str, issue_number: int, phase: str
) -> AgentSession | None:
    return next(
        (s for s in find_sessions(data, repo, issue_number) if s.phase == phase),
        None,
    )


def find_active_session(data: LedgerData, repo: str, issue_number: int) -> AgentSession | None:
    return next((s for s in find_sessions(data, repo, issue_number) if s.is_active), None)


def find_latest_session(data: LedgerData, repo: str, issue_number: int) -> AgentSession | None:
    sessions = find_sessions(data, repo, issue_number)
    if not sessions:
        return None
    return max(sessions, key=lambda s: s.started_at)


class JsonSessionLedger:
    """Session ledger persisted as a single JSON document.

    Writes go to a sibling ``.tmp`` file that is renamed over the ledger, so a
    crash mid-write leaves the previous document intact. An unreadable or
    invalid document is treated as an empty ledger.
    """

    def __init__(
        self,
        path: Path,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._path = Path(path)
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._data = self._load()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def data(self) -> LedgerData:
        return self._data

    def _load(self) -> LedgerData:
        if not self._path.exists():
            return LedgerData()
        try:
            return LedgerData.model_validate_json(self._path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as exc:
            logger.warning(
                "Ignoring unreadable session ledger",
                extra={"path": str(self._path), "error": str(exc)},
            )
            return LedgerData()

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_name(self._path.name + ".tmp")
        payload = self._data.model_dump_json(by_alias=True, exclude_none=True, indent=2)
        fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(payload + "\n")
        os.replace(tmp, self._path)

    def reload(self) -> None:
        self._data = self._load()

    def sessions(self) -> list[AgentSession]:
        return list(self._data.sessions)

    def get_session(self, session_id: str) -> AgentSession | None:
        return next((s for s in self._data.sessions if s.id == session_id), None)

    def find_sessions(self, repo: str, issue_number: int) -> list[AgentSession]:
        return find_sessions(self._data, repo, issue_number)

    def find_session(self, repo: str, issue_number: int, phase: str) -> AgentSession | None:
        return find_session(self._data, repo, issue_number, phase)

    def find_active_session(self, repo: str, issue_number: int) -> AgentSession | None:
        return find_active_session(self._data, repo, issue_number)

    def find_latest_session(self, repo: str, issue_number: int) -> AgentSession | None:
        return find_latest_session(self._data, repo, issue_number)

    def upsert_session(self, session: dict[str, Any]) -> AgentSession:
        result = upsert_session(self._data, session)
        self._data = result.data
        self._save()
        return result.session

    def mark_session_exited(self, session_id: str, exit_code: int) -> AgentSession | None:
        existing = self.get_session(session_id)
        if existing is None:
            return None
        fields = existing.model_dump()
        fields.update(exited_at=self._clock().isoformat(), exit_code=exit_code)
        return self.upsert_session(fields)


__all__ = [
    "JsonSessionLedger",
    "SessionLedger",
    "UpsertResult",
    "find_active_session",
    "find_latest_session",
    "find_session",
    "find_sessions",
    "generate_session_id",
    "upsert_session",
]
