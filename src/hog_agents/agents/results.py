"""Crash-safe result records written when an agent exits."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

_UNSAFE_PHASE_CHARS = re.compile(r"[^A-Za-z0-9_-]")
_ISSUE_REF = re.compile(r"^(.+)#(\d+)$")


class AgentResultFile(BaseModel):
    """Outcome of a single agent invocation, persisted as JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    session_id: str
    phase: str
    issue_ref: str
    started_at: str
    completed_at: str
    exit_code: int
    artifacts: list[str] = Field(default_factory=list)
    summary: str | None = None

    @field_validator("issue_ref")
    @classmethod
    def _validate_issue_ref(cls, value: str) -> str:
        if not _ISSUE_REF.match(value):
            raise ValueError("issueRef must look like 'owner/repo#number'")
        return value


def format_issue_ref(repo: str, issue_number: int) -> str:
    return f"{repo}#{issue_number}"


def result_file_name(repo: str, issue_number: int, phase: str) -> str:
    """Deterministic file name for the latest run of ``phase`` on an issue."""

    slug = repo.replace("/", "-")
    safe_phase = _UNSAFE_PHASE_CHARS.sub("", phase)
    return f"{slug}-{issue_number}-{safe_phase}.json"


class ResultStore:
    """Reads and writes result records under a single directory."""

    def __init__(self, directory: Path) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, repo: str, issue_number: int, phase: str) -> str:
        return str(self._directory / result_file_name(repo, issue_number, phase))

    def write(self, path: str | Path, record: AgentResultFile) -> None:
        """Write ``record`` as pretty JSON readable only by the owner."""

        self._directory.mkdir(parents=True, exist_ok=True)
        payload = record.model_dump_json(by_alias=True, exclude_none=True, indent=2)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(payload + "\n")
        # O_CREAT only applies the mode to new files; tighten re-runs too.
        os.chmod(path, 0o600)

    def find_unprocessed(self, known_paths: set[str]) -> list[str]:
        """Return result files not referenced by any known session."""

        if not self._directory.is_dir():
            return []
        try:
            candidates = sorted(self._directory.glob("*.json"))
        except OSError as exc:
            logger.warning(
                "Unable to list result directory",
                extra={"path": str(self._directory), "error": str(exc)},
            )
            return []
        return [str(path) for path in candidates if str(path) not in known_paths]

    def read(self, path: str | Path) -> AgentResultFile | None:
        """Parse a result file, returning ``None`` if it is unreadable or invalid."""

        try:
            return AgentResultFile.model_validate_json(Path(path).read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, ValidationError) as exc:
            logger.warning(
                "Skipping unreadable result file",
                extra={"path": str(path), "error": str(exc)},
            )
            return None


def to_session_patch(record: AgentResultFile, path: str | Path) -> dict[str, Any]:
    """Session fields recovered from a result record, ready for a ledger upsert."""

    repo, _, number = record.issue_ref.rpartition("#")
    return {
        "repo": repo,
        "issue_number": int(number),
        "phase": record.phase,
        "mode": "background",
        "claude_session_id": record.session_id,
        "started_at": record.started_at,
        "exited_at": record.completed_at,
        "exit_code": record.exit_code,
        "result_file": str(path),
    }


__all__ = [
    "AgentResultFile",
    "ResultStore",
    "format_issue_ref",
    "result_file_name",
    "to_session_patch",
]
