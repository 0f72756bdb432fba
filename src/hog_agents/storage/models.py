"""Data models for persistent session tracking."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

SessionMode = Literal["background", "interactive"]


class AgentSession(BaseModel):
    """One launch-to-exit lifecycle of an agent working on an issue phase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    repo: str
    issue_number: int
    phase: str
    mode: SessionMode
    claude_session_id: str | None = None
    pid: int | None = None
    started_at: str
    exited_at: str | None = None
    exit_code: int | None = None
    result_file: str | None = None

    @property
    def is_active(self) -> bool:
        return self.exited_at is None


class LedgerData(BaseModel):
    """On-disk document holding every recorded session."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    version: Literal[1] = 1
    sessions: list[AgentSession] = Field(default_factory=list)


__all__ = ["AgentSession", "LedgerData", "SessionMode"]
