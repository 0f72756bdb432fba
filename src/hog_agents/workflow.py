"""Per-issue phase status derived from recorded sessions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Literal, Sequence

from .config import DEFAULT_PHASES, HogSettings
from .storage import AgentSession, SessionLedger

PhaseState = Literal["pending", "active", "completed"]


@dataclass(frozen=True, slots=True)
class PhaseStatus:
    name: str
    state: PhaseState
    session: AgentSession | None = None


@dataclass(frozen=True, slots=True)
class IssueWorkflowState:
    phases: list[PhaseStatus] = field(default_factory=list)
    active_session: AgentSession | None = None
    latest_session_id: str | None = None


def derive_phase_status(phase_name: str, sessions: Iterable[AgentSession]) -> PhaseStatus:
    """Classify ``phase_name`` as pending, active or completed.

    A running session wins over a successful one; when every attempt failed
    the phase stays pending and carries the most recent attempt.
    """

    phase_sessions = [session for session in sessions if session.phase == phase_name]
    if not phase_sessions:
        return PhaseStatus(name=phase_name, state="pending")

    active = next((s for s in phase_sessions if s.exited_at is None), None)
    if active is not None:
        return PhaseStatus(name=phase_name, state="active", session=active)

    completed = next((s for s in phase_sessions if s.exit_code == 0), None)
    if completed is not None:
        return PhaseStatus(name=phase_name, state="completed", session=completed)

    latest = max(phase_sessions, key=lambda s: s.started_at)
    return PhaseStatus(name=phase_name, state="pending", session=latest)


def resolve_phases(
    settings: HogSettings | None = None,
    repo_phases: Sequence[str] | None = None,
) -> list[str]:
    if repo_phases:
        return list(repo_phases)
    if settings is not None and settings.default_phases:
        return list(settings.default_phases)
    return list(DEFAULT_PHASES)


def get_issue_workflow(
    ledger: SessionLedger,
    repo: str,
    issue_number: int,
    phases: Sequence[str],
) -> IssueWorkflowState:
    sessions = ledger.find_sessions(repo, issue_number)
    latest = max(sessions, key=lambda s: s.started_at) if sessions else None
    return IssueWorkflowState(
        phases=[derive_phase_status(name, sessions) for name in phases],
        active_session=ledger.find_active_session(repo, issue_number),
        latest_session_id=latest.claude_session_id if latest else None,
    )


__all__ = [
    "IssueWorkflowState",
    "PhaseState",
    "PhaseStatus",
    "derive_phase_status",
    "get_issue_workflow",
    "resolve_phases",
]
