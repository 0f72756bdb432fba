from __future__ import annotations

from pathlib import Path

from hog_agents.config import HogSettings
from hog_agents.storage import AgentSession, JsonSessionLedger
from hog_agents.workflow import derive_phase_status, get_issue_workflow, resolve_phases


def make_session(session_id: str, **overrides) -> AgentSession:
    fields = {
        "id": session_id,
        "repo": "owner/app",
        "issue_number": 7,
        "phase": "implement",
        "mode": "background",
        "started_at": "2025-01-01T00:00:00+00:00",
    }
    fields.update(overrides)
    return AgentSession(**fields)


def test_no_sessions_is_pending() -> None:
    status = derive_phase_status("implement", [])
    assert status.state == "pending"
    assert status.session is None


def test_other_phases_are_ignored() -> None:
    status = derive_phase_status("review", [make_session("a")])
    assert status.state == "pending"
    assert status.session is None


def test_running_session_is_active() -> None:
    done = make_session("a", exited_at="2025-01-01T01:00:00+00:00", exit_code=0)
    running = make_session("b", started_at="2025-01-02T00:00:00+00:00")

    status = derive_phase_status("implement", [done, running])

    assert status.state == "active"
    assert status.session == running


def test_successful_exit_is_completed() -> None:
    failed = make_session("a", exited_at="2025-01-01T01:00:00+00:00", exit_code=1)
    passed = make_session("b", exited_at="2025-01-01T02:00:00+00:00", exit_code=0)

    status = derive_phase_status("implement", [failed, passed])

    assert status.state == "completed"
    assert status.session == passed


def test_all_failed_is_pending_with_latest_attempt() -> None:
    earlier = make_session("a", exited_at="t1", exit_code=1)
    later = make_session("b", started_at="2025-01-05T00:00:00+00:00", exited_at="t2", exit_code=1)

    status = derive_phase_status("implement", [later, earlier])

    assert status.state == "pending"
    assert status.session == later


def test_resolve_phases_precedence() -> None:
    settings = HogSettings(default_phases=("plan", "implement"))
    assert resolve_phases(settings, ["research"]) == ["research"]
    assert resolve_phases(settings) == ["plan", "implement"]
    assert resolve_phases() == ["brainstorm", "plan", "implement", "review"]


def test_issue_workflow_from_ledger(tmp_path: Path) -> None:
    ledger = JsonSessionLedger(tmp_path / "enrichment.json")
    ledger.upsert_session(
        {
            "repo": "owner/app",
            "issue_number": 7,
            "phase": "plan",
            "mode": "background",
            "started_at": "2025-01-01T00:00:00+00:00",
            "exited_at": "2025-01-01T00:30:00+00:00",
            "exit_code": 0,
            "claude_session_id": "plan-session-01",
        }
    )
    running = ledger.upsert_session(
        {
            "repo": "owner/app",
            "issue_number": 7,
            "phase": "implement",
            "mode": "background",
            "pid": 321,
            "started_at": "2025-01-02T00:00:00+00:00",
        }
    )

    state = get_issue_workflow(ledger, "owner/app", 7, ["plan", "implement", "review"])

    assert [(phase.name, phase.state) for phase in state.phases] == [
        ("plan", "completed"),
        ("implement", "active"),
        ("review", "pending"),
    ]
    assert state.active_session == running
    assert state.latest_session_id is None
