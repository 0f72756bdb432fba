from __future__ import annotations

import json
import stat
from datetime import datetime
from pathlib import Path

from hog_agents.storage import AgentSession, JsonSessionLedger, LedgerData, upsert_session

FIXED_NOW = datetime.fromisoformat("2025-01-01T12:00:00+00:00")


def session_fields(**overrides) -> dict:
    fields = {
        "repo": "owner/app",
        "issue_number": 7,
        "phase": "plan",
        "mode": "background",
        "pid": 1234,
        "started_at": "2025-01-01T00:00:00+00:00",
    }
    fields.update(overrides)
    return fields


def test_upsert_assigns_id_and_replaces_by_id() -> None:
    data = LedgerData()

    first = upsert_session(data, session_fields())
    assert first.session.id
    assert len(first.data.sessions) == 1
    assert data.sessions == []

    replaced = upsert_session(
        first.data, {**first.session.model_dump(), "exit_code": 0, "exited_at": "later"}
    )
    assert len(replaced.data.sessions) == 1
    assert replaced.session.exit_code == 0

    other = upsert_session(replaced.data, session_fields(phase="review"))
    assert len(other.data.sessions) == 2
    assert other.session.id != first.session.id


def test_ledger_persists_camel_case_with_private_mode(tmp_path: Path) -> None:
    path = tmp_path / "hog" / "enrichment.json"
    ledger = JsonSessionLedger(path)

    session = ledger.upsert_session(session_fields())

    document = json.loads(path.read_text(encoding="utf-8"))
    assert document["version"] == 1
    stored = document["sessions"][0]
    assert stored["issueNumber"] == 7
    assert stored["startedAt"] == "2025-01-01T00:00:00+00:00"
    assert "exitedAt" not in stored
    assert stat.S_IMODE(path.stat().st_mode) == 0o600
    assert not path.with_name("enrichment.json.tmp").exists()

    reopened = JsonSessionLedger(path)
    assert reopened.get_session(session.id) == session


def test_corrupt_ledger_is_treated_as_empty(tmp_path: Path) -> None:
    path = tmp_path / "enrichment.json"
    path.write_text("{broken", encoding="utf-8")

    ledger = JsonSessionLedger(path)

    assert ledger.sessions() == []
    ledger.upsert_session(session_fields())
    assert len(JsonSessionLedger(path).sessions()) == 1


def test_find_helpers(tmp_path: Path) -> None:
    ledger = JsonSessionLedger(tmp_path / "enrichment.json")
    old = ledger.upsert_session(
        session_fields(exited_at="2025-01-01T01:00:00+00:00", exit_code=0)
    )
    active = ledger.upsert_session(
        session_fields(phase="implement", started_at="2025-01-02T00:00:00+00:00")
    )
    ledger.upsert_session(session_fields(issue_number=8))

    assert {s.id for s in ledger.find_sessions("owner/app", 7)} == {old.id, active.id}
    assert ledger.find_session("owner/app", 7, "plan") == old
    assert ledger.find_active_session("owner/app", 7) == active
    assert ledger.find_latest_session("owner/app", 7) == active
    assert ledger.find_latest_session("owner/app", 99) is None


def test_mark_session_exited(tmp_path: Path) -> None:
    ledger = JsonSessionLedger(tmp_path / "enrichment.json", clock=lambda: FIXED_NOW)
    session = ledger.upsert_session(session_fields())

    updated = ledger.mark_session_exited(session.id, 2)

    assert isinstance(updated, AgentSession)
    assert updated.exit_code == 2
    assert updated.exited_at == FIXED_NOW.isoformat()
    assert updated.pid == 1234
    assert ledger.mark_session_exited("unknown", 1) is None
