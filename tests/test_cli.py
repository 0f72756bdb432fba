from __future__ import annotations

import argparse
import importlib.util
import json
from pathlib import Path

import pytest

from hog_agents.agents import ResultStore
from hog_agents.agents.results import AgentResultFile
from hog_agents.storage import JsonSessionLedger


def _load_module(name: str):
    module_path = Path(__file__).resolve().parents[1] / "scripts" / "hog_diag.py"
    spec = importlib.util.spec_from_file_location(name, module_path)
    assert spec and spec.loader
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture()
def config_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    monkeypatch.setenv("HOG_CONFIG_DIR", str(tmp_path))
    monkeypatch.setenv("HOG_DEFAULT_PHASES", "plan,implement,review")
    ledger = JsonSessionLedger(tmp_path / "enrichment.json")
    ledger.upsert_session(
        {
            "id": "s1",
            "repo": "owner/app",
            "issue_number": 7,
            "phase": "plan",
            "mode": "background",
            "started_at": "2025-01-01T00:00:00+00:00",
            "exited_at": "2025-01-01T00:20:00+00:00",
            "exit_code": 0,
            "claude_session_id": "plan-session-01",
        }
    )
    ledger.upsert_session(
        {
            "id": "s2",
            "repo": "owner/app",
            "issue_number": 7,
            "phase": "implement",
            "mode": "background",
            "pid": 4321,
            "started_at": "2025-01-02T00:00:00+00:00",
        }
    )
    ledger.upsert_session(
        {
            "id": "s3",
            "repo": "owner/other",
            "issue_number": 1,
            "phase": "review",
            "mode": "interactive",
            "started_at": "2025-01-03T00:00:00+00:00",
        }
    )
    return tmp_path


def test_sessions_text_and_filters(config_dir: Path, capsys) -> None:
    diag = _load_module("hog_diag_sessions_module")

    diag.cmd_sessions(argparse.Namespace(repo="owner/app", issue=None, json=False))

    lines = capsys.readouterr().out.splitlines()
    assert lines == [
        "s1 owner/app#7 plan [exit 0]",
        "s2 owner/app#7 implement [running]",
    ]


def test_sessions_json(config_dir: Path, capsys) -> None:
    diag = _load_module("hog_diag_sessions_json_module")

    diag.cmd_sessions(argparse.Namespace(repo="owner/other", issue=1, json=True))

    payload = json.loads(capsys.readouterr().out)
    assert [item["id"] for item in payload] == ["s3"]
    assert payload[0]["mode"] == "interactive"


def test_results_lists_unreconciled_files(config_dir: Path, capsys) -> None:
    store = ResultStore(config_dir / "agent-results")
    path = store.path_for("owner/app", 9, "review")
    store.write(
        path,
        AgentResultFile(
            session_id="s-000009",
            phase="review",
            issue_ref="owner/app#9",
            started_at="a",
            completed_at="b",
            exit_code=1,
        ),
    )
    diag = _load_module("hog_diag_results_module")

    diag.cmd_results(argparse.Namespace(json=True))

    payload = json.loads(capsys.readouterr().out)
    assert payload[0]["path"] == path
    assert payload[0]["valid"] is True
    assert payload[0]["record"]["issueRef"] == "owner/app#9"


def test_phases_uses_default_phases(config_dir: Path, capsys) -> None:
    diag = _load_module("hog_diag_phases_module")

    diag.main(["phases", "owner/app", "7"])

    lines = capsys.readouterr().out.splitlines()
    assert lines[0].split() == ["plan", "completed", "s1"]
    assert lines[1].split() == ["implement", "active", "s2"]
    assert lines[2].split() == ["review", "pending", "-"]
    assert len(lines) == 3


def test_main_without_command_prints_help(capsys) -> None:
    diag = _load_module("hog_diag_help_module")

    diag.main([])

    assert "hog agents diagnostics" in capsys.readouterr().out
