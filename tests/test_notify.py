import logging

from hog_agents.agents import AgentSupervisor
from hog_agents.config import HogSettings
from hog_agents.notify import Notification, build_notifier


def test_notifier_logs_without_bell_by_default(caplog, capsys) -> None:
    caplog.set_level(logging.INFO, logger="hog_agents.notify")

    build_notifier()(Notification("Agent completed", "plan for #3 completed successfully"))

    assert capsys.readouterr().out == ""
    assert [record.getMessage() for record in caplog.records] == [
        "Agent completed: plan for #3 completed successfully"
    ]


def test_notifier_rings_bell_when_sound_enabled(capsys) -> None:
    build_notifier(sound=True)(Notification("Agent failed", "review for #3 failed (exit 2)"))

    assert capsys.readouterr().out == "\a"


def test_supervisor_settings_enable_bell(tmp_path, capsys) -> None:
    settings = HogSettings(config_dir=tmp_path, notify_sound=True)
    ledger_path = settings.ledger_path
    ledger_path.write_text(
        '{"version": 1, "sessions": [{"id": "s1", "repo": "owner/app", "issueNumber": 4,'
        ' "phase": "plan", "mode": "background", "pid": 999999,'
        ' "startedAt": "2025-01-01T00:00:00+00:00"}]}',
        encoding="utf-8",
    )
    supervisor = AgentSupervisor.from_settings(settings)
    supervisor._process_alive = lambda pid: False

    supervisor.poll_orphans()

    assert capsys.readouterr().out == "\a"
