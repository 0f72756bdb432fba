"""hog agents diagnostics CLI."""

from __future__ import annotations

import argparse
import json

from hog_agents.agents import ResultStore
from hog_agents.config import HogSettings
from hog_agents.storage import JsonSessionLedger
from hog_agents.workflow import get_issue_workflow, resolve_phases


def load_ledger(settings: HogSettings) -> JsonSessionLedger:
    return JsonSessionLedger(settings.ledger_path.expanduser())


def load_results(settings: HogSettings) -> ResultStore:
    return ResultStore(settings.results_dir.expanduser())


def cmd_sessions(args: argparse.Namespace) -> None:
    settings = HogSettings()
    ledger = load_ledger(settings)
    if args.repo and args.issue is not None:
        sessions = ledger.find_sessions(args.repo, args.issue)
    else:
        sessions = ledger.sessions()
        if args.repo:
            sessions = [session for session in sessions if session.repo == args.repo]

    if args.json:
        payload = [session.model_dump(by_alias=True, exclude_none=True) for session in sessions]
        print(json.dumps(payload, indent=2))
        return
    for session in sessions:
        status = "running" if session.exited_at is None else f"exit {session.exit_code}"
        print(f"{session.id} {session.repo}#{session.issue_number} {session.phase} [{status}]")


def cmd_results(args: argparse.Namespace) -> None:
    settings = HogSettings()
    ledger = load_ledger(settings)
    store = load_results(settings)
    known = {session.result_file for session in ledger.sessions() if session.result_file}
    paths = store.find_unprocessed(known)

    if args.json:
        payload = []
        for path in paths:
            record = store.read(path)
            payload.append(
                {
                    "path": path,
                    "valid": record is not None,
                    "record": record.model_dump(by_alias=True) if record is not None else None,
                }
            )
        print(json.dumps(payload, indent=2))
        return
    for path in paths:
        print(path)


def cmd_phases(args: argparse.Namespace) -> None:
    settings = HogSettings()
    ledger = load_ledger(settings)
    state = get_issue_workflow(
        ledger, args.repo, args.issue, resolve_phases(settings, args.phase or None)
    )
    for phase in state.phases:
        session_id = phase.session.id if phase.session else "-"
        print(f"{phase.name:<12} {phase.state:<10} {session_id}")
    if state.latest_session_id:
        print(f"latest agent session: {state.latest_session_id}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="hog agents diagnostics")
    sub = parser.add_subparsers(dest="cmd")

    p_sessions = sub.add_parser("sessions", help="List recorded agent sessions")
    p_sessions.add_argument("--repo")
    p_sessions.add_argument("--issue", type=int)
    p_sessions.add_argument("--json", action="store_true", help="Output JSON")
    p_sessions.set_defaults(func=cmd_sessions)

    p_results = sub.add_parser("results", help="List result files not yet in the ledger")
    p_results.add_argument("--json", action="store_true", help="Output JSON")
    p_results.set_defaults(func=cmd_results)

    p_phases = sub.add_parser("phases", help="Show phase status for one issue")
    p_phases.add_argument("repo")
    p_phases.add_argument("issue", type=int)
    p_phases.add_argument(
        "--phase",
        action="append",
        help="Phase to include (repeatable); defaults to HOG_DEFAULT_PHASES",
    )
    p_phases.set_defaults(func=cmd_phases)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return
    args.func(args)


if __name__ == "__main__":
    main()
