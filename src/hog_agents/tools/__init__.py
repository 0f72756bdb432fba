"""Tool registration for hog agents."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..agents import AgentSupervisor, LaunchError, LaunchOptions, TrackedAgent
from ..config import HogSettings
from ..prompts import PromptVariables
from ..storage import AgentSession
from ..workflow import get_issue_workflow, resolve_phases

if TYPE_CHECKING:
    from fastmcp import FastMCP


@dataclass(slots=True)
class ToolHandles:
    launch_agent: Any
    list_agents: Any
    issue_workflow: Any
    reconcile_results: Any


def serialize_session(session: AgentSession | None) -> dict[str, Any] | None:
    if session is None:
        return None
    return session.model_dump(by_alias=True, exclude_none=True)


def _agent_summary(agent: TrackedAgent) -> dict[str, Any]:
    return {
        "session_id": agent.session_id,
        "repo": agent.repo,
        "issue_number": agent.issue_number,
        "phase": agent.phase,
        "pid": agent.pid,
        "started_at": agent.started_at,
        "agent_session_id": agent.monitor.session_id,
        "last_tool_use": agent.monitor.last_tool_use,
        "last_text": agent.monitor.last_text,
        "is_running": agent.monitor.is_running,
    }


def register_tools(
    server: FastMCP,
    *,
    supervisor: AgentSupervisor,
    settings: HogSettings,
) -> ToolHandles:
    """Register the agent supervision tools on the server."""

    async def _launch_agent(
        repo: str,
        issue_number: int,
        issue_title: str,
        issue_url: str,
        phase: str,
        local_path: str,
        prompt_template: str | None = None,
        body: str | None = None,
        slug: str | None = None,
    ) -> dict[str, Any]:
        """Launch a background agent for one phase of an issue."""

        supervisor.start()
        variables = None
        if body is not None or slug is not None:
            variables = PromptVariables(body=body or "", slug=slug or "", phase=phase, repo=repo)

        outcome = await supervisor.launch_agent(
            LaunchOptions(
                local_path=local_path,
                repo=repo,
                issue_number=issue_number,
                issue_title=issue_title,
                issue_url=issue_url,
                phase=phase,
                prompt_template=prompt_template,
                prompt_variables=variables,
            )
        )
        if isinstance(outcome, LaunchError):
            return {"ok": False, "error": {"kind": outcome.kind, "message": outcome.message}}
        return {"ok": True, "session_id": outcome}

    tool_launch = server.tool(
        name="launch_agent",
        description=(
            "Launch a background coding agent for an issue at a workflow phase. "
            "Fails without side effects when the concurrency limit is reached."
        ),
    )(_launch_agent)

    def _list_agents() -> dict[str, Any]:
        agents = supervisor.agents
        return {
            "running_count": supervisor.running_count,
            "max_concurrent": supervisor.max_concurrent,
            "agents": [_agent_summary(agent) for agent in agents],
        }

    tool_list = server.tool(
        name="list_agents",
        description="List background agents launched by this server and their live status.",
    )(_list_agents)

    def _issue_workflow(
        repo: str,
        issue_number: int,
        phases: list[str] | None = None,
    ) -> dict[str, Any]:
        state = get_issue_workflow(
            supervisor.ledger, repo, issue_number, resolve_phases(settings, phases)
        )
        return {
            "repo": repo,
            "issue_number": issue_number,
            "phases": [
                {
                    "name": phase.name,
                    "state": phase.state,
                    "session": serialize_session(phase.session),
                }
                for phase in state.phases
            ],
            "active_session": serialize_session(state.active_session),
            "latest_session_id": state.latest_session_id,
        }

    tool_workflow = server.tool(
        name="issue_workflow",
        description="Show pending/active/completed status of each workflow phase for an issue.",
    )(_issue_workflow)

    def _reconcile_results() -> dict[str, Any]:
        reconciled = supervisor.reconcile_results()
        return {
            "count": len(reconciled),
            "sessions": [serialize_session(session) for session in reconciled],
        }

    tool_reconcile = server.tool(
        name="reconcile_results",
        description="Record agent result files that the session ledger does not reference yet.",
    )(_reconcile_results)

    return ToolHandles(
        launch_agent=tool_launch,
        list_agents=tool_list,
        issue_workflow=tool_workflow,
        reconcile_results=tool_reconcile,
    )


__all__ = ["ToolHandles", "register_tools", "serialize_session"]
