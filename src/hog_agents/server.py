"""FastMCP server bootstrap for hog agents."""

import contextlib
import json
import logging
from datetime import datetime, timezone
from typing import AsyncIterator, Optional

from fastmcp import Context, FastMCP

from . import __version__
from .agents import AgentSupervisor
from .config import HogSettings, get_settings
from .tools import register_tools


def configure_logging(level: str) -> None:
    """Configure root logging for the hog agents server."""

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
    )


def create_server(
    settings: Optional[HogSettings] = None,
    supervisor: AgentSupervisor | None = None,
) -> FastMCP:
    """Instantiate the FastMCP server around an agent supervisor."""

    settings = settings or get_settings()
    supervisor = supervisor or AgentSupervisor.from_settings(settings)

    @contextlib.asynccontextmanager
    async def lifespan(_server: FastMCP) -> AsyncIterator[dict]:
        supervisor.start()
        try:
            yield {}
        finally:
            await supervisor.stop()

    server = FastMCP(
        name="hog agents",
        version=__version__,
        instructions=(
            "Launches background coding agents for tracker issues, one workflow phase "
            "at a time, and reports per-phase status from the session ledger."
        ),
        lifespan=lifespan,
    )

    handles = register_tools(server, supervisor=supervisor, settings=settings)

    @server.resource(
        "resource://hog/status",
        name="hog_status",
        title="hog agents status",
        description="Concurrency, ledger and result-file status for background agents.",
        mime_type="application/json",
        tags={"status", "health"},
    )
    def status_resource(context: Context) -> str:
        """Return a JSON string summarizing supervisor state."""

        sessions = supervisor.ledger.sessions()
        active = [session for session in sessions if session.exited_at is None]
        failed = [
            session
            for session in sessions
            if session.exited_at is not None and session.exit_code not in (0, None)
        ]
        known_results = {session.result_file for session in sessions if session.result_file}
        try:
            unprocessed = len(supervisor.result_store.find_unprocessed(known_results))
            results_error = None
        except Exception as exc:  # pragma: no cover - status must still render
            unprocessed = 0
            results_error = str(exc)

        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "server_version": __version__,
            "log_level": settings.log_level,
            "agent": {
                "command": settings.agent_command,
                "extra_args": list(settings.agent_extra_args),
            },
            "concurrency": {
                "running": supervisor.running_count,
                "max": supervisor.max_concurrent,
            },
            "ledger": {
                "path": str(settings.ledger_path),
                "sessions": len(sessions),
                "active": len(active),
                "failed": len(failed),
            },
            "results": {
                "path": str(settings.results_dir),
                "unprocessed": unprocessed,
                "reconciled_at_startup": len(supervisor.reconciled),
                "error": results_error,
            },
            "request_id": getattr(context, "request_id", None),
        }
        return json.dumps(payload)

    setattr(server, "supervisor", supervisor)
    setattr(server, "tool_handles", handles)
    return server


def main() -> None:
    """Entry point for running the hog agents server via CLI."""

    settings = get_settings()
    configure_logging(settings.log_level)

    server = create_server(settings)
    logging.getLogger(__name__).info(
        "Launching hog agents server",
        extra={
            "version": __version__,
            "log_level": settings.log_level,
            "max_concurrent_agents": settings.max_concurrent_agents,
            "reconciled": len(getattr(server, "supervisor").reconciled),
        },
    )
    server.run()


if __name__ == "__main__":
    main()
