"""Admission control, lifecycle tracking and crash recovery for background agents."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

from ..config import HogSettings
from ..notify import Notification, Notifier, build_notifier
from ..prompts import PromptLoader
from ..storage import AgentSession, JsonSessionLedger, SessionLedger
from .launcher import AgentLauncher, LaunchError, LaunchOptions
from .monitor import AgentMonitor, StreamMonitor, attach_stream_monitor
from .results import AgentResultFile, ResultStore, format_issue_ref, to_session_patch
from .utils import is_process_alive

logger = logging.getLogger(__name__)

ORPHAN_EXIT_CODE = 1


@dataclass(slots=True)
class TrackedAgent:
    """An agent launched by this supervisor run, with its live process handle."""

    session_id: str
    repo: str
    issue_number: int
    phase: str
    pid: int
    started_at: str
    monitor: AgentMonitor
    process: asyncio.subprocess.Process
    stream: StreamMonitor


class AgentSupervisor:
    """Launches agents under a concurrency cap and keeps the ledger in sync.

    Agents started here are tracked in memory and their exit is recorded by
    the stream monitor's exit handler. Background sessions left running by a
    previous supervisor are only checked by the liveness poll. Result files
    written by agents whose supervisor died before recording them are folded
    back into the ledger on construction.
    """

    def __init__(
        self,
        ledger: SessionLedger,
        launcher: AgentLauncher,
        result_store: ResultStore,
        *,
        max_concurrent: int = 3,
        poll_interval: float = 5.0,
        notifier: Notifier | None = None,
        process_alive: Callable[[int], bool] = is_process_alive,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._ledger = ledger
        self._launcher = launcher
        self._result_store = result_store
        self._max_concurrent = max_concurrent
        self._poll_interval = poll_interval
        self._notifier = notifier or build_notifier()
        self._process_alive = process_alive
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._agents: list[TrackedAgent] = []
        self._poll_task: asyncio.Task[None] | None = None
        self.reconciled: list[AgentSession] = self.reconcile_results()

    @classmethod
    def from_settings(
        cls,
        settings: HogSettings,
        *,
        ledger: SessionLedger | None = None,
        notifier: Notifier | None = None,
    ) -> "AgentSupervisor":
        result_store = ResultStore(settings.results_dir.expanduser())
        launcher = AgentLauncher(
            result_store,
            command=settings.agent_command,
            extra_args=settings.agent_extra_args,
            prompt_loader=PromptLoader(settings.prompt_paths),
        )
        return cls(
            ledger if ledger is not None else JsonSessionLedger(settings.ledger_path.expanduser()),
            launcher,
            result_store,
            max_concurrent=settings.max_concurrent_agents,
            poll_interval=settings.poll_interval,
            notifier=notifier or build_notifier(sound=settings.notify_sound),
        )

    @property
    def ledger(self) -> SessionLedger:
        return self._ledger

    @property
    def result_store(self) -> ResultStore:
        return self._result_store

    @property
    def agents(self) -> list[TrackedAgent]:
        return list(self._agents)

    @property
    def max_concurrent(self) -> int:
        return self._max_concurrent

    @property
    def running_count(self) -> int:
        return sum(1 for agent in self._agents if agent.monitor.is_running)

    def _now(self) -> str:
        return self._clock().isoformat()

    def _notify(self, title: str, body: str) -> None:
        try:
            self._notifier(Notification(title=title, body=body))
        except Exception:
            logger.exception("Notifier failed", extra={"notification_title": title})

    async def launch_agent(self, options: LaunchOptions) -> str | LaunchError:
        """Start an agent for ``options`` and return its ledger session id."""

        if self.running_count >= self._max_concurrent:
            logger.warning(
                "Agent launch rejected at capacity",
                extra={
                    "repo": options.repo,
                    "issue": options.issue_number,
                    "limit": self._max_concurrent,
                },
            )
            return LaunchError(
                "admission-rejected",
                f"Max concurrent agents ({self._max_concurrent}) reached. "
                "Wait for an agent to finish.",
            )

        launched = await self._launcher.launch(options)
        if isinstance(launched, LaunchError):
            logger.warning(
                "Agent launch failed",
                extra={"repo": options.repo, "issue": options.issue_number, "kind": launched.kind},
            )
            return launched

        started_at = self._now()
        try:
            session = self._ledger.upsert_session(
                {
                    "repo": options.repo,
                    "issue_number": options.issue_number,
                    "phase": options.phase,
                    "mode": "background",
                    "pid": launched.pid,
                    "started_at": started_at,
                }
            )
        except OSError as exc:
            logger.exception(
                "Unable to record agent session; stopping agent",
                extra={"repo": options.repo, "issue": options.issue_number, "pid": launched.pid},
            )
            await self._discard(launched.process)
            return LaunchError(
                "spawn-failed",
                f"Could not record session for #{options.issue_number}: {exc}",
            )

        def on_exit(exit_code: int, monitor: AgentMonitor) -> None:
            self._handle_exit(
                session.id,
                options,
                started_at=started_at,
                result_file_path=launched.result_file_path,
                exit_code=exit_code,
                monitor=monitor,
            )

        stream = attach_stream_monitor(launched.process, on_exit=on_exit)
        self._agents.append(
            TrackedAgent(
                session_id=session.id,
                repo=options.repo,
                issue_number=options.issue_number,
                phase=options.phase,
                pid=launched.pid,
                started_at=started_at,
                monitor=stream.monitor,
                process=launched.process,
                stream=stream,
            )
        )
        logger.info(
            "Launched background agent",
            extra={
                "session_id": session.id,
                "repo": options.repo,
                "issue": options.issue_number,
                "phase": options.phase,
                "pid": launched.pid,
            },
        )
        return session.id

    @staticmethod
    async def _discard(process: asyncio.subprocess.Process) -> None:
        """Terminate an agent that cannot be tracked and drain its pipes."""

        with contextlib.suppress(ProcessLookupError):
            process.terminate()
        await process.communicate()

    def _handle_exit(
        self,
        session_id: str,
        options: LaunchOptions,
        *,
        started_at: str,
        result_file_path: str,
        exit_code: int,
        monitor: AgentMonitor,
    ) -> None:
        self._ledger.mark_session_exited(session_id, exit_code)

        record = AgentResultFile(
            session_id=monitor.session_id or session_id,
            phase=options.phase,
            issue_ref=format_issue_ref(options.repo, options.issue_number),
            started_at=started_at,
            completed_at=self._now(),
            exit_code=exit_code,
            artifacts=[],
            summary=monitor.last_text,
        )
        try:
            self._result_store.write(result_file_path, record)
            result_written = True
        except OSError:
            logger.exception("Unable to write agent result file", extra={"path": result_file_path})
            result_written = False

        existing = self._ledger.get_session(session_id)
        if existing is not None and (monitor.session_id or result_written):
            patch: dict[str, Any] = existing.model_dump()
            if monitor.session_id:
                patch["claude_session_id"] = monitor.session_id
            if result_written:
                patch["result_file"] = result_file_path
            self._ledger.upsert_session(patch)

        self._agents = [agent for agent in self._agents if agent.session_id != session_id]

        label = f"{options.phase} for #{options.issue_number}"
        if exit_code == 0:
            logger.info("Agent completed", extra={"session_id": session_id, "exit_code": exit_code})
            self._notify("Agent completed", f"{label} completed successfully")
        else:
            logger.warning("Agent failed", extra={"session_id": session_id, "exit_code": exit_code})
            self._notify("Agent failed", f"{label} failed (exit {exit_code})")

    def reconcile_results(self) -> list[AgentSession]:
        """Record result files that no ledger session references yet."""

        known = {session.result_file for session in self._ledger.sessions() if session.result_file}
        reconciled: list[AgentSession] = []
        for path in self._result_store.find_unprocessed(known):
            record = self._result_store.read(path)
            if record is None:
                continue
            try:
                reconciled.append(self._ledger.upsert_session(to_session_patch(record, path)))
            except OSError:
                logger.exception("Unable to record reconciled result", extra={"path": path})

        if reconciled:
            logger.info(
                "Reconciled %d background agent result%s",
                len(reconciled),
                "s" if len(reconciled) > 1 else "",
            )
        return reconciled

    def _probe(self, pid: int) -> bool:
        try:
            return self._process_alive(pid)
        except Exception:
            return False

    def poll_orphans(self) -> list[AgentSession]:
        """Mark untracked background sessions whose process has died as exited."""

        tracked = {agent.session_id for agent in self._agents}
        exited: list[AgentSession] = []
        for session in self._ledger.sessions():
            if session.mode != "background" or session.exited_at is not None or session.pid is None:
                continue
            if session.id in tracked:
                continue
            if self._probe(session.pid):
                continue

            updated = self._ledger.mark_session_exited(session.id, ORPHAN_EXIT_CODE)
            logger.warning(
                "Orphaned background agent is no longer running",
                extra={"session_id": session.id, "pid": session.pid},
            )
            self._notify("Agent exited", f"{session.phase} for #{session.issue_number} exited")
            exited.append(updated or session)
        return exited

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self._poll_interval)
            try:
                self.poll_orphans()
            except Exception:
                logger.exception("Liveness poll failed")

    def start(self) -> None:
        """Start the periodic liveness poll on the running event loop."""

        if self._poll_task is None or self._poll_task.done():
            self._poll_task = asyncio.create_task(self._poll_loop())

    async def stop(self) -> None:
        if self._poll_task is None:
            return
        self._poll_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._poll_task
        self._poll_task = None

    async def wait_all(self) -> None:
        """Wait until every agent launched by this supervisor has exited."""

        streams = [agent.stream for agent in self._agents]
        if streams:
            await asyncio.gather(*(stream.wait() for stream in streams))


__all__ = ["AgentSupervisor", "ORPHAN_EXIT_CODE", "TrackedAgent"]
