"""Preflight checks and process start for background agents."""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Sequence

from ..prompts import PromptLoader, PromptVariables, build_prompt, resolve_template
from .results import ResultStore
from .utils import agent_environment

logger = logging.getLogger(__name__)

LaunchErrorKind = Literal[
    "directory-not-found",
    "agent-not-found",
    "spawn-failed",
    "admission-rejected",
]

OUTPUT_FORMAT_ARGS: tuple[str, ...] = ("--output-format", "stream-json")


@dataclass(slots=True)
class LaunchOptions:
    """What to launch: one phase of work on one issue, inside a local checkout."""

    local_path: Path | str
    repo: str
    issue_number: int
    issue_title: str
    issue_url: str
    phase: str
    prompt_template: str | None = None
    prompt_variables: PromptVariables | None = None


@dataclass(frozen=True, slots=True)
class LaunchError:
    kind: LaunchErrorKind
    message: str


@dataclass(slots=True)
class LaunchedAgent:
    """A freshly started agent process and where its result will be written."""

    process: asyncio.subprocess.Process
    pid: int
    result_file_path: str


class AgentLauncher:
    """Start the agent CLI as a child process with piped output."""

    def __init__(
        self,
        result_store: ResultStore,
        *,
        command: str = "claude",
        extra_args: Sequence[str] = (),
        prompt_loader: PromptLoader | None = None,
        probe_timeout: float = 10.0,
    ) -> None:
        self._result_store = result_store
        self._command = command
        self._extra_args = tuple(extra_args)
        self._prompt_loader = prompt_loader
        self._probe_timeout = probe_timeout

    @property
    def command(self) -> str:
        return self._command

    def resolve_executable(self) -> str | None:
        """Locate the agent executable, either as an explicit path or on PATH."""

        if os.sep in self._command:
            candidate = Path(self._command).expanduser()
            if candidate.is_file() and os.access(candidate, os.X_OK):
                return str(candidate.resolve())
            return None
        return shutil.which(self._command)

    def probe(self, executable: str) -> bool:
        """Run ``<agent> --version`` to confirm the executable actually starts."""

        try:
            subprocess.run(
                [executable, "--version"],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                timeout=self._probe_timeout,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            logger.warning(
                "Agent executable probe failed",
                extra={"executable": executable, "error": str(exc)},
            )
            return False
        return True

    def _prompt_overrides(self) -> dict[str, str]:
        if self._prompt_loader is None:
            return {}
        return self._prompt_loader.templates()

    def build_prompt(self, options: LaunchOptions) -> str:
        template = resolve_template(
            options.phase,
            options.issue_number,
            options.issue_title,
            explicit=options.prompt_template,
            overrides=self._prompt_overrides(),
        )
        variables = options.prompt_variables or PromptVariables(
            phase=options.phase, repo=options.repo
        )
        return build_prompt(
            options.issue_number, options.issue_title, options.issue_url, template, variables
        )

    def build_args(self, prompt: str) -> list[str]:
        return [*self._extra_args, "-p", prompt, *OUTPUT_FORMAT_ARGS]

    async def launch(self, options: LaunchOptions) -> LaunchedAgent | LaunchError:
        """Run preflight checks and start the agent.

        Returns a ``LaunchError`` instead of raising when the working directory
        is missing, the agent executable cannot be resolved or the process
        does not start. Stream handling is left to the caller.
        """

        local_path = Path(options.local_path).expanduser()
        if not local_path.is_dir():
            return LaunchError(
                "directory-not-found",
                f"Directory not found: {local_path}. Check the repo's local path.",
            )

        executable = self.resolve_executable()
        if executable is None or not self.probe(executable):
            return LaunchError(
                "agent-not-found",
                f"{self._command} not found in PATH. Install the agent CLI first.",
            )

        prompt = self.build_prompt(options)
        try:
            process = await asyncio.create_subprocess_exec(
                executable,
                *self.build_args(prompt),
                cwd=str(local_path),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=agent_environment(options.repo, options.issue_number),
            )
        except OSError as exc:
            logger.warning(
                "Agent spawn failed",
                extra={"repo": options.repo, "issue": options.issue_number, "error": str(exc)},
            )
            process = None

        if process is None or process.pid is None:
            return LaunchError(
                "spawn-failed",
                f"Failed to spawn background agent for #{options.issue_number}",
            )

        return LaunchedAgent(
            process=process,
            pid=process.pid,
            result_file_path=self._result_store.path_for(
                options.repo, options.issue_number, options.phase
            ),
        )


__all__ = [
    "AgentLauncher",
    "LaunchError",
    "LaunchErrorKind",
    "LaunchOptions",
    "LaunchedAgent",
    "OUTPUT_FORMAT_ARGS",
]
