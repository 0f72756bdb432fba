"""Process helpers for agent launching and liveness checks."""

from __future__ import annotations

import os
from typing import Mapping

REPO_ENV_VAR = "HOG_REPO"
ISSUE_ENV_VAR = "HOG_ISSUE"


def build_environment(additional: Mapping[str, str] | None = None) -> dict[str, str]:
    """Return a copy of the current environment extended with ``additional``."""

    env = dict(os.environ)
    if additional:
        env.update(additional)
    return env


def agent_environment(repo: str, issue_number: int) -> dict[str, str]:
    """Environment for an agent working on ``repo#issue_number``."""

    return build_environment({REPO_ENV_VAR: repo, ISSUE_ENV_VAR: str(issue_number)})


def is_process_alive(pid: int) -> bool:
    """Check whether ``pid`` exists without signalling it.

    Any failure of the probe, including a permission error, counts as dead.
    """

    try:
        os.kill(pid, 0)
    except (OSError, ValueError, OverflowError):
        return False
    return True


__all__ = [
    "ISSUE_ENV_VAR",
    "REPO_ENV_VAR",
    "agent_environment",
    "build_environment",
    "is_process_alive",
]
