"""Background agent launching, monitoring and supervision."""

from .launcher import AgentLauncher, LaunchedAgent, LaunchError, LaunchOptions
from .monitor import AgentMonitor, StreamMonitor, attach_stream_monitor
from .results import AgentResultFile, ResultStore, to_session_patch
from .stream import StreamEvent, parse_stream_line
from .supervisor import AgentSupervisor, TrackedAgent
from .utils import is_process_alive

__all__ = [
    "AgentLauncher",
    "AgentMonitor",
    "AgentResultFile",
    "AgentSupervisor",
    "LaunchError",
    "LaunchOptions",
    "LaunchedAgent",
    "ResultStore",
    "StreamEvent",
    "StreamMonitor",
    "TrackedAgent",
    "attach_stream_monitor",
    "is_process_alive",
    "parse_stream_line",
    "to_session_patch",
]
