"""Incremental stream monitoring for running agent processes."""

from __future__ import annotations

import asyncio
import codecs
import logging
from dataclasses import dataclass
from typing import Callable

from .stream import StreamEvent, parse_stream_line

logger = logging.getLogger(__name__)

EventCallback = Callable[[StreamEvent], None]
ExitCallback = Callable[[int, "AgentMonitor"], None]

CHUNK_SIZE = 4096


@dataclass(slots=True)
class AgentMonitor:
    """Live view of an agent, updated in place by its ``StreamMonitor``."""

    session_id: str | None = None
    last_tool_use: str | None = None
    last_text: str | None = None
    is_running: bool = True
    exit_code: int | None = None


def normalize_exit_code(returncode: int | None) -> int:
    return 1 if returncode is None else returncode


class StreamMonitor:
    """Owns an ``AgentMonitor`` and the task that feeds it from a process.

    stdout is split on newlines and each complete line goes through
    ``parse_stream_line``; the trailing fragment waits for the next chunk.
    Non-empty stderr chunks replace ``last_text``.
    """

    def __init__(
        self,
        process: asyncio.subprocess.Process,
        on_event: EventCallback | None = None,
        on_exit: ExitCallback | None = None,
    ) -> None:
        self._process = process
        self._on_event = on_event
        self._on_exit = on_exit
        self._buffer = ""
        self._task: asyncio.Task[int] | None = None
        self.monitor = AgentMonitor()

    @property
    def done(self) -> bool:
        return self._task is not None and self._task.done()

    def start(self) -> "StreamMonitor":
        if self._task is None:
            self._task = asyncio.create_task(self._run())
        return self

    async def wait(self) -> int:
        """Wait for the process to exit and return its normalized exit code."""

        if self._task is None:
            self.start()
        assert self._task is not None
        return await self._task

    def feed_stdout(self, chunk: str) -> None:
        self._buffer += chunk
        *lines, self._buffer = self._buffer.split("\n")
        for line in lines:
            self._process_line(line)

    def feed_stderr(self, chunk: str) -> None:
        text = chunk.strip()
        if text:
            self.monitor.last_text = text

    def finish(self, returncode: int | None) -> int:
        """Flush the partial line, mark the monitor stopped and fire ``on_exit``."""

        if self._buffer.strip():
            self._process_line(self._buffer)
        self._buffer = ""

        exit_code = normalize_exit_code(returncode)
        self.monitor.is_running = False
        self.monitor.exit_code = exit_code
        if self._on_exit is not None:
            try:
                self._on_exit(exit_code, self.monitor)
            except Exception:
                logger.exception("Agent exit handler failed")
        return exit_code

    def _process_line(self, line: str) -> None:
        event = parse_stream_line(line)
        if event is None:
            return

        if event.session_id:
            self.monitor.session_id = event.session_id
        if event.type == "tool_use" and event.tool_name:
            self.monitor.last_tool_use = event.tool_name
        if event.type == "text" and event.text:
            self.monitor.last_text = event.text

        if self._on_event is not None:
            try:
                self._on_event(event)
            except Exception:
                logger.exception("Agent event handler failed")

    async def _pump(
        self,
        stream: asyncio.StreamReader | None,
        handler: Callable[[str], None],
    ) -> None:
        if stream is None:
            return
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        while True:
            chunk = await stream.read(CHUNK_SIZE)
            if not chunk:
                break
            self._handle_chunk(handler, decoder.decode(chunk))
        self._handle_chunk(handler, decoder.decode(b"", final=True))

    def _handle_chunk(self, handler: Callable[[str], None], text: str) -> None:
        if not text:
            return
        try:
            handler(text)
        except Exception:
            logger.exception("Agent output handling failed")

    async def _run(self) -> int:
        try:
            await asyncio.gather(
                self._pump(self._process.stdout, self.feed_stdout),
                self._pump(self._process.stderr, self.feed_stderr),
            )
            returncode = await self._process.wait()
        except Exception:
            logger.exception("Agent stream monitoring failed")
            returncode = self._process.returncode
        return self.finish(returncode)


def attach_stream_monitor(
    process: asyncio.subprocess.Process,
    on_event: EventCallback | None = None,
    on_exit: ExitCallback | None = None,
) -> StreamMonitor:
    """Start monitoring ``process``; read live state from ``.monitor``."""

    return StreamMonitor(process, on_event, on_exit).start()


__all__ = [
    "AgentMonitor",
    "EventCallback",
    "ExitCallback",
    "StreamMonitor",
    "attach_stream_monitor",
    "normalize_exit_code",
]
