"""Platform pipe backends.

piped-process runtime module v0.1.0

Two mutually exclusive implementations of the same contract, chosen once at
import time:

- PosixPipeBackend: O_NONBLOCK read endpoint, one select.poll() call per
  readiness wait, argv passed as a list to exec
- WindowsPipeBackend: reads gated by PeekNamedPipe (anonymous pipes cannot
  be waited on), readiness waits sleep in poll_interval slices, argv joined
  into one quoted command line for CreateProcess

Backends never change process state; they report what the OS said and
PipedProcess decides the transition.
"""

from __future__ import annotations

import logging
import os
import subprocess
import sys
import time
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from .command import windows_command_line
from .types import Readiness

if sys.platform == "win32":
    import _winapi
    import msvcrt
else:
    import select

__all__ = [
    "IS_WINDOWS",
    "PipeBackend",
    "PosixPipeBackend",
    "WindowsPipeBackend",
    "get_backend",
]

logger = logging.getLogger(__name__)

# Platform detection
IS_WINDOWS = sys.platform == "win32"


class PipeBackend(ABC):
    """OS-specific pipe and process operations."""

    name: str = "abstract"

    @abstractmethod
    def configure_read_endpoint(self, fd: int) -> None:
        """Make reads on fd return immediately when nothing is buffered."""

    @abstractmethod
    def read_chunk(self, fd: int, size: int) -> bytes | None:
        """Read at most size bytes without blocking.

        Returns:
            Data read, b"" at end of stream, or None when nothing is
            currently available
        """

    @abstractmethod
    def wait_readable(
        self,
        fd: int,
        timeout_ms: int | None,
        poll_interval_ms: int,
    ) -> Readiness:
        """Wait until fd has data, the timeout elapses or the stream ends.

        Args:
            fd: Read endpoint
            timeout_ms: None waits indefinitely, 0 checks once
            poll_interval_ms: Sleep slice for backends without a native wait
        """

    @abstractmethod
    def launch_args(self, argv: Sequence[str]) -> str | list[str]:
        """Convert the command vector to what Popen expects on this OS."""

    @abstractmethod
    def popen_kwargs(self, isolate: bool) -> dict[str, Any]:
        """Platform-specific Popen kwargs."""


class PosixPipeBackend(PipeBackend):
    """pipe + fork/exec + poll."""

    name = "posix"

    def configure_read_endpoint(self, fd: int) -> None:
        os.set_blocking(fd, False)

    def read_chunk(self, fd: int, size: int) -> bytes | None:
        try:
            return os.read(fd, size)
        except BlockingIOError:
            return None

    def wait_readable(
        self,
        fd: int,
        timeout_ms: int | None,
        poll_interval_ms: int,
    ) -> Readiness:
        poller = select.poll()
        poller.register(fd, select.POLLIN)
        try:
            # None blocks until an event arrives
            events = poller.poll(timeout_ms)
        except OSError as e:
            logger.warning(f"poll() failed on fd={fd}: {e}")
            return Readiness.ERROR

        if not events:
            return Readiness.TIMEOUT

        revents = events[0][1]
        if revents & select.POLLIN:
            return Readiness.READABLE
        if revents & (select.POLLERR | select.POLLNVAL):
            logger.warning(f"poll() reported error events={revents:#x} on fd={fd}")
            return Readiness.ERROR
        if revents & select.POLLHUP:
            return Readiness.HANGUP
        return Readiness.TIMEOUT

    def launch_args(self, argv: Sequence[str]) -> list[str]:
        return list(argv)

    def popen_kwargs(self, isolate: bool) -> dict[str, Any]:
        # start_new_session is the equivalent of setsid
        return {"start_new_session": True} if isolate else {}


class WindowsPipeBackend(PipeBackend):
    """Anonymous pipes + CreateProcess + PeekNamedPipe."""

    name = "windows"

    def configure_read_endpoint(self, fd: int) -> None:
        # Anonymous pipes stay blocking; read_chunk only asks for what
        # PeekNamedPipe says is already buffered.
        pass

    def _available(self, fd: int) -> int:
        handle = msvcrt.get_osfhandle(fd)
        navail, _ = _winapi.PeekNamedPipe(handle)
        return navail

    def read_chunk(self, fd: int, size: int) -> bytes | None:
        try:
            available = self._available(fd)
        except BrokenPipeError:
            return b""
        if available == 0:
            return None
        return os.read(fd, min(available, size))

    def wait_readable(
        self,
        fd: int,
        timeout_ms: int | None,
        poll_interval_ms: int,
    ) -> Readiness:
        deadline = None if timeout_ms is None else time.monotonic() + timeout_ms / 1000
        interval = poll_interval_ms / 1000

        while True:
            try:
                if self._available(fd):
                    return Readiness.READABLE
            except BrokenPipeError:
                return Readiness.HANGUP
            except OSError as e:
                logger.warning(f"PeekNamedPipe failed on fd={fd}: {e}")
                return Readiness.ERROR

            if deadline is None:
                time.sleep(interval)
                continue
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return Readiness.TIMEOUT
            time.sleep(min(interval, remaining))

    def launch_args(self, argv: Sequence[str]) -> str:
        return windows_command_line(argv)

    def popen_kwargs(self, isolate: bool) -> dict[str, Any]:
        if isolate:
            return {"creationflags": subprocess.CREATE_NEW_PROCESS_GROUP}
        return {}


_backend: PipeBackend | None = None


def get_backend() -> PipeBackend:
    """Return the backend for the running platform."""
    global _backend
    if _backend is None:
        _backend = WindowsPipeBackend() if IS_WINDOWS else PosixPipeBackend()
    return _backend
