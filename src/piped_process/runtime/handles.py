"""Scoped OS resource handles.

piped-process runtime module v0.1.0

Each wrapper owns exactly one OS resource and releases it exactly once:
- PipeEndpoint: one pipe file descriptor
- ProcessHandle: one child process (subprocess.Popen)

Both are context managers, so construction code can hand them to a
contextlib.ExitStack and have every failure path release what was allocated.
"""

from __future__ import annotations

import logging
import os
import subprocess
from types import TracebackType

from ..errors import HandleClosedError

__all__ = [
    "PipeEndpoint",
    "ProcessHandle",
    "open_pipe",
]

logger = logging.getLogger(__name__)


class PipeEndpoint:
    """One end of an OS pipe.

    The descriptor is only reachable through the ``fd`` property, which raises
    HandleClosedError once the endpoint has been closed.
    """

    def __init__(self, fd: int, name: str) -> None:
        self._fd: int | None = fd
        self.name = name

    @property
    def fd(self) -> int:
        if self._fd is None:
            raise HandleClosedError(self.name)
        return self._fd

    @property
    def closed(self) -> bool:
        return self._fd is None

    def close(self) -> None:
        """Close the descriptor. Calling again is a no-op."""
        fd, self._fd = self._fd, None
        if fd is None:
            return
        try:
            os.close(fd)
        except OSError as e:
            logger.debug(f"Error closing {self.name} fd={fd}: {e}")

    def __enter__(self) -> PipeEndpoint:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._fd is None else f"fd={self._fd}"
        return f"PipeEndpoint({self.name}, {state})"


def open_pipe(name: str) -> tuple[PipeEndpoint, PipeEndpoint]:
    """Allocate a unidirectional pipe.

    Both descriptors are created non-inheritable; subprocess duplicates the
    child's ends onto its standard streams.

    Args:
        name: Label used in logs and errors ("stdin", "stdout")

    Returns:
        (read_end, write_end)
    """
    read_fd, write_fd = os.pipe()
    return (
        PipeEndpoint(read_fd, f"{name}-read"),
        PipeEndpoint(write_fd, f"{name}-write"),
    )


class ProcessHandle:
    """Owns a spawned child process.

    Termination is a single best-effort request: SIGTERM on POSIX,
    TerminateProcess on Windows. It is not awaited and not retried.

    The Popen object is kept after terminate() so that a later poll() can
    reap the child. If the handle is collected while the child is still
    running, subprocess reaps it instead and emits ResourceWarning.
    """

    def __init__(self, popen: subprocess.Popen[bytes]) -> None:
        self._popen = popen
        self._terminated = False
        self.pid = popen.pid

    @property
    def terminated(self) -> bool:
        return self._terminated

    def poll(self) -> int | None:
        """Return the exit code if the child has exited (reaping it), else None."""
        return self._popen.poll()

    def terminate(self) -> None:
        """Ask the child to exit. Only the first call acts; never raises."""
        if self._terminated:
            return
        self._terminated = True
        popen = self._popen
        try:
            if popen.poll() is None:
                popen.terminate()
                logger.debug(f"Sent termination request to pid={popen.pid}")
                # Reap right away if it already went; otherwise a later poll()
                # collects it.
                popen.poll()
        except ProcessLookupError:
            logger.debug(f"Coprocess already exited pid={popen.pid}")
        except OSError as e:
            logger.warning(f"Error terminating coprocess pid={popen.pid}: {e}")

    def __enter__(self) -> ProcessHandle:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.terminate()

    def __repr__(self) -> str:
        state = "terminated" if self._terminated else "live"
        return f"ProcessHandle(pid={self.pid}, {state})"
