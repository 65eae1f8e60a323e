"""Async facade over PipedProcess.

piped-process runtime module v0.1.0

For callers running inside an event loop (asyncio or trio via anyio).
The wrapped PipedProcess is still synchronous; waiting is done by polling
can_receive(0) with anyio.sleep() in between, so no worker thread is
involved and the caller's cancel scope interrupts a wait at the next sleep.
"""

from __future__ import annotations

import logging
from types import TracebackType

import anyio

from .piped_process import PipedProcess
from .types import INFINITE_TIMEOUT, ProcessState, SendResponse

__all__ = ["AsyncPipedProcess"]

logger = logging.getLogger(__name__)


class AsyncPipedProcess:
    """Awaitable view of one PipedProcess.

    Example:
        async with AsyncPipedProcess(PipedProcess(["z3", "-in"])) as solver:
            solver.send(b"(check-sat)\\n")
            answer = await solver.wait_receive(timeout_ms=5000)
    """

    def __init__(self, process: PipedProcess) -> None:
        self.process = process

    def status(self) -> ProcessState:
        return self.process.status()

    def send(self, message: bytes | bytearray | memoryview | str) -> SendResponse:
        """Same as PipedProcess.send(); a pipe write does not need awaiting."""
        return self.process.send(message)

    def receive(self) -> bytes:
        return self.process.receive()

    async def wait_receivable(self, poll_interval_ms: int | None = None) -> bool:
        """Sleep until output is ready or the state leaves READY.

        Args:
            poll_interval_ms: Milliseconds between checks (default from the
                wrapped process' poll_interval_ms)

        Returns:
            True if output is ready, False if the channel stopped being READY
        """
        if poll_interval_ms is None:
            poll_interval_ms = self.process.poll_interval_ms
        if poll_interval_ms < 0:
            raise ValueError(f"poll_interval_ms must not be negative, got {poll_interval_ms}")
        interval = max(poll_interval_ms, 1) / 1000
        while self.process.status() is ProcessState.READY:
            if self.process.can_receive(0):
                return True
            await anyio.sleep(interval)
        return False

    async def wait_receive(
        self,
        timeout_ms: int | None = INFINITE_TIMEOUT,
        poll_interval_ms: int | None = None,
    ) -> bytes:
        """Wait for output and drain it.

        Args:
            timeout_ms: Milliseconds to wait at most (None = no limit)
            poll_interval_ms: Milliseconds between readiness checks

        Returns:
            The drained output, or b"" if the channel left READY while
            waiting (check status() to tell why)

        Raises:
            TimeoutError: If no output arrived within timeout_ms
            ValueError: If timeout_ms is negative
        """
        if timeout_ms is not None and timeout_ms < 0:
            raise ValueError(f"timeout_ms must not be negative, got {timeout_ms}")
        timeout = timeout_ms / 1000 if timeout_ms is not None else None
        with anyio.fail_after(timeout):
            ready = await self.wait_receivable(poll_interval_ms)
        if not ready:
            logger.debug(f"Channel left READY while waiting: {self.process.status().value}")
            return b""
        return self.process.receive()

    async def aclose(self) -> None:
        self.process.close()

    async def __aenter__(self) -> AsyncPipedProcess:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
