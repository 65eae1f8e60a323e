"""Coprocess channel over pipes.

piped-process runtime module v0.1.0

This module provides PipedProcess, which:
- Spawns a child with stdin on one pipe and stdout+stderr merged on another
- Sends raw bytes to the child and drains whatever it has already written
- Answers "is there output, optionally within T milliseconds" without a
  blocking read
- Tears down deterministically (close descriptors, then one termination
  request that is not awaited)

Key design points:
- Everything runs on the calling thread; there is no reader thread
- OS failures at runtime are reported as values or state transitions
- Calling receive() outside the READY state is a programmer error and raises
  ContractViolationError
- End of stream on the child's output is terminal (STOPPED)

State machine:
    UNINITIALIZED --spawn--> READY
    READY --readiness OS error--> FAULTED
    READY --end of stream--> STOPPED
    READY/STOPPED --close--> CLOSED
"""

from __future__ import annotations

import contextlib
import logging
import os
import subprocess
from collections.abc import Mapping, Sequence
from types import TracebackType

from ..config import get_config
from ..errors import ContractViolationError, ProcessSpawnError
from .backends import PipeBackend, get_backend
from .command import normalize_command
from .handles import PipeEndpoint, ProcessHandle, open_pipe
from .types import INFINITE_TIMEOUT, ProcessState, Readiness, SendResponse

__all__ = ["PipedProcess"]

logger = logging.getLogger(__name__)


class PipedProcess:
    """A coprocess driven interactively through two pipes.

    Example:
        with PipedProcess(["z3", "-in"]) as solver:
            solver.send(b"(check-sat)\\n")
            answer = solver.wait_receive()

    Attributes:
        command: The command vector the child was launched with
        bufsize: Chunk size for each read while draining
        poll_interval_ms: Default interval for wait_receivable()
    """

    def __init__(
        self,
        command: Sequence[str | os.PathLike[str]],
        *,
        cwd: str | os.PathLike[str] | None = None,
        env: Mapping[str, str] | None = None,
        isolate: bool | None = None,
        bufsize: int | None = None,
        poll_interval_ms: int | None = None,
        backend: PipeBackend | None = None,
    ) -> None:
        """Spawn the coprocess.

        Args:
            command: Executable followed by literal arguments (no shell)
            cwd: Working directory for the child (None = inherit)
            env: Environment for the child (None = inherit)
            isolate: Start the child in a new session / process group
                (default from config)
            bufsize: Read chunk size (default from config)
            poll_interval_ms: Default wait_receivable() interval
                (default from config)
            backend: Platform backend override

        Raises:
            TypeError: If command is not a sequence of strings
            ValueError: If command is empty
            ProcessSpawnError: If pipe allocation, descriptor setup or the
                launch itself fails
        """
        self._state = ProcessState.UNINITIALIZED
        # Nothing to release until the spawn succeeds
        self._torn_down = True
        self._stdin: PipeEndpoint | None = None
        self._stdout: PipeEndpoint | None = None
        self._process: ProcessHandle | None = None

        config = get_config()
        self.command = normalize_command(command)
        self.bufsize = bufsize if bufsize is not None else config.bufsize
        self.poll_interval_ms = (
            poll_interval_ms if poll_interval_ms is not None else config.poll_interval_ms
        )
        if self.bufsize <= 0:
            raise ValueError(f"bufsize must be positive, got {self.bufsize}")
        if self.poll_interval_ms < 0:
            raise ValueError(
                f"poll_interval_ms must not be negative, got {self.poll_interval_ms}"
            )
        self._backend = backend if backend is not None else get_backend()

        self._spawn(
            cwd=cwd,
            env=env,
            isolate=isolate if isolate is not None else config.isolate,
        )
        self._state = ProcessState.READY
        self._torn_down = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _open_pipe(self, name: str) -> tuple[PipeEndpoint, PipeEndpoint]:
        try:
            return open_pipe(name)
        except OSError as e:
            raise ProcessSpawnError(self.command, f"{name} pipe creation failed: {e}") from e

    def _spawn(
        self,
        *,
        cwd: str | os.PathLike[str] | None,
        env: Mapping[str, str] | None,
        isolate: bool,
    ) -> None:
        """Allocate both pipes and launch the child.

        Parent-side endpoints are released on any failure; child-side
        endpoints are always closed in the parent once the launch returns so
        that end of stream becomes observable.
        """
        with contextlib.ExitStack() as on_failure:
            stdin_read, stdin_write = self._open_pipe("stdin")
            on_failure.enter_context(stdin_write)
            with stdin_read:
                stdout_read, stdout_write = self._open_pipe("stdout")
                on_failure.enter_context(stdout_read)
                with stdout_write:
                    try:
                        self._backend.configure_read_endpoint(stdout_read.fd)
                    except OSError as e:
                        raise ProcessSpawnError(
                            self.command, f"setting pipe non-blocking failed: {e}"
                        ) from e

                    try:
                        popen = subprocess.Popen(
                            self._backend.launch_args(self.command),
                            stdin=stdin_read.fd,
                            stdout=stdout_write.fd,
                            stderr=subprocess.STDOUT,
                            cwd=cwd,
                            env=dict(env) if env is not None else None,
                            bufsize=0,
                            close_fds=True,
                            **self._backend.popen_kwargs(isolate),
                        )
                    except OSError as e:
                        raise ProcessSpawnError(self.command, str(e)) from e

            self._process = ProcessHandle(popen)
            self._stdin = stdin_write
            self._stdout = stdout_read
            on_failure.pop_all()

        logger.debug(
            f"Started coprocess pid={popen.pid} argv={self.command[0]} "
            f"backend={self._backend.name} isolate={isolate}"
        )

    def close(self) -> None:
        """Release both pipe endpoints, then ask the child to terminate.

        Idempotent and never raises. The child is not waited for.
        """
        if self._torn_down:
            return
        self._torn_down = True

        for endpoint in (self._stdin, self._stdout):
            if endpoint is not None:
                endpoint.close()
        if self._process is not None:
            self._process.terminate()

        if self._state is not ProcessState.FAULTED:
            self._state = ProcessState.CLOSED
        logger.debug(f"Coprocess channel closed pid={self.pid}")

    def status(self) -> ProcessState:
        """Current state; no side effects."""
        return self._state

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process is not None else None

    @property
    def returncode(self) -> int | None:
        """Exit code of the child once it has exited, else None.

        Reading it reaps an exited child. close() does not wait, so poll this
        after close() when the child must be collected before the instance is
        dropped.
        """
        return self._process.poll() if self._process is not None else None

    def __enter__(self) -> PipedProcess:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def __del__(self) -> None:
        # __init__ may have failed before any attribute was set
        if getattr(self, "_torn_down", True):
            return
        self.close()

    def __repr__(self) -> str:
        return f"PipedProcess(pid={self.pid}, state={self._state.value}, argv={self.command!r})"

    # ------------------------------------------------------------------
    # Channel
    # ------------------------------------------------------------------

    def send(self, message: bytes | bytearray | memoryview | str) -> SendResponse:
        """Write message to the child's stdin.

        The write is unbuffered, so the bytes have been handed to the OS when
        this returns. A str is encoded as UTF-8.

        Returns:
            SUCCEEDED when every byte was written, FAILED on a broken pipe or
            write error (or once end of stream has been seen), ERRORED when
            the channel is not usable and nothing was attempted
        """
        if self._state is ProcessState.STOPPED:
            logger.debug("send() after end of stream, child has gone away")
            return SendResponse.FAILED
        if self._state is not ProcessState.READY or self._stdin is None:
            return SendResponse.ERRORED

        data = message.encode("utf-8") if isinstance(message, str) else message
        view = memoryview(data).cast("B")
        fd = self._stdin.fd
        try:
            while view:
                written = os.write(fd, view)
                view = view[written:]
        except BrokenPipeError:
            logger.debug(f"send() hit a broken pipe pid={self.pid}")
            return SendResponse.FAILED
        except OSError as e:
            logger.warning(f"send() failed pid={self.pid}: {e}")
            return SendResponse.FAILED

        return SendResponse.SUCCEEDED

    def receive(self) -> bytes:
        """Drain the output the child has already written.

        Never waits for more output. Returns b"" when nothing is buffered.
        Reading end of stream moves the state to STOPPED; bytes read before
        it are still returned.

        Raises:
            ContractViolationError: If the state is not READY
        """
        self._require_ready("receive")
        assert self._stdout is not None

        fd = self._stdout.fd
        chunks: list[bytes] = []
        while True:
            try:
                chunk = self._backend.read_chunk(fd, self.bufsize)
            except OSError as e:
                logger.warning(f"receive() read failed pid={self.pid}: {e}")
                break
            if chunk is None:
                break
            if not chunk:
                self._mark_stopped("end of stream on read")
                break
            chunks.append(chunk)

        return b"".join(chunks)

    def wait_receive(self) -> bytes:
        """Block until output is available, then receive() once.

        Returns b"" without raising when the channel is not READY or leaves
        READY while waiting: the child exited (STOPPED) or the readiness check
        failed (FAULTED). Check status() to tell which.
        """
        if not self.can_receive(INFINITE_TIMEOUT):
            logger.debug(f"wait_receive() ended in state {self._state.value} pid={self.pid}")
            return b""
        return self.receive()

    # ------------------------------------------------------------------
    # Readiness
    # ------------------------------------------------------------------

    def can_receive(self, timeout_ms: int | None = 0) -> bool:
        """Report whether output can be read, waiting at most timeout_ms.

        Args:
            timeout_ms: None waits indefinitely, 0 (default) returns at once,
                a positive value bounds the wait in milliseconds

        Returns:
            True when data is ready. False on timeout, on an OS error (state
            becomes FAULTED), at end of stream (state becomes STOPPED), or
            when the state is not READY.
        """
        if timeout_ms is not None and timeout_ms < 0:
            raise ValueError(f"timeout_ms must not be negative, got {timeout_ms}")
        if self._state is not ProcessState.READY or self._stdout is None:
            return False

        readiness = self._backend.wait_readable(
            self._stdout.fd, timeout_ms, self.poll_interval_ms or 1
        )
        if readiness is Readiness.READABLE:
            return True
        if readiness is Readiness.ERROR:
            logger.warning(f"Readiness check failed, channel faulted pid={self.pid}")
            self._state = ProcessState.FAULTED
        elif readiness is Readiness.HANGUP:
            self._mark_stopped("hang-up with no pending output")
        return False

    def wait_receivable(self, poll_interval_ms: int | None = None) -> None:
        """Wait until output is ready or the state leaves READY.

        Each iteration is one readiness wait bounded by poll_interval_ms, so
        this returns as soon as data arrives and notices a state change made
        elsewhere within one interval.
        """
        interval = poll_interval_ms if poll_interval_ms is not None else self.poll_interval_ms
        if interval < 0:
            raise ValueError(f"poll_interval_ms must not be negative, got {interval}")
        while self._state is ProcessState.READY and not self.can_receive(interval):
            pass

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_ready(self, operation: str) -> None:
        if self._state is not ProcessState.READY:
            logger.error(f"{operation}() called in state {self._state.value}")
            raise ContractViolationError(
                operation,
                self._state,
                "can only be called on a fully initialised, running coprocess",
            )

    def _mark_stopped(self, reason: str) -> None:
        if self._state is ProcessState.READY:
            logger.debug(f"Coprocess output ended ({reason}) pid={self.pid}")
            self._state = ProcessState.STOPPED
