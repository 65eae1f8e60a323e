"""Coprocess channel type definitions.

piped-process runtime module v0.1.0

Defines the process state machine, send outcomes and backend readiness results.
"""

from __future__ import annotations

from enum import Enum

__all__ = [
    "ProcessState",
    "SendResponse",
    "Readiness",
    "INFINITE_TIMEOUT",
]

# Passed as a timeout to wait without bound.
INFINITE_TIMEOUT = None


class ProcessState(str, Enum):
    """Lifecycle state of a PipedProcess.

    - uninitialized: construction has not finished spawning the child
    - ready: child running, channel usable
    - stopped: end of stream seen on the child's output
    - faulted: the readiness primitive reported an OS error
    - closed: the instance was torn down
    """

    UNINITIALIZED = "uninitialized"
    READY = "ready"
    STOPPED = "stopped"
    FAULTED = "faulted"
    CLOSED = "closed"


class SendResponse(str, Enum):
    """Outcome of PipedProcess.send()."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    ERRORED = "errored"


class Readiness(str, Enum):
    """Result of one backend readiness wait on the read endpoint."""

    READABLE = "readable"
    TIMEOUT = "timeout"
    HANGUP = "hangup"
    ERROR = "error"
