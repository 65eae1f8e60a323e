"""Runtime module for coprocess communication over pipes.

This module provides the synchronous PipedProcess channel, its async facade,
and the platform backends they are built on.
"""

from __future__ import annotations

from .async_process import AsyncPipedProcess
from .piped_process import PipedProcess
from .types import INFINITE_TIMEOUT, ProcessState, Readiness, SendResponse

__all__ = [
    "AsyncPipedProcess",
    "PipedProcess",
    "ProcessState",
    "Readiness",
    "SendResponse",
    "INFINITE_TIMEOUT",
]
