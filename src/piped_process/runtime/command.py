"""Command vector handling.

Commands are kept as a list of literal arguments up to the subprocess
boundary. POSIX hands the list straight to exec; Windows needs one command
line string, built by quoting each argument with the MS C runtime rules.
"""

from __future__ import annotations

import os
import subprocess
from collections.abc import Sequence

__all__ = [
    "normalize_command",
    "windows_command_line",
]


def normalize_command(command: Sequence[str | os.PathLike[str]]) -> list[str]:
    """Validate a command vector and return it as a list of strings.

    Args:
        command: Executable followed by its arguments

    Returns:
        A new list of str

    Raises:
        TypeError: If command is a plain string or holds non-string elements
        ValueError: If command is empty
    """
    if isinstance(command, (str, bytes)):
        raise TypeError(
            "command must be a sequence of arguments, not a single string; "
            "split it before calling"
        )
    argv: list[str] = []
    for item in command:
        if isinstance(item, os.PathLike):
            item = os.fspath(item)
        if not isinstance(item, str):
            raise TypeError(f"command arguments must be str, got {type(item).__name__}")
        argv.append(item)
    if not argv:
        raise ValueError("command must name an executable")
    return argv


def windows_command_line(argv: Sequence[str]) -> str:
    """Join arguments into a Windows command line.

    Arguments containing whitespace or double quotes are quoted individually,
    with backslashes before quotes doubled, so CommandLineToArgvW (and the C
    runtime of the child) recovers the original vector.
    """
    return subprocess.list2cmdline(list(argv))
