#!/usr/bin/env python3
"""Scriptable coprocess for integration testing.

Stands in for a decision-procedure backend driven over pipes. Every mode
works on raw bytes and flushes after each write.

Usage:
    python solver_stub.py [MODE] [--delay SECONDS] [--size BYTES]
                          [--exit-code CODE] [--on-term-touch PATH]

Modes:
    echo     copy each stdin line back to stdout (default)
    stderr   copy each stdin line to stderr instead
    silent   consume stdin, never write
    exit     exit immediately with --exit-code
    delayed  sleep --delay seconds, write "ready\\n", then echo
    burst    write --size bytes of "x" at once, then echo
    answer   reply "sat\\n" to every line, like a solver answering check-sat
    hold     write "ready\\n", then sleep until signalled (ignores stdin)
"""

from __future__ import annotations

import argparse
import signal
import sys
import time
from pathlib import Path

_touch_on_term: Path | None = None


def signal_handler(signum: int, frame) -> None:
    """Record the termination request, then exit with 128 + signum."""
    if _touch_on_term is not None:
        _touch_on_term.write_text(signal.Signals(signum).name)
    sys.exit(128 + signum)


def write(stream, data: bytes) -> None:
    stream.write(data)
    stream.flush()


def echo_lines(out) -> None:
    for line in sys.stdin.buffer:
        write(out, line)


def main() -> int:
    global _touch_on_term

    parser = argparse.ArgumentParser(description="Solver stub for testing")
    parser.add_argument(
        "mode",
        nargs="?",
        default="echo",
        choices=["echo", "stderr", "silent", "exit", "delayed", "burst", "answer", "hold"],
    )
    parser.add_argument("--delay", type=float, default=0.2, help="Seconds before replying")
    parser.add_argument("--size", type=int, default=65536, help="Burst size in bytes")
    parser.add_argument("--exit-code", type=int, default=0, help="Exit code for 'exit'")
    parser.add_argument("--on-term-touch", type=Path, default=None, help="File written on SIGTERM")
    args = parser.parse_args()

    if args.on_term_touch is not None:
        _touch_on_term = args.on_term_touch
    if sys.platform != "win32":
        signal.signal(signal.SIGTERM, signal_handler)

    stdout = sys.stdout.buffer

    if args.mode == "exit":
        return args.exit_code

    if args.mode == "silent":
        for _ in sys.stdin.buffer:
            pass
        return 0

    if args.mode == "stderr":
        echo_lines(sys.stderr.buffer)
        return 0

    if args.mode == "hold":
        write(stdout, b"ready\n")
        while True:
            time.sleep(0.05)

    if args.mode == "delayed":
        time.sleep(args.delay)
        write(stdout, b"ready\n")
    elif args.mode == "burst":
        write(stdout, b"x" * args.size)
    elif args.mode == "answer":
        for _ in sys.stdin.buffer:
            write(stdout, b"sat\n")
        return 0

    echo_lines(stdout)
    return 0


if __name__ == "__main__":
    sys.exit(main())
