"""piped-process 命令行入口。

把标准输入的每一行发送给协进程，并打印它在超时时间内的全部回复，
用于手工与求解器交互以及排查管道问题。

用法:
    python -m piped_process [--timeout-ms N] [--poll-interval-ms N] -- z3 -in
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Iterable, Sequence
from typing import TextIO

from . import __version__
from .config import Config, get_config
from .errors import ProcessSpawnError
from .runtime import PipedProcess, ProcessState, SendResponse

__all__ = ["main", "relay", "configure_logging"]

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_SPAWN_ERROR = 1
EXIT_CHANNEL_ERROR = 3

DEFAULT_REPLY_TIMEOUT_MS = 500


def build_parser() -> argparse.ArgumentParser:
    """构建命令行解析器。"""
    parser = argparse.ArgumentParser(
        prog="piped-process",
        description="Relay stdin lines to a coprocess and print its replies.",
    )
    parser.add_argument(
        "--timeout-ms",
        type=int,
        default=DEFAULT_REPLY_TIMEOUT_MS,
        help="How long the child may stay silent before the next line is sent",
    )
    parser.add_argument(
        "--poll-interval-ms",
        type=int,
        default=None,
        help="Readiness poll interval (default: PIPED_PROCESS_POLL_INTERVAL_MS)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("command", nargs=argparse.REMAINDER, help="Executable and arguments")
    return parser


def configure_logging(config: Config) -> None:
    """配置日志输出。

    默认 INFO 级别输出到 stderr；PIPED_PROCESS_LOG_DEBUG 开启时
    DEBUG 级别输出到临时文件。
    """
    log_handlers: list[logging.Handler] = []

    if config.log_debug and config.log_file:
        file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
        log_handlers.append(file_handler)
        log_level = logging.DEBUG
    else:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
        log_handlers.append(stderr_handler)
        log_level = logging.INFO

    # 第三方库只输出 WARNING 以上
    logging.basicConfig(
        level=logging.WARNING,
        handlers=log_handlers,
    )
    logging.getLogger("piped_process").setLevel(log_level)


def relay(
    process: PipedProcess,
    lines: Iterable[str],
    out: TextIO,
    timeout_ms: int = DEFAULT_REPLY_TIMEOUT_MS,
) -> int:
    """逐行转发输入并输出回复。

    每发送一行后持续读取，直到子进程在 timeout_ms 内没有新输出。

    Args:
        process: 已启动的协进程
        lines: 输入行（保留行尾换行符）
        out: 回复写入的文本流
        timeout_ms: 判定回复结束的静默时间（毫秒）

    Returns:
        进程退出码
    """
    for line in lines:
        result = process.send(line)
        if result is not SendResponse.SUCCEEDED:
            logger.error(f"Sending to coprocess failed: {result.value}")
            return EXIT_CHANNEL_ERROR

        while process.can_receive(timeout_ms):
            reply = process.receive()
            out.write(reply.decode("utf-8", errors="replace"))
            out.flush()
            if process.status() is not ProcessState.READY:
                break

        if process.status() is not ProcessState.READY:
            logger.warning(f"Coprocess channel is {process.status().value}, stopping relay")
            return EXIT_CHANNEL_ERROR

    return EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    """主入口点。"""
    parser = build_parser()
    args = parser.parse_args(argv)

    command = list(args.command)
    if command and command[0] == "--":
        command = command[1:]
    if not command:
        parser.error("a command to run is required")
    if args.timeout_ms < 0:
        parser.error("--timeout-ms must not be negative")

    config = get_config()
    configure_logging(config)
    logger.debug(f"Starting relay: {config}")

    try:
        process = PipedProcess(command, poll_interval_ms=args.poll_interval_ms)
    except ProcessSpawnError as e:
        logger.error(str(e))
        return EXIT_SPAWN_ERROR

    with process:
        return relay(process, sys.stdin, sys.stdout, args.timeout_ms)


if __name__ == "__main__":
    sys.exit(main())
