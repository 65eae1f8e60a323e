"""piped_process 环境变量配置管理。

环境变量:
    PIPED_PROCESS_BUFSIZE: 每次从子进程输出管道读取的块大小（字节）
        - 默认 2048
        - 限制在 256-1048576 范围

    PIPED_PROCESS_POLL_INTERVAL_MS: 轮询间隔（毫秒）
        - 默认 10
        - 用于 wait_receivable 默认间隔、Windows 后端的 PeekNamedPipe 轮询
          以及异步封装的等待循环
        - 限制在 1-10000 范围

    PIPED_PROCESS_ISOLATE: 是否在新会话/进程组中启动子进程
        - true/1/yes = 隔离 (默认，终端的 Ctrl+C 不会直接传给求解器)
        - false/0/no = 与父进程共享进程组

    PIPED_PROCESS_LOG_DEBUG: 日志调试模式
        - true/1/yes = 开启 (DEBUG 日志输出到临时文件)
        - false/0/no = 关闭 (默认，INFO 日志输出到 stderr)
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

__all__ = ["Config", "load_config", "get_config", "reload_config"]

DEFAULT_BUFSIZE = 2048
DEFAULT_POLL_INTERVAL_MS = 10

_BUFSIZE_RANGE = (256, 1024 * 1024)
_POLL_INTERVAL_RANGE = (1, 10_000)


def _parse_bool(value: str | None, default: bool = False) -> bool:
    """解析布尔值环境变量。"""
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _parse_clamped_int(value: str | None, default: int, bounds: tuple[int, int]) -> int:
    """解析整数环境变量并限制在给定范围内，无效值返回默认值。"""
    if not value:
        return default
    try:
        number = int(value.strip())
    except ValueError:
        return default
    low, high = bounds
    return max(low, min(number, high))


@dataclass
class Config:
    """piped_process 配置。

    Attributes:
        bufsize: 读取块大小（字节）
        poll_interval_ms: 默认轮询间隔（毫秒）
        isolate: 是否在新会话/进程组中启动子进程
        log_debug: 日志调试模式（输出到临时文件）
        log_file: 日志文件路径（当 log_debug=True 时自动设置）
    """

    bufsize: int = DEFAULT_BUFSIZE
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS
    isolate: bool = True
    log_debug: bool = False
    log_file: str | None = None

    def __repr__(self) -> str:
        return (
            f"Config(bufsize={self.bufsize}, "
            f"poll_interval_ms={self.poll_interval_ms}, "
            f"isolate={self.isolate}, "
            f"log_debug={self.log_debug}, "
            f"log_file={self.log_file})"
        )


def _generate_log_file_path() -> str:
    """生成日志文件路径。

    Returns:
        临时目录下的日志文件绝对路径
    """
    log_dir = Path(tempfile.gettempdir()) / "piped-process"
    log_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"piped_process_debug_{timestamp}.log"

    return str(log_file.resolve())


def load_config() -> Config:
    """从环境变量加载配置。"""
    log_debug = _parse_bool(os.environ.get("PIPED_PROCESS_LOG_DEBUG"), default=False)
    log_file = _generate_log_file_path() if log_debug else None

    return Config(
        bufsize=_parse_clamped_int(
            os.environ.get("PIPED_PROCESS_BUFSIZE"),
            DEFAULT_BUFSIZE,
            _BUFSIZE_RANGE,
        ),
        poll_interval_ms=_parse_clamped_int(
            os.environ.get("PIPED_PROCESS_POLL_INTERVAL_MS"),
            DEFAULT_POLL_INTERVAL_MS,
            _POLL_INTERVAL_RANGE,
        ),
        isolate=_parse_bool(os.environ.get("PIPED_PROCESS_ISOLATE"), default=True),
        log_debug=log_debug,
        log_file=log_file,
    )


# 全局配置实例（延迟加载）
_config: Config | None = None


def get_config() -> Config:
    """获取全局配置实例。"""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> Config:
    """重新加载配置（用于测试）。"""
    global _config
    _config = load_config()
    return _config
