"""Pytest 配置和 fixtures。"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# 项目根目录
PROJECT_ROOT = Path(__file__).parent.parent

# 添加 src 目录到 Python 路径
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

# 测试用子进程脚本
STUB_SCRIPT = Path(__file__).parent / "fixtures" / "solver_stub.py"


def stub_command(*args: str) -> list[str]:
    """构造运行 solver_stub.py 的命令向量。"""
    return [sys.executable, str(STUB_SCRIPT), *args]


@pytest.fixture
def echo_command() -> list[str]:
    """逐行回显的子进程。"""
    return stub_command("echo")


@pytest.fixture
def silent_command() -> list[str]:
    """从不输出的子进程。"""
    return stub_command("silent")


@pytest.fixture
def exit_command() -> list[str]:
    """启动后立即退出的子进程。"""
    return stub_command("exit")


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch: pytest.MonkeyPatch):
    """每个测试使用干净的 PIPED_PROCESS_* 环境。"""
    from piped_process.config import reload_config

    for name in (
        "PIPED_PROCESS_BUFSIZE",
        "PIPED_PROCESS_POLL_INTERVAL_MS",
        "PIPED_PROCESS_ISOLATE",
        "PIPED_PROCESS_LOG_DEBUG",
    ):
        monkeypatch.delenv(name, raising=False)
    reload_config()
    yield
    reload_config()
