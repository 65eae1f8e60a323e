"""piped_process 异常类。

piped-process v0.1.0

只有构造失败和调用契约违反会以异常形式抛出；
运行期的 OS 错误（断管、poll 失败）以返回值或状态迁移表示。
"""

from __future__ import annotations

from collections.abc import Sequence

__all__ = [
    "PipedProcessError",
    "ProcessSpawnError",
    "HandleClosedError",
    "ContractViolationError",
]


class PipedProcessError(Exception):
    """piped_process 基础异常。"""
    pass


class ProcessSpawnError(PipedProcessError):
    """子进程创建失败（管道分配、描述符配置或进程启动）。

    Attributes:
        command: 启动时使用的命令向量
        reason: 失败的步骤描述
    """

    def __init__(self, command: Sequence[str], reason: str) -> None:
        self.command = list(command)
        self.reason = reason
        executable = self.command[0] if self.command else "<empty>"
        super().__init__(f"Launching {executable} failed: {reason}")


class HandleClosedError(PipedProcessError):
    """访问已经释放的 OS 句柄。"""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"{name} is already closed")


class ContractViolationError(PipedProcessError, AssertionError):
    """调用方在错误的状态下调用了操作（程序逻辑错误，不应被捕获）。

    Attributes:
        operation: 被调用的操作名
        state: 调用时的进程状态
    """

    def __init__(self, operation: str, state: object, message: str) -> None:
        self.operation = operation
        self.state = state
        state_name = getattr(state, "value", state)
        super().__init__(f"{operation}(): {message} (state={state_name})")
