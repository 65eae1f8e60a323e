"""piped-process - 通过管道与外部协进程（如 SMT 求解器）交换字节流。

环境变量:
    PIPED_PROCESS_BUFSIZE: 读取块大小 (默认 2048)
    PIPED_PROCESS_POLL_INTERVAL_MS: 轮询间隔 (默认 10ms)
    PIPED_PROCESS_ISOLATE: 是否隔离子进程 (默认 true)

用法:
    from piped_process import PipedProcess

    with PipedProcess(["z3", "-in"]) as solver:
        solver.send(b"(check-sat)\\n")
        print(solver.wait_receive())
"""

__version__ = "0.1.0"

from .errors import (
    ContractViolationError,
    HandleClosedError,
    PipedProcessError,
    ProcessSpawnError,
)
from .runtime import (
    INFINITE_TIMEOUT,
    AsyncPipedProcess,
    PipedProcess,
    ProcessState,
    SendResponse,
)

__all__ = [
    "__version__",
    "AsyncPipedProcess",
    "PipedProcess",
    "ProcessState",
    "SendResponse",
    "INFINITE_TIMEOUT",
    "PipedProcessError",
    "ProcessSpawnError",
    "HandleClosedError",
    "ContractViolationError",
]
