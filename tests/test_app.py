"""命令行入口测试。"""

from __future__ import annotations

import io
import logging
import shutil
import sys

import pytest

from conftest import stub_command
from piped_process import PipedProcess
from piped_process.app import (
    EXIT_CHANNEL_ERROR,
    EXIT_OK,
    EXIT_SPAWN_ERROR,
    build_parser,
    main,
    relay,
)


class TestRelay:
    """relay() 测试。"""

    @pytest.mark.timeout(20)
    def test_answers_each_line(self):
        out = io.StringIO()
        with PipedProcess(stub_command("answer")) as process:
            code = relay(process, ["(check-sat)\n", "(check-sat)\n"], out, timeout_ms=1000)
        assert code == EXIT_OK
        assert out.getvalue() == "sat\nsat\n"

    @pytest.mark.timeout(20)
    def test_echo(self, echo_command: list[str]):
        out = io.StringIO()
        with PipedProcess(echo_command) as process:
            code = relay(process, ["(push 1)\n"], out, timeout_ms=1000)
        assert code == EXIT_OK
        assert out.getvalue() == "(push 1)\n"

    @pytest.mark.timeout(20)
    def test_child_exit_stops_relay(self, exit_command: list[str]):
        out = io.StringIO()
        with PipedProcess(exit_command) as process:
            code = relay(process, ["(exit)\n"] * 5, out, timeout_ms=2000)
        assert code == EXIT_CHANNEL_ERROR

    def test_no_input(self, echo_command: list[str]):
        out = io.StringIO()
        with PipedProcess(echo_command) as process:
            assert relay(process, [], out) == EXIT_OK
        assert out.getvalue() == ""


class TestMain:
    """main() 测试。"""

    @pytest.fixture(autouse=True)
    def restore_logging(self):
        """main() 会调整 piped_process logger 级别，测试后恢复。"""
        pkg_logger = logging.getLogger("piped_process")
        level = pkg_logger.level
        yield
        pkg_logger.setLevel(level)

    def test_missing_command(self):
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 2

    def test_only_separator(self):
        with pytest.raises(SystemExit) as exc_info:
            main(["--"])
        assert exc_info.value.code == 2

    def test_negative_timeout(self):
        with pytest.raises(SystemExit) as exc_info:
            main(["--timeout-ms", "-1", "--", "z3"])
        assert exc_info.value.code == 2

    def test_spawn_error(self):
        assert main(["--", "nonexistent_solver_xyz_123", "-in"]) == EXIT_SPAWN_ERROR

    @pytest.mark.timeout(20)
    def test_relays_stdin(self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]):
        monkeypatch.setattr(sys, "stdin", io.StringIO("(check-sat)\n"))
        code = main(["--timeout-ms", "1000", "--", *stub_command("answer")])
        assert code == EXIT_OK
        assert capsys.readouterr().out == "sat\n"

    def test_parser_keeps_child_flags(self):
        args = build_parser().parse_args(["--timeout-ms", "5", "--", "z3", "-in", "--help"])
        assert args.timeout_ms == 5
        assert [a for a in args.command if a != "--"] == ["z3", "-in", "--help"]


@pytest.mark.timeout(30)
@pytest.mark.skipif(shutil.which("z3") is None, reason="z3 not installed")
def test_real_solver_round_trip():
    """与真实 z3 交互（未安装则跳过）。"""
    with PipedProcess(["z3", "-in"]) as solver:
        solver.send(b"(declare-const x Int)\n(assert (> x 0))\n(check-sat)\n")
        output = b""
        while b"sat" not in output:
            assert solver.can_receive(10_000), f"no answer, got {output!r}"
            output += solver.receive()
        assert output.strip() == b"sat"
        solver.send(b"(exit)\n")
