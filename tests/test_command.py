"""Command vector tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from piped_process.runtime.command import normalize_command, windows_command_line


class TestNormalizeCommand:
    """normalize_command 测试。"""

    def test_list_copied(self):
        command = ["z3", "-in"]
        result = normalize_command(command)
        assert result == ["z3", "-in"]
        assert result is not command

    def test_tuple_accepted(self):
        assert normalize_command(("cvc5", "--lang", "smt2")) == ["cvc5", "--lang", "smt2"]

    def test_pathlike_converted(self):
        assert normalize_command([Path("/usr/bin/z3"), "-in"]) == [str(Path("/usr/bin/z3")), "-in"]

    def test_arguments_kept_verbatim(self):
        argv = ["solver", "a b", "$HOME", "*.smt2", "'quoted'"]
        assert normalize_command(argv) == argv

    def test_empty(self):
        with pytest.raises(ValueError):
            normalize_command([])

    @pytest.mark.parametrize("command", ["z3 -in", b"z3 -in"])
    def test_single_string_rejected(self, command):
        with pytest.raises(TypeError):
            normalize_command(command)

    def test_non_string_element(self):
        with pytest.raises(TypeError):
            normalize_command(["z3", 3])  # type: ignore[list-item]


class TestWindowsCommandLine:
    """windows_command_line 测试（MS C runtime 引号规则）。"""

    @pytest.mark.parametrize(
        ("argv", "expected"),
        [
            (["z3", "-in"], "z3 -in"),
            (["z3", "a b"], 'z3 "a b"'),
            (["z3", ""], 'z3 ""'),
            (["z3", 'say "hi"'], 'z3 "say \\"hi\\""'),
            (["z3", "a\\b"], "z3 a\\b"),
            (["z3", "dir with space\\"], 'z3 "dir with space\\\\"'),
            (["z3", "tab\there"], 'z3 "tab\there"'),
            (["C:\\Program Files\\z3\\z3.exe", "-in"], '"C:\\Program Files\\z3\\z3.exe" -in'),
        ],
    )
    def test_quoting(self, argv: list[str], expected: str):
        assert windows_command_line(argv) == expected
