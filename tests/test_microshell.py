"""
Test MicroShell end to end

Scenarios:
1. echo hello
2. false && echo skip
3. echo a | tr a b
4. echo hi > file, then cat < file
5. ;; followed by valid segments
6. exit (and exit inside a pipeline)
Plus: words after '&', multi-chain lines, >> vs >, input truncation,
spawn failure recovery, prompt loop.
"""
import io
import os

import pytest

from microshell.constants import MAX_INPUT_LEN
from microshell.microshell import MicroShell


def test_echo_hello(shell, capfd):
    assert shell.execute_line("echo hello\n") == 0
    assert capfd.readouterr().out == "hello\n"


def test_false_and_skip(shell, capfd):
    status = shell.execute_line("false && echo skip")
    assert status != 0
    assert "skip" not in capfd.readouterr().out


def test_pipe_translates(shell, capfd):
    assert shell.execute_line("echo a | tr a b") == 0
    assert capfd.readouterr().out == "b\n"


def test_redirect_round_trip(shell, capfd, tmp_path):
    target = tmp_path / "x.txt"
    assert shell.execute_line(f"echo hi > {target}") == 0
    assert capfd.readouterr().out == ""
    assert shell.execute_line(f"cat < {target}") == 0
    assert capfd.readouterr().out == "hi\n"


def test_append_and_truncate(shell, tmp_path):
    target = tmp_path / "log.txt"
    shell.execute_line(f"echo one > {target}")
    shell.execute_line(f"echo two >> {target}")
    assert target.read_text() == "one\ntwo\n"
    shell.execute_line(f"echo three > {target}")
    assert target.read_text() == "three\n"


def test_double_semicolon_then_valid_segment(shell, diagnostics, capfd):
    status = shell.execute_line(";; echo still-runs")
    assert status == 0
    assert "Unrecognized command input." in diagnostics.getvalue()
    assert capfd.readouterr().out == "still-runs\n"


def test_exit_terminates(shell, monkeypatch):
    def no_fork():
        raise AssertionError("exit must not spawn a process")

    monkeypatch.setattr(os, "fork", no_fork)
    with pytest.raises(SystemExit):
        shell.execute_line("exit")


def test_exit_in_pipeline_does_not_terminate(shell, capfd):
    # Inside a pipeline 'exit' only ends its own child
    assert shell.execute_line("exit | cat") == 0
    assert shell.execute_line("true | exit") == 0
    assert shell.execute_line("echo still-here") == 0
    assert capfd.readouterr().out == "still-here\n"


def test_words_after_background_do_not_reach_command(shell, capfd):
    assert shell.execute_line("sleep 0 & echo hi") == 0
    shell.launcher.wait_background()
    captured = capfd.readouterr()
    assert "invalid time interval" not in captured.err
    assert "hi" not in captured.out


def test_every_chain_runs(shell, capfd):
    status = shell.execute_line("false && echo no ; echo yes ; true || echo no")
    assert status == 0
    assert capfd.readouterr().out == "yes\n"


def test_status_of_last_chain(shell):
    assert shell.execute_line("true ; false") == 1
    assert shell.last_status == 1


def test_quoted_arguments_reach_program(shell, capfd):
    shell.execute_line("printf '%s|' \"a | b\" 'c && d'")
    assert capfd.readouterr().out == "a | b|c && d|"


def test_command_not_found_does_not_stop_line(shell, capfd):
    status = shell.execute_line("no-such-command-xyz ; echo after")
    assert status == 0
    captured = capfd.readouterr()
    assert "could not be found" in captured.err
    assert captured.out == "after\n"


def test_long_line_is_truncated(shell):
    parsed = shell.parse_line("echo " + "a" * (MAX_INPUT_LEN * 2))
    assert len(parsed.chains[0].arguments[1]) == MAX_INPUT_LEN - len("echo ")


def test_spawn_failure_is_recoverable(shell, diagnostics, monkeypatch, tmp_path):
    def failing_fork():
        raise OSError(11, "Resource temporarily unavailable")

    target = tmp_path / "out.txt"
    monkeypatch.setattr(os, "fork", failing_fork)
    shell.execute_line(f"echo a > {target} ; echo b")
    assert "Could not fork process for command 'echo'" in diagnostics.getvalue()

    monkeypatch.undo()
    assert shell.execute_line("true") == 0


# ============================================================================
# PROMPT LOOP
# ============================================================================

def test_run_until_end_of_input(diagnostics, tmp_path):
    target = tmp_path / "out.txt"
    stdin = io.StringIO(f"echo first > {target}\necho second >> {target}\n")
    stdout = io.StringIO()
    shell = MicroShell(stdin=stdin, stdout=stdout, diagnostics=diagnostics)

    assert shell.run() == 0
    assert stdout.getvalue() == ">> " * 3
    assert target.read_text() == "first\nsecond\n"


def test_run_stops_on_exit(diagnostics, tmp_path):
    target = tmp_path / "out.txt"
    stdin = io.StringIO(f"exit\necho never > {target}\n")
    shell = MicroShell(prompt="$ ", stdin=stdin, stdout=io.StringIO(), diagnostics=diagnostics)

    with pytest.raises(SystemExit):
        shell.run()
    assert not target.exists()


def test_cli_entry_point(monkeypatch, tmp_path):
    from microshell.__main__ import main

    target = tmp_path / "out.txt"
    monkeypatch.setattr("sys.stdin", io.StringIO(f"echo cli > {target}\n"))
    monkeypatch.setattr("sys.stdout", io.StringIO())

    assert main(["--prompt", "% ", "--no-background"]) == 0
    assert target.read_text() == "cli\n"
