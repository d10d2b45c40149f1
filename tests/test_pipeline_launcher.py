"""
Test PipelineLauncher

Verifies:
1. Data flows through every stage of a pipeline
2. Combined status is the sum of the stage statuses
3. Non-piped nodes are delegated to the ProcessLauncher
4. Redirections at both ends of a pipeline
"""
import os

import pytest

from microshell.chain_builder import CommandNode
from microshell.errors import SpawnError
from microshell.pipeline_launcher import PipelineLauncher


@pytest.fixture
def pipeline(launcher):
    return PipelineLauncher(launcher)


def pipe_chain(*stages, output_sink=1):
    """Build piped nodes from argument lists; the last one writes to output_sink"""
    nodes = [CommandNode(arguments=list(args)) for args in stages]
    for left, right in zip(nodes, nodes[1:]):
        left.piped = True
        left.stop_on_failure = True
        left.next = right
    nodes[-1].output_sink = output_sink
    return nodes[0]


def test_two_stage_pipeline(pipeline, capfd):
    status = pipeline.run(pipe_chain(["echo", "a"], ["tr", "a", "b"]))
    assert status == 0
    assert capfd.readouterr().out == "b\n"


def test_three_stage_pipeline(pipeline, tmp_path):
    target = tmp_path / "out.txt"
    fd = os.open(target, os.O_WRONLY | os.O_CREAT | os.O_TRUNC)
    head = pipe_chain(["printf", "abc\\n"], ["tr", "a", "x"], ["tr", "b", "y"], output_sink=fd)

    assert pipeline.run(head) == 0
    os.close(fd)
    assert target.read_text() == "xyc\n"


def test_status_is_additive(pipeline):
    head = pipe_chain(["sh", "-c", "exit 2"], ["sh", "-c", "exit 3"])
    assert pipeline.run(head) == 5


def test_status_additive_over_three_stages(pipeline):
    head = pipe_chain(["sh", "-c", "exit 1"], ["sh", "-c", "cat >/dev/null; exit 2"], ["true"])
    assert pipeline.run(head) == 3


def test_reader_sees_eof(pipeline, capfd):
    head = pipe_chain(["printf", "1\\n2\\n3\\n"], ["wc", "-l"])
    assert pipeline.run(head) == 0
    assert capfd.readouterr().out.strip() == "3"


def test_missing_stage_counts_as_failure(pipeline, capfd):
    head = pipe_chain(["true"], ["no-such-command-xyz"])
    assert pipeline.run(head) == 1
    assert "could not be found" in capfd.readouterr().err


def test_non_piped_node_is_delegated(pipeline, capfd):
    assert pipeline.run(CommandNode(arguments=["echo", "solo"])) == 0
    assert capfd.readouterr().out == "solo\n"


def test_input_redirect_on_first_stage(pipeline, tmp_path, capfd):
    source = tmp_path / "in.txt"
    source.write_text("hello\n")
    head = pipe_chain(["cat"], ["tr", "a-z", "A-Z"])
    head.input_source = os.open(source, os.O_RDONLY)

    assert pipeline.run(head) == 0
    assert capfd.readouterr().out == "HELLO\n"


def test_pipe_failure_raises_spawn_error(pipeline, monkeypatch):
    def failing_pipe():
        raise OSError(24, "Too many open files")

    monkeypatch.setattr(os, "pipe", failing_pipe)
    with pytest.raises(SpawnError):
        pipeline.run(pipe_chain(["echo", "a"], ["cat"]))
