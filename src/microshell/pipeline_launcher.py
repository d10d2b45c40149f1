"""
Pipeline Launcher - Recursive execution of piped command nodes

ARCHITECTURE:
    run(left)                         left.piped and left.next?
        │                                 no → ProcessLauncher.run(left)
        ├─ os.pipe() → (read_fd, write_fd)
        ├─ spawn RIGHT continuation:  close write_fd
        │                             left.next.input_source = read_fd
        │                             exit(run(left.next))   ← recursion
        ├─ spawn LEFT stage:          close read_fd
        │                             left.output_sink = write_fd
        │                             exit(ProcessLauncher.run(left))
        └─ parent: close both ends, wait RIGHT, wait LEFT → sum of statuses

    echo a | tr a b | cat
        parent ─┬─ right ─┬─ right: cat          (base case)
                │         └─ left:  tr a b
                └─ left:  echo a

The parent never touches the data flowing through the pipe. Each level of
the recursion closes the pipe ends it does not use so the reading stage sees
EOF as soon as the writing stage exits.
"""
import logging
import os
from typing import Optional

from .chain_builder import CommandNode
from .constants import STATUS_MAX
from .errors import SpawnError
from .process_launcher import ProcessLauncher


def _close_pipe(read_fd: int, write_fd: int):
    os.close(read_fd)
    os.close(write_fd)


class PipelineLauncher:
    """Runs a maximal run of piped nodes and returns the summed exit status"""

    def __init__(self, launcher: ProcessLauncher,
                 logger: Optional[logging.Logger] = None):
        self.launcher = launcher
        self.logger = logger or logging.getLogger('PipelineLauncher')

    def run(self, node: CommandNode) -> int:
        """
        Execute node and every piped successor.

        Returns:
            Sum of the exit statuses of all stages

        Raises:
            SpawnError: pipe() or fork() failed in the calling process
        """
        successor = node.next
        if not (node.piped and successor is not None):
            return self.launcher.run(node)

        try:
            read_fd, write_fd = os.pipe()
        except OSError as e:
            self.logger.error(f"pipe() failed for {node.name}: {e}")
            raise SpawnError(f"Error! Could not create pipe for command '{node.name}'.",
                             node.name) from e

        try:
            right_pid = self.launcher.spawn(
                lambda: self._run_right(successor, read_fd, write_fd), successor.name)
        except SpawnError:
            _close_pipe(read_fd, write_fd)
            raise

        try:
            left_pid = self.launcher.spawn(
                lambda: self._run_left(node, read_fd, write_fd), node.name)
        except SpawnError:
            # The right side sees EOF once the write end is gone
            _close_pipe(read_fd, write_fd)
            self.launcher.wait(right_pid)
            raise

        _close_pipe(read_fd, write_fd)

        right_status = self.launcher.wait(right_pid)
        left_status = self.launcher.wait(left_pid)
        self.logger.debug(f"Pipeline {node.name} | {successor.name}...: "
                          f"left={left_status} right={right_status}")
        return left_status + right_status

    def _run_right(self, successor: CommandNode, read_fd: int, write_fd: int) -> int:
        """Child: the rest of the pipeline reads from the pipe"""
        os.close(write_fd)
        if successor.owns_input:
            os.close(successor.input_source)
        successor.input_source = read_fd
        return min(self.run(successor), STATUS_MAX)

    def _run_left(self, node: CommandNode, read_fd: int, write_fd: int) -> int:
        """Child: this stage writes into the pipe"""
        os.close(read_fd)
        if node.owns_output:
            os.close(node.output_sink)
        node.output_sink = write_fd
        return self.launcher.run(node)
