"""
Process Launcher - Single point of process creation

ARCHITECTURE:
Every fork() of the interpreter goes through ProcessLauncher.spawn():

    ChainExecutor ──→ ProcessLauncher.run(node)          (one command)
    PipelineLauncher ──→ ProcessLauncher.spawn(body)     (pipeline stages)
                              ↓
                         os.fork()
                   child ↓          ↓ parent
             body() → os._exit()   waitpid() / background table

RESPONSIBILITIES:
1. The 'exit' built-in (terminates the interpreter, no fork)
2. fork + dup2 + execvp for one CommandNode
3. Waiting for the child and decoding its exit status
4. Closing redirection descriptors owned by the node (never 0/1)
5. Background jobs: spawn without waiting, reap later
6. Turning fork() failure into SpawnError

NOT RESPONSIBLE FOR:
- Pipes between commands (PipelineLauncher)
- Conditional logic between commands (ChainExecutor)

CHILD PROCESSES:
A forked child never returns into the interpreter: whatever happens in the
body (exec failure, SystemExit from 'exit', unexpected exception) it leaves
through os._exit() with a status in [0, 255].
"""
import logging
import os
import signal
import sys
from typing import Callable, Dict, List, Optional, Tuple

from .chain_builder import STDIN_FD, STDOUT_FD, CommandNode
from .constants import (
    EXIT_BUILTIN,
    STATUS_COMMAND_NOT_FOUND,
    STATUS_FAILURE,
    STATUS_MAX,
    STATUS_SIGNAL_BASE,
    STATUS_SUCCESS,
)
from .errors import SpawnError

STDERR_FD = 2


def decode_wait_status(wait_status: int) -> int:
    """Convert a waitpid() status into a shell exit status"""
    if os.WIFSIGNALED(wait_status):
        return STATUS_SIGNAL_BASE + os.WTERMSIG(wait_status)
    if os.WIFEXITED(wait_status):
        return os.WEXITSTATUS(wait_status)
    return STATUS_FAILURE


def clamp_status(status) -> int:
    """Fit an arbitrary status into the range a process can exit with"""
    if status is None:
        return STATUS_SUCCESS
    if not isinstance(status, int):
        return STATUS_FAILURE
    return max(STATUS_SUCCESS, min(status, STATUS_MAX))


def _child_error(message: str):
    # Written straight to fd 2: the child may not share Python's stderr buffer
    os.write(STDERR_FD, (message + "\n").encode(errors="replace"))


def _flush_stdio():
    # Buffered Python output would otherwise be written twice (parent + child)
    for stream in (sys.stdout, sys.stderr):
        try:
            stream.flush()
        except (AttributeError, ValueError):
            pass


class ProcessLauncher:
    """
    Runs single command nodes as child processes.

    One instance per interpreter. Holds the table of background jobs that
    were started but not waited for.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger('ProcessLauncher')
        self.background_jobs: Dict[int, str] = {}

    # ========================================================================
    # PROCESS CREATION
    # ========================================================================

    def spawn(self, body: Callable[[], int], description: str) -> int:
        """
        Fork a child that runs body() and exits with its return value.

        Returns:
            pid of the child (in the parent only)

        Raises:
            SpawnError: fork() failed
        """
        _flush_stdio()
        try:
            pid = os.fork()
        except OSError as e:
            self.logger.error(f"fork() failed for {description}: {e}")
            raise SpawnError(f"Error! Could not fork process for command '{description}'.",
                             description) from e

        if pid == 0:
            status = STATUS_FAILURE
            try:
                status = body()
            except SystemExit as e:
                status = e.code
            except Exception as e:
                _child_error(f"Error! {description}: {e}")
            finally:
                _flush_stdio()
                os._exit(clamp_status(status))

        self.logger.debug(f"Spawned pid {pid} for {description}")
        return pid

    def wait(self, pid: int) -> int:
        """Block until pid terminates; returns its exit status"""
        while True:
            try:
                _, wait_status = os.waitpid(pid, 0)
            except InterruptedError:
                continue
            except ChildProcessError:
                self.logger.warning(f"pid {pid} was already reaped")
                return STATUS_FAILURE
            return decode_wait_status(wait_status)

    # ========================================================================
    # SINGLE COMMAND
    # ========================================================================

    def run(self, node: CommandNode, wait: bool = True) -> int:
        """
        Run one command node to completion.

        Args:
            node: Command to run
            wait: False starts the command in the background and returns 0

        Returns:
            Exit status in [0, 255]

        Raises:
            SystemExit: node is the 'exit' built-in
            SpawnError: the process could not be created
        """
        if node.name == EXIT_BUILTIN:
            self.logger.info("exit built-in: terminating interpreter")
            node.release_descriptors()
            sys.exit(STATUS_SUCCESS)

        try:
            pid = self.spawn(lambda: self._exec_command(node), node.name)
        except SpawnError:
            node.release_descriptors()
            raise

        if not wait:
            self.background_jobs[pid] = node.name
            node.release_descriptors()
            self.logger.info(f"[{pid}] {node.name} started in background")
            return STATUS_SUCCESS

        status = self.wait(pid)
        node.release_descriptors()
        self.logger.debug(f"{node.name} exited with {status}")
        return status

    def _exec_command(self, node: CommandNode) -> int:
        """Child side: wire descriptors and replace the process image"""
        # Python ignores SIGPIPE; exec'd programs expect the default
        signal.signal(signal.SIGPIPE, signal.SIG_DFL)
        if node.input_source != STDIN_FD:
            os.dup2(node.input_source, STDIN_FD)
            os.close(node.input_source)
        if node.output_sink != STDOUT_FD:
            os.dup2(node.output_sink, STDOUT_FD)
            os.close(node.output_sink)

        try:
            os.execvp(node.name, node.arguments)
        except OSError as e:
            self.logger.debug(f"execvp({node.name!r}) failed: {e}")
        _child_error(f"Error! The command '{node.name}' could not be found.")
        return STATUS_COMMAND_NOT_FOUND

    # ========================================================================
    # BACKGROUND JOBS
    # ========================================================================

    def reap_background(self) -> List[Tuple[int, int]]:
        """
        Collect finished background jobs without blocking.

        Returns:
            List of (pid, exit status) for the jobs that finished
        """
        finished = []
        for pid in list(self.background_jobs):
            try:
                reaped, wait_status = os.waitpid(pid, os.WNOHANG)
            except ChildProcessError:
                self.background_jobs.pop(pid)
                continue
            if reaped == 0:
                continue
            name = self.background_jobs.pop(pid)
            status = decode_wait_status(wait_status)
            self.logger.info(f"[{pid}] {name} done (status {status})")
            finished.append((pid, status))
        return finished

    def wait_background(self) -> List[Tuple[int, int]]:
        """Block until every background job has finished"""
        finished = []
        for pid in list(self.background_jobs):
            name = self.background_jobs.pop(pid)
            status = self.wait(pid)
            self.logger.info(f"[{pid}] {name} done (status {status})")
            finished.append((pid, status))
        return finished
