"""
Chain Executor - Walks one chain and applies conditional logic

ARCHITECTURE:
    execute(head)
        ↓
    for each node (via next):
        ├─ short-circuited? → count it, do not run
        ├─ piped?           → PipelineLauncher.run(node), skip past the pipeline
        └─ otherwise        → ProcessLauncher.run(node)
        ↓
    combine status, check stop_on_failure / stop_on_success
        ↓
    ChainResult(status, traversed)

STATUS ALGEBRA:
    first command          total = status
    after '||'             total = total * status   (0 once anything succeeded)
    otherwise              total = total + status

    cmd && ...   stops the chain when status != 0
    cmd || ...   stops the chain when status == 0 (total becomes 0)

    false && echo skip     → total 1, echo never launched
    true || echo skip      → total 0, echo never launched
    false || true          → total 1 * 0 = 0

TRAVERSAL:
Every node is counted, executed or not, so a caller running several chains
of one line can advance by `traversed` and stay aligned with the builder.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from .chain_builder import CommandNode
from .constants import STATUS_SUCCESS
from .pipeline_launcher import PipelineLauncher
from .process_launcher import ProcessLauncher


@dataclass
class ChainResult:
    """Outcome of one chain"""
    status: int = STATUS_SUCCESS
    traversed: int = 0
    executed: int = 0
    short_circuited: bool = False


class ChainExecutor:
    """
    Executes chains built by ChainBuilder.

    Args:
        launcher: ProcessLauncher used for single commands
        pipeline_launcher: PipelineLauncher for '|' runs (built from launcher if None)
        honor_background: False runs '&' commands synchronously like any other
        logger: Logger instance
    """

    def __init__(self, launcher: ProcessLauncher,
                 pipeline_launcher: Optional[PipelineLauncher] = None,
                 honor_background: bool = True,
                 logger: Optional[logging.Logger] = None):
        self.launcher = launcher
        self.logger = logger or logging.getLogger('ChainExecutor')
        self.pipeline_launcher = pipeline_launcher or PipelineLauncher(launcher)
        self.honor_background = honor_background

    def execute(self, head: CommandNode) -> ChainResult:
        """Run the chain starting at head"""
        result = ChainResult()
        previous: Optional[CommandNode] = None
        node = head

        while node is not None:
            if result.short_circuited:
                self.logger.debug(f"Skipping {node} (short-circuit)")
                node.release_descriptors()
                result.traversed += 1
                node = node.next
                continue

            first = node
            if node.piped:
                status = self.pipeline_launcher.run(node)
                # Advance to the last stage; its flags decide what happens next
                while node.piped and node.next is not None:
                    node.release_descriptors()
                    result.traversed += 1
                    result.executed += 1
                    node = node.next
                node.release_descriptors()
            else:
                wait = not (node.background and self.honor_background)
                status = self.launcher.run(node, wait=wait)
            result.traversed += 1
            result.executed += 1

            if previous is None:
                result.status = status
            elif previous.stop_on_success:
                result.status *= status
            else:
                result.status += status

            if node.stop_on_failure and status != STATUS_SUCCESS:
                self.logger.debug(f"{first.name}: status {status}, stopping chain after '&&'")
                result.short_circuited = True
            elif node.stop_on_success and status == STATUS_SUCCESS:
                self.logger.debug(f"{first.name}: succeeded, stopping chain after '||'")
                result.status = STATUS_SUCCESS
                result.short_circuited = True

            previous = node
            node = node.next

        self.logger.debug(f"Chain {head.name}: status {result.status}, "
                          f"{result.executed}/{result.traversed} executed")
        return result
