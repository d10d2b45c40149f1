"""
MicroShell - Interpreter facade and prompt loop (thin layer)

ARCHITECTURE:
This is the TOP-LEVEL ENTRY POINT. It only wires the components together:

    run()  (prompt loop)
       ↓
    execute_line(line)
       ├── ProcessLauncher.reap_background()
       ├── ChainBuilder.build(line) → ParsedLine
       └── ChainExecutor.execute(head) for every chain, in order

RESPONSIBILITIES:
1. Read one line at a time (at most MAX_INPUT_LEN characters)
2. Build and execute the chains of the line
3. Report SpawnError and return to the prompt instead of dying
4. Reap finished background jobs before each line

NOT RESPONSIBLE FOR:
- Tokenizing / building (ChainBuilder)
- Process creation and status algebra (launchers, ChainExecutor)

USAGE PATTERN:
    shell = MicroShell()
    status = shell.execute_line("echo a | tr a b && echo done")
    shell.run()   # interactive loop until EOF or 'exit'
"""
import logging
import sys
from typing import Optional, TextIO

from .chain_builder import ChainBuilder, ParsedLine
from .chain_executor import ChainExecutor
from .constants import DEFAULT_PROMPT, MAX_INPUT_LEN, STATUS_SUCCESS
from .errors import SpawnError
from .process_launcher import ProcessLauncher


class MicroShell:
    """
    Command-line interpreter.

    Args:
        prompt: Prompt printed before each line
        honor_background: False makes '&' commands block like foreground ones
        stdin: Stream the prompt loop reads from (default: sys.stdin)
        stdout: Stream the prompt is written to (default: sys.stdout)
        diagnostics: Stream for interpreter error messages (default: sys.stderr)
        logger: Logger instance
    """

    def __init__(self, prompt: str = DEFAULT_PROMPT,
                 honor_background: bool = True,
                 stdin: Optional[TextIO] = None,
                 stdout: Optional[TextIO] = None,
                 diagnostics: Optional[TextIO] = None,
                 logger: Optional[logging.Logger] = None):
        self.prompt = prompt
        self.stdin = stdin
        self.stdout = stdout
        self.diagnostics = diagnostics
        self.logger = logger or logging.getLogger('MicroShell')

        self.builder = ChainBuilder(diagnostics=diagnostics)
        self.launcher = ProcessLauncher()
        self.executor = ChainExecutor(self.launcher, honor_background=honor_background)

        self.last_status = STATUS_SUCCESS

    def parse_line(self, line: str) -> ParsedLine:
        """Build the chains of one line without running them"""
        if len(line) > MAX_INPUT_LEN:
            self.logger.warning(f"Input truncated to {MAX_INPUT_LEN} characters")
            line = line[:MAX_INPUT_LEN]
        return self.builder.build(line)

    def execute_line(self, line: str) -> int:
        """
        Parse and execute one input line.

        Returns:
            Combined status of the last chain executed (unchanged if none ran)

        Raises:
            SystemExit: the line invoked the 'exit' built-in
        """
        self.launcher.reap_background()

        parsed = self.parse_line(line)
        self.logger.debug(f"{parsed.chain_count} chain(s), {parsed.command_count} command(s)")

        traversed = 0
        try:
            for head in parsed.chains:
                result = self.executor.execute(head)
                traversed += result.traversed
                self.last_status = result.status
        except SpawnError as e:
            # Nodes that never ran still hold their redirection descriptors
            parsed.release_descriptors()
            self._report(str(e))
            return self.last_status

        if traversed != parsed.command_count:
            self.logger.warning(f"Traversed {traversed} of {parsed.command_count} commands")
        return self.last_status

    def _report(self, message: str):
        stream = self.diagnostics or sys.stderr
        print(message, file=stream)
        stream.flush()

    def run(self) -> int:
        """
        Prompt loop: read a line, execute it, repeat until end of input.

        Returns:
            Status of the last executed chain
        """
        stdin = self.stdin or sys.stdin
        stdout = self.stdout or sys.stdout

        while True:
            stdout.write(self.prompt)
            stdout.flush()

            line = stdin.readline()
            if not line:
                self.logger.info("End of input")
                break
            self.execute_line(line)

        self.launcher.wait_background()
        return self.last_status
