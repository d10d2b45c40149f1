"""
Chain Builder - Assembles lexed segments into linked command chains

ARCHITECTURE:
    build(line)
        ↓
    CommandLexer.lex(cursor) → LexResult (arguments + stop reason)
        ↓
    normal mode:       arguments → new CommandNode (linked into the open chain)
    redirection mode:  one argument → filename → os.open() → node descriptor
        ↓
    stop reason → node flags / mode switch / chain boundary
        ↓
    ParsedLine (chain heads + node count + recovered errors)

RESPONSIBILITIES:
- Drive the lexer across the whole line
- Create CommandNode objects and link them via next
- Translate stop reasons into control-flow flags (&&, ||, |, &)
- Open redirection targets (<, <<, >, >>) and attach their descriptors
- Recover from parse and redirection errors per segment/node

NOT RESPONSIBLE FOR:
- Tokenizing characters (CommandLexer)
- Running anything (ChainExecutor and the launchers)

DATA MODEL:
A chain is identified by its head node; the rest is reached through next.

    echo a && cat < in.txt | tr a b ; ls
    └─ chain 1: [echo a](&&) → [cat](| fd_in=in.txt) → [tr a b]
    └─ chain 2: [ls]
"""
import logging
import os
import sys
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, TextIO

from .command_lexer import CommandLexer, StopReason
from .constants import REDIRECT_FILE_MODE
from .errors import MicroShellError, ParseError, RedirectionError


STDIN_FD = 0
STDOUT_FD = 1

# Redirection stop reason -> (target stream, open flags)
REDIRECT_TARGETS = {
    StopReason.REDIRECT_INPUT: ('input', os.O_RDONLY),
    StopReason.REDIRECT_INPUT_HEREDOC: ('input', os.O_RDONLY),
    StopReason.REDIRECT_OUTPUT_TRUNCATE: ('output', os.O_WRONLY | os.O_CREAT | os.O_TRUNC),
    StopReason.REDIRECT_OUTPUT_APPEND: ('output', os.O_WRONLY | os.O_CREAT | os.O_APPEND),
}


# ============================================================================
# COMMAND NODES
# ============================================================================

@dataclass
class CommandNode:
    """
    One executable step of a chain.

    Flags describe the operator that FOLLOWS this command:
        cmd &&  → stop_on_failure
        cmd ||  → stop_on_success
        cmd |   → piped + stop_on_failure
        cmd &   → background (words up to the next operator are ignored)
    """
    arguments: List[str]
    input_source: int = STDIN_FD
    output_sink: int = STDOUT_FD
    stop_on_failure: bool = False
    stop_on_success: bool = False
    piped: bool = False
    background: bool = False
    next: Optional['CommandNode'] = field(default=None, repr=False)

    @property
    def name(self) -> str:
        return self.arguments[0]

    @property
    def owns_input(self) -> bool:
        return self.input_source != STDIN_FD

    @property
    def owns_output(self) -> bool:
        return self.output_sink != STDOUT_FD

    def release_descriptors(self):
        """Close descriptors opened for this node, reset to the defaults"""
        if self.owns_input:
            _close_quietly(self.input_source)
            self.input_source = STDIN_FD
        if self.owns_output:
            _close_quietly(self.output_sink)
            self.output_sink = STDOUT_FD

    def iter_chain(self) -> Iterator['CommandNode']:
        """Yield this node and every node after it"""
        node = self
        while node is not None:
            yield node
            node = node.next

    def __str__(self):
        flags = []
        if self.piped:
            flags.append('|')
        elif self.stop_on_failure:
            flags.append('&&')
        if self.stop_on_success:
            flags.append('||')
        if self.background:
            flags.append('&')
        if self.owns_input:
            flags.append(f'<fd{self.input_source}')
        if self.owns_output:
            flags.append(f'>fd{self.output_sink}')
        suffix = f" [{' '.join(flags)}]" if flags else ''
        return f"Cmd({' '.join(self.arguments)}{suffix})"


def _close_quietly(fd: int):
    try:
        os.close(fd)
    except OSError:
        pass


@dataclass
class ParsedLine:
    """All chains built from one input line"""
    chains: List[CommandNode] = field(default_factory=list)
    command_count: int = 0
    errors: List[MicroShellError] = field(default_factory=list)

    @property
    def chain_count(self) -> int:
        return len(self.chains)

    def iter_nodes(self) -> Iterator[CommandNode]:
        for head in self.chains:
            yield from head.iter_chain()

    def release_descriptors(self):
        """Close every redirection descriptor of the line (used when nothing runs)"""
        for node in self.iter_nodes():
            node.release_descriptors()


# ============================================================================
# BUILDER
# ============================================================================

class ChainBuilder:
    """
    Builds the chains of one input line.

    Errors are never raised to the caller: each one is reported on the
    diagnostics stream, recorded in ParsedLine.errors and scanning resumes.
    """

    def __init__(self, diagnostics: Optional[TextIO] = None,
                 logger: Optional[logging.Logger] = None):
        """
        Args:
            diagnostics: Stream for user-facing error messages (default: stderr)
            logger: Logger instance
        """
        self.diagnostics = diagnostics
        self.logger = logger or logging.getLogger('ChainBuilder')

    def _report(self, parsed: ParsedLine, error: MicroShellError):
        parsed.errors.append(error)
        stream = self.diagnostics or sys.stderr
        print(str(error), file=stream)
        stream.flush()

    def build(self, line: str) -> ParsedLine:
        """
        Parse a whole line into chains.

        Returns:
            ParsedLine with the chain heads in input order
        """
        lexer = CommandLexer(line, logger=self.logger)
        parsed = ParsedLine()

        cursor = 0
        current: Optional[CommandNode] = None   # Node the next stop reason applies to
        chain_open = False                      # current belongs to a chain still accepting nodes
        continue_current = False                # previous segment ended with '&'; its words are dropped
        redirect: Optional[StopReason] = None   # Pending redirection-target mode

        while True:
            result = lexer.lex(cursor)
            cursor += result.consumed
            stop = result.stop_reason

            if redirect is not None:
                self._attach_redirect(parsed, current, redirect, result)
                redirect = None
                if stop is StopReason.PARSE_ERROR:
                    # The offending operator was consumed; the chain stays open
                    continue

            elif continue_current:
                continue_current = False
                if stop is StopReason.PARSE_ERROR:
                    # '&' followed by an operator: the operator acts as a chain boundary
                    self.logger.debug(f"Background continuation closed by operator at {cursor}")
                    chain_open, current = self._close_chain(parsed, current, chain_open)
                    continue
                if result.arguments:
                    # Words after '&' never become arguments of the background command
                    self.logger.warning(f"Ignoring {result.arguments} after '{current.name} &'")

            else:
                if stop is StopReason.PARSE_ERROR:
                    self._report(parsed, ParseError("Unrecognized command input.", cursor - 1))
                    continue

                if not result.arguments:
                    if stop.ends_chain:
                        chain_open, current = self._close_chain(parsed, current, chain_open)
                    if stop is StopReason.END_OF_INPUT:
                        break
                    continue

                node = CommandNode(arguments=result.arguments)
                parsed.command_count += 1
                if chain_open and current is not None:
                    current.next = node
                else:
                    parsed.chains.append(node)
                    chain_open = True
                current = node
                self.logger.debug(f"Built {node}")

            # Stop reason of the segment applies to the current node
            if stop is StopReason.SEQUENCE_AND:
                current.stop_on_failure = True
            elif stop is StopReason.SEQUENCE_OR:
                current.stop_on_success = True
            elif stop is StopReason.PIPE:
                current.piped = True
                current.stop_on_failure = True
            elif stop.is_redirect:
                redirect = stop
            elif stop is StopReason.BACKGROUND:
                current.background = True
                continue_current = True
            elif stop.ends_chain:
                chain_open, current = self._close_chain(parsed, current, chain_open)

            if stop is StopReason.END_OF_INPUT:
                break

        self.logger.debug(f"Built {parsed.command_count} command(s) in {parsed.chain_count} chain(s)")
        return parsed

    def _close_chain(self, parsed: ParsedLine, current: Optional[CommandNode], chain_open: bool):
        """Finish the open chain; returns the reset (chain_open, current) state"""
        if chain_open and current is not None and current.piped:
            # A pipe needs a right-hand side
            current.piped = False
            self._report(parsed, ParseError("Missing command after '|'."))
        return False, None

    def _attach_redirect(self, parsed: ParsedLine, node: CommandNode,
                         reason: StopReason, result):
        """Open the filename in result for node; report and drop on failure"""
        try:
            if result.stop_reason is StopReason.PARSE_ERROR or len(result.arguments) != 1:
                raise RedirectionError("Error reading filename for redirect.")

            filename = result.arguments[0]
            stream, flags = REDIRECT_TARGETS[reason]
            try:
                fd = os.open(filename, flags, REDIRECT_FILE_MODE)
            except OSError as e:
                self.logger.warning(f"Redirect open failed for {filename!r}: {e}")
                raise RedirectionError(f"Error opening file '{filename}' for redirect.", filename) from e

        except RedirectionError as e:
            self._report(parsed, e)
            return

        if stream == 'input':
            if node.owns_input:
                _close_quietly(node.input_source)
            node.input_source = fd
        else:
            if node.owns_output:
                _close_quietly(node.output_sink)
            node.output_sink = fd
        self.logger.debug(f"Redirect {stream} of {node.name} to {filename!r} (fd {fd})")
