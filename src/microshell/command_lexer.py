"""
Command Lexer - Segment tokenization for the microshell

OBJECTIVE: Turn ONE segment of raw input into argument strings and report
which control operator ended the segment.

============================================================================
USAGE
============================================================================

    >>> lexer = CommandLexer('echo "a b" | tr a b')
    >>> result = lexer.lex(0)
    >>> result.arguments
    ['echo', 'a b']
    >>> result.stop_reason
    <StopReason.PIPE: 6>
    >>> lexer.lex(result.consumed).arguments
    ['tr', 'a', 'b']

The caller owns the cursor: each lex() call starts where the previous one
stopped (start + consumed) so the ChainBuilder can decide, based on the stop
reason, whether the next segment is a new command or a redirection filename.

============================================================================
RULES
============================================================================

    - Whitespace (space, tab, newline) separates arguments
    - Backslash escapes exactly one following character (dropped itself)
    - ' and " open a quoted region closed only by the same quote character
    - Control characters ; & | < > end the segment when unquoted
    - &&, ||, <<, >> are recognized by one-character peek
    - A control character before any argument is a PARSE_ERROR
    - End of input flushes the pending argument

============================================================================
STOP REASONS
============================================================================

    END_OF_INPUT              - nothing left to scan
    PARSE_ERROR               - stray operator, e.g. leading '|' or ';;'
    SEQUENCE_CHAIN            - ;
    SEQUENCE_AND              - &&
    SEQUENCE_OR               - ||
    PIPE                      - |
    REDIRECT_INPUT            - <
    REDIRECT_INPUT_HEREDOC    - << (treated as <)
    REDIRECT_OUTPUT_TRUNCATE  - >
    REDIRECT_OUTPUT_APPEND    - >>
    BACKGROUND                - &
"""

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import List, Optional

from .constants import CONTROL_CHARS, ESCAPE_CHAR, QUOTE_CHARS, WHITESPACE


# ============================================================================
# STOP REASONS
# ============================================================================

class StopReason(Enum):
    """Why a single lex() call stopped scanning"""
    END_OF_INPUT = auto()
    PARSE_ERROR = auto()
    SEQUENCE_CHAIN = auto()             # ;
    SEQUENCE_AND = auto()               # &&
    SEQUENCE_OR = auto()                # ||
    PIPE = auto()                       # |
    REDIRECT_INPUT = auto()             # <
    REDIRECT_INPUT_HEREDOC = auto()     # <<
    REDIRECT_OUTPUT_TRUNCATE = auto()   # >
    REDIRECT_OUTPUT_APPEND = auto()     # >>
    BACKGROUND = auto()                 # &

    @property
    def is_redirect(self) -> bool:
        return self in REDIRECT_REASONS

    @property
    def ends_chain(self) -> bool:
        return self in (StopReason.SEQUENCE_CHAIN, StopReason.END_OF_INPUT)


REDIRECT_REASONS = frozenset({
    StopReason.REDIRECT_INPUT,
    StopReason.REDIRECT_INPUT_HEREDOC,
    StopReason.REDIRECT_OUTPUT_TRUNCATE,
    StopReason.REDIRECT_OUTPUT_APPEND,
})

# Control character -> (single-char reason, doubled reason)
# A doubled reason of None means the operator has no two-character form.
OPERATORS = {
    ';': (StopReason.SEQUENCE_CHAIN, None),
    '&': (StopReason.BACKGROUND, StopReason.SEQUENCE_AND),
    '|': (StopReason.PIPE, StopReason.SEQUENCE_OR),
    '<': (StopReason.REDIRECT_INPUT, StopReason.REDIRECT_INPUT_HEREDOC),
    '>': (StopReason.REDIRECT_OUTPUT_TRUNCATE, StopReason.REDIRECT_OUTPUT_APPEND),
}


@dataclass
class LexResult:
    """Outcome of one lex() call"""
    consumed: int                                       # Characters eaten, operator included
    arguments: List[str] = field(default_factory=list)
    stop_reason: StopReason = StopReason.END_OF_INPUT

    def __repr__(self):
        return f"LexResult({self.stop_reason.name}, {self.arguments!r}, consumed={self.consumed})"


# ============================================================================
# LEXER
# ============================================================================

class CommandLexer:
    """
    Segment lexer for one input line.

    Holds the whole line; every lex() call scans a single segment starting
    at the given offset. The lexer keeps no state between calls.
    """

    def __init__(self, text: str, logger: Optional[logging.Logger] = None):
        self.text = text
        self.length = len(text)
        self.logger = logger or logging.getLogger('CommandLexer')

    def _peek(self, pos: int) -> str:
        if pos >= self.length:
            return ''
        return self.text[pos]

    def lex(self, start: int = 0) -> LexResult:
        """
        Scan arguments from start up to the next unquoted control operator.

        Returns:
            LexResult with the number of characters consumed (including the
            operator), the arguments recognized and the stop reason.
        """
        arguments: List[str] = []
        current: List[str] = []
        pending = False         # current holds an argument (possibly empty, e.g. "")
        escaped = False
        quote = ''              # Quote character of the open region, '' if none
        pos = start

        while pos < self.length:
            char = self.text[pos]

            if escaped:
                current.append(char)
                pending = True
                escaped = False

            elif char == ESCAPE_CHAR:
                escaped = True

            elif quote:
                if char == quote:
                    quote = ''
                else:
                    current.append(char)

            elif char in QUOTE_CHARS:
                quote = char
                pending = True

            elif char in WHITESPACE:
                if pending:
                    arguments.append(''.join(current))
                    current = []
                    pending = False

            elif char in CONTROL_CHARS:
                if pending:
                    arguments.append(''.join(current))
                    current = []
                    pending = False

                if not arguments:
                    self.logger.debug(f"Stray operator {char!r} at offset {pos}")
                    return LexResult(pos + 1 - start, arguments, StopReason.PARSE_ERROR)

                single, double = OPERATORS[char]
                if double is not None and self._peek(pos + 1) == char:
                    return LexResult(pos + 2 - start, arguments, double)
                return LexResult(pos + 1 - start, arguments, single)

            else:
                current.append(char)
                pending = True

            pos += 1

        if quote:
            self.logger.debug(f"Unterminated {quote} quote runs to end of input")

        if pending:
            arguments.append(''.join(current))

        return LexResult(self.length - start, arguments, StopReason.END_OF_INPUT)


def split_arguments(text: str) -> List[str]:
    """Lex a single segment and return only its arguments"""
    return CommandLexer(text).lex(0).arguments
