"""
Constants and configuration for the microshell interpreter
"""
import stat

# ============================================================================
# INPUT LIMITS
# ============================================================================
# The prompt loop reads at most MAX_INPUT_LEN characters per line.
# Longer lines are truncated before they reach the ChainBuilder.
MAX_INPUT_LEN = 256

DEFAULT_PROMPT = ">> "

# Built-in that terminates the interpreter instead of spawning a process
EXIT_BUILTIN = "exit"


# ============================================================================
# LEXER CHARACTER CLASSES
# ============================================================================
WHITESPACE = frozenset(' \t\n')
QUOTE_CHARS = frozenset('\'"')
ESCAPE_CHAR = '\\'

# Unquoted, these terminate the current segment
CONTROL_CHARS = frozenset(';&|<>')


# ============================================================================
# REDIRECTION
# ============================================================================
# rwx for owner, r for group and others (0o744)
REDIRECT_FILE_MODE = (
    stat.S_IRUSR | stat.S_IWUSR | stat.S_IXUSR | stat.S_IRGRP | stat.S_IROTH
)


# ============================================================================
# EXIT STATUS
# ============================================================================
STATUS_SUCCESS = 0
# Any failure that is not a missing command (e.g. a non-numeric exit code)
STATUS_FAILURE = 1
STATUS_COMMAND_NOT_FOUND = 1
STATUS_MAX = 255
# Signal deaths are reported like POSIX shells do: 128 + signal number
STATUS_SIGNAL_BASE = 128
