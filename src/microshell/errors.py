"""
Exception hierarchy for microshell

ERROR TAXONOMY:
- ParseError: malformed token sequence in one segment (e.g. leading '|')
      → recovered by ChainBuilder, segment contributes no command
- RedirectionError: bad filename count or failed open for one node
      → recovered by ChainBuilder, descriptor keeps its default
- SpawnError: fork()/pipe() failed (resource exhaustion)
      → propagates to the prompt loop, which reports it and reads the next line

Command-not-found is NOT an exception: the child reports it and exits 1,
the parent sees an ordinary exit status.
"""


class MicroShellError(Exception):
    """Base class for all interpreter errors"""
    pass


class ParseError(MicroShellError):
    """Raised when a segment cannot be turned into a command"""

    def __init__(self, message: str, position: int = -1):
        super().__init__(message)
        self.position = position


class RedirectionError(MicroShellError):
    """Raised when a redirection target cannot be read or opened"""

    def __init__(self, message: str, filename: str = ''):
        super().__init__(message)
        self.filename = filename


class SpawnError(MicroShellError):
    """Raised when a process or pipe cannot be created"""

    def __init__(self, message: str, command: str = ''):
        super().__init__(message)
        self.command = command
