"""
microshell - A small command-line interpreter

Main components:
- CommandLexer: Segment tokenization with quoting, escaping and operators
- ChainBuilder: Linked command chains with redirections and control flags
- ProcessLauncher: fork/exec of single commands, background jobs
- PipelineLauncher: Recursive pipe wiring between piped commands
- ChainExecutor: Conditional short-circuit and exit status algebra
- MicroShell: Prompt loop facade
"""

from .command_lexer import CommandLexer, LexResult, StopReason, split_arguments
from .chain_builder import ChainBuilder, CommandNode, ParsedLine
from .process_launcher import ProcessLauncher
from .pipeline_launcher import PipelineLauncher
from .chain_executor import ChainExecutor, ChainResult
from .errors import MicroShellError, ParseError, RedirectionError, SpawnError
from .microshell import MicroShell

__all__ = [
    'CommandLexer',
    'LexResult',
    'StopReason',
    'split_arguments',
    'ChainBuilder',
    'CommandNode',
    'ParsedLine',
    'ProcessLauncher',
    'PipelineLauncher',
    'ChainExecutor',
    'ChainResult',
    'MicroShellError',
    'ParseError',
    'RedirectionError',
    'SpawnError',
    'MicroShell',
]
