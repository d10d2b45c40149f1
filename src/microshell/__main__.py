"""
Command line entry point: python -m microshell
"""
import argparse
import logging
import sys

from .constants import DEFAULT_PROMPT
from .microshell import MicroShell


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog='microshell', description='Minimal command-line interpreter')
    parser.add_argument('--prompt', default=DEFAULT_PROMPT, help='Prompt printed before each line')
    parser.add_argument('--no-background', action='store_true',
                        help="Run commands ending with '&' in the foreground")
    parser.add_argument('--log-level', default='WARNING',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'])
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(name)s - %(levelname)s - %(message)s'
    )

    shell = MicroShell(prompt=args.prompt, honor_background=not args.no_background)
    shell.run()
    return 0


if __name__ == '__main__':
    sys.exit(main())
