"""
Provides a customized argument parser that is used by all `lgres.units.Unit`s.
"""
from __future__ import annotations

from argparse import (
    ArgumentError,
    ArgumentParser,
    ArgumentTypeError,
    RawDescriptionHelpFormatter,
)
from typing import Any, Sequence

import sys


class ArgparseError(ValueError):
    """
    This custom exception type is thrown from the custom argument parser of `lgres.units.Unit`
    rather than terminating program execution immediately. The `parser` parameter is a reference
    to the argument parser that threw the original argument parsing exception with the given
    `message`.
    """
    def __init__(self, parser: ArgumentParserWithKeywordHooks, message: str):
        self.parser = parser
        super().__init__(message)


class ArgumentParserWithKeywordHooks(ArgumentParser):
    """
    The argument parser can be initialized with a given set of keywords which will be parsed as if
    they had been passed as keyword arguments on the command line. Errors are raised as instances
    of `lgres.lib.argparser.ArgparseError` instead of terminating the interpreter.
    """

    keywords: dict[str, Any]

    def __init__(self, keywords, prog=None, description=None, add_help=True):
        super().__init__(
            prog=prog,
            description=description,
            add_help=add_help,
            formatter_class=RawDescriptionHelpFormatter,
        )
        if sys.version_info >= (3, 14):
            self.color = False
        self.keywords = keywords

    def error(self, message):
        raise ArgparseError(self, message)

    def parse_args_with_keywords(self, args: Sequence[str], namespace=None):
        self.set_defaults(**self.keywords)
        try:
            parsed = self.parse_args(args=list(args), namespace=namespace)
        except ArgparseError:
            raise
        except (ArgumentError, ArgumentTypeError) as e:
            self.error(str(e))
        except Exception as e:
            self.error(F'Failed to parse arguments: {args!r}, {e}, {type(e).__name__}')
        return parsed
