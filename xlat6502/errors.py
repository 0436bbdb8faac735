"""
Exception types for the xlat6502 translator.

Parse-stage errors are fatal: any of them aborts the whole run before a
single output line is produced. Code-generation gaps are NOT exceptions;
they become inline diagnostic lines in the output (see codegen.py).
"""

from __future__ import annotations

__all__ = [
    'ParseError', 'UnknownOpcode', 'IncorrectNumberOfArguments', 'EmptyArgument',
    'MalformedArgumentName', 'MalformedRegisterName',
    'CodeGenError', 'AllocatorFrozenError', 'LayoutError',
]


class ParseError(Exception):
    """Base class for fatal line-parse failures.

    ``line_num``/``line_text`` are filled in by ``parse_program`` once the
    failing line's position is known.
    """
    def __init__(self, message: str, line_num: int = 0, line_text: str = ""):
        self.message = message
        self.line_num = line_num
        self.line_text = line_text
        super().__init__(message)

    def locate(self, line_num: int, line_text: str) -> ParseError:
        self.line_num = line_num
        self.line_text = line_text
        return self

    def __str__(self) -> str:
        if self.line_num:
            return f"Line {self.line_num}: {self.message} ({self.line_text.strip()!r})"
        return self.message


class UnknownOpcode(ParseError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown opcode {name!r}")


class IncorrectNumberOfArguments(ParseError):
    def __init__(self, opcode: str, expected: int, got: int):
        self.opcode = opcode
        self.expected = expected
        self.got = got
        super().__init__(f"Opcode {opcode!r} takes {expected} argument(s), got {got}")


class EmptyArgument(ParseError):
    def __init__(self):
        super().__init__("Empty argument")


class MalformedArgumentName(ParseError):
    def __init__(self, token: str):
        self.token = token
        super().__init__(f"Malformed argument {token!r}")


class MalformedRegisterName(ParseError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown register name {name!r}")


class CodeGenError(Exception):
    """Internal inconsistency during code generation (not a coverage gap)."""


class AllocatorFrozenError(RuntimeError):
    """Raised when registers are observed after addresses were assigned."""


class LayoutError(ValueError):
    """Raised when the zero-page layout does not fit."""
