"""
Line parser (instruction assembler) for the xlat6502 translator.

Turns one line of compiler-emitted i386 assembly into one typed
Instruction:

  - Lines starting with '.' are labels; the rest of the line is the name.
  - Otherwise the first whitespace token is the mnemonic, looked up in
    MNEMONICS; the remaining tokens are operands.
  - A base+index address is written '(%edx, %ecx)' and therefore arrives
    as two tokens; a token opening '(' without its ')' is joined with the
    next token before operand parsing.

Any failure here is fatal for the whole run: parse_program() either
returns every line or raises.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Type

from .errors import ParseError, UnknownOpcode, IncorrectNumberOfArguments
from .instructions import (
    Instruction, Label, Mov, MovZ, CMov, Xor, Adc, Cmp, Inc, Dec, Jmp, Push,
)
from .operands import parse_operand

log = logging.getLogger(__name__)

LABEL_MARKER = "."

MNEMONICS: Dict[str, Type[Instruction]] = {
    "movb": Mov,
    "movl": Mov,
    "movzbl": MovZ,
    "cmovel": CMov,
    "xorl": Xor,
    "addb": Adc,
    "adcb": Adc,
    "cmpb": Cmp,
    "incb": Inc,
    "decb": Dec,
    "jmp": Jmp,
    "pushl": Push,
}


@dataclass(frozen=True)
class ParsedLine:
    """An instruction together with where it came from."""
    number: int          # 1-based line number in the input text
    text: str
    instruction: Instruction


def split_operands(tokens: List[str]) -> List[str]:
    """Rejoin '(%R1,' '%R2)' pairs so each operand is one token."""
    merged: List[str] = []
    i = 0
    while i < len(tokens):
        tok = tokens[i]
        if tok.startswith("(") and ")" not in tok and i + 1 < len(tokens):
            merged.append(tok + tokens[i + 1])
            i += 2
        else:
            merged.append(tok)
            i += 1
    return merged


def parse_line(line: str, *, accumulator_alias: bool = False) -> Instruction:
    """Parse one source line into an Instruction (no position attached)."""
    line = line.rstrip("\r\n")
    if line.startswith(LABEL_MARKER):
        return Label(line[1:].rstrip())

    parts = line.split()
    if not parts:
        raise ParseError("Empty line")

    mnemonic, raw_args = parts[0], parts[1:]
    cls = MNEMONICS.get(mnemonic)
    if cls is None:
        raise UnknownOpcode(mnemonic)

    args = split_operands(raw_args)
    if len(args) != cls.arity:
        raise IncorrectNumberOfArguments(mnemonic, cls.arity, len(args))

    operands = [parse_operand(a, accumulator_alias=accumulator_alias) for a in args]
    return cls(*operands)


def parse_program(lines: Iterable[str], *, accumulator_alias: bool = False) -> List[ParsedLine]:
    """Parse a whole listing. The first line is a header and is skipped.

    Blank lines are ignored. Raises the first ParseError found, with its
    line number and text attached.
    """
    program: List[ParsedLine] = []
    for number, text in enumerate(lines, start=1):
        if number == 1:
            log.debug("Skipping header line: %r", text.rstrip("\r\n"))
            continue
        if not text.strip():
            continue
        try:
            instr = parse_line(text, accumulator_alias=accumulator_alias)
        except ParseError as e:
            e.locate(number, text)
            raise
        program.append(ParsedLine(number, text.rstrip("\r\n"), instr))

    log.debug("Parsed %d instruction(s)", len(program))
    return program
