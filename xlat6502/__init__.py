"""
xlat6502: i386 assembly to 6502 translator
==========================================
Retargets the tiny AT&T-syntax i386 listings a compiler backend emits for
very small programs onto the MOS 6502 (Atari 8-bit, MADS syntax). Wide
source registers become 2-byte zero-page cells ("virtual registers").

Architecture:
    ┌───────────┐    ┌──────────┐    ┌───────────┐    ┌──────────┐    ┌───────────┐
    │ i386 .s   │───>│  Parser  │───>│ Allocator │───>│ CodeGen  │───>│  Layout   │
    │ (text)    │    │ (instrs) │    │ (VREG map)│    │ (6502)   │    │ (equates) │
    └───────────┘    └──────────┘    └───────────┘    └──────────┘    └───────────┘

    - operands.py:     token -> typed operand
    - parser.py:       line -> Instruction (Pass 1, fatal on error)
    - allocator.py:    distinct registers -> zero-page windows
    - codegen.py:      (opcode, operand shapes) rule table (Pass 2)
    - optimizer.py:    optional peephole pass on the body
    - layout.py:       TMPW / LAST_CMP / VREG_x equates + runtime routines
"""

from __future__ import annotations
import logging
from typing import Iterable, List, Union

__version__ = "0.4.0"

from .errors import *
from .operands import parse_operand
from .instructions import Instruction
from .parser import ParsedLine, parse_line, parse_program
from .allocator import AllocationTable, VirtualRegisterAllocator
from .codegen import CodeGenerator, DIALECTS, DEFAULT_DIALECT, DEFAULT_ORG, generate
from .layout import DEFAULT_ZERO_PAGE, check_zero_page, register_base

log = logging.getLogger(__name__)


class Translator:
    """Runs both passes over one listing.

    Pass 1 parses every line and feeds the allocator; it must finish before
    any register gets an address. Pass 2 generates code against the frozen
    allocation table. Nothing is produced if Pass 1 fails. An instance can
    be reused: every translate() starts from a fresh allocator.
    """

    def __init__(self, *, org: int = DEFAULT_ORG, zero_page: int = DEFAULT_ZERO_PAGE,
                 dialect: str = DEFAULT_DIALECT, annotate: bool = False,
                 optimize: bool = False):
        if dialect not in DIALECTS:
            raise ValueError(f"unknown dialect {dialect!r} (expected one of {', '.join(DIALECTS)})")
        check_zero_page(zero_page)
        self.org = org
        self.zero_page = zero_page
        self.dialect = dialect
        self.annotate = annotate
        self.optimize = optimize

        self.allocator = VirtualRegisterAllocator()
        self.program: List[ParsedLine] = []
        self.table: AllocationTable | None = None
        self.diagnostics: List[ParsedLine] = []

    def parse(self, lines: Iterable[str]) -> List[ParsedLine]:
        """Pass 1: parse everything and record every register."""
        self.allocator = VirtualRegisterAllocator()
        self.table = None
        self.diagnostics = []
        alias = DIALECTS[self.dialect]["accumulator_alias"]
        self.program = parse_program(lines, accumulator_alias=alias)
        for parsed in self.program:
            self.allocator.observe(parsed.instruction)
        log.debug("Pass 1: %d instruction(s), registers %s",
                  len(self.program), "".join(self.allocator.registers) or "(none)")
        return self.program

    def translate(self, lines: Iterable[str]) -> str:
        """Run both passes over one listing."""
        self.parse(lines)
        self.table = self.allocator.assign_addresses(register_base(self.zero_page))

        gen = CodeGenerator(self.table, org=self.org, zero_page=self.zero_page,
                            dialect=self.dialect, annotate=self.annotate,
                            optimize=self.optimize)
        output = gen.generate(self.program)
        self.diagnostics = gen.diagnostics
        log.debug("Pass 2: %d diagnostic line(s)", len(self.diagnostics))
        return output


def translate_source(source: Union[str, Iterable[str]], *, org: int = DEFAULT_ORG,
                     zero_page: int = DEFAULT_ZERO_PAGE, dialect: str = DEFAULT_DIALECT,
                     annotate: bool = False, optimize: bool = False) -> str:
    """Translate an i386 listing to 6502 assembly text.

    Full pipeline: Parser -> Allocator -> CodeGenerator -> Layout.

    Args:
        source: Listing text (or an iterable of lines). The first line is a
            header and is skipped.
        org: Code origin (default $2000).
        zero_page: Start of TMPW/LAST_CMP/VREG cells (default $80).
        dialect: 'wide' (default) or 'legacy'.
        annotate: Precede each expansion with a '; Line N: ...' comment.
        optimize: Run the peephole optimizer on the body.

    Returns:
        The 6502 listing. Raises ParseError (nothing is returned) if any
        line cannot be parsed.
    """
    lines = source.splitlines() if isinstance(source, str) else source
    translator = Translator(org=org, zero_page=zero_page, dialect=dialect,
                            annotate=annotate, optimize=optimize)
    return translator.translate(lines)
