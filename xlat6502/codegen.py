"""
6502 Code Generator for the xlat6502 translator.

Maps each parsed i386 instruction to MADS-syntax 6502 assembly.

Register usage convention:
  - A: scratch for every multi-line expansion; saved with PHA/PLA so the
       caller's value survives the expansion
  - Y: only used as the zero index of an indirect store; saved via TYA/PHA
  - X: never touched
  - VREG_x / VREG_x+1: low / high byte of virtual register x (zero page)
  - TMPW: scratch word for indexed stores and Push
  - LAST_CMP: 0 after an equal comparison, 1 otherwise

Code generation is a table lookup keyed by (opcode, operand classes).
Rules are plain functions registered with @rule; a rule may still
decline (return None) when a guard fails, e.g. Xor of two different
registers. Anything without a rule becomes one bare diagnostic line in
the output, which makes the downstream assembler reject the program
while the rest of the translation still goes through.

Dialects:
  wide    Canonical. %eax/%al are an ordinary virtual register and
          MovZ between registers is a full 16-bit copy.
  legacy  Earlier prototype semantics. %eax/%al are the accumulator
          itself and MovZ between registers zero-extends the low byte.
"""

from __future__ import annotations
import logging
from typing import Callable, Dict, List, Optional, Tuple, Type

from . import instructions as ins
from .allocator import AllocationTable
from .errors import CodeGenError
from .layout import (
    DEFAULT_ZERO_PAGE, SCRATCH_SYMBOL, FLAG_SYMBOL, COMPARE_ROUTINE, emit_layout,
)
from .operands import (
    Operand, Literal, VirtualRegister, Accumulator, AbsoluteAddress, SumAddress, Label,
)
from .optimizer import optimize as peephole_optimize
from .parser import ParsedLine

log = logging.getLogger(__name__)


# ──────────────────────────────────────────────
# Dialect profiles
# ──────────────────────────────────────────────

DIALECTS = {
    "wide": {
        "accumulator_alias": False,
        "description": "16-bit virtual registers everywhere (canonical)",
    },
    "legacy": {
        "accumulator_alias": True,
        "description": "%eax/%al is the 6502 accumulator; MovZ zero-extends one byte",
    },
}

DEFAULT_DIALECT = "wide"
DEFAULT_ORG = 0x2000

ANON_LABEL = "@"
FORWARD = "@+"


# ──────────────────────────────────────────────
# Line formatting
# ──────────────────────────────────────────────

def _op(mnemonic: str, operand: str = "") -> str:
    """Format one indented instruction line ('LDA', '#$05' -> '        LDA     #$05')."""
    if operand:
        return f"        {mnemonic:<8}{operand}"
    return f"        {mnemonic}"


def _hex8(val: int) -> str:
    return f"${val & 0xFF:02X}"


def _hex16(val: int) -> str:
    return f"${val & 0xFFFF:04X}"


def _imm8(val: int) -> str:
    return f"#${val & 0xFF:02X}"


def _addr(val: int) -> str:
    """Zero-page addresses print as one byte so MADS picks ZP addressing."""
    if not 0 <= val <= 0xFFFF:
        raise CodeGenError(f"address {val} is outside the 6502 address space")
    return _hex8(val) if val <= 0xFF else _hex16(val)


def _save_a(body: List[str]) -> List[str]:
    return [_op("PHA")] + body + [_op("PLA")]


def _save_ay(body: List[str]) -> List[str]:
    return [_op("PHA"), _op("TYA"), _op("PHA")] + body + [_op("PLA"), _op("TAY"), _op("PLA")]


# ──────────────────────────────────────────────
# Rule table
# ──────────────────────────────────────────────

class _Cells:
    """Resolves register ids to their equate names through the allocation table."""

    def __init__(self, table: AllocationTable):
        self.table = table

    def lo(self, reg_id: str) -> str:
        try:
            return self.table.symbol(reg_id)
        except KeyError:
            raise CodeGenError(f"virtual register {reg_id!r} has no storage; "
                               f"was the instruction observed by the allocator?") from None

    def hi(self, reg_id: str) -> str:
        return f"{self.lo(reg_id)}+1"

    def copy16(self, src: str, dst: str) -> List[str]:
        return [
            _op("LDA", self.lo(src)),
            _op("STA", self.lo(dst)),
            _op("LDA", self.hi(src)),
            _op("STA", self.hi(dst)),
        ]


Shape = Tuple[Type[Operand], ...]
Rule = Callable[[ins.Instruction, _Cells], Optional[List[str]]]

ALL_DIALECTS = "*"
_RULES: Dict[str, Dict[Tuple[str, Shape], Rule]] = {ALL_DIALECTS: {}}
_RULES.update({name: {} for name in DIALECTS})


def rule(opcode: str, *shape: Type[Operand], dialect: str = ALL_DIALECTS):
    """Register a code-generation rule for (opcode, operand classes)."""
    def register(fn: Rule) -> Rule:
        _RULES[dialect][(opcode, shape)] = fn
        return fn
    return register


def rule_table(dialect: str = DEFAULT_DIALECT) -> Dict[Tuple[str, Shape], Rule]:
    """Shared rules overlaid with the dialect's own rules."""
    if dialect not in DIALECTS:
        raise ValueError(f"unknown dialect {dialect!r} (expected one of {', '.join(DIALECTS)})")
    table = dict(_RULES[ALL_DIALECTS])
    table.update(_RULES[dialect])
    return table


def shape_of(instr: ins.Instruction) -> Shape:
    return tuple(type(o) for o in instr.operands)


def diagnostic(instr: ins.Instruction) -> str:
    """The inline line emitted for an instruction without a matching rule."""
    if isinstance(instr, ins.UnaryInstruction):
        return (f"Unable to generate code for opcode '{instr.opcode}' "
                f"with argument: {instr.operand!r}")
    if isinstance(instr, ins.BinaryInstruction):
        return (f"Unable to generate code for opcode '{instr.opcode}' "
                f"with combination of arguments: {instr.src!r} and {instr.dst!r}")
    return f"Unable to generate 6502 code for line: {instr!r}"


def generate(instr: ins.Instruction, table: AllocationTable,
             dialect: str = DEFAULT_DIALECT) -> List[str]:
    """Translate one instruction to output lines (a diagnostic line if unmatched)."""
    lines = _lookup(instr, _Cells(table), rule_table(dialect))
    if lines is None:
        return [diagnostic(instr)]
    return lines


def _lookup(instr, cells, rules) -> Optional[List[str]]:
    fn = rules.get((instr.opcode, shape_of(instr)))
    if fn is None:
        return None
    return fn(instr, cells)


# ── Label / Jmp ───────────────────────────

@rule("LABEL")
def _label(instr, cells):
    return [instr.name]


@rule("JMP", Label)
def _jmp(instr, cells):
    return [_op("JMP", instr.operand.name)]


# ── Xor ───────────────────────────────────

@rule("XOR", VirtualRegister, VirtualRegister)
def _xor_clear(instr, cells):
    # Only the 'xorl %r, %r' clear idiom is supported
    if instr.src.id != instr.dst.id:
        return None
    r = instr.dst.id
    return _save_a([
        _op("LDA", _imm8(0)),
        _op("STA", cells.lo(r)),
        _op("STA", cells.hi(r)),
    ])


@rule("XOR", Accumulator, Accumulator)
def _xor_clear_acc(instr, cells):
    return [_op("LDA", _imm8(0))]


# ── Adc ───────────────────────────────────

@rule("ADC", Literal, VirtualRegister)
def _adc_literal(instr, cells):
    value, r = instr.src.value, instr.dst.id
    if value < 0:
        mag = -value
        return _save_a([
            _op("SEC"),
            _op("LDA", cells.lo(r)),
            _op("SBC", _imm8(mag)),
            _op("STA", cells.lo(r)),
            _op("LDA", cells.hi(r)),
            _op("SBC", _imm8(mag >> 8)),
            _op("STA", cells.hi(r)),
        ])
    return _save_a([
        _op("CLC"),
        _op("LDA", cells.lo(r)),
        _op("ADC", _imm8(value)),
        _op("STA", cells.lo(r)),
        _op("LDA", cells.hi(r)),
        _op("ADC", _imm8(value >> 8)),
        _op("STA", cells.hi(r)),
    ])


@rule("ADC", AbsoluteAddress, VirtualRegister)
def _adc_memory(instr, cells):
    # 8-bit add into the low byte; the carry is NOT propagated to the high byte
    r = instr.dst.id
    return _save_a([
        _op("CLC"),
        _op("LDA", cells.lo(r)),
        _op("ADC", _addr(instr.src.address)),
        _op("STA", cells.lo(r)),
    ])


@rule("ADC", AbsoluteAddress, Accumulator)
def _adc_memory_acc(instr, cells):
    return [_op("CLC"), _op("ADC", _addr(instr.src.address))]


# ── MovZ ──────────────────────────────────

@rule("MOVZ", VirtualRegister, VirtualRegister, dialect="wide")
def _movz_copy16(instr, cells):
    s, d = instr.src.id, instr.dst.id
    if s == d:
        return []
    return _save_a(cells.copy16(s, d))


@rule("MOVZ", VirtualRegister, VirtualRegister, dialect="legacy")
def _movz_zext8(instr, cells):
    s, d = instr.src.id, instr.dst.id
    if s == d:
        return []
    return _save_a([
        _op("LDA", cells.lo(s)),
        _op("STA", cells.lo(d)),
        _op("LDA", _imm8(0)),
        _op("STA", cells.hi(d)),
    ])


@rule("MOVZ", Accumulator, VirtualRegister)
def _movz_acc(instr, cells):
    r = instr.dst.id
    return [_op("STA", cells.lo(r))] + _save_a([
        _op("LDA", _imm8(0)),
        _op("STA", cells.hi(r)),
    ])


# ── Cmp / CMov ────────────────────────────

@rule("CMP", Literal, VirtualRegister)
def _cmp_register(instr, cells):
    # Low byte only
    return _save_a([
        _op("LDA", cells.lo(instr.dst.id)),
        _op("CMP", _imm8(instr.src.value)),
        _op("JSR", COMPARE_ROUTINE),
    ])


@rule("CMP", Literal, Accumulator)
def _cmp_acc(instr, cells):
    # PHA leaves the flags from CMP intact for the latch routine
    return [_op("CMP", _imm8(instr.src.value))] + _save_a([_op("JSR", COMPARE_ROUTINE)])


@rule("CMOV", VirtualRegister, VirtualRegister)
def _cmov(instr, cells):
    s, d = instr.src.id, instr.dst.id
    if s == d:
        return []
    return _save_a(
        [_op("LDA", FLAG_SYMBOL), _op("BNE", FORWARD)]
        + cells.copy16(s, d)
        + [ANON_LABEL]
    )


# ── Mov ───────────────────────────────────

@rule("MOV", Literal, AbsoluteAddress)
def _mov_imm_mem(instr, cells):
    return _save_a([
        _op("LDA", _imm8(instr.src.value)),
        _op("STA", _addr(instr.dst.address)),
    ])


@rule("MOV", Literal, Accumulator)
def _mov_imm_acc(instr, cells):
    return [_op("LDA", _imm8(instr.src.value))]


@rule("MOV", Literal, VirtualRegister)
def _mov_imm_reg(instr, cells):
    lit, r = instr.src, instr.dst.id
    return _save_a([
        _op("LDA", _imm8(lit.low)),
        _op("STA", cells.lo(r)),
        _op("LDA", _imm8(lit.high)),
        _op("STA", cells.hi(r)),
    ])


@rule("MOV", Literal, SumAddress)
def _mov_imm_indexed(instr, cells):
    base, index = instr.dst.base, instr.dst.index
    return _save_ay([
        _op("CLC"),
        _op("LDA", cells.lo(base)),
        _op("ADC", cells.lo(index)),
        _op("STA", SCRATCH_SYMBOL),
        _op("LDA", cells.hi(base)),
        _op("ADC", cells.hi(index)),
        _op("STA", f"{SCRATCH_SYMBOL}+1"),
        _op("LDY", _imm8(0)),
        _op("LDA", _imm8(instr.src.value)),
        _op("STA", f"({SCRATCH_SYMBOL}),Y"),
    ])


@rule("MOV", AbsoluteAddress, VirtualRegister)
def _mov_mem_reg(instr, cells):
    return _save_a([
        _op("LDA", _addr(instr.src.address)),
        _op("STA", cells.lo(instr.dst.id)),
    ])


@rule("MOV", VirtualRegister, AbsoluteAddress)
def _mov_reg_mem(instr, cells):
    return _save_a([
        _op("LDA", cells.lo(instr.src.id)),
        _op("STA", _addr(instr.dst.address)),
    ])


@rule("MOV", VirtualRegister, VirtualRegister)
def _mov_reg_reg(instr, cells):
    s, d = instr.src.id, instr.dst.id
    if s == d:
        return []
    return _save_a(cells.copy16(s, d))


@rule("MOV", Accumulator, AbsoluteAddress)
def _mov_acc_mem(instr, cells):
    return [_op("STA", _addr(instr.dst.address))]


@rule("MOV", AbsoluteAddress, Accumulator)
def _mov_mem_acc(instr, cells):
    return [_op("LDA", _addr(instr.src.address))]


@rule("MOV", Accumulator, VirtualRegister)
def _mov_acc_reg(instr, cells):
    r = instr.dst.id
    return _save_a([
        _op("STA", cells.lo(r)),
        _op("LDA", _imm8(0)),
        _op("STA", cells.hi(r)),
    ])


@rule("MOV", VirtualRegister, Accumulator)
def _mov_reg_acc(instr, cells):
    return [_op("LDA", cells.lo(instr.src.id))]


# ── Inc / Dec ─────────────────────────────

@rule("INC", VirtualRegister)
def _inc_reg(instr, cells):
    r = instr.operand.id
    return [
        _op("INC", cells.lo(r)),
        _op("BNE", FORWARD),
        _op("INC", cells.hi(r)),
        ANON_LABEL,
    ]


@rule("INC", Accumulator)
def _inc_acc(instr, cells):
    return [_op("CLC"), _op("ADC", _imm8(1))]


@rule("DEC", VirtualRegister)
def _dec_reg(instr, cells):
    # Borrow from the high byte when the low byte is about to wrap
    r = instr.operand.id
    return _save_a([
        _op("LDA", cells.lo(r)),
        _op("BNE", FORWARD),
        _op("DEC", cells.hi(r)),
        ANON_LABEL,
        _op("DEC", cells.lo(r)),
    ])


@rule("DEC", Accumulator)
def _dec_acc(instr, cells):
    return [_op("SEC"), _op("SBC", _imm8(1))]


# ── Push ──────────────────────────────────

@rule("PUSH", VirtualRegister)
def _push_reg(instr, cells):
    # High byte first, so the low byte ends up at the lower stack address
    r = instr.operand.id
    return [
        _op("STA", SCRATCH_SYMBOL),
        _op("LDA", cells.hi(r)),
        _op("PHA"),
        _op("LDA", cells.lo(r)),
        _op("PHA"),
        _op("LDA", SCRATCH_SYMBOL),
    ]


@rule("PUSH", Accumulator)
def _push_acc(instr, cells):
    return [_op("PHA")]


# ──────────────────────────────────────────────
# Program-level generator
# ──────────────────────────────────────────────

class CodeGenerator:
    """Generates the complete 6502 listing for a parsed program (Pass 2)."""

    def __init__(self, table: AllocationTable, *, org: int = DEFAULT_ORG,
                 zero_page: int = DEFAULT_ZERO_PAGE, dialect: str = DEFAULT_DIALECT,
                 annotate: bool = False, optimize: bool = False):
        self.table = table
        self.org = org
        self.zero_page = zero_page
        self.dialect = dialect
        self.annotate = annotate
        self.optimize = optimize

        self._rules = rule_table(dialect)
        self._cells = _Cells(table)

        # Output sections
        self._header_lines: List[str] = []
        self._code_lines: List[str] = []
        self._layout_lines: List[str] = []

        self.diagnostics: List[ParsedLine] = []

    def generate(self, program: List[ParsedLine]) -> str:
        """Generate the full output: header, body, equates, runtime."""
        self._code_lines = []
        self.diagnostics = []
        self._generate_header()

        for parsed in program:
            if self.annotate:
                self._code_lines.append(f"; Line {parsed.number:4}: {parsed.text.strip()}")
            lines = _lookup(parsed.instruction, self._cells, self._rules)
            if lines is None:
                log.warning("Line %d: no %s rule matches (%s)",
                            parsed.number, parsed.instruction.opcode,
                            ", ".join(t.__name__ for t in shape_of(parsed.instruction)))
                self.diagnostics.append(parsed)
                lines = [diagnostic(parsed.instruction)]
            self._code_lines.extend(lines)

        if self.optimize:
            before = len(self._code_lines)
            self._code_lines = peephole_optimize(self._code_lines)
            log.debug("Peephole optimizer removed %d line(s)", before - len(self._code_lines))

        self._layout_lines = emit_layout(self.table, self.zero_page)
        return self._assemble_output()

    def _generate_header(self):
        desc = DIALECTS[self.dialect]["description"]
        self._header_lines = [
            "; ============================================",
            "; xlat6502 i386 -> 6502 translation",
            f"; Dialect: {self.dialect} ({desc})",
            "; ============================================",
            "",
            _op("ORG", _hex16(self.org)),
            "",
        ]

    def _assemble_output(self) -> str:
        sections = []
        sections.extend(self._header_lines)
        sections.append("; -- Code --")
        sections.extend(self._code_lines)
        sections.append("")
        sections.append("; -- Zero page and runtime --")
        sections.extend(self._layout_lines)
        sections.append("")
        return "\n".join(sections)
