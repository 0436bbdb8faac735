"""
Instruction definitions for the xlat6502 translator.

One instruction per source line, produced by the parser and consumed
twice: once by the register allocator and once by the code generator.
Each class declares its opcode name (the code-generation table key) and
its arity, which the parser enforces.

Binary instructions keep AT&T operand order: ``src`` first, ``dst`` second.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import ClassVar, Tuple

from .operands import Operand


# ──────────────────────────────────────────────
# Base classes
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class Instruction:
    """Base class for all instructions."""
    opcode: ClassVar[str] = ""
    arity: ClassVar[int] = 0

    @property
    def operands(self) -> Tuple[Operand, ...]:
        return ()


@dataclass(frozen=True)
class UnaryInstruction(Instruction):
    operand: Operand
    arity: ClassVar[int] = 1

    @property
    def operands(self) -> Tuple[Operand, ...]:
        return (self.operand,)


@dataclass(frozen=True)
class BinaryInstruction(Instruction):
    src: Operand
    dst: Operand
    arity: ClassVar[int] = 2

    @property
    def operands(self) -> Tuple[Operand, ...]:
        return (self.src, self.dst)


# ──────────────────────────────────────────────
# Label line
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class Label(Instruction):
    """A jump target; the name is kept verbatim from the source line."""
    name: str
    opcode: ClassVar[str] = "LABEL"


# ──────────────────────────────────────────────
# Unary instructions
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class Jmp(UnaryInstruction):
    opcode: ClassVar[str] = "JMP"


@dataclass(frozen=True)
class Inc(UnaryInstruction):
    opcode: ClassVar[str] = "INC"


@dataclass(frozen=True)
class Dec(UnaryInstruction):
    opcode: ClassVar[str] = "DEC"


@dataclass(frozen=True)
class Push(UnaryInstruction):
    opcode: ClassVar[str] = "PUSH"


# ──────────────────────────────────────────────
# Binary instructions
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class Mov(BinaryInstruction):
    opcode: ClassVar[str] = "MOV"


@dataclass(frozen=True)
class MovZ(BinaryInstruction):
    """Zero-extending move (movzbl)."""
    opcode: ClassVar[str] = "MOVZ"


@dataclass(frozen=True)
class Xor(BinaryInstruction):
    opcode: ClassVar[str] = "XOR"


@dataclass(frozen=True)
class Adc(BinaryInstruction):
    opcode: ClassVar[str] = "ADC"


@dataclass(frozen=True)
class Cmp(BinaryInstruction):
    opcode: ClassVar[str] = "CMP"


@dataclass(frozen=True)
class CMov(BinaryInstruction):
    """Conditional move, taken when the last comparison was equal (cmovel)."""
    opcode: ClassVar[str] = "CMOV"
