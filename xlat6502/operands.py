"""
Operand types and the operand parser for the xlat6502 translator.

Each whitespace-delimited argument of a source line is classified by its
first character into exactly one operand variant:

    %eax      -> VirtualRegister('A')    (or Accumulator in the legacy dialect)
    .LBB0_1   -> Label('LBB0_1')
    (%edx,%ecx)
              -> SumAddress('D', 'C')    (the parser rejoins the split token)
    764       -> AbsoluteAddress(764)
    $-5       -> Literal(-5)

Operands are frozen dataclasses: they compare by value, hash, and are
never reinterpreted once parsed.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Union

from .errors import EmptyArgument, MalformedArgumentName, MalformedRegisterName


# ──────────────────────────────────────────────
# Register name table
# ──────────────────────────────────────────────

REGISTER_NAMES: Dict[str, str] = {
    "eax": "A",
    "al": "A",
    "ecx": "C",
    "cl": "C",
    "ebx": "B",
    "bl": "B",
    "edx": "D",
    "dl": "D",
    "esi": "S",
}

# Source names that alias the 6502 accumulator in the legacy dialect
ACCUMULATOR_NAMES = ("eax", "al")

I32_MIN = -(1 << 31)
I32_MAX = (1 << 31) - 1
ADDRESS_MAX = 0xFFFF


# ──────────────────────────────────────────────
# Operand variants
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class Literal:
    """Immediate value ($-prefixed)."""
    value: int

    @property
    def low(self) -> int:
        return self.value & 0xFF

    @property
    def high(self) -> int:
        return (self.value >> 8) & 0xFF


@dataclass(frozen=True)
class VirtualRegister:
    """A wide source register, lowered to a 2-byte zero-page cell."""
    id: str


@dataclass(frozen=True)
class Accumulator:
    """The 6502 A register itself (legacy dialect only)."""


@dataclass(frozen=True)
class AbsoluteAddress:
    address: int


@dataclass(frozen=True)
class SumAddress:
    """Effective address = value of base cell + value of index cell."""
    base: str
    index: str


@dataclass(frozen=True)
class Label:
    name: str


Operand = Union[Literal, VirtualRegister, Accumulator, AbsoluteAddress, SumAddress, Label]


# ──────────────────────────────────────────────
# Parser
# ──────────────────────────────────────────────

def register_from_name(name: str) -> str:
    """Map a source register name ('ecx') to its single-letter id ('C')."""
    try:
        return REGISTER_NAMES[name]
    except KeyError:
        raise MalformedRegisterName(name) from None


def _parse_int(text: str, token: str) -> int:
    # ASCII digits only, no "_" separators
    digits = text[1:] if text[:1] in ("+", "-") else text
    if not (digits.isascii() and digits.isdigit()):
        raise MalformedArgumentName(token)
    value = int(text, 10)
    if not I32_MIN <= value <= I32_MAX:
        raise MalformedArgumentName(token)
    return value


def _parse_sum_address(token: str) -> SumAddress:
    body = token.rstrip(",")
    if not body.endswith(")"):
        raise MalformedArgumentName(token)
    parts = body[1:-1].split(",")
    if len(parts) != 2 or not all(p.startswith("%") for p in parts):
        raise MalformedArgumentName(token)
    base, index = (register_from_name(p.strip("%")) for p in parts)
    return SumAddress(base, index)


def parse_operand(token: str, *, accumulator_alias: bool = False) -> Operand:
    """Classify one argument token into a typed operand.

    With ``accumulator_alias`` set, ``%eax``/``%al`` parse to
    :class:`Accumulator` instead of ``VirtualRegister('A')``.
    """
    if not token:
        raise EmptyArgument()

    first = token[0]
    if first == "%":
        name = token.replace("%", "").replace(",", "")
        reg = register_from_name(name)
        if accumulator_alias and name in ACCUMULATOR_NAMES:
            return Accumulator()
        return VirtualRegister(reg)
    if first == ".":
        return Label(token[1:].rstrip(","))
    if first == "(":
        return _parse_sum_address(token)
    if first.isdigit():
        address = _parse_int(token.rstrip(","), token)
        if address > ADDRESS_MAX:
            raise MalformedArgumentName(token)
        return AbsoluteAddress(address)
    if first == "$":
        return Literal(_parse_int(token[1:].rstrip(","), token))
    raise MalformedArgumentName(token)
