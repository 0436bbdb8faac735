"""
Virtual register allocator.

Pass 1 feeds every instruction to observe(); the allocator remembers each
distinct register id in first-seen order. assign_addresses() then hands
each id its own 2-byte zero-page window and freezes the allocator, so the
table used for layout can no longer change underneath the code generator.
"""

from __future__ import annotations
import logging
from typing import Dict, Iterator, List, Mapping

from .errors import AllocatorFrozenError
from .instructions import Instruction
from .operands import VirtualRegister, SumAddress

log = logging.getLogger(__name__)

CELL_SIZE = 2       # bytes per virtual register (low byte first)
SYMBOL_PREFIX = "VREG_"


def register_symbol(reg_id: str) -> str:
    """Equate name of a register cell ('A' -> 'VREG_A')."""
    return f"{SYMBOL_PREFIX}{reg_id}"


class AllocationTable(Mapping[str, int]):
    """Read-only register id -> zero-page address map."""

    def __init__(self, addresses: Dict[str, int]):
        self._addresses = dict(addresses)

    def __getitem__(self, reg_id: str) -> int:
        return self._addresses[reg_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._addresses)

    def __len__(self) -> int:
        return len(self._addresses)

    def __repr__(self) -> str:
        cells = ", ".join(f"{r}=${a:02X}" for r, a in self._addresses.items())
        return f"AllocationTable({cells})"

    def symbol(self, reg_id: str) -> str:
        """Equate name for an allocated register; KeyError if never observed."""
        if reg_id not in self._addresses:
            raise KeyError(f"register {reg_id!r} was not allocated")
        return register_symbol(reg_id)

    @property
    def end(self) -> int:
        """First address past the last allocated cell (or 0 if empty)."""
        if not self._addresses:
            return 0
        return max(self._addresses.values()) + CELL_SIZE


class VirtualRegisterAllocator:
    """Collects register ids during Pass 1, then assigns them storage."""

    def __init__(self):
        self._seen: List[str] = []
        self._table: AllocationTable | None = None
        self._base = 0

    @property
    def frozen(self) -> bool:
        return self._table is not None

    @property
    def registers(self) -> List[str]:
        return list(self._seen)

    def add(self, reg_id: str):
        if self.frozen:
            raise AllocatorFrozenError(f"cannot add register {reg_id!r}: addresses already assigned")
        if reg_id not in self._seen:
            log.debug("New virtual register %s", reg_id)
            self._seen.append(reg_id)

    def observe(self, instr: Instruction):
        """Record every register referenced by an instruction's operands."""
        for operand in instr.operands:
            if isinstance(operand, VirtualRegister):
                self.add(operand.id)
            elif isinstance(operand, SumAddress):
                self.add(operand.base)
                self.add(operand.index)

    def assign_addresses(self, base: int) -> AllocationTable:
        """Give each register a 2-byte window starting at ``base`` and freeze."""
        if self._table is not None:
            if base != self._base:
                raise AllocatorFrozenError(
                    f"addresses already assigned from ${self._base:02X}, not ${base:02X}")
            return self._table

        addresses = {}
        for index, reg_id in enumerate(self._seen):
            addresses[reg_id] = base + index * CELL_SIZE
            log.debug("%s -> $%02X", register_symbol(reg_id), addresses[reg_id])
        self._base = base
        self._table = AllocationTable(addresses)
        return self._table
