"""
Zero-page layout and runtime support for translated programs.

Memory map (default base $80):

    $80-$81   TMPW       scratch word (Push, indexed stores)
    $82       LAST_CMP   latched result of the last Cmp (0 = equal)
    $83-...   VREG_x     one 2-byte cell per virtual register, low byte first

The equates and the two runtime routines are appended after the
translated body. MADS resolves equates regardless of where they appear,
so the body may use them before they are declared.
"""

from __future__ import annotations
import logging
from typing import List

from .allocator import AllocationTable, register_symbol
from .errors import LayoutError

log = logging.getLogger(__name__)


# ──────────────────────────────────────────────
# Fixed cells and routine names
# ──────────────────────────────────────────────

DEFAULT_ZERO_PAGE = 0x80
ZERO_PAGE_END = 0xFF

SCRATCH_SYMBOL = "TMPW"
SCRATCH_SIZE = 2
FLAG_SYMBOL = "LAST_CMP"
FLAG_SIZE = 1
FIXED_CELLS_SIZE = SCRATCH_SIZE + FLAG_SIZE

SYNC_ROUTINE = "SYNCHRO"
COMPARE_ROUTINE = "LAST_CMP_EQUAL"


# ──────────────────────────────────────────────
# Runtime routines (emitted verbatim)
# ──────────────────────────────────────────────

# Waits for the raster line that marks the bottom of the visible frame:
# PAL reads 0 on PAL machines (line 145), non-zero on NTSC (line 120).
SYNC_ROUTINE_TEXT = f"""\
PAL     = $D014
VCOUNT  = $D40B
{SYNC_ROUTINE}
            lda PAL
            beq SYN_0
            lda #120    ; NTSC
            jmp SYN_1
SYN_0       lda #145    ; PAL
SYN_1       cmp VCOUNT
            bne SYN_1
            rts"""

# Called right after a CMP: stores 0 in LAST_CMP when Z is set, 1 otherwise.
COMPARE_ROUTINE_TEXT = f"""\
{COMPARE_ROUTINE}
        BEQ @+
        LDA #1
        STA {FLAG_SYMBOL}
        RTS
@       LDA #0
        STA {FLAG_SYMBOL}
        RTS"""


def _hex8(val: int) -> str:
    return f"${val & 0xFF:02X}"


def _equate(name: str, addr: int) -> str:
    return f"{name:<16}equ {_hex8(addr)}"


def register_base(zero_page: int = DEFAULT_ZERO_PAGE) -> int:
    """First address available for virtual register cells."""
    return zero_page + FIXED_CELLS_SIZE


def check_zero_page(zero_page: int):
    """Raise LayoutError unless the base and the fixed cells fit in $00-$FF."""
    if not 0 <= zero_page <= ZERO_PAGE_END:
        raise LayoutError(f"zero-page base {zero_page:#x} is outside $00-$FF")
    if register_base(zero_page) - 1 > ZERO_PAGE_END:
        raise LayoutError(f"fixed cells from ${zero_page:02X} run past the end of the zero page")


def emit_equates(table: AllocationTable, zero_page: int = DEFAULT_ZERO_PAGE) -> List[str]:
    check_zero_page(zero_page)
    if table.end > ZERO_PAGE_END + 1:
        raise LayoutError(
            f"register cells run to ${table.end - 1:X}, past the end of the zero page")
    lines = [
        _equate(SCRATCH_SYMBOL, zero_page),
        _equate(FLAG_SYMBOL, zero_page + SCRATCH_SIZE),
    ]
    for reg_id, addr in table.items():
        if addr < register_base(zero_page):
            raise LayoutError(f"{register_symbol(reg_id)} at ${addr:02X} overlaps the fixed cells")
        lines.append(_equate(register_symbol(reg_id), addr))
    log.debug("Zero page: %d fixed byte(s), %d register cell(s) from $%02X",
              FIXED_CELLS_SIZE, len(table), register_base(zero_page))
    return lines


def emit_runtime() -> List[str]:
    return SYNC_ROUTINE_TEXT.split("\n") + [""] + COMPARE_ROUTINE_TEXT.split("\n")


def emit_layout(table: AllocationTable, zero_page: int = DEFAULT_ZERO_PAGE) -> List[str]:
    """Equates for TMPW, LAST_CMP and every register cell, then the runtime."""
    return emit_equates(table, zero_page) + [""] + emit_runtime()
