"""
Peephole Optimizer for the xlat6502 translator.

Performs pattern-matching replacements on the translated body to remove
the save/restore traffic left between back-to-back expansions.

Rules are applied iteratively until no more matches are found. Labels
(including MADS anonymous '@' labels) are never instructions, so no rule
can match across a branch target.
"""

from __future__ import annotations
from typing import List

from .layout import SCRATCH_SYMBOL


def _strip(line: str) -> str:
    """Strip whitespace from an instruction line."""
    return line.strip()


def _is_instr(line: str, mnemonic: str) -> bool:
    """Check if an indented line is a specific instruction (case-insensitive)."""
    if not line[:1].isspace():
        return False
    s = _strip(line).upper()
    return s == mnemonic or s.startswith(mnemonic + " ")


def _get_operand(line: str) -> str:
    """Extract the operand from an instruction line ('LDA     TMPW' → 'TMPW')."""
    s = _strip(line)
    if ";" in s:
        s = s[:s.index(";")].strip()
    parts = s.split(None, 1)
    return parts[1] if len(parts) > 1 else ""


def optimize(lines: List[str], max_passes: int = 10) -> List[str]:
    """Apply peephole optimization rules iteratively.

    Returns a new list of assembly lines with redundancies removed.
    """
    changed = True
    pass_count = 0
    result = list(lines)

    while changed and pass_count < max_passes:
        changed = False
        pass_count += 1
        new_lines = []
        i = 0
        while i < len(result):
            matched = False

            # ── Rule 1: PLA; PHA; LDA x → LDA x ──
            # The restored value is pushed straight back and A is reloaded
            # before anything reads it, so the stack and A end up the same
            if (i + 2 < len(result)
                    and _is_instr(result[i], "PLA")
                    and _is_instr(result[i + 1], "PHA")
                    and _is_instr(result[i + 2], "LDA")):
                new_lines.append(result[i + 2])
                i += 3
                changed = True
                matched = True

            # ── Rule 2: LDA TMPW; STA TMPW → keep only LDA ──
            # Restricted to the scratch word: other addresses may be I/O registers
            if not matched and (i + 1 < len(result)
                    and _is_instr(result[i], "LDA")
                    and _is_instr(result[i + 1], "STA")):
                op_load = _get_operand(result[i])
                op_store = _get_operand(result[i + 1])
                if op_load == op_store == SCRATCH_SYMBOL:
                    new_lines.append(result[i])
                    i += 2
                    changed = True
                    matched = True

            if not matched:
                new_lines.append(result[i])
                i += 1

        result = new_lines

    return result
