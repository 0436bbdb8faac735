"""
Peephole optimizer tests for the xlat6502 translator.
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from xlat6502.optimizer import optimize


class TestPeepholeOptimizer:
    def test_restore_save_before_load_removed(self):
        lines = ["        PLA", "        PHA", "        LDA     #$0A"]
        assert optimize(lines) == ["        LDA     #$0A"]

    def test_restore_save_kept_when_accumulator_is_read(self):
        """STA after PHA reads the restored A, so the pair must stay."""
        lines = ["        PLA", "        PHA", "        STA     VREG_C"]
        assert optimize(lines) == lines

    def test_not_across_anonymous_label(self):
        lines = ["        PLA", "@", "        PHA", "        LDA     #$01"]
        assert optimize(lines) == lines

    def test_not_across_label(self):
        lines = ["        PLA", "loop", "        PHA", "        LDA     #$01"]
        assert optimize(lines) == lines

    def test_scratch_reload_store_collapses(self):
        lines = ["        LDA     TMPW", "        STA     TMPW", "        LDA     VREG_S+1"]
        assert optimize(lines) == ["        LDA     TMPW", "        LDA     VREG_S+1"]

    def test_io_register_reload_store_kept(self):
        lines = ["        LDA     $0284", "        STA     $0284"]
        assert optimize(lines) == lines

    def test_repeated_until_stable(self):
        lines = [
            "        PHA", "        LDA     #$01", "        PLA",
            "        PHA", "        LDA     #$02", "        PLA",
            "        PHA", "        LDA     #$03", "        PLA",
        ]
        result = optimize(lines)
        assert sum(1 for l in result if "PHA" in l) == 1
        assert sum(1 for l in result if "PLA" in l) == 1

    def test_diagnostic_lines_untouched(self):
        lines = ["Unable to generate code for opcode 'XOR' with argument: x"]
        assert optimize(lines) == lines
