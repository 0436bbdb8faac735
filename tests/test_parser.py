"""
Parser Tests for the xlat6502 translator.

Covers operand classification, line parsing (mnemonic table, arity,
split base+index tokens) and whole-listing parsing with error positions.
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from xlat6502 import instructions as ins
from xlat6502.errors import (
    ParseError, UnknownOpcode, IncorrectNumberOfArguments, EmptyArgument,
    MalformedArgumentName, MalformedRegisterName,
)
from xlat6502.operands import (
    Literal, VirtualRegister, Accumulator, AbsoluteAddress, SumAddress, Label, parse_operand,
)
from xlat6502.parser import MNEMONICS, parse_line, parse_program, split_operands


# ─── Operand parser ───────────────────────

class TestOperands:
    @pytest.mark.parametrize("token, reg", [
        ("%eax", "A"), ("%al", "A"), ("%ecx", "C"), ("%cl", "C"),
        ("%ebx", "B"), ("%bl", "B"), ("%edx", "D"), ("%dl", "D"),
        ("%esi", "S"), ("%eax,", "A"),
    ])
    def test_registers(self, token, reg):
        assert parse_operand(token) == VirtualRegister(reg)

    def test_unknown_register(self):
        with pytest.raises(MalformedRegisterName) as exc:
            parse_operand("%ax,")
        assert exc.value.name == "ax"

    def test_label(self):
        assert parse_operand(".LBB0_1") == Label("LBB0_1")
        assert parse_operand(".start,") == Label("start")

    def test_absolute_address(self):
        assert parse_operand("764") == AbsoluteAddress(764)
        assert parse_operand("710,") == AbsoluteAddress(710)
        assert parse_operand("65535") == AbsoluteAddress(0xFFFF)

    @pytest.mark.parametrize("token", ["65536", "70000,", "2147483647"])
    def test_absolute_address_past_64k(self, token):
        with pytest.raises(MalformedArgumentName):
            parse_operand(token)

    def test_literal(self):
        assert parse_operand("$5") == Literal(5)
        assert parse_operand("$-1,") == Literal(-1)
        assert parse_operand("$-2147483648") == Literal(-2147483648)
        assert parse_operand("$2147483647") == Literal(2147483647)

    def test_literal_bytes(self):
        lit = parse_operand("$4660")    # 0x1234
        assert (lit.low, lit.high) == (0x34, 0x12)

    @pytest.mark.parametrize("token", ["$", "$5x", "$0x10", "$2147483648", "12a", "eax", "#5", "*",
                                       "$1_000", "1_000", "\u0663", "$\u0663", "$--1", "$ 5"])
    def test_malformed(self, token):
        with pytest.raises(MalformedArgumentName):
            parse_operand(token)

    def test_empty(self):
        with pytest.raises(EmptyArgument):
            parse_operand("")

    def test_sum_address(self):
        assert parse_operand("(%edx,%ecx)") == SumAddress("D", "C")
        assert parse_operand("(%ebx,%esi),") == SumAddress("B", "S")

    def test_sum_address_bad_register(self):
        with pytest.raises(MalformedRegisterName):
            parse_operand("(%edx,%r8)")

    @pytest.mark.parametrize("token", ["(%edx)", "(%edx,%ecx,%eax)", "(%edx,", "(edx,ecx)"])
    def test_sum_address_malformed(self, token):
        with pytest.raises(MalformedArgumentName):
            parse_operand(token)

    def test_accumulator_alias(self):
        assert parse_operand("%al", accumulator_alias=True) == Accumulator()
        assert parse_operand("%eax,", accumulator_alias=True) == Accumulator()
        assert parse_operand("%ecx", accumulator_alias=True) == VirtualRegister("C")

    def test_operands_are_hashable(self):
        assert len({VirtualRegister("A"), VirtualRegister("A"), Literal(1)}) == 2


# ─── Line parser ──────────────────────────

class TestParseLine:
    def test_label_line(self):
        assert parse_line(".start") == ins.Label("start")

    def test_label_line_kept_verbatim(self):
        assert parse_line(".LBB0_1:\n") == ins.Label("LBB0_1:")

    def test_two_operands(self):
        assert parse_line("\tmovb\t$5, %al") == ins.Mov(Literal(5), VirtualRegister("A"))

    def test_one_operand(self):
        assert parse_line("jmp .LBB0_1") == ins.Jmp(Label("LBB0_1"))

    def test_split_sum_address_rejoined(self):
        instr = parse_line("movb $33, (%edx, %ecx)")
        assert instr == ins.Mov(Literal(33), SumAddress("D", "C"))

    def test_split_operands(self):
        assert split_operands(["$1,", "(%edx,", "%ecx)"]) == ["$1,", "(%edx,%ecx)"]
        assert split_operands(["(%edx,%ecx)"]) == ["(%edx,%ecx)"]

    @pytest.mark.parametrize("mnemonic, cls", sorted(MNEMONICS.items()))
    def test_mnemonic_table(self, mnemonic, cls):
        args = "%eax, %ecx" if cls.arity == 2 else "%eax"
        assert type(parse_line(f"{mnemonic} {args}")) is cls

    def test_unknown_opcode(self):
        with pytest.raises(UnknownOpcode) as exc:
            parse_line("frobnicate %eax, %ecx")
        assert exc.value.name == "frobnicate"

    def test_mnemonic_is_case_sensitive(self):
        with pytest.raises(UnknownOpcode):
            parse_line("MOVB $1, %eax")

    @pytest.mark.parametrize("line, expected, got", [
        ("movb $1", 2, 1),
        ("movb $1, %eax, %ecx", 2, 3),
        ("incb", 1, 0),
        ("jmp .a .b", 1, 2),
    ])
    def test_incorrect_number_of_arguments(self, line, expected, got):
        with pytest.raises(IncorrectNumberOfArguments) as exc:
            parse_line(line)
        assert (exc.value.expected, exc.value.got) == (expected, got)

    def test_operand_error_propagates(self):
        with pytest.raises(MalformedRegisterName):
            parse_line("movb $1, %xyz")

    def test_empty_line(self):
        with pytest.raises(ParseError):
            parse_line("   ")

    def test_parsing_is_idempotent(self):
        line = "movb $33, (%edx, %ecx)"
        assert parse_line(line) == parse_line(line)

    def test_arity_declared(self):
        assert ins.Mov.arity == 2
        assert ins.Push.arity == 1
        assert ins.Label.arity == 0


# ─── Whole listing ────────────────────────

class TestParseProgram:
    def test_skips_header_and_blank_lines(self):
        program = parse_program(["\t.text", "", "movb $1, %eax", "   ", "jmp .start"])
        assert [p.number for p in program] == [3, 5]
        assert program[0].text == "movb $1, %eax"
        assert program[1].instruction == ins.Jmp(Label("start"))

    def test_header_not_parsed(self):
        assert parse_program(["frobnicate"]) == []

    def test_error_position(self):
        with pytest.raises(MalformedArgumentName) as exc:
            parse_program(["header", "movb $1, %eax", "movb @1, %eax"])
        assert exc.value.line_num == 3
        assert str(exc.value) == "Line 3: Malformed argument '@1,' ('movb @1, %eax')"

    def test_accumulator_alias_passed_through(self):
        program = parse_program(["header", "movb $1, %al"], accumulator_alias=True)
        assert program[0].instruction == ins.Mov(Literal(1), Accumulator())
