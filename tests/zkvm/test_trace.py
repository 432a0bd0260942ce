"""
Tests for trace producers: TraceRow, validate_trace, decoder, stack VM, gdb/MI parsing.

Covers:
- expected_result wrap-around and nibble semantics
- validate_trace structural rejections
- ARM64 disassembly decoding (mov/add/sub/mul/and/orr, xzr aliases, shifts, unknowns)
- Stack VM programs, implicit HALT, step budget, errors
- gdb/MI record parsing helpers (no gdb process needed)
"""

import pytest

from zkvm.decoder import DecodedOp, Immediate, RawInstruction, Register, decode
from zkvm.errors import MalformedInputError, ProgramError
from zkvm.field import FR, U64_MASK
from zkvm.trace import (
    OpCode, TraceRow, ALLOWED_OPCODES, expected_result, validate_trace,
    uses_bitwise, final_output,
)
from zkvm.tracer import is_exit_record, parse_register_value, parse_stream_records
from zkvm.vm import parse_program, run_program


# ─────────────────────────────────────────────────────────────────────
# Trace model
# ─────────────────────────────────────────────────────────────────────

class TestTraceRow:
    """TraceRow와 opcode 의미."""

    def test_opcode_values(self):
        assert [int(op) for op in OpCode] == [0, 1, 2, 3, 4, 5, 255]
        assert ALLOWED_OPCODES == {0, 1, 2, 3, 4, 5, 255}

    def test_halt_row(self):
        row = TraceRow.halt(7, result=3)
        assert row.opcode == OpCode.HALT
        assert row.is_halt
        assert row.result == 3

    def test_field_values(self):
        row = TraceRow(2, OpCode.ADD, 4, 5, 9)
        assert row.field_values() == (FR(2), FR(1), FR(4), FR(5), FR(9), FR(0))

    def test_add_wraps(self):
        assert expected_result(OpCode.ADD, U64_MASK, 1) == 0

    def test_sub_wraps(self):
        """SUB는 x - y (mod 2^64)."""
        assert expected_result(OpCode.SUB, 5, 3) == 2
        assert expected_result(OpCode.SUB, 0, 1) == U64_MASK

    def test_mul_wraps(self):
        assert expected_result(OpCode.MUL, 1 << 63, 2) == 0

    def test_bitwise_uses_low_nibble(self):
        assert expected_result(OpCode.AND, 0b1100, 0b1010) == 0b1000
        assert expected_result(OpCode.OR, 0b1100, 0b1010) == 0b1110
        assert expected_result(OpCode.AND, 0xF0, 0xFF) == 0

    def test_push_halt_unconstrained(self):
        assert expected_result(OpCode.PUSH, 1, 2) is None
        assert expected_result(OpCode.HALT, 1, 2) is None

    def test_helpers(self, and_rows, add_rows):
        assert uses_bitwise(and_rows)
        assert not uses_bitwise(add_rows)
        assert final_output(and_rows) == 8


class TestValidateTrace:
    """구조적으로 잘못된 trace 거부."""

    def test_valid(self, and_rows):
        validate_trace(and_rows)

    def test_empty(self):
        with pytest.raises(MalformedInputError):
            validate_trace([])

    def test_not_a_row(self):
        with pytest.raises(MalformedInputError):
            validate_trace([(0, 0, 0, 0, 0)])

    def test_unknown_opcode(self):
        with pytest.raises(MalformedInputError):
            validate_trace([TraceRow(0, 7, 0, 0, 0)])

    def test_halt_flag_mismatch(self):
        with pytest.raises(MalformedInputError):
            validate_trace([TraceRow(0, OpCode.ADD, 1, 1, 2, is_halt=True)])
        with pytest.raises(MalformedInputError):
            validate_trace([TraceRow(0, OpCode.HALT, 0, 0, 0, is_halt=False)])

    def test_value_out_of_range(self):
        with pytest.raises(MalformedInputError):
            validate_trace([TraceRow(0, OpCode.PUSH, 1 << 64, 0, 0)])
        with pytest.raises(MalformedInputError):
            validate_trace([TraceRow(0, OpCode.PUSH, 0, 0, -1)])

    def test_step_index_out_of_range(self):
        with pytest.raises(MalformedInputError):
            validate_trace([TraceRow(1 << 32, OpCode.HALT, is_halt=True)])

    def test_step_index_not_increasing(self):
        with pytest.raises(MalformedInputError):
            validate_trace([TraceRow(1, OpCode.PUSH, 1, 0, 1), TraceRow.halt(1)])

    def test_semantic_errors_are_not_structural(self):
        """결과가 틀린 행은 검증자가 찾을 일이므로 통과시킨다."""
        validate_trace([TraceRow(0, OpCode.ADD, 1, 1, 3), TraceRow.halt(1)])


# ─────────────────────────────────────────────────────────────────────
# Decoder
# ─────────────────────────────────────────────────────────────────────

def _line(text):
    return RawInstruction(0x400000, f"=> 0x400000 <main+4>:\t{text}")


class TestDecoder:
    """gdb 역어셈블 텍스트 → DecodedOp."""

    def test_mov_immediate(self):
        op = decode(_line("mov\tx0, #0x5                \t// #5"))
        assert op == DecodedOp(OpCode.PUSH, 0, Immediate(5), None)

    def test_mov_register(self):
        assert decode(_line("mov\tx3, x1")) == DecodedOp(OpCode.PUSH, 3, Register(1), None)

    def test_add_registers(self):
        assert decode(_line("add\tx2, x0, x1")) == DecodedOp(
            OpCode.ADD, 2, Register(0), Register(1))

    def test_adds_immediate(self):
        assert decode(_line("adds\tx2, x0, #0x10")) == DecodedOp(
            OpCode.ADD, 2, Register(0), Immediate(16))

    def test_sub(self):
        assert decode(_line("sub\tx4, x4, #1")).opcode == OpCode.SUB

    def test_mul_register_only(self):
        assert decode(_line("mul\tx0, x1, x2")).opcode == OpCode.MUL
        assert decode(_line("mul\tx0, x1, #2")) is None

    def test_and_orr(self):
        assert decode(_line("and\tx0, x1, x2")).opcode == OpCode.AND
        assert decode(_line("ands\tx0, x1, #0xf")).opcode == OpCode.AND
        assert decode(_line("orr\tx0, x1, x2")).opcode == OpCode.OR

    def test_orr_xzr_is_mov(self):
        assert decode(_line("orr\tx0, xzr, x5")) == DecodedOp(OpCode.PUSH, 0, Register(5), None)
        assert decode(_line("orr\tx0, x5, xzr")) == DecodedOp(OpCode.PUSH, 0, Register(5), None)

    def test_shifted_register(self):
        op = decode(_line("add\tx0, x1, x2, lsl #3"))
        assert op.rhs == Register(2, "lsl", 3)
        assert op.rhs.apply(1) == 8

    def test_shift_semantics(self):
        assert Register(0, "lsr", 4).apply(0xF0) == 0xF
        assert Register(0, "asr", 1).apply(1 << 63) == (3 << 62)
        assert Register(0, "lsl", 64).apply(5) == 0

    def test_w_registers_rejected(self):
        assert decode(_line("add\tw0, w1, w2")) is None

    def test_unknown_mnemonic(self):
        assert decode(_line("ldr\tx0, [sp, #8]")) is None
        assert decode(_line("ret")) is None

    def test_plain_string_accepted(self):
        assert decode("0x10:\tadd\tx0, x0, #1").opcode == OpCode.ADD

    def test_sp_not_a_register(self):
        assert decode(_line("add\tx0, sp, #16")) is None


# ─────────────────────────────────────────────────────────────────────
# Stack VM
# ─────────────────────────────────────────────────────────────────────

class TestVM:
    """내장 스택 VM."""

    def test_and_program(self, and_rows):
        rows = run_program("PUSH 12\nPUSH 10\nAND\nHALT\n")
        assert rows == and_rows

    def test_sub_order(self):
        rows = run_program("PUSH 10\nPUSH 3\nSUB\nHALT")
        assert rows[2] == TraceRow(2, OpCode.SUB, 10, 3, 7)
        assert rows[-1].result == 7

    def test_implicit_halt(self):
        rows = run_program("PUSH 1\nPUSH 2\nADD")
        assert rows[-1] == TraceRow.halt(3, result=3)

    def test_inputs_seed_stack(self):
        rows = run_program("MUL\nHALT", inputs=[6, 7])
        assert rows[0] == TraceRow(0, OpCode.MUL, 6, 7, 42)

    def test_comments_and_radix(self):
        rows = run_program("# header\nPUSH 0x0c ; twelve\nPUSH 0b1010\nOR\n")
        assert rows[2].result == 0b1110

    def test_step_budget(self):
        rows = run_program("PUSH 1\nPUSH 2\nADD\nHALT", max_steps=2)
        assert len(rows) == 2
        assert not rows[-1].is_halt

    def test_empty_program(self):
        assert run_program("") == [TraceRow.halt(0)]

    def test_halt_on_empty_stack(self):
        assert run_program("HALT") == [TraceRow.halt(0, result=0)]

    def test_underflow(self):
        with pytest.raises(ProgramError):
            run_program("PUSH 1\nADD")

    def test_unknown_instruction(self):
        with pytest.raises(ProgramError):
            parse_program("JMP 3")

    def test_bad_operands(self):
        with pytest.raises(ProgramError):
            parse_program("PUSH")
        with pytest.raises(ProgramError):
            parse_program("PUSH abc")
        with pytest.raises(ProgramError):
            parse_program("ADD 1")


# ─────────────────────────────────────────────────────────────────────
# gdb/MI parsing
# ─────────────────────────────────────────────────────────────────────

class TestMIParsing:
    """gdb/MI 레코드 파싱 보조 함수."""

    def test_stream_records(self):
        lines = [
            '~"=> 0x400584 <main+4>:\\tmov\\tx0, #0x5\\n"',
            '^done',
        ]
        assert parse_stream_records(lines) == "=> 0x400584 <main+4>:\tmov\tx0, #0x5\n"

    def test_register_value_decimal(self):
        assert parse_register_value(['^done,value="42"']) == 42

    def test_register_value_hex(self):
        assert parse_register_value(['^done,value="0xff"']) == 255

    def test_register_value_negative_masked(self):
        assert parse_register_value(['^done,value="-1"']) == U64_MASK

    def test_register_value_missing(self):
        assert parse_register_value(['^error,msg="No registers."']) is None

    def test_exit_record(self):
        assert is_exit_record(['*stopped,reason="exited-normally"'])
        assert is_exit_record(['*stopped,reason="exited",exit-code="01"'])
        assert not is_exit_record(['*stopped,reason="end-stepping-range"'])
