"""
실행 trace 데이터 모델
=======================

**OpCode**:
  모델링하는 명령은 PUSH, ADD, MUL, SUB, AND, OR, HALT 뿐이다.
  값은 프로토콜에 고정되어 있으며 opcode 열에 그대로 들어간다.

**TraceRow**:
  실행되고 인식된 명령 하나당 한 행. 한 번 만들어지면 변하지 않는다.
  커밋에 쓰이는 값은 field_values()가 FR 원소 6개로 돌려준다.

  ┌──────┬────────┬───────────┬───────────┬────────┬─────────┐
  │  pc  │ opcode │ operand_x │ operand_y │ result │ is_halt │
  └──────┴────────┴───────────┴───────────┴────────┴─────────┘

**행 의미론 (64비트 wraparound)**:
  ADD  z = x + y
  SUB  z = x - y   (x가 피감수. 내장 VM과 gdb trace 모두 이 순서로 기록한다)
  MUL  z = x · y
  AND  (z & 0xF) == (x & 0xF) & (y & 0xF)
  OR   (z & 0xF) == (x & 0xF) | (y & 0xF)
  PUSH, HALT: opcode 검사 외 제약 없음
"""

from dataclasses import dataclass
from enum import IntEnum

from zkvm.errors import MalformedInputError
from zkvm.field import FR, U64_MASK


class OpCode(IntEnum):
    PUSH = 0
    ADD = 1
    MUL = 2
    SUB = 3
    AND = 4
    OR = 5
    HALT = 255


ALLOWED_OPCODES = frozenset(int(op) for op in OpCode)

BITWISE_OPCODES = frozenset((OpCode.AND, OpCode.OR))

U32_MAX = (1 << 32) - 1


@dataclass(frozen=True)
class TraceRow:
    step_index: int
    opcode: OpCode
    operand_x: int = 0
    operand_y: int = 0
    result: int = 0
    is_halt: bool = False

    @classmethod
    def halt(cls, step_index, result=0):
        """HALT 행을 만든다."""
        return cls(step_index, OpCode.HALT, 0, 0, result, True)

    def field_values(self):
        """(pc, op, x, y, z, halt) 열의 FR 원소."""
        return (
            FR(self.step_index),
            FR(int(self.opcode)),
            FR(self.operand_x),
            FR(self.operand_y),
            FR(self.result),
            FR(1 if self.is_halt else 0),
        )


def expected_result(opcode, x, y):
    """opcode가 x, y에 대해 만들어야 하는 결과 (64비트).

    AND/OR은 하위 4비트만 의미를 가지므로 니블 결과를 돌려준다.
    PUSH/HALT는 제약이 없으므로 None.
    """
    if opcode == OpCode.ADD:
        return (x + y) & U64_MASK
    if opcode == OpCode.SUB:
        return (x - y) & U64_MASK
    if opcode == OpCode.MUL:
        return (x * y) & U64_MASK
    if opcode == OpCode.AND:
        return (x & 0xF) & (y & 0xF)
    if opcode == OpCode.OR:
        return (x & 0xF) | (y & 0xF)
    return None


def validate_trace(rows):
    """trace가 구조적으로 올바른지 확인한다.

    내용이 의미론적으로 틀린 trace(예: 잘못된 결과값)는 여기서 거르지 않는다.
    그것은 검증자가 찾아낼 일이다.

    Raises:
        MalformedInputError: 빈 trace, 범위를 벗어난 값, 알 수 없는 opcode,
            step_index가 증가하지 않는 경우
    """
    if not rows:
        raise MalformedInputError("trace가 비어 있습니다")
    prev = None
    for i, row in enumerate(rows):
        if not isinstance(row, TraceRow):
            raise MalformedInputError(f"row {i}: TraceRow가 아닙니다: {row!r}")
        if int(row.opcode) not in ALLOWED_OPCODES:
            raise MalformedInputError(f"row {i}: 알 수 없는 opcode {row.opcode}")
        if row.is_halt != (row.opcode == OpCode.HALT):
            raise MalformedInputError(f"row {i}: halt 플래그와 opcode가 일치하지 않습니다")
        if not 0 <= row.step_index <= U32_MAX:
            raise MalformedInputError(f"row {i}: step_index 범위 초과 {row.step_index}")
        for name in ("operand_x", "operand_y", "result"):
            value = getattr(row, name)
            if not 0 <= value <= U64_MASK:
                raise MalformedInputError(f"row {i}: {name} 64비트 범위 초과 {value}")
        if prev is not None and row.step_index <= prev:
            raise MalformedInputError(
                f"row {i}: step_index가 증가하지 않습니다 ({prev} -> {row.step_index})"
            )
        prev = row.step_index


def uses_bitwise(rows):
    return any(row.opcode in BITWISE_OPCODES for row in rows)


def final_output(rows):
    """마지막 행의 결과값 (주장되는 프로그램 출력)."""
    return rows[-1].result
