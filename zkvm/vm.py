"""
내장 스택 VM
=============

gdb 없이 증명 파이프라인을 돌릴 수 있도록 작은 스택 기계 어셈블리를
직접 실행해 trace를 만든다.

**프로그램 형식** (한 줄에 명령 하나, '#' 또는 ';' 이후는 주석):

    PUSH 12      # 스택에 12를 넣는다 (0x, 0b 접두사 허용)
    PUSH 10
    AND          # x = 12, y = 10, z = (x & 0xF) & (y & 0xF)
    HALT

**이항 연산**:
  y = pop() (스택 최상단), x = pop(), push(z)
  SUB는 z = x - y: 먼저 넣은 값이 피감수이다.

HALT 행의 result는 스택 최상단 값(비어 있으면 0)이며 프로그램 출력이 된다.
프로그램 끝에 도달하면 HALT 행이 자동으로 붙는다. 스텝 예산을 다 쓰면
HALT 행 없이 멈춘다 (정상 종료가 아니므로).
"""

import logging

from zkvm.errors import ProgramError
from zkvm.field import U64_MASK
from zkvm.trace import OpCode, TraceRow, expected_result

logger = logging.getLogger(__name__)


def parse_program(source):
    """어셈블리 텍스트 → [(OpCode, 즉시값)] 리스트.

    Raises:
        ProgramError: 알 수 없는 명령 또는 잘못된 피연산자
    """
    program = []
    for lineno, raw in enumerate(source.splitlines(), start=1):
        line = raw.split("#")[0].split(";")[0].strip()
        if not line:
            continue
        parts = line.split()
        name = parts[0].upper()
        try:
            op = OpCode[name]
        except KeyError:
            raise ProgramError(f"line {lineno}: 알 수 없는 명령 '{parts[0]}'") from None

        if op == OpCode.PUSH:
            if len(parts) != 2:
                raise ProgramError(f"line {lineno}: PUSH는 피연산자 하나가 필요합니다")
            try:
                imm = int(parts[1], 0)
            except ValueError:
                raise ProgramError(f"line {lineno}: 잘못된 즉시값 '{parts[1]}'") from None
            program.append((op, imm & U64_MASK))
        else:
            if len(parts) != 1:
                raise ProgramError(f"line {lineno}: {name}은 피연산자를 받지 않습니다")
            program.append((op, 0))
    return program


def run_program(source, inputs=(), max_steps=500):
    """프로그램을 실행하여 trace를 만든다.

    Args:
        source: 어셈블리 텍스트
        inputs: 초기 스택에 차례로 넣을 공개 입력 정수들
        max_steps: 최대 실행 명령 수

    Returns:
        list[TraceRow]: 최소 1행

    Raises:
        ProgramError: 스택 언더플로 등 실행 오류
    """
    program = parse_program(source)
    stack = [v & U64_MASK for v in inputs]
    rows = []

    def pop(pc):
        if not stack:
            raise ProgramError(f"pc {pc}: 스택 언더플로")
        return stack.pop()

    pc = 0
    halted = False
    while len(rows) < max_steps:
        if pc >= len(program):
            break
        op, imm = program[pc]
        step = len(rows)
        if op == OpCode.HALT:
            rows.append(TraceRow.halt(step, result=stack[-1] if stack else 0))
            halted = True
            break
        if op == OpCode.PUSH:
            stack.append(imm)
            rows.append(TraceRow(step, op, imm, 0, imm))
        else:
            y = pop(pc)
            x = pop(pc)
            z = expected_result(op, x, y)
            stack.append(z)
            rows.append(TraceRow(step, op, x, y, z))
        pc += 1

    if not halted and pc >= len(program) and len(rows) < max_steps:
        rows.append(TraceRow.halt(len(rows), result=stack[-1] if stack else 0))
    if not rows:
        rows.append(TraceRow.halt(0))
    logger.info("VM executed %d rows (halted=%s)", len(rows), rows[-1].is_halt)
    return rows
